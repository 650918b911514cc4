from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

# Monetary fields are Decimals already rounded to the receipt currency;
# pydantic renders them as JSON strings ("22.00", "1000", "1.250").


# ---------- requests ----------

class ReceiptItemIn(BaseModel):
    name: str | None = None
    quantity: int | None = None
    total_price: Decimal | None = None
    price_per_item: Decimal | None = None


class AddReceiptRequest(BaseModel):
    items: list[ReceiptItemIn] = Field(default_factory=list)
    currency: str | None = None
    title: str | None = None


class AddUserRequest(BaseModel):
    name: str = ""


class AssignItemsRequest(BaseModel):
    item_ids: list[str] = Field(default_factory=list)
    custom_amount: Decimal | None = None


class PatchReceiptRequest(BaseModel):
    tax: Decimal | None = None
    tip: Decimal | None = None


# ---------- responses ----------

class ReceiptItemOut(BaseModel):
    id: str
    name: str
    quantity: int
    total_price: Decimal
    price_per_item: Decimal


class AddReceiptResponse(BaseModel):
    message: str
    receipt_id: str
    items: list[ReceiptItemOut]


class UploadReceiptResponse(BaseModel):
    receipt_id: str
    image_url: str
    items: list[ReceiptItemOut]
    ocr_text: str | None = None
    tax: Decimal | None = None
    tip: Decimal | None = None


class ReceiptUserOut(BaseModel):
    id: str
    receipt_id: str
    name: str


class AddUserResponse(BaseModel):
    message: str
    user: ReceiptUserOut


class ReceiptUserWithTotalOut(ReceiptUserOut):
    user_total: Decimal


class ReceiptUsersResponse(BaseModel):
    users: list[ReceiptUserWithTotalOut]


class ReceiptItemsResponse(BaseModel):
    items: list[ReceiptItemOut]


class AssignedItemOut(BaseModel):
    id: str
    receipt_user_id: str
    receipt_item_id: str
    amount_paid: Decimal | None = None


class AssignItemsResponse(BaseModel):
    message: str
    items: list[AssignedItemOut]


class AssignmentOut(BaseModel):
    id: str
    user_id: str
    item_id: str
    amount_owed: Decimal


class ReceiptOut(BaseModel):
    receipt_id: str
    currency: str | None = None
    title: str | None = None
    receipt_date: datetime | None = None
    tax: Decimal | None = None
    tip: Decimal | None = None
    users: list[ReceiptUserWithTotalOut]
    items: list[ReceiptItemOut]
    assignments: list[AssignmentOut]


class MessageResponse(BaseModel):
    message: str
