from __future__ import annotations

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.orm import Session

from receipt_split.api.deps import get_db, get_image_storage, get_ocr_provider, get_receipt_structurer
from receipt_split.core.errors import ValidationError
from receipt_split.models.receipt_item import ReceiptItem
from receipt_split.models.receipt_user import ReceiptUser
from receipt_split.schemas.receipt import (
    AddReceiptRequest,
    AddReceiptResponse,
    AddUserRequest,
    AddUserResponse,
    AssignedItemOut,
    AssignItemsRequest,
    AssignItemsResponse,
    AssignmentOut,
    MessageResponse,
    PatchReceiptRequest,
    ReceiptItemOut,
    ReceiptItemsResponse,
    ReceiptOut,
    ReceiptUserOut,
    ReceiptUsersResponse,
    ReceiptUserWithTotalOut,
    UploadReceiptResponse,
)
from receipt_split.services import receipt_service
from receipt_split.services.bill_split import BillSplit
from receipt_split.services.currency import round_amount
from receipt_split.services.receipt_processor import ingest_receipt_image
from receipt_split.services.receipt_normalizer import normalize_currency

router = APIRouter(prefix="/receipts", tags=["receipts"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}


def _item_out(item: ReceiptItem, currency: str | None) -> ReceiptItemOut:
    return ReceiptItemOut(
        id=item.id,
        name=item.name,
        quantity=item.quantity,
        total_price=round_amount(item.total_price, currency),
        price_per_item=round_amount(item.price_per_item, currency),
    )


def _user_out(user: ReceiptUser, split: BillSplit) -> ReceiptUserWithTotalOut:
    return ReceiptUserWithTotalOut(
        id=user.id,
        receipt_id=user.receipt_id,
        name=user.name,
        user_total=split.total_for(user.id),
    )


def _optional_amount(value, currency: str | None):
    return round_amount(value, currency) if value is not None else None


@router.post("", response_model=AddReceiptResponse, status_code=status.HTTP_201_CREATED)
def add_receipt(payload: AddReceiptRequest, db: Session = Depends(get_db)):
    drafts = receipt_service.validate_items(payload.items)
    currency = normalize_currency(payload.currency)
    title = payload.title.strip() if payload.title and payload.title.strip() else None

    receipt = receipt_service.create_receipt(db, drafts, currency=currency, title=title)
    items = receipt_service.list_items(db, receipt.id)

    return AddReceiptResponse(
        message=f"Receipt saved successfully with ID: {receipt.id}",
        receipt_id=receipt.id,
        items=[_item_out(i, currency) for i in items],
    )


@router.post("/image", response_model=UploadReceiptResponse, status_code=status.HTTP_201_CREATED)
def upload_receipt_image(
    request: Request,
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage=Depends(get_image_storage),
    ocr=Depends(get_ocr_provider),
    structurer=Depends(get_receipt_structurer),
):
    content_type = (image.content_type or "").lower() or None
    if content_type is not None and content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("image", f"invalid image type: {content_type}")

    max_bytes = request.app.state.settings.MAX_UPLOAD_BYTES

    # read one byte past the limit so oversized uploads are detected without loading them whole
    data = image.file.read(max_bytes + 1)
    try:
        image.file.close()
    except OSError:
        pass

    if not data:
        raise ValidationError("image", "image file is empty")
    if len(data) > max_bytes:
        raise ValidationError("image", f"image file too large (max {max_bytes} bytes)")

    result = ingest_receipt_image(db, data, content_type, storage=storage, ocr=ocr, structurer=structurer)
    currency = result.receipt.currency
    items = receipt_service.list_items(db, result.receipt.id)

    return UploadReceiptResponse(
        receipt_id=result.receipt.id,
        image_url=result.image_url,
        items=[_item_out(i, currency) for i in items],
        ocr_text=result.ocr_text,
        tax=_optional_amount(result.receipt.tax, currency),
        tip=_optional_amount(result.receipt.tip, currency),
    )


@router.get("/{receipt_id}", response_model=ReceiptOut)
def get_receipt(receipt_id: str, db: Session = Depends(get_db)):
    snap = receipt_service.receipt_snapshot(db, receipt_id)
    currency = snap.receipt.currency

    return ReceiptOut(
        receipt_id=snap.receipt.id,
        currency=currency,
        title=snap.receipt.title,
        receipt_date=snap.receipt.receipt_date,
        tax=_optional_amount(snap.receipt.tax, currency),
        tip=_optional_amount(snap.receipt.tip, currency),
        users=[_user_out(u, snap.split) for u in snap.users],
        items=[_item_out(i, currency) for i in snap.items],
        assignments=[
            AssignmentOut(
                id=a.id,
                user_id=a.receipt_user_id,
                item_id=a.receipt_item_id,
                amount_owed=snap.split.amount_owed(a.receipt_user_id, a.receipt_item_id),
            )
            for a in snap.assignments
        ],
    )


@router.patch("/{receipt_id}", response_model=MessageResponse)
def patch_receipt(receipt_id: str, payload: PatchReceiptRequest, db: Session = Depends(get_db)):
    receipt_service.update_tax_tip(db, receipt_id, tax=payload.tax, tip=payload.tip)
    return MessageResponse(message="Receipt updated successfully")


@router.post("/{receipt_id}/users", response_model=AddUserResponse, status_code=status.HTTP_201_CREATED)
def add_user_to_receipt(receipt_id: str, payload: AddUserRequest, db: Session = Depends(get_db)):
    if not payload.name.strip():
        raise ValidationError("name", "name is required")

    user = receipt_service.add_participant(db, receipt_id, payload.name)
    return AddUserResponse(
        message="User added to receipt successfully",
        user=ReceiptUserOut(id=user.id, receipt_id=user.receipt_id, name=user.name),
    )


@router.get("/{receipt_id}/users", response_model=ReceiptUsersResponse)
def get_receipt_users(receipt_id: str, db: Session = Depends(get_db)):
    snap = receipt_service.receipt_snapshot(db, receipt_id)
    return ReceiptUsersResponse(users=[_user_out(u, snap.split) for u in snap.users])


@router.get("/{receipt_id}/items", response_model=ReceiptItemsResponse)
def get_receipt_items(receipt_id: str, db: Session = Depends(get_db)):
    receipt = receipt_service.get_receipt(db, receipt_id)
    items = receipt_service.list_items(db, receipt_id)
    return ReceiptItemsResponse(items=[_item_out(i, receipt.currency) for i in items])


@router.post(
    "/{receipt_id}/users/{user_id}/items",
    response_model=AssignItemsResponse,
    status_code=status.HTTP_201_CREATED,
)
def assign_items_to_user(
    receipt_id: str,
    user_id: str,
    payload: AssignItemsRequest,
    db: Session = Depends(get_db),
):
    assignments = receipt_service.assign_items(
        db, receipt_id, user_id, payload.item_ids, custom_amount=payload.custom_amount
    )
    currency = receipt_service.get_receipt(db, receipt_id).currency

    return AssignItemsResponse(
        message=f"Successfully assigned {len(assignments)} item(s) to user",
        items=[
            AssignedItemOut(
                id=a.id,
                receipt_user_id=a.receipt_user_id,
                receipt_item_id=a.receipt_item_id,
                amount_paid=_optional_amount(a.amount_paid, currency),
            )
            for a in assignments
        ],
    )
