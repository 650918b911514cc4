from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_split.core.db import Base
from receipt_split.core.ids import generate_id, utcnow


class Receipt(Base):
    __tablename__ = "receipts"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_id)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    ocr_text: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)
    receipt_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)

    tax: Mapped[float | None] = mapped_column(Float, nullable=True)
    tip: Mapped[float | None] = mapped_column(Float, nullable=True)

    items = relationship(
        "ReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ReceiptItem.id",
    )

    users = relationship(
        "ReceiptUser",
        back_populates="receipt",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def ocr_plain_text(self) -> str | None:
        if not self.ocr_text:
            return None
        return self.ocr_text.get("text")
