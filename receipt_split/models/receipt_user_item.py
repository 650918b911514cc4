from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_split.core.db import Base
from receipt_split.core.ids import generate_id, utcnow


class ReceiptUserItem(Base):
    __tablename__ = "receipt_user_items"
    __table_args__ = (
        UniqueConstraint("receipt_user_id", "receipt_item_id", name="uq_receipt_user_items_user_item"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_id)

    receipt_user_id: Mapped[str] = mapped_column(
        ForeignKey("receipt_users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    receipt_item_id: Mapped[str] = mapped_column(
        ForeignKey("receipt_items.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # NULL means equal split, non-NULL is a custom amount
    amount_paid: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("ReceiptUser", back_populates="assignments")
    item = relationship("ReceiptItem", back_populates="assignments")
