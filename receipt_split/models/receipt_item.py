from sqlalchemy import Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_split.core.db import Base
from receipt_split.core.ids import generate_id


class ReceiptItem(Base):
    __tablename__ = "receipt_items"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_id)
    receipt_id: Mapped[str] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    price_per_item: Mapped[float] = mapped_column(Float, nullable=False)

    receipt = relationship("Receipt", back_populates="items")

    assignments = relationship(
        "ReceiptUserItem",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
