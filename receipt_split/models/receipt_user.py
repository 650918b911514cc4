from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_split.core.db import Base
from receipt_split.core.ids import generate_id, utcnow


class ReceiptUser(Base):
    __tablename__ = "receipt_users"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_id)
    receipt_id: Mapped[str] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)

    # creation order breaks ties in the bill split
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    receipt = relationship("Receipt", back_populates="users")

    assignments = relationship(
        "ReceiptUserItem",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
