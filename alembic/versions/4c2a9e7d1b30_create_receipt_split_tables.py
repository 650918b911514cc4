"""create receipt split tables

Revision ID: 4c2a9e7d1b30
Revises:
Create Date: 2026-10-19 10:12:03.418220

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c2a9e7d1b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "receipts",
        sa.Column("id", sa.String(length=26), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("ocr_text", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("receipt_date", sa.DateTime(), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("tax", sa.Float(), nullable=True),
        sa.Column("tip", sa.Float(), nullable=True),
    )

    op.create_table(
        "receipt_items",
        sa.Column("id", sa.String(length=26), primary_key=True),
        sa.Column(
            "receipt_id",
            sa.String(length=26),
            sa.ForeignKey("receipts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("price_per_item", sa.Float(), nullable=False),
    )
    op.create_index("ix_receipt_items_receipt_id", "receipt_items", ["receipt_id"])

    op.create_table(
        "receipt_users",
        sa.Column("id", sa.String(length=26), primary_key=True),
        sa.Column(
            "receipt_id",
            sa.String(length=26),
            sa.ForeignKey("receipts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_receipt_users_receipt_id", "receipt_users", ["receipt_id"])

    op.create_table(
        "receipt_user_items",
        sa.Column("id", sa.String(length=26), primary_key=True),
        sa.Column(
            "receipt_user_id",
            sa.String(length=26),
            sa.ForeignKey("receipt_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "receipt_item_id",
            sa.String(length=26),
            sa.ForeignKey("receipt_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount_paid", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("receipt_user_id", "receipt_item_id", name="uq_receipt_user_items_user_item"),
    )
    op.create_index("ix_receipt_user_items_receipt_user_id", "receipt_user_items", ["receipt_user_id"])
    op.create_index("ix_receipt_user_items_receipt_item_id", "receipt_user_items", ["receipt_item_id"])


def downgrade() -> None:
    op.drop_index("ix_receipt_user_items_receipt_item_id", table_name="receipt_user_items")
    op.drop_index("ix_receipt_user_items_receipt_user_id", table_name="receipt_user_items")
    op.drop_table("receipt_user_items")

    op.drop_index("ix_receipt_users_receipt_id", table_name="receipt_users")
    op.drop_table("receipt_users")

    op.drop_index("ix_receipt_items_receipt_id", table_name="receipt_items")
    op.drop_table("receipt_items")

    op.drop_table("receipts")
