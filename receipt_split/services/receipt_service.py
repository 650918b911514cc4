"""Receipt aggregate operations: validation, writes and snapshot reads.

Every check that can reject a request runs before the first write, so a
rejected request never leaves partial state behind. Writes that fail at
the database are rolled back and surfaced as ``PersistenceError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receipt_split.core.errors import CrossReferenceError, NotFoundError, PersistenceError, ValidationError
from receipt_split.core.ids import generate_id, utcnow
from receipt_split.models.receipt import Receipt
from receipt_split.models.receipt_item import ReceiptItem
from receipt_split.models.receipt_user import ReceiptUser
from receipt_split.models.receipt_user_item import ReceiptUserItem
from receipt_split.services.bill_split import BillSplit, compute_split
from receipt_split.services.currency import MAX_AMOUNT, to_decimal
from receipt_split.services.receipt_normalizer import MAX_QUANTITY, NormalizedItem

logger = logging.getLogger(__name__)

_DERIVED_QUANTUM = Decimal("0.000001")

ItemDraft = NormalizedItem


@dataclass
class ReceiptSnapshot:
    receipt: Receipt
    users: list[ReceiptUser]
    items: list[ReceiptItem]
    assignments: list[ReceiptUserItem]
    split: BillSplit


# ---------- validation ----------

def _amount(field: str, value) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError(field, "must be a number")
    d = to_decimal(value)
    if not d.is_finite():
        raise ValidationError(field, "must be a finite number")
    if d < 0:
        raise ValidationError(field, "must not be negative")
    if d > MAX_AMOUNT:
        raise ValidationError(field, f"must not exceed {MAX_AMOUNT}")
    return d


def _quantity(value) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError("quantity", "quantity is required and must be a positive integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("quantity", "quantity must be a whole number")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError("quantity", "quantity must be a positive integer")
    if value <= 0:
        raise ValidationError("quantity", "quantity must be greater than 0")
    if value > MAX_QUANTITY:
        raise ValidationError("quantity", f"quantity must not exceed {MAX_QUANTITY}")
    return value


def validate_item(name, quantity, total_price=None, price_per_item=None) -> ItemDraft:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name", "name is required")
    qty = _quantity(quantity)
    total = _amount("total_price", total_price)
    per_item = _amount("price_per_item", price_per_item)

    if total is None and per_item is None:
        raise ValidationError("total_price", "one of total_price or price_per_item is required")
    if not ((total is not None and total > 0) or (per_item is not None and per_item > 0)):
        raise ValidationError("total_price", "total_price or price_per_item must be greater than 0")

    # both given: trusted as-is, no cross-check
    if total is None:
        total = per_item * qty
        if total > MAX_AMOUNT:
            raise ValidationError("total_price", f"quantity * price_per_item must not exceed {MAX_AMOUNT}")
    elif per_item is None:
        per_item = (total / qty).quantize(_DERIVED_QUANTUM, rounding=ROUND_HALF_UP)

    return ItemDraft(name=name.strip(), quantity=qty, total_price=total, price_per_item=per_item)


def validate_items(raw_items: Sequence) -> list[ItemDraft]:
    if not raw_items:
        raise ValidationError("items", "at least one item is required")
    drafts = []
    for i, raw in enumerate(raw_items):
        try:
            drafts.append(validate_item(raw.name, raw.quantity, raw.total_price, raw.price_per_item))
        except ValidationError as e:
            raise ValidationError(f"items[{i}].{e.field}", e.message) from e
    return drafts


# ---------- writes ----------

def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("failed to %s", what)
        raise PersistenceError(f"Failed to {what}: {e}") from e


def _as_float(value) -> float | None:
    return float(value) if value is not None else None


def create_receipt(
    db: Session,
    drafts: Iterable[ItemDraft],
    *,
    receipt_id: str | None = None,
    image_url: str | None = None,
    ocr_text: str | None = None,
    currency: str | None = None,
    receipt_date: datetime | None = None,
    title: str | None = None,
    tax: Decimal | None = None,
    tip: Decimal | None = None,
) -> Receipt:
    """Save a receipt and its items in one transaction.

    Either the receipt and every item become visible, or nothing does.
    """
    receipt = Receipt(
        id=receipt_id or generate_id(),
        created_at=utcnow(),
        image_url=image_url,
        ocr_text={"text": ocr_text} if ocr_text else None,
        currency=currency,
        receipt_date=receipt_date,
        title=title,
        tax=_as_float(tax),
        tip=_as_float(tip),
    )
    try:
        db.add(receipt)
        for d in drafts:
            db.add(
                ReceiptItem(
                    id=generate_id(),
                    receipt_id=receipt.id,
                    name=d.name,
                    quantity=d.quantity,
                    total_price=float(d.total_price),
                    price_per_item=float(d.price_per_item),
                )
            )
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("failed to insert receipt %s", receipt.id)
        raise PersistenceError(f"Failed to save receipt: {e}") from e

    _commit(db, "save receipt")
    logger.info("saved receipt %s", receipt.id)
    return receipt


def add_participant(db: Session, receipt_id: str, name: str) -> ReceiptUser:
    get_receipt(db, receipt_id)

    user = ReceiptUser(id=generate_id(), receipt_id=receipt_id, name=name, created_at=utcnow())
    db.add(user)
    _commit(db, "add user to receipt")
    return user


def update_tax_tip(db: Session, receipt_id: str, tax=None, tip=None) -> Receipt:
    if tax is None and tip is None:
        raise ValidationError("body", "at least one of tax or tip is required")
    tax_d = _amount("tax", tax)
    tip_d = _amount("tip", tip)

    receipt = get_receipt(db, receipt_id)
    if tax_d is not None:
        receipt.tax = float(tax_d)
    if tip_d is not None:
        receipt.tip = float(tip_d)
    _commit(db, "update receipt")
    return receipt


def _check_pair(user: ReceiptUser | None, item: ReceiptItem | None, item_id: str) -> None:
    if user is None:
        raise NotFoundError("receipt user not found")
    if item is None:
        raise NotFoundError(f"receipt item {item_id} not found")
    if user.receipt_id != item.receipt_id:
        raise CrossReferenceError("user and item must belong to the same receipt")


def _upsert_assignment(db: Session, user_id: str, item_id: str, custom_amount: Decimal | None) -> None:
    values = {
        "id": generate_id(),
        "receipt_user_id": user_id,
        "receipt_item_id": item_id,
        "amount_paid": _as_float(custom_amount),
        "created_at": utcnow(),
    }
    dialect = db.get_bind().dialect.name

    if dialect in ("postgresql", "sqlite"):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        stmt = insert(ReceiptUserItem).values(**values)
        # the existing row keeps its id and created_at, so split order is stable
        stmt = stmt.on_conflict_do_update(
            index_elements=["receipt_user_id", "receipt_item_id"],
            set_={"amount_paid": stmt.excluded.amount_paid},
        )
        db.execute(stmt)
        return

    existing = db.scalars(
        select(ReceiptUserItem)
        .where(ReceiptUserItem.receipt_user_id == user_id, ReceiptUserItem.receipt_item_id == item_id)
        .with_for_update()
    ).first()
    if existing is not None:
        existing.amount_paid = values["amount_paid"]
    else:
        db.add(ReceiptUserItem(**values))
    db.flush()


def _load_assignment(db: Session, user_id: str, item_id: str) -> ReceiptUserItem:
    return db.scalars(
        select(ReceiptUserItem)
        .where(ReceiptUserItem.receipt_user_id == user_id, ReceiptUserItem.receipt_item_id == item_id)
        .execution_options(populate_existing=True)
    ).one()


def assign(db: Session, participant_id: str, item_id: str, custom_amount=None) -> ReceiptUserItem:
    """Link a participant to an item, replacing any earlier link for the pair."""
    amount = _amount("custom_amount", custom_amount)
    _check_pair(db.get(ReceiptUser, participant_id), db.get(ReceiptItem, item_id), item_id)

    try:
        _upsert_assignment(db, participant_id, item_id, amount)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("failed to assign item %s to user %s", item_id, participant_id)
        raise PersistenceError(f"Failed to assign item to user: {e}") from e
    _commit(db, "assign item to user")
    return _load_assignment(db, participant_id, item_id)


def assign_items(
    db: Session,
    receipt_id: str,
    participant_id: str,
    item_ids: Sequence[str],
    custom_amount=None,
) -> list[ReceiptUserItem]:
    """Assign several items to one participant as a single unit of work."""
    if not item_ids:
        raise ValidationError("item_ids", "at least one item_id is required")
    amount = _amount("custom_amount", custom_amount)

    user = db.get(ReceiptUser, participant_id)
    if user is None or user.receipt_id != receipt_id:
        raise NotFoundError("receipt user not found")

    wanted = list(dict.fromkeys(item_ids))
    found = {i.id: i for i in db.scalars(select(ReceiptItem).where(ReceiptItem.id.in_(wanted)))}
    for item_id in wanted:
        _check_pair(user, found.get(item_id), item_id)

    try:
        for item_id in wanted:
            _upsert_assignment(db, participant_id, item_id, amount)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("failed to assign items to user %s", participant_id)
        raise PersistenceError(f"Failed to assign items to user: {e}") from e
    _commit(db, "assign items to user")

    return [_load_assignment(db, participant_id, item_id) for item_id in wanted]


# ---------- reads ----------

def get_receipt(db: Session, receipt_id: str) -> Receipt:
    receipt = db.get(Receipt, receipt_id)
    if receipt is None:
        raise NotFoundError("receipt not found")
    return receipt


def list_items(db: Session, receipt_id: str) -> list[ReceiptItem]:
    return list(
        db.scalars(select(ReceiptItem).where(ReceiptItem.receipt_id == receipt_id).order_by(ReceiptItem.id))
    )


def list_participants(db: Session, receipt_id: str) -> list[ReceiptUser]:
    return list(
        db.scalars(
            select(ReceiptUser)
            .where(ReceiptUser.receipt_id == receipt_id)
            .order_by(ReceiptUser.created_at, ReceiptUser.id)
        )
    )


def list_assignments(db: Session, receipt_id: str) -> list[ReceiptUserItem]:
    return list(
        db.scalars(
            select(ReceiptUserItem)
            .join(ReceiptUser, ReceiptUser.id == ReceiptUserItem.receipt_user_id)
            .where(ReceiptUser.receipt_id == receipt_id)
            .order_by(ReceiptUserItem.created_at, ReceiptUserItem.id)
        )
    )


def receipt_snapshot(db: Session, receipt_id: str) -> ReceiptSnapshot:
    receipt = get_receipt(db, receipt_id)
    users = list_participants(db, receipt_id)
    items = list_items(db, receipt_id)
    assignments = list_assignments(db, receipt_id)
    return ReceiptSnapshot(
        receipt=receipt,
        users=users,
        items=items,
        assignments=assignments,
        split=compute_split(items, assignments, receipt.currency),
    )
