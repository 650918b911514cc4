"""Equal bill split with deterministic remainder distribution.

Each item's total is converted to integer minor units and divided among
the participants assigned to it. The indivisible remainder goes one
minor unit at a time to the earliest assignees, so the allocations for an
item always add up to the item's total exactly.

Assignments must be passed in first-assigned order (``created_at``, then
``id``); that order decides who pays the extra cent.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Protocol

from receipt_split.services.currency import from_minor_units, to_minor_units


class SplitItem(Protocol):
    id: str
    total_price: float


class SplitAssignment(Protocol):
    receipt_user_id: str
    receipt_item_id: str


@dataclass
class BillSplit:
    currency: str | None = None
    units_by_user_item: dict[tuple[str, str], int] = field(default_factory=dict)
    units_by_user: dict[str, int] = field(default_factory=dict)

    @property
    def amount_by_user_item(self) -> dict[tuple[str, str], Decimal]:
        return {k: from_minor_units(v, self.currency) for k, v in self.units_by_user_item.items()}

    @property
    def user_total(self) -> dict[str, Decimal]:
        return {k: from_minor_units(v, self.currency) for k, v in self.units_by_user.items()}

    def amount_owed(self, user_id: str, item_id: str) -> Decimal:
        return from_minor_units(self.units_by_user_item.get((user_id, item_id), 0), self.currency)

    def total_for(self, user_id: str) -> Decimal:
        return from_minor_units(self.units_by_user.get(user_id, 0), self.currency)


def split_units(total_units: int, n: int) -> list[int]:
    """Split ``total_units`` into ``n`` shares; the first shares get the remainder."""
    if n <= 0:
        return []
    base, remainder = divmod(total_units, n)
    return [base + 1 if i < remainder else base for i in range(n)]


def compute_split(
    items: Iterable[SplitItem],
    assignments: Iterable[SplitAssignment],
    currency: str | None = None,
) -> BillSplit:
    item_units = {item.id: to_minor_units(item.total_price, currency) for item in items}

    users_by_item: dict[str, list[str]] = defaultdict(list)
    for a in assignments:
        # the unique (user, item) constraint makes this redundant for stored rows
        if a.receipt_user_id not in users_by_item[a.receipt_item_id]:
            users_by_item[a.receipt_item_id].append(a.receipt_user_id)

    result = BillSplit(currency=currency)
    for item_id, user_ids in users_by_item.items():
        total_units = item_units.get(item_id, 0)
        for user_id, units in zip(user_ids, split_units(total_units, len(user_ids))):
            result.units_by_user_item[(user_id, item_id)] = units
            result.units_by_user[user_id] = result.units_by_user.get(user_id, 0) + units

    return result
