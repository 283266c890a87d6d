"""Domain records for events, categories and budget entries.

Amounts are ``Decimal`` throughout.  An entry never stores whether it is
income or expense; that is resolved through its category at read time
(see :func:`event_budget.aggregation.classify`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from .formatting import parse_date

EVENT_STATUSES = ("Active", "Completed", "On Hold", "Cancelled")
CATEGORY_TYPES = ("Income", "Expense")
REIMBURSEMENT_STATUSES = ("pending", "completed")

# Status badge colours on the events dashboard
STATUS_COLORS = {
    "Active": "#22c55e",
    "Completed": "#3b82f6",
    "On Hold": "#eab308",
    "Cancelled": "#ef4444",
}


class Classification(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"
    UNCLASSIFIED = "Unclassified"


@dataclass(frozen=True)
class Event:
    id: str
    name: str
    allocated_budget: Decimal
    venue: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = "Active"
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Category:
    id: str
    event_id: str
    name: str
    type: str
    created_at: str = ""


@dataclass(frozen=True)
class BudgetEntry:
    id: str
    event_id: str
    category_id: str
    item_name: str
    amount: Decimal
    entry_date: date
    payment_method: Optional[str] = None
    receipt_photo_url: Optional[str] = None
    receipt_filename: Optional[str] = None
    to_be_reimbursed: bool = False
    reimbursement_source: Optional[str] = None
    reimbursement_status: str = "pending"
    created_at: str = ""
    updated_at: str = ""

    @property
    def has_receipt(self) -> bool:
        return bool(self.receipt_photo_url and self.receipt_filename)


def index_categories(categories: Iterable[Category]) -> Dict[str, Category]:
    """Key categories by id.  Later duplicates win."""
    return {category.id: category for category in categories}


def _optional_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_date(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def event_from_row(row: Mapping[str, Any]) -> Event:
    return Event(
        id=row["id"],
        name=row["name"],
        allocated_budget=Decimal(str(row["allocated_budget"] or "0")),
        venue=_optional_text(row.get("venue")),
        start_date=_optional_date(row.get("start_date")),
        end_date=_optional_date(row.get("end_date")),
        status=row.get("status") or "Active",
        created_at=row.get("created_at") or "",
        updated_at=row.get("updated_at") or "",
    )


def category_from_row(row: Mapping[str, Any]) -> Category:
    return Category(
        id=row["id"],
        event_id=row["event_id"],
        name=row["name"],
        type=row["type"],
        created_at=row.get("created_at") or "",
    )


def entry_from_row(row: Mapping[str, Any]) -> BudgetEntry:
    """Build a BudgetEntry from a database row.

    A half-populated receipt pair is normalised to no receipt at all.
    """
    url = _optional_text(row.get("receipt_photo_url"))
    filename = _optional_text(row.get("receipt_filename"))
    if not (url and filename):
        url = filename = None
    return BudgetEntry(
        id=row["id"],
        event_id=row["event_id"],
        category_id=row["category_id"],
        item_name=row["item_name"],
        amount=Decimal(str(row["amount"])),
        entry_date=parse_date(row["entry_date"]),
        payment_method=_optional_text(row.get("payment_method")),
        receipt_photo_url=url,
        receipt_filename=filename,
        to_be_reimbursed=bool(row.get("to_be_reimbursed")),
        reimbursement_source=_optional_text(row.get("reimbursement_source")),
        reimbursement_status=row.get("reimbursement_status") or "pending",
        created_at=row.get("created_at") or "",
        updated_at=row.get("updated_at") or "",
    )
