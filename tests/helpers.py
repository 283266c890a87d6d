"""Builders shared by the test modules."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from event_budget.models import BudgetEntry, Category

EVENT_ID = "evt-1"


def category(category_id, name, type_="Expense"):
    return Category(id=category_id, event_id=EVENT_ID, name=name, type=type_)


def entry(entry_id, category_id, amount, item_name=None, entry_date=None, **kwargs):
    return BudgetEntry(
        id=entry_id,
        event_id=EVENT_ID,
        category_id=category_id,
        item_name=item_name or f"item {entry_id}",
        amount=Decimal(str(amount)),
        entry_date=entry_date or date(2024, 3, 1),
        **kwargs,
    )
