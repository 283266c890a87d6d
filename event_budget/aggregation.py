"""Budget aggregation: classification, totals and the expense distribution.

Everything here is a pure function of ``(entries, categories)``.  Entries
whose category cannot be found are *Unclassified* and silently drop out of
every total and of the expense distribution.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Sequence, Union

import pandas as pd

from .models import BudgetEntry, Category, Classification, index_categories

CHART_COLORS = (
    "#fda4af",  # light rose
    "#fb7185",
    "#f87171",
    "#f43f5e",
    "#ef4444",
    "#e11d48",
    "#dc2626",
    "#be123c",  # deep rose
)

CategoryLookup = Union[Mapping[str, Category], Iterable[Category]]


def category_lookup(categories: CategoryLookup) -> Mapping[str, Category]:
    if isinstance(categories, Mapping):
        return categories
    return index_categories(categories)


@dataclass(frozen=True)
class FinancialTotals:
    total_income: Decimal
    total_expenses: Decimal
    onhand_cash: Decimal
    left_to_spend: Decimal
    # Identical to left_to_spend today; kept separate for display.
    ending_balance: Decimal


@dataclass(frozen=True)
class ReimbursementCounts:
    pending: int
    completed: int


@dataclass(frozen=True)
class ExpenseSlice:
    category_name: str
    amount: Decimal
    color_index: int

    @property
    def color(self) -> str:
        return CHART_COLORS[self.color_index]

    def share_of(self, total: Decimal) -> float:
        """Percentage of ``total`` this slice represents (0 when total is 0)."""
        if not total:
            return 0.0
        return float(self.amount / total * 100)


def classify(entry: BudgetEntry, categories: CategoryLookup) -> Classification:
    """Resolve an entry's income/expense label through its category."""
    category = category_lookup(categories).get(entry.category_id)
    if category is None:
        return Classification.UNCLASSIFIED
    try:
        return Classification(category.type)
    except ValueError:
        return Classification.UNCLASSIFIED


def compute_totals(entries: Sequence[BudgetEntry], categories: CategoryLookup) -> FinancialTotals:
    """Sum income and expenses and derive the cash metrics.

    Args:
        entries: Budget entries for one event
        categories: Categories keyed by id, or any iterable of categories

    Returns:
        FinancialTotals with onhand cash equal to total income and both
        left-to-spend and ending balance equal to income minus expenses
    """
    lookup = category_lookup(categories)
    total_income = Decimal("0")
    total_expenses = Decimal("0")
    for entry in entries:
        label = classify(entry, lookup)
        if label is Classification.INCOME:
            total_income += entry.amount
        elif label is Classification.EXPENSE:
            total_expenses += entry.amount

    onhand_cash = total_income
    left_to_spend = onhand_cash - total_expenses
    return FinancialTotals(
        total_income=total_income,
        total_expenses=total_expenses,
        onhand_cash=onhand_cash,
        left_to_spend=left_to_spend,
        ending_balance=left_to_spend,
    )


def count_reimbursements(entries: Iterable[BudgetEntry]) -> ReimbursementCounts:
    """Count flagged entries by reimbursement status.

    Entries not flagged ``to_be_reimbursed`` are ignored even if they still
    carry a status from before the flag was cleared.
    """
    pending = completed = 0
    for entry in entries:
        if not entry.to_be_reimbursed:
            continue
        if entry.reimbursement_status == "completed":
            completed += 1
        elif entry.reimbursement_status == "pending":
            pending += 1
    return ReimbursementCounts(pending=pending, completed=completed)


def build_expense_distribution(
    entries: Iterable[BudgetEntry], categories: CategoryLookup
) -> List[ExpenseSlice]:
    """Bucket expense amounts by category name for the cash-flow chart.

    Buckets are keyed by the category *name*, so two expense categories
    that share a display name are merged into one slice even though their
    ids differ.

    Slices are ordered by amount, largest first; ties keep the order in
    which the category name was first seen.  Colours cycle through
    ``CHART_COLORS`` by final position.
    """
    lookup = category_lookup(categories)
    buckets: Dict[str, Decimal] = {}
    for entry in entries:
        if classify(entry, lookup) is not Classification.EXPENSE:
            continue
        name = lookup[entry.category_id].name
        buckets[name] = buckets.get(name, Decimal("0")) + entry.amount

    ordered = sorted(buckets.items(), key=lambda item: item[1], reverse=True)
    return [
        ExpenseSlice(category_name=name, amount=amount, color_index=index % len(CHART_COLORS))
        for index, (name, amount) in enumerate(ordered)
    ]


def entries_frame(entries: Sequence[BudgetEntry], categories: CategoryLookup) -> pd.DataFrame:
    """Tabulate entries with their resolved category name and classification.

    Amounts stay as Decimal objects in an ``object`` column.
    """
    columns = [
        "id", "Entry Date", "Category", "Type", "Item Name", "Amount",
        "Payment Method", "Reimbursement", "Receipt",
    ]
    if not entries:
        return pd.DataFrame(columns=columns)

    lookup = category_lookup(categories)
    rows = []
    for entry in entries:
        category = lookup.get(entry.category_id)
        if entry.to_be_reimbursed:
            reimbursement = entry.reimbursement_status.capitalize()
        else:
            reimbursement = "No"
        rows.append({
            "id": entry.id,
            "Entry Date": entry.entry_date,
            "Category": category.name if category else "",
            "Type": classify(entry, lookup).value,
            "Item Name": entry.item_name,
            "Amount": entry.amount,
            "Payment Method": entry.payment_method or "-",
            "Reimbursement": reimbursement,
            "Receipt": entry.receipt_filename or "",
        })
    return pd.DataFrame(rows, columns=columns)
