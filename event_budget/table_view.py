"""Filtering and sorting of the budget entry table.

View state is an immutable :class:`ViewState`; UI handlers build a new one
through the ``with_*``/``toggle_sort`` reducers and pass it to
:func:`view_entries` on every render.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Sequence

from .aggregation import CategoryLookup, category_lookup, classify
from .models import BudgetEntry, Category, Classification

ALL = "all"

SORT_FIELDS = ("entry_date", "amount", "item_name", "category_name")
SORT_DIRECTIONS = ("asc", "desc")
TYPE_FILTERS = (ALL, Classification.INCOME.value, Classification.EXPENSE.value)


@dataclass(frozen=True)
class ViewState:
    search: str = ""
    category_filter: str = ALL
    type_filter: str = ALL
    sort_field: str = "entry_date"
    sort_direction: str = "desc"


def with_search(state: ViewState, text: str) -> ViewState:
    return replace(state, search=text or "")


def with_category_filter(state: ViewState, category_id: str) -> ViewState:
    if not category_id:
        raise ValueError("Category filter must be a category id or 'all'")
    return replace(state, category_filter=category_id)


def with_type_filter(state: ViewState, type_filter: str) -> ViewState:
    if type_filter not in TYPE_FILTERS:
        raise ValueError(f"Unknown type filter '{type_filter}'")
    return replace(state, type_filter=type_filter)


def toggle_sort(state: ViewState, field: str) -> ViewState:
    """Clicking the current sort column flips direction; a new column sorts ascending."""
    if field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{field}'")
    if state.sort_field == field:
        direction = "asc" if state.sort_direction == "desc" else "desc"
        return replace(state, sort_direction=direction)
    return replace(state, sort_field=field, sort_direction="asc")


def _matches(entry: BudgetEntry, category: Category | None, lookup, state: ViewState) -> bool:
    needle = state.search.lower()
    matches_search = needle in entry.item_name.lower() or (
        category is not None and needle in category.name.lower()
    )
    if not matches_search:
        return False

    if state.category_filter != ALL and entry.category_id != state.category_filter:
        return False
    if state.category_filter != ALL and category is None:
        return False

    if state.type_filter != ALL:
        if classify(entry, lookup).value != state.type_filter:
            return False
    return True


def filter_entries(
    entries: Sequence[BudgetEntry], categories: CategoryLookup, state: ViewState
) -> List[BudgetEntry]:
    """Keep entries that satisfy the search, category and type filters.

    The three predicates are independent and ANDed together, preserving
    input order.  An entry whose category has been deleted can only pass
    when both filters are ``"all"`` and the search hits its item name.
    """
    lookup = category_lookup(categories)
    return [
        entry
        for entry in entries
        if _matches(entry, lookup.get(entry.category_id), lookup, state)
    ]


def _sort_key(field: str, lookup) -> Callable[[BudgetEntry], Any]:
    def category_name(entry: BudgetEntry) -> str:
        category = lookup.get(entry.category_id)
        return category.name.lower() if category else ""

    keys: Dict[str, Callable[[BudgetEntry], Any]] = {
        "entry_date": lambda entry: entry.entry_date,
        "amount": lambda entry: entry.amount,
        "item_name": lambda entry: entry.item_name.lower(),
        "category_name": category_name,
    }
    return keys[field]


def sort_entries(
    entries: Sequence[BudgetEntry],
    categories: CategoryLookup,
    field: str,
    direction: str = "asc",
) -> List[BudgetEntry]:
    """Order entries by one column.

    Dates compare as calendar dates, amounts numerically and names
    case-insensitively.  The sort is stable in both directions.
    """
    if field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{field}'")
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"Unknown sort direction '{direction}'")
    key = _sort_key(field, category_lookup(categories))
    return sorted(entries, key=key, reverse=(direction == "desc"))


def view_entries(
    entries: Sequence[BudgetEntry], categories: CategoryLookup, state: ViewState
) -> List[BudgetEntry]:
    """Filtered and sorted rows for the table."""
    lookup = category_lookup(categories)
    filtered = filter_entries(entries, lookup, state)
    return sort_entries(filtered, lookup, state.sort_field, state.sort_direction)
