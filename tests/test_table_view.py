from datetime import date

import pytest

from event_budget.table_view import (
    ALL,
    ViewState,
    filter_entries,
    sort_entries,
    toggle_sort,
    view_entries,
    with_category_filter,
    with_search,
    with_type_filter,
)

from .helpers import category, entry

CATEGORIES = [
    category("inc", "Sponsorship", "Income"),
    category("food", "Food"),
    category("venue", "Venue Rental"),
]


def _entries():
    return [
        entry("e1", "inc", "1000", item_name="Main sponsor", entry_date=date(2024, 3, 2)),
        entry("e2", "food", "200", item_name="Catering", entry_date=date(2024, 2, 28)),
        entry("e3", "venue", "300", item_name="Hall deposit", entry_date=date(2024, 3, 10)),
        entry("e4", "missing", "40", item_name="Food trays", entry_date=date(2024, 1, 5)),
    ]


def _ids(entries):
    return [item.id for item in entries]


def test_default_view_state():
    state = ViewState()
    assert state.search == ""
    assert state.category_filter == ALL
    assert state.type_filter == ALL
    assert (state.sort_field, state.sort_direction) == ("entry_date", "desc")


def test_search_matches_item_or_category_name():
    state = with_search(ViewState(), "food")
    # e2 through its category, e4 through its item name
    assert _ids(filter_entries(_entries(), CATEGORIES, state)) == ["e2", "e4"]


def test_search_is_case_insensitive():
    state = with_search(ViewState(), "HALL")
    assert _ids(filter_entries(_entries(), CATEGORIES, state)) == ["e3"]


def test_filters_compose_in_any_order():
    entries = _entries()
    a = with_type_filter(with_category_filter(with_search(ViewState(), "a"), "food"), "Expense")
    b = with_search(with_type_filter(with_category_filter(ViewState(), "food"), "Expense"), "a")
    assert a == b
    assert _ids(filter_entries(entries, CATEGORIES, a)) == ["e2"]


def test_type_filter():
    state = with_type_filter(ViewState(), "Income")
    assert _ids(filter_entries(_entries(), CATEGORIES, state)) == ["e1"]


def test_missing_category_only_visible_without_filters():
    entries = _entries()
    assert "e4" in _ids(filter_entries(entries, CATEGORIES, ViewState()))
    assert "e4" not in _ids(filter_entries(entries, CATEGORIES, with_type_filter(ViewState(), "Expense")))
    assert "e4" not in _ids(filter_entries(entries, CATEGORIES, with_category_filter(ViewState(), "missing")))


def test_invalid_filters_raise():
    with pytest.raises(ValueError):
        with_type_filter(ViewState(), "Transfers")
    with pytest.raises(ValueError):
        with_category_filter(ViewState(), "")


def test_sort_dates_as_calendar_dates():
    result = sort_entries(_entries(), CATEGORIES, "entry_date", "asc")
    assert _ids(result) == ["e4", "e2", "e1", "e3"]


def test_sort_amount_numerically():
    entries = _entries() + [entry("e5", "food", "1000.5")]
    result = sort_entries(entries, CATEGORIES, "amount", "desc")
    assert _ids(result) == ["e5", "e1", "e3", "e2", "e4"]


def test_sort_by_category_name_puts_missing_first():
    result = sort_entries(_entries(), CATEGORIES, "category_name", "asc")
    assert _ids(result) == ["e4", "e2", "e1", "e3"]


def test_sort_is_stable_in_both_directions():
    entries = [entry(f"e{i}", "food", "10") for i in range(5)]
    assert _ids(sort_entries(entries, CATEGORIES, "amount", "asc")) == _ids(entries)
    assert _ids(sort_entries(entries, CATEGORIES, "amount", "desc")) == _ids(entries)


def test_sort_rejects_unknown_field():
    with pytest.raises(ValueError):
        sort_entries(_entries(), CATEGORIES, "venue")
    with pytest.raises(ValueError):
        sort_entries(_entries(), CATEGORIES, "amount", "sideways")


def test_toggle_sort():
    state = ViewState()
    flipped = toggle_sort(state, "entry_date")
    assert flipped.sort_direction == "asc"
    assert toggle_sort(flipped, "entry_date").sort_direction == "desc"

    by_amount = toggle_sort(flipped, "amount")
    assert (by_amount.sort_field, by_amount.sort_direction) == ("amount", "asc")


def test_view_entries_filters_then_sorts():
    state = toggle_sort(with_type_filter(ViewState(), "Expense"), "amount")
    assert _ids(view_entries(_entries(), CATEGORIES, state)) == ["e2", "e3"]


def test_empty_search_keeps_everything():
    assert len(filter_entries(_entries(), CATEGORIES, with_search(ViewState(), ""))) == 4


def test_filters_applied_one_after_another_match_combined():
    entries = _entries()
    by_search = with_search(ViewState(), "a")
    by_type = with_type_filter(ViewState(), "Expense")
    by_category = with_category_filter(ViewState(), "food")
    combined = with_category_filter(with_type_filter(by_search, "Expense"), "food")

    expected = filter_entries(entries, CATEGORIES, combined)
    for first, second, third in (
        (by_search, by_type, by_category),
        (by_category, by_type, by_search),
        (by_type, by_search, by_category),
    ):
        staged = filter_entries(entries, CATEGORIES, first)
        staged = filter_entries(staged, CATEGORIES, second)
        staged = filter_entries(staged, CATEGORIES, third)
        assert staged == expected
    assert _ids(expected) == ["e2"]
