from datetime import date
from decimal import Decimal

from event_budget.aggregation import (
    CHART_COLORS,
    build_expense_distribution,
    classify,
    compute_totals,
    count_reimbursements,
    entries_frame,
)
from event_budget.models import Classification

from .helpers import category, entry


def _scenario():
    categories = [
        category("c1", "Sponsorship", "Income"),
        category("c2", "Food"),
        category("c3", "Venue"),
    ]
    entries = [
        entry("e1", "c1", "1000"),
        entry("e2", "c2", "200"),
        entry("e3", "c3", "300"),
    ]
    return entries, categories


def test_compute_totals_basic_scenario():
    entries, categories = _scenario()
    totals = compute_totals(entries, categories)

    assert totals.total_income == Decimal("1000")
    assert totals.total_expenses == Decimal("500")
    assert totals.onhand_cash == Decimal("1000")
    assert totals.left_to_spend == Decimal("500")
    assert totals.ending_balance == totals.left_to_spend


def test_compute_totals_empty():
    totals = compute_totals([], [])
    assert totals.total_income == 0
    assert totals.total_expenses == 0
    assert totals.left_to_spend == 0


def test_compute_totals_is_exact_for_cents():
    categories = [category("c1", "Tickets", "Income")]
    entries = [entry(f"e{i}", "c1", "0.10") for i in range(3)]
    assert compute_totals(entries, categories).total_income == Decimal("0.30")


def test_unclassified_entries_drop_out():
    entries, categories = _scenario()
    entries.append(entry("orphan", "deleted-category", "999"))

    assert classify(entries[-1], categories) is Classification.UNCLASSIFIED
    totals = compute_totals(entries, categories)
    assert totals.total_income == Decimal("1000")
    assert totals.total_expenses == Decimal("500")
    names = [item.category_name for item in build_expense_distribution(entries, categories)]
    assert names == ["Venue", "Food"]


def test_income_can_be_overspent():
    categories = [category("c1", "Dues", "Income"), category("c2", "Food")]
    entries = [entry("e1", "c1", "100"), entry("e2", "c2", "250")]
    assert compute_totals(entries, categories).left_to_spend == Decimal("-150")


def test_distribution_merges_categories_sharing_a_name():
    categories = [category("c1", "Food"), category("c2", "Food")]
    entries = [entry("e1", "c1", "100"), entry("e2", "c2", "50")]

    distribution = build_expense_distribution(entries, categories)

    assert len(distribution) == 1
    assert distribution[0].category_name == "Food"
    assert distribution[0].amount == Decimal("150")


def test_distribution_sums_to_total_expenses():
    entries, categories = _scenario()
    distribution = build_expense_distribution(entries, categories)
    assert sum(item.amount for item in distribution) == compute_totals(entries, categories).total_expenses


def test_distribution_orders_descending_and_keeps_ties_stable():
    categories = [category("c1", "Decor"), category("c2", "Food"), category("c3", "Venue")]
    entries = [entry("e1", "c1", "50"), entry("e2", "c2", "50"), entry("e3", "c3", "75")]

    distribution = build_expense_distribution(entries, categories)

    assert [item.category_name for item in distribution] == ["Venue", "Decor", "Food"]
    assert [item.color_index for item in distribution] == [0, 1, 2]


def test_distribution_colors_cycle_past_palette():
    categories = [category(f"c{i}", f"Cat {i}") for i in range(10)]
    entries = [entry(f"e{i}", f"c{i}", 100 - i) for i in range(10)]

    distribution = build_expense_distribution(entries, categories)

    assert distribution[8].color_index == 0
    assert distribution[9].color == CHART_COLORS[1]


def test_distribution_ignores_income():
    categories = [category("c1", "Sponsorship", "Income")]
    assert build_expense_distribution([entry("e1", "c1", "10")], categories) == []


def test_share_of_handles_zero_total():
    entries, categories = _scenario()
    venue = build_expense_distribution(entries, categories)[0]
    assert venue.share_of(Decimal("500")) == 60.0
    assert venue.share_of(Decimal("0")) == 0.0


def test_count_reimbursements_skips_unflagged_entries():
    entries = [
        entry("e1", "c1", "1", to_be_reimbursed=True, reimbursement_status="pending"),
        entry("e2", "c1", "1", to_be_reimbursed=True, reimbursement_status="completed"),
        entry("e3", "c1", "1", to_be_reimbursed=True, reimbursement_status="completed"),
        entry("e4", "c1", "1", to_be_reimbursed=False, reimbursement_status="completed"),
    ]
    counts = count_reimbursements(entries)
    assert counts.pending == 1
    assert counts.completed == 2


def test_entries_frame_resolves_category_and_type():
    entries, categories = _scenario()
    entries.append(entry("orphan", "gone", "5", entry_date=date(2024, 1, 2)))

    df = entries_frame(entries, categories)

    assert list(df["Type"]) == ["Income", "Expense", "Expense", "Unclassified"]
    assert df.loc[df["id"] == "e2", "Category"].item() == "Food"
    assert df.loc[df["id"] == "orphan", "Category"].item() == ""
    assert df.loc[df["id"] == "e1", "Amount"].item() == Decimal("1000")


def test_entries_frame_empty_has_columns():
    df = entries_frame([], [])
    assert df.empty
    assert "Amount" in df.columns
