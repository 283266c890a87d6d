from decimal import Decimal

from event_budget.aggregation import ExpenseSlice, FinancialTotals, CHART_COLORS
from event_budget.visualization import create_expense_pie_chart, create_totals_bar_chart


def test_pie_chart_empty_distribution():
    fig = create_expense_pie_chart([])
    assert fig.layout.title.text == "No expense data"
    assert len(fig.data) == 0


def test_pie_chart_keeps_order_and_colors():
    distribution = [
        ExpenseSlice("Venue", Decimal("300"), 0),
        ExpenseSlice("Food", Decimal("100"), 1),
    ]

    fig = create_expense_pie_chart(distribution)

    trace = fig.data[0]
    assert list(trace.labels) == ["Venue", "Food"]
    assert list(trace.marker.colors) == [CHART_COLORS[0], CHART_COLORS[1]]
    assert trace.sort is False
    assert trace.customdata[0][1] == "75.0%"
    assert "₱400.00" in fig.layout.annotations[0].text


def test_totals_bar_chart():
    totals = FinancialTotals(
        total_income=Decimal("1000"),
        total_expenses=Decimal("500"),
        onhand_cash=Decimal("1000"),
        left_to_spend=Decimal("500"),
        ending_balance=Decimal("500"),
    )
    fig = create_totals_bar_chart(totals)
    assert len(fig.data) == 3


def test_totals_bar_chart_empty():
    zero = Decimal("0")
    fig = create_totals_bar_chart(FinancialTotals(zero, zero, zero, zero, zero))
    assert fig.layout.title.text == "No entries yet"
