"""Plotly figures for the event budget pages.

Each function takes the output of :mod:`event_budget.aggregation` and
returns a `plotly.graph_objects.Figure` that Streamlit renders through
``st.plotly_chart``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .aggregation import ExpenseSlice, FinancialTotals
from .formatting import format_currency


def _empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        title=title,
        xaxis={"visible": False},
        yaxis={"visible": False},
    )
    return fig


def create_expense_pie_chart(distribution: Sequence[ExpenseSlice], title: str | None = None) -> go.Figure:
    """Render the expense distribution as a donut chart.

    Parameters
    ----------
    distribution : sequence of ExpenseSlice
        Output of :func:`build_expense_distribution`, already ordered and
        coloured.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Donut chart whose hover shows the amount and the share of total
        expenses.  A placeholder figure when there is nothing to show.
    """
    if not distribution:
        return _empty_figure("No expense data")

    total = sum((item.amount for item in distribution), Decimal("0"))
    df = pd.DataFrame({
        "Category": [item.category_name for item in distribution],
        "Amount": [float(item.amount) for item in distribution],
        "Label": [format_currency(item.amount) for item in distribution],
        "Share": [f"{item.share_of(total):.1f}%" for item in distribution],
    })
    fig = px.pie(
        df,
        names="Category",
        values="Amount",
        hole=0.5,
        custom_data=["Label", "Share"],
    )
    fig.update_traces(
        marker={"colors": [item.color for item in distribution]},
        sort=False,
        hovertemplate="<b>%{label}</b><br>%{customdata[0]}<br>%{customdata[1]} of total expenses<extra></extra>",
    )
    fig.update_layout(
        title=title or "Cash flow breakdown",
        annotations=[{
            "text": f"{format_currency(total)}<br>Total Expenses",
            "showarrow": False,
            "font": {"size": 14},
        }],
    )
    return fig


def create_totals_bar_chart(totals: FinancialTotals, title: str | None = None) -> go.Figure:
    """Income, expenses and left-to-spend side by side."""
    df = pd.DataFrame({
        "Metric": ["Total Income", "Total Expenses", "Left to Spend"],
        "Value": [
            float(totals.total_income),
            float(totals.total_expenses),
            float(totals.left_to_spend),
        ],
    })
    if not df["Value"].any():
        return _empty_figure("No entries yet")
    fig = px.bar(
        df,
        x="Metric",
        y="Value",
        color="Metric",
        color_discrete_map={
            "Total Income": "#4ade80",
            "Total Expenses": "#f87171",
            "Left to Spend": "#60a5fa",
        },
    )
    fig.update_layout(
        title=title or "Budget summary",
        xaxis_title="",
        yaxis_title="Amount",
        showlegend=False,
    )
    return fig
