"""Plotly visualisation helpers for budget charts.

Each function accepts the chart-ready structures produced by
:mod:`budget_planner.charts` and returns a
``plotly.graph_objects.Figure``.  An empty input yields an empty figure
titled "No data to display" so callers never need to special-case it.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .charts import BarItem, OverBudgetAlert, PieSlice


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_budget_pie_chart(slices: Sequence[PieSlice], title: str | None = None) -> go.Figure:
    """Generate a pie chart from merged pie slices.

    Parameters
    ----------
    slices : sequence of PieSlice
        Output of :func:`~budget_planner.charts.rows_to_pie_data`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart with one sector per slice; slice ids are kept as
        ``customdata`` for drill-down.
    """
    if not slices:
        return _empty_figure()
    df = pd.DataFrame(
        {
            "Id": [s.id for s in slices],
            "Category": [s.name for s in slices],
            "Value": [s.value for s in slices],
        }
    )
    fig = px.pie(df, names="Category", values="Value", custom_data=["Id"])
    fig.update_layout(title=title or "Budget breakdown")
    return fig


def create_budget_bar_chart(items: Sequence[BarItem], title: str | None = None) -> go.Figure:
    """Render planned versus actual as grouped bars.

    Over-budget categories are listed with their actual bar in red.
    """
    if not items:
        return _empty_figure()
    df = pd.DataFrame(
        {
            "Category": [item.name for item in items],
            "Planned": [item.planned for item in items],
            "Actual": [item.actual for item in items],
            "Over": [item.is_over_budget for item in items],
        }
    )
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Planned", x=df["Category"], y=df["Planned"], marker_color="#9aa5b1"))
    fig.add_trace(
        go.Bar(
            name="Actual",
            x=df["Category"],
            y=df["Actual"],
            marker_color=["#d64545" if over else "#3e8ed0" for over in df["Over"]],
        )
    )
    fig.update_layout(
        title=title or "Planned vs actual",
        barmode="group",
        xaxis_title="Category",
        yaxis_title="Amount",
    )
    return fig


def create_alerts_chart(alerts: Sequence[OverBudgetAlert], title: str | None = None) -> go.Figure:
    """Horizontal bar chart of alert severities, most severe on top."""
    if not alerts:
        return _empty_figure("No alerts")
    df = pd.DataFrame(
        {
            "Category": [a.name for a in alerts],
            "Severity": [a.severity for a in alerts],
            "Kind": ["Income shortfall" if a.is_income else "Over budget" for a in alerts],
        }
    ).iloc[::-1]
    fig = px.bar(df, x="Severity", y="Category", color="Kind", orientation="h")
    fig.update_layout(
        title=title or "Budget alerts",
        xaxis_title="Severity (ratio)",
        yaxis_title="Category",
    )
    return fig
