"""Plain-text budget summaries for narrative consumers (e.g. a chat assistant)."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .budget_calc import CategoryBudgetRow, MonthSummary
from .formatting import format_currency, format_month_label, format_signed


def format_rows(rows: Sequence[CategoryBudgetRow], indent: int = 0) -> str:
    """Render a row tree as indented lines, omitting excluded rows.

    Groups with children print as ``[Name]`` headers.  For leaves the
    diff is ``actual - planned`` regardless of income or expense.
    """
    lines: List[str] = []
    prefix = '  ' * indent
    for row in rows:
        if row.excluded:
            continue
        if row.has_children:
            lines.append(f"{prefix}[{row.name}]")
            nested = format_rows(row.children, indent + 1)
            if nested:
                lines.append(nested)
        else:
            lines.append(
                f"{prefix}{row.name}: planned {format_currency(row.planned)}, "
                f"actual {format_currency(row.actual)}, diff {format_signed(row.actual - row.planned)}"
            )
    return '\n'.join(lines)


def build_budget_context(
    income_rows: Sequence[CategoryBudgetRow],
    expense_rows: Sequence[CategoryBudgetRow],
    summary: MonthSummary,
    month: str,
    scenario_name: Optional[str] = None,
) -> str:
    parts = [
        "You are a helpful financial advisor analyzing a personal budget.",
        f"Current month: {format_month_label(month)}",
    ]
    if scenario_name:
        parts.append(f'Active scenario: "{scenario_name}"')

    parts += [
        '',
        '== Summary ==',
        f"Income planned: {format_currency(summary.total_income_planned)} | "
        f"actual: {format_currency(summary.total_income_actual)}",
        f"Expenses planned: {format_currency(summary.total_expenses_planned)} | "
        f"actual: {format_currency(summary.total_expenses_actual)}",
        f"Net planned: {format_currency(summary.net_planned)} | "
        f"net actual: {format_currency(summary.net_actual)}",
        '',
        '== Income Categories ==',
        format_rows(income_rows),
        '',
        '== Expense Categories ==',
        format_rows(expense_rows),
    ]
    return '\n'.join(parts)
