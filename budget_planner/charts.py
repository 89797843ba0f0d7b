"""Chart-ready data structures derived from budget rows.

The functions here turn :class:`~budget_planner.budget_calc.CategoryBudgetRow`
forests into pie slices, bar items and alert lists.  They are pure and
do no rendering; :mod:`budget_planner.visualization` draws them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .budget_calc import CategoryBudgetRow
from .config import MIN_ACTUAL_FOR_SEVERITY, OTHER_SLICE_ID, OTHER_SLICE_NAME, get_slice_threshold
from .models import UnplannedTransaction

VALUE_MODES = ('planned', 'actual')


@dataclass
class PieSlice:
    id: str
    name: str
    value: float
    is_group: bool = False
    children: List[CategoryBudgetRow] = field(default_factory=list)


@dataclass
class BarItem:
    id: str
    name: str
    planned: float
    actual: float
    difference: float
    is_over_budget: bool


@dataclass
class OverBudgetAlert:
    id: str
    name: str
    planned: float
    actual: float
    over_amount: float  # overage for expenses, shortfall for income
    severity: float
    is_income: bool = False


@dataclass
class UnplannedAlert:
    category_id: str
    category_name: str
    transactions: List[UnplannedTransaction]
    total_amount: float


def rows_to_pie_data(
    rows: Sequence[CategoryBudgetRow],
    value_mode: str,
    threshold: Optional[float] = None,
) -> List[PieSlice]:
    """Transform rows at one drill level into pie slices.

    Excluded and zero-value rows are dropped.  Slices whose share of the
    total is below ``threshold`` (2% by default) are merged into a single
    trailing "Other" slice, so the total value is preserved.

    Raises:
        ValueError: If ``value_mode`` is not ``'planned'`` or ``'actual'``.
    """
    if value_mode not in VALUE_MODES:
        raise ValueError(f"Unknown value mode '{value_mode}'. Expected one of {VALUE_MODES}.")
    limit = get_slice_threshold() if threshold is None else threshold

    slices = [
        PieSlice(
            id=row.id,
            name=row.name,
            value=abs(getattr(row, value_mode)),
            is_group=row.has_children,
            children=row.children,
        )
        for row in rows
        if not row.excluded
    ]
    slices = [s for s in slices if s.value > 0]
    if not slices:
        return slices

    values = np.array([s.value for s in slices], dtype=float)
    total = values.sum()
    if total == 0:
        return slices

    small = values / total < limit
    result = [s for s, is_small in zip(slices, small) if not is_small]
    other_value = float(values[small].sum())
    if other_value > 0:
        result.append(PieSlice(id=OTHER_SLICE_ID, name=OTHER_SLICE_NAME, value=other_value))
    return result


def rows_to_bar_data(rows: Sequence[CategoryBudgetRow]) -> List[BarItem]:
    """Build planned versus actual bar items for one drill level.

    Args:
        rows: Rows at the current level

    Returns:
        One item per non-excluded row with a planned or actual amount.
        ``is_over_budget`` is set when actual exceeds a positive plan.
    """
    return [
        BarItem(
            id=row.id,
            name=row.name,
            planned=row.planned,
            actual=row.actual,
            difference=row.difference,
            is_over_budget=row.actual > row.planned and row.planned > 0,
        )
        for row in rows
        if not row.excluded and (row.planned != 0 or row.actual != 0)
    ]


def _walk_leaves(rows: Sequence[CategoryBudgetRow]):
    # excluded rows hide their whole subtree
    for row in rows:
        if row.excluded:
            continue
        if row.has_children:
            yield from _walk_leaves(row.children)
        else:
            yield row


def collect_over_budget_items(
    income_rows: Sequence[CategoryBudgetRow],
    expense_rows: Sequence[CategoryBudgetRow],
) -> List[OverBudgetAlert]:
    """Collect leaf categories that missed their plan, most severe first.

    Expenses alert when ``actual > planned > 0`` with severity
    ``actual / planned``.  Income alerts when ``actual < planned`` (planned
    positive) with severity ``planned / max(actual, 0.01)``.
    """
    alerts: List[OverBudgetAlert] = []

    for row in _walk_leaves(expense_rows):
        if row.planned > 0 and row.actual > row.planned:
            alerts.append(OverBudgetAlert(
                id=row.id,
                name=row.name,
                planned=row.planned,
                actual=row.actual,
                over_amount=row.actual - row.planned,
                severity=row.actual / row.planned,
            ))

    for row in _walk_leaves(income_rows):
        if row.planned > 0 and row.actual < row.planned:
            alerts.append(OverBudgetAlert(
                id=row.id,
                name=row.name,
                planned=row.planned,
                actual=row.actual,
                over_amount=row.planned - row.actual,
                severity=row.planned / max(row.actual, MIN_ACTUAL_FOR_SEVERITY),
                is_income=True,
            ))

    alerts.sort(key=lambda alert: alert.severity, reverse=True)
    return alerts


def find_row_name(rows: Sequence[CategoryBudgetRow], category_id: str) -> Optional[str]:
    """Search a row forest depth-first for a category's display name.

    Args:
        rows: Row forest to search
        category_id: Category id to look for

    Returns:
        The row name, or ``None`` if no row has that id
    """
    for row in rows:
        if row.id == category_id:
            return row.name
        found = find_row_name(row.children, category_id)
        if found:
            return found
    return None


def collect_unplanned_alerts(
    unplanned_for_month: Sequence[Tuple[str, List[UnplannedTransaction]]],
    all_rows: Sequence[CategoryBudgetRow],
) -> List[UnplannedAlert]:
    """Group unplanned transactions by category with resolved display names."""
    return [
        UnplannedAlert(
            category_id=category_id,
            category_name=find_row_name(all_rows, category_id) or category_id,
            transactions=list(transactions),
            total_amount=sum(abs(tx.amount) for tx in transactions),
        )
        for category_id, transactions in unplanned_for_month
        if transactions
    ]


def rows_to_frame(rows: Sequence[CategoryBudgetRow]) -> pd.DataFrame:
    """Flatten a row forest into a DataFrame, one record per node in display order."""
    records: List[Dict[str, object]] = []

    def walk(level: Sequence[CategoryBudgetRow], depth: int, parent_id: Optional[str]) -> None:
        for row in level:
            records.append({
                'Category Id': row.id,
                'Category': row.name,
                'Parent Id': parent_id,
                'Depth': depth,
                'Group': row.is_group,
                'Income': row.is_income,
                'Excluded': row.excluded,
                'Planned': row.planned,
                'Actual': row.actual,
                'Difference': row.difference,
                'Note': row.note or '',
            })
            walk(row.children, depth + 1, row.id)

    walk(rows, 0, None)
    columns = [
        'Category Id', 'Category', 'Parent Id', 'Depth', 'Group', 'Income',
        'Excluded', 'Planned', 'Actual', 'Difference', 'Note',
    ]
    return pd.DataFrame(records, columns=columns)
