"""Planned versus actual rollups over the category hierarchy.

This module groups transactions by category, computes a
:class:`CategoryBudgetRow` tree parallel to the category tree, and rolls
the rows up into a :class:`MonthSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .category_tree import CategoryNode, CategoryTree
from .models import BudgetSettings, LineItem, TemplateEntry, Transaction


@dataclass
class CategoryTotals:
    total: float = 0.0
    transactions: List[Transaction] = field(default_factory=list)


@dataclass
class CategoryBudgetRow:
    id: str
    name: str
    is_group: bool
    indentation: int
    is_income: bool
    planned: float
    actual: float
    difference: float
    children: List["CategoryBudgetRow"] = field(default_factory=list)
    excluded: bool = False
    source_account: Optional[str] = None
    target_account: Optional[str] = None
    line_items: List[LineItem] = field(default_factory=list)
    note: Optional[str] = None

    @property
    def has_children(self) -> bool:
        return self.is_group and bool(self.children)


@dataclass
class MonthSummary:
    total_income_planned: float = 0.0
    total_income_actual: float = 0.0
    total_expenses_planned: float = 0.0
    total_expenses_actual: float = 0.0
    net_planned: float = 0.0
    net_actual: float = 0.0


@dataclass
class BudgetResult:
    income_rows: List[CategoryBudgetRow]
    expense_rows: List[CategoryBudgetRow]
    summary: MonthSummary

    @property
    def all_rows(self) -> List[CategoryBudgetRow]:
        return self.income_rows + self.expense_rows


def group_transactions_by_category(transactions: Iterable[Transaction]) -> Dict[str, CategoryTotals]:
    """Group transactions by category id, summing their signed amounts.

    The source ledger reports expenses as negative and income as positive.
    """
    grouped: Dict[str, CategoryTotals] = {}
    for tx in transactions:
        entry = grouped.setdefault(tx.category_id, CategoryTotals())
        entry.total += tx.amount
        entry.transactions.append(tx)
    return grouped


def compute_category_rows(
    tree: CategoryTree,
    nodes: Sequence[CategoryNode],
    template: Mapping[str, TemplateEntry],
    tx_map: Mapping[str, CategoryTotals],
    income_ids: Set[str],
    is_income: bool,
    excluded_ids: Optional[Set[str]] = None,
) -> List[CategoryBudgetRow]:
    """Compute budget rows for ``nodes`` and their descendants.

    Groups with children sum their children's planned and actual values.
    Leaves (and childless groups) take planned from the template and
    actual from the transactions of every leaf id they cover; expense
    actuals are reported as absolute values.  Excluded nodes have
    ``planned`` forced to 0 and ``difference`` reported as 0 while
    ``actual`` is kept for reference.

    Difference is positive when the result is good: ``actual - planned``
    for income, ``planned - actual`` for expenses.
    """
    excluded_ids = excluded_ids or set()
    rows: List[CategoryBudgetRow] = []

    for node in nodes:
        excluded = node.id in excluded_ids
        children = compute_category_rows(
            tree, tree.children_of(node), template, tx_map, income_ids, is_income, excluded_ids
        )
        entry = template.get(node.id)

        if node.is_group and children:
            planned = sum(child.planned for child in children)
            actual = sum(child.actual for child in children)
        else:
            planned = 0.0 if excluded or entry is None else entry.amount
            actual = sum(
                tx_map[leaf_id].total for leaf_id in tree.leaf_ids(node) if leaf_id in tx_map
            )
            if not is_income:
                actual = abs(actual)

        if excluded and node.is_group:
            planned = 0.0

        if excluded:
            difference = 0.0
        else:
            difference = actual - planned if is_income else planned - actual

        rows.append(CategoryBudgetRow(
            id=node.id,
            name=node.name,
            is_group=node.is_group,
            indentation=node.indentation,
            is_income=is_income,
            planned=float(planned),
            actual=float(actual),
            difference=float(difference),
            children=children,
            excluded=excluded,
            source_account=entry.source_account if entry else None,
            target_account=entry.target_account if entry else None,
            line_items=list(entry.line_items) if entry else [],
            note=entry.note if entry else None,
        ))

    return rows


def _sum_field(rows: Sequence[CategoryBudgetRow], attr: str) -> float:
    total = 0.0
    for row in rows:
        if row.excluded:
            continue
        if row.has_children:
            total += _sum_field(row.children, attr)
        else:
            total += getattr(row, attr)
    return total


def compute_month_summary(
    income_rows: Sequence[CategoryBudgetRow],
    expense_rows: Sequence[CategoryBudgetRow],
) -> MonthSummary:
    """Roll up planned and actual totals, skipping excluded rows at every level."""
    income_planned = _sum_field(income_rows, 'planned')
    income_actual = _sum_field(income_rows, 'actual')
    expenses_planned = _sum_field(expense_rows, 'planned')
    expenses_actual = _sum_field(expense_rows, 'actual')
    return MonthSummary(
        total_income_planned=income_planned,
        total_income_actual=income_actual,
        total_expenses_planned=expenses_planned,
        total_expenses_actual=expenses_actual,
        net_planned=income_planned - expenses_planned,
        net_actual=income_actual - expenses_actual,
    )


def compute_budget(
    tree: CategoryTree,
    template: Mapping[str, TemplateEntry],
    transactions: Iterable[Transaction],
    settings: BudgetSettings,
) -> BudgetResult:
    """Run the full aggregation for one reporting window."""
    income_ids = set(settings.income_categories)
    excluded_ids = set(settings.excluded_categories)
    tx_map = group_transactions_by_category(transactions)
    income_roots, expense_roots = tree.split_income_expense(income_ids)

    income_rows = compute_category_rows(tree, income_roots, template, tx_map, income_ids, True, excluded_ids)
    expense_rows = compute_category_rows(tree, expense_roots, template, tx_map, income_ids, False, excluded_ids)
    return BudgetResult(
        income_rows=income_rows,
        expense_rows=expense_rows,
        summary=compute_month_summary(income_rows, expense_rows),
    )


def collect_unreconciled(tree: CategoryTree, transactions: Iterable[Transaction]) -> List[Transaction]:
    """Return transactions whose category id is not part of ``tree``.

    Aggregation ignores these; callers can surface them separately.
    """
    return [tx for tx in transactions if not tree.contains(tx.category_id)]
