"""Top‑level package for the household budget planner.

This file makes the directory a Python package and exposes
convenient names.  The primary modules are:

* ``category_tree`` – turns the flat category list into a hierarchy
* ``budget_calc`` – planned versus actual rollups
* ``scenarios`` – what-if overrides layered over the baseline
* ``ledger`` – unplanned and moved transaction bookkeeping
* ``charts`` – pie, bar and alert data for presentation
* ``store`` – the session owner of a budget template

Fetching categories and transactions and persisting templates are left
to the embedding application; pass a save callback to
:class:`~budget_planner.store.BudgetManager` to get debounced saves.
"""

from .budget_calc import (  # noqa: F401  # re-exported for convenience
    BudgetResult,
    CategoryBudgetRow,
    MonthSummary,
    compute_budget,
    compute_category_rows,
    compute_month_summary,
    group_transactions_by_category,
)
from .category_tree import CategoryNode, CategoryTree, build_category_tree  # noqa: F401
from .models import (  # noqa: F401
    BudgetSettings,
    BudgetTemplate,
    Category,
    LineItem,
    Scenario,
    TemplateEntry,
    Transaction,
)
from .store import BudgetManager  # noqa: F401

__all__ = [
    "BudgetManager",
    "BudgetResult",
    "BudgetSettings",
    "BudgetTemplate",
    "Category",
    "CategoryBudgetRow",
    "CategoryNode",
    "CategoryTree",
    "LineItem",
    "MonthSummary",
    "Scenario",
    "TemplateEntry",
    "Transaction",
    "build_category_tree",
    "compute_budget",
    "compute_category_rows",
    "compute_month_summary",
    "group_transactions_by_category",
]

__version__ = "1.0.0"
