"""What-if scenarios layered over the baseline budget template.

A scenario stores per-category amount overrides and virtual items
(synthetic income or expenses with no category).  Resolving a scenario
produces an independent copy of the baseline template; the baseline is
only ever changed by :func:`apply_scenario_to_baseline`.

Commands that target an unknown scenario id are no-ops and return
``False`` (or ``None`` for functions that create something).
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from .category_tree import CategoryNode, CategoryTree
from .config import OVERRIDE_TOLERANCE
from .models import (
    BudgetTemplate,
    LineItem,
    Scenario,
    ScenarioOverride,
    TemplateEntry,
    VirtualItem,
    validate_amount,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _baseline_amount(budget: BudgetTemplate, category_id: str) -> float:
    entry = budget.template.get(category_id)
    return entry.amount if entry else 0.0


def _lookup(budget: BudgetTemplate, scenario_id: str) -> Optional[Scenario]:
    scenario = budget.find_scenario(scenario_id)
    if scenario is None:
        logger.debug("Unknown scenario id %r", scenario_id)
    return scenario


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def create_scenario(budget: BudgetTemplate, name: str, description: Optional[str] = None) -> Scenario:
    scenario = Scenario(
        id=_new_id(),
        name=name.strip(),
        created_at=_now(),
        description=description.strip() if description and description.strip() else None,
    )
    budget.scenarios.append(scenario)
    return scenario


def delete_scenario(budget: BudgetTemplate, scenario_id: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False
    budget.scenarios = [s for s in budget.scenarios if s.id != scenario_id]
    logger.info("Deleted scenario %r (%s)", scenario.name, scenario_id)
    return True


def rename_scenario(budget: BudgetTemplate, scenario_id: str, name: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    trimmed = name.strip()
    if scenario is None or not trimmed or trimmed == scenario.name:
        return False
    scenario.name = trimmed
    return True


def set_scenario_description(budget: BudgetTemplate, scenario_id: str, description: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False
    scenario.description = description.strip() or None
    return True


def set_scenario_notes(budget: BudgetTemplate, scenario_id: str, notes: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False
    scenario.notes = notes.strip() or None
    return True


def duplicate_scenario(
    budget: BudgetTemplate, scenario_id: str, name: Optional[str] = None
) -> Optional[Scenario]:
    """Copy a scenario with fresh ids for the copy and all of its virtual items."""
    source = _lookup(budget, scenario_id)
    if source is None:
        return None

    duplicate = Scenario(
        id=_new_id(),
        name=(name or f"{source.name} (copy)").strip(),
        created_at=_now(),
        overrides=copy.deepcopy(source.overrides),
        virtual_items=[replace(item, id=_new_id()) for item in source.virtual_items],
    )
    if source.description is not None:
        duplicate.description = source.description
    if source.notes is not None:
        duplicate.notes = source.notes
    budget.scenarios.append(duplicate)
    return duplicate


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def get_resolved_template(budget: BudgetTemplate, scenario_id: str) -> Mapping[str, TemplateEntry]:
    """Return the baseline template with the scenario's override amounts applied.

    Every entry in the result is a copy, so mutating it never touches the
    baseline.  An overridden entry carries the override's line items (none
    for an amount-only override) so they always sum to its amount.  When
    the scenario does not exist the baseline mapping itself is returned
    and must be treated as read-only.
    """
    scenario = budget.find_scenario(scenario_id)
    if scenario is None:
        return budget.template

    resolved: Dict[str, TemplateEntry] = {
        cat_id: replace(entry, line_items=list(entry.line_items))
        for cat_id, entry in budget.template.items()
    }
    for cat_id, override in scenario.overrides.items():
        line_items = copy.deepcopy(override.line_items)
        if cat_id in resolved:
            resolved[cat_id].amount = override.amount
            resolved[cat_id].line_items = line_items
        else:
            resolved[cat_id] = TemplateEntry(amount=override.amount, line_items=line_items)
    return resolved


def is_overridden(budget: BudgetTemplate, scenario_id: str, category_id: str) -> bool:
    scenario = budget.find_scenario(scenario_id)
    return scenario is not None and category_id in scenario.overrides


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


def set_scenario_override(budget: BudgetTemplate, scenario_id: str, category_id: str, amount: float) -> bool:
    """Override the planned amount of one category.

    An amount within ``OVERRIDE_TOLERANCE`` of the baseline removes the
    override instead of storing it.  Stored overrides drop any line items
    they carried.  Returns ``True`` when the scenario changed.

    Raises:
        ValueError: If ``amount`` is not a finite number.
    """
    value = validate_amount(amount)
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False

    if abs(value - _baseline_amount(budget, category_id)) < OVERRIDE_TOLERANCE:
        return scenario.overrides.pop(category_id, None) is not None

    current = scenario.overrides.get(category_id)
    if current is not None and current.amount == value and not current.line_items:
        return False
    scenario.overrides[category_id] = ScenarioOverride(amount=value)
    return True


def set_override_line_items(
    budget: BudgetTemplate, scenario_id: str, category_id: str, line_items: Sequence[LineItem]
) -> bool:
    """Store an override whose amount is the sum of ``line_items``."""
    items = [replace(item, amount=validate_amount(item.amount)) for item in line_items]
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False
    if not items:
        return remove_scenario_override(budget, scenario_id, category_id)
    scenario.overrides[category_id] = ScenarioOverride(
        amount=float(sum(item.amount for item in items)),
        line_items=items,
    )
    return True


def remove_scenario_override(budget: BudgetTemplate, scenario_id: str, category_id: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False
    return scenario.overrides.pop(category_id, None) is not None


def clear_scenario_overrides(budget: BudgetTemplate, scenario_id: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    if scenario is None or not scenario.overrides:
        return False
    scenario.overrides = {}
    return True


def apply_scenario_to_baseline(budget: BudgetTemplate, scenario_id: str) -> bool:
    """Write every override into the baseline and delete the scenario.

    Each baseline entry takes the override's line items, so an amount-only
    override clears the entry's existing ones.  This cannot be undone.
    Virtual items are not carried over since they
    have no category to land in.
    """
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return False

    for cat_id, override in scenario.overrides.items():
        entry = budget.template.get(cat_id)
        if entry is None:
            entry = budget.template[cat_id] = TemplateEntry()
        entry.amount = override.amount
        entry.line_items = copy.deepcopy(override.line_items)

    budget.scenarios = [s for s in budget.scenarios if s.id != scenario_id]
    logger.info(
        "Applied scenario %r to baseline (%d overrides)", scenario.name, len(scenario.overrides)
    )
    return True


# ---------------------------------------------------------------------------
# Virtual items
# ---------------------------------------------------------------------------


def _find_virtual_item(scenario: Scenario, item_id: str) -> Optional[VirtualItem]:
    return next((item for item in scenario.virtual_items if item.id == item_id), None)


def add_virtual_item(
    budget: BudgetTemplate, scenario_id: str, name: str, amount: float, is_income: bool = False
) -> Optional[str]:
    value = validate_amount(amount)
    scenario = _lookup(budget, scenario_id)
    if scenario is None:
        return None
    item = VirtualItem(id=_new_id(), name=name.strip(), amount=value, is_income=is_income)
    scenario.virtual_items.append(item)
    return item.id


def rename_virtual_item(budget: BudgetTemplate, scenario_id: str, item_id: str, name: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    item = _find_virtual_item(scenario, item_id) if scenario else None
    if item is None:
        return False
    item.name = name.strip()
    return True


def set_virtual_item_amount(budget: BudgetTemplate, scenario_id: str, item_id: str, amount: float) -> bool:
    value = validate_amount(amount)
    scenario = _lookup(budget, scenario_id)
    item = _find_virtual_item(scenario, item_id) if scenario else None
    if item is None:
        return False
    item.amount = value
    return True


def set_virtual_item_income(budget: BudgetTemplate, scenario_id: str, item_id: str, is_income: bool) -> bool:
    scenario = _lookup(budget, scenario_id)
    item = _find_virtual_item(scenario, item_id) if scenario else None
    if item is None:
        return False
    item.is_income = bool(is_income)
    return True


def remove_virtual_item(budget: BudgetTemplate, scenario_id: str, item_id: str) -> bool:
    scenario = _lookup(budget, scenario_id)
    if scenario is None or _find_virtual_item(scenario, item_id) is None:
        return False
    scenario.virtual_items = [item for item in scenario.virtual_items if item.id != item_id]
    return True


# ---------------------------------------------------------------------------
# Impact
# ---------------------------------------------------------------------------


@dataclass
class ScenarioImpactSummary:
    baseline_income: float = 0.0
    baseline_expenses: float = 0.0
    scenario_income: float = 0.0
    scenario_expenses: float = 0.0
    overridden_count: int = 0
    virtual_item_count: int = 0

    @property
    def baseline_net(self) -> float:
        return self.baseline_income - self.baseline_expenses

    @property
    def scenario_net(self) -> float:
        return self.scenario_income - self.scenario_expenses

    @property
    def net_delta(self) -> float:
        return self.scenario_net - self.baseline_net


def compute_scenario_impact_summary(
    tree: CategoryTree, budget: BudgetTemplate, scenario_id: str
) -> Optional[ScenarioImpactSummary]:
    """Compare baseline and scenario planned totals.

    Leaves are classified as income when their root's id is an income
    category.  Excluded categories (and everything under an excluded
    group) are skipped on both sides.  Virtual items only count towards
    the scenario totals.
    """
    scenario = budget.find_scenario(scenario_id)
    if scenario is None:
        return None

    resolved = get_resolved_template(budget, scenario_id)
    income_ids = set(budget.settings.income_categories)
    excluded_ids = set(budget.settings.excluded_categories)
    summary = ScenarioImpactSummary(virtual_item_count=len(scenario.virtual_items))

    def walk(nodes: List[CategoryNode], is_income: bool) -> None:
        for node in nodes:
            if node.id in excluded_ids:
                continue
            if not node.is_leaf:
                walk(tree.children_of(node), is_income)
                continue
            base_entry = budget.template.get(node.id)
            scen_entry = resolved.get(node.id)
            base = base_entry.amount if base_entry else 0.0
            scen = scen_entry.amount if scen_entry else 0.0
            if is_income:
                summary.baseline_income += base
                summary.scenario_income += scen
            else:
                summary.baseline_expenses += base
                summary.scenario_expenses += scen
            if abs(base - scen) >= OVERRIDE_TOLERANCE:
                summary.overridden_count += 1

    for root in tree.root_nodes():
        walk([root], root.id in income_ids)

    for item in scenario.virtual_items:
        if item.is_income:
            summary.scenario_income += item.amount
        else:
            summary.scenario_expenses += item.amount
    return summary
