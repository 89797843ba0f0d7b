"""Session owner of the budget template.

:class:`BudgetManager` holds the single mutable :class:`BudgetTemplate`
for a session and exposes every change as a discrete command.  Commands
return ``True`` when they changed the template and set the ``dirty``
flag; when a save callback is configured each change also restarts the
auto-save countdown.
"""

from __future__ import annotations

import copy
import functools
import logging
import threading
import uuid
from dataclasses import fields, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from . import ledger, scenarios
from .autosave import SaveCoalescer, TimerFactory
from .budget_calc import BudgetResult, compute_budget
from .budget_context import build_budget_context
from .category_tree import CategoryTree
from .config import TEMPLATE_VERSION
from .models import (
    BudgetSettings,
    BudgetTemplate,
    LineItem,
    Scenario,
    TemplateEntry,
    Transaction,
    validate_amount,
)

logger = logging.getLogger(__name__)

SaveCallback = Callable[[BudgetTemplate], None]


def create_empty_budget(name: str) -> BudgetTemplate:
    return BudgetTemplate(name=name, version=TEMPLATE_VERSION, settings=BudgetSettings())


def _command(method):
    """Run a manager method under the manager's lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class BudgetManager:
    """Owns a budget template and applies changes to it."""

    def __init__(
        self,
        budget: Optional[BudgetTemplate] = None,
        save: Optional[SaveCallback] = None,
        save_delay: Optional[float] = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the manager.

        Args:
            budget: Template to manage. Defaults to an empty budget named "family".
            save: Optional persistence callback receiving a snapshot of the template.
                  When given, changes are saved after a quiet period.
            save_delay: Quiet period in seconds. Defaults to the configured delay.
            timer_factory: Creates the countdown timer; tests pass a fake.
        """
        self.budget = budget or create_empty_budget('family')
        self.dirty = False
        self._changes = 0
        self._lock = threading.RLock()
        self._save = save
        self._autosave = SaveCoalescer(self._write, save_delay, timer_factory) if save else None

    # Lifecycle --------------------------------------------------------------

    def _commit(self, changed: bool) -> bool:
        if changed:
            self._changes += 1
            self.dirty = True
            if self._autosave is not None:
                self._autosave.notify()
        return changed

    def _write(self) -> None:
        if self._save is None:
            return
        with self._lock:
            changes = self._changes
            snapshot = copy.deepcopy(self.budget)
        self._save(snapshot)
        with self._lock:
            # a command that ran during the save is not in the snapshot
            if self._changes == changes:
                self.dirty = False

    def save_now(self) -> None:
        """Persist immediately.  Errors from the save callback propagate."""
        if self._autosave is not None:
            self._autosave.flush()
        else:
            self._write()

    @_command
    def mark_saved(self) -> None:
        self.dirty = False

    @_command
    def load(self, data: Dict[str, Any]) -> None:
        """Replace the template with one loaded from its persisted shape."""
        if self._autosave is not None:
            self._autosave.cancel()
        self.budget = BudgetTemplate.from_dict(data)
        self.dirty = False

    @_command
    def create_new(self, name: str) -> None:
        self.budget = create_empty_budget(name.strip())
        self._commit(True)

    @_command
    def to_dict(self) -> Dict[str, Any]:
        return self.budget.to_dict()

    @_command
    def set_name(self, name: str) -> bool:
        trimmed = name.strip()
        if not trimmed or trimmed == self.budget.name:
            return False
        self.budget.name = trimmed
        return self._commit(True)

    @_command
    def update_settings(self, **changes: Any) -> bool:
        """Replace individual settings fields.

        Raises:
            TypeError: If a keyword is not a settings field, or a list
                field is given a plain string.
        """
        valid = {f.name for f in fields(BudgetSettings)}
        unknown = set(changes) - valid
        if unknown:
            raise TypeError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")
        for key, value in changes.items():
            if isinstance(getattr(self.budget.settings, key), list):
                if isinstance(value, str):
                    raise TypeError(f"Settings field '{key}' expects a list, got a string")
                changes[key] = [str(v) for v in value]
        self.budget.settings = replace(self.budget.settings, **changes)
        return self._commit(bool(changes))

    # Template entries -------------------------------------------------------

    def _entry(self, category_id: str) -> TemplateEntry:
        entry = self.budget.template.get(category_id)
        if entry is None:
            entry = self.budget.template[category_id] = TemplateEntry()
        return entry

    @_command
    def set_template_amount(self, category_id: str, amount: float) -> bool:
        """Set the planned amount of a category.

        Line items are dropped since the amount would no longer be their sum.

        Raises:
            ValueError: If ``amount`` is not a finite number.
        """
        value = validate_amount(amount)
        entry = self._entry(category_id)
        entry.amount = value
        entry.line_items = []
        return self._commit(True)

    @_command
    def remove_template_entry(self, category_id: str) -> bool:
        return self._commit(self.budget.template.pop(category_id, None) is not None)

    @_command
    def set_note(self, category_id: str, note: str) -> bool:
        trimmed = note.strip()
        existing = self.budget.template.get(category_id)
        if trimmed:
            self._entry(category_id).note = trimmed
            return self._commit(True)
        if existing is None or existing.note is None:
            return False
        existing.note = None
        return self._commit(True)

    @_command
    def set_source_account(self, category_id: str, account_id: Optional[str]) -> bool:
        self._entry(category_id).source_account = account_id or None
        return self._commit(True)

    @_command
    def set_target_account(self, category_id: str, account_id: Optional[str]) -> bool:
        self._entry(category_id).target_account = account_id or None
        return self._commit(True)

    # Line items -------------------------------------------------------------

    def _line_item(self, category_id: str, item_id: str) -> Tuple[Optional[TemplateEntry], Optional[LineItem]]:
        entry = self.budget.template.get(category_id)
        if entry is None:
            return None, None
        item = next((li for li in entry.line_items if li.id == item_id), None)
        if item is None:
            logger.debug("Unknown line item %r for category %r", item_id, category_id)
        return entry, item

    @_command
    def add_line_item(self, category_id: str, name: str = '', amount: Optional[float] = None) -> str:
        """Add a line item and return its id.

        The first line item of an entry is seeded with the entry's current
        amount unless ``amount`` is given; later items default to 0.
        """
        value = validate_amount(amount) if amount is not None else None
        entry = self._entry(category_id)
        item_id = str(uuid.uuid4())
        if not entry.line_items:
            seed = entry.amount if value is None else value
            entry.line_items = [LineItem(id=item_id, name=name.strip(), amount=seed)]
        else:
            entry.line_items.append(LineItem(id=item_id, name=name.strip(), amount=value or 0.0))
        entry.recompute_amount()
        self._commit(True)
        return item_id

    @_command
    def rename_line_item(self, category_id: str, item_id: str, name: str) -> bool:
        _, item = self._line_item(category_id, item_id)
        if item is None:
            return False
        item.name = name.strip()
        return self._commit(True)

    @_command
    def set_line_item_amount(self, category_id: str, item_id: str, amount: float) -> bool:
        value = validate_amount(amount)
        entry, item = self._line_item(category_id, item_id)
        if item is None:
            return False
        item.amount = value
        entry.recompute_amount()
        return self._commit(True)

    @_command
    def set_line_item_description(self, category_id: str, item_id: str, description: Optional[str]) -> bool:
        _, item = self._line_item(category_id, item_id)
        if item is None:
            return False
        item.description = description.strip() if description and description.strip() else None
        return self._commit(True)

    @_command
    def remove_line_item(self, category_id: str, item_id: str) -> bool:
        """Remove a line item; the entry keeps its last amount when none remain."""
        entry, item = self._line_item(category_id, item_id)
        if item is None:
            return False
        entry.line_items = [li for li in entry.line_items if li.id != item_id]
        entry.recompute_amount()
        return self._commit(True)

    # Settings shortcuts -----------------------------------------------------

    @_command
    def add_custom_entity(self, name: str) -> bool:
        trimmed = name.strip()
        entities = self.budget.settings.custom_entities
        if not trimmed or trimmed in entities:
            return False
        entities.append(trimmed)
        return self._commit(True)

    @_command
    def remove_custom_entity(self, name: str) -> bool:
        entities = self.budget.settings.custom_entities
        if name not in entities:
            return False
        self.budget.settings.custom_entities = [e for e in entities if e != name]
        return self._commit(True)

    @_command
    def toggle_excluded_category(self, category_id: str) -> bool:
        """Toggle exclusion and return whether the category is now excluded."""
        excluded = self.budget.settings.excluded_categories
        if category_id in excluded:
            self.budget.settings.excluded_categories = [c for c in excluded if c != category_id]
            now_excluded = False
        else:
            excluded.append(category_id)
            now_excluded = True
        self._commit(True)
        return now_excluded

    # Comments ---------------------------------------------------------------

    @_command
    def set_comment(self, month: str, category_id: str, text: str) -> bool:
        trimmed = text.strip()
        if trimmed:
            self.budget.comments.setdefault(month, {})[category_id] = trimmed
            return self._commit(True)
        month_comments = self.budget.comments.get(month)
        if not month_comments or category_id not in month_comments:
            return False
        del month_comments[category_id]
        if not month_comments:
            del self.budget.comments[month]
        return self._commit(True)

    @_command
    def get_comment(self, month: str, category_id: str) -> str:
        return self.budget.comments.get(month, {}).get(category_id, '')

    @_command
    def get_comments_for_month(self, month: str) -> List[Tuple[str, str]]:
        return list(self.budget.comments.get(month, {}).items())

    # Unplanned and moved transactions --------------------------------------

    @_command
    def mark_unplanned(self, month: str, category_id: str, transactions: Iterable[Transaction]) -> bool:
        return self._commit(ledger.mark_unplanned(self.budget, month, category_id, transactions))

    @_command
    def unmark_unplanned(self, month: str, category_id: str, tx_ids: Iterable[int]) -> bool:
        return self._commit(ledger.unmark_unplanned(self.budget, month, category_id, tx_ids))

    @_command
    def move_transactions(self, source_month: str, target_month: str, transactions: Iterable[Transaction]) -> bool:
        return self._commit(ledger.move_transactions(self.budget, source_month, target_month, transactions))

    @_command
    def unmove_transactions(self, source_month: str, tx_ids: Iterable[int]) -> bool:
        return self._commit(ledger.unmove_transactions(self.budget, source_month, tx_ids))

    # Scenarios --------------------------------------------------------------

    @_command
    def create_scenario(self, name: str, description: Optional[str] = None) -> Scenario:
        scenario = scenarios.create_scenario(self.budget, name, description)
        self._commit(True)
        return scenario

    @_command
    def delete_scenario(self, scenario_id: str) -> bool:
        return self._commit(scenarios.delete_scenario(self.budget, scenario_id))

    @_command
    def rename_scenario(self, scenario_id: str, name: str) -> bool:
        return self._commit(scenarios.rename_scenario(self.budget, scenario_id, name))

    @_command
    def set_scenario_description(self, scenario_id: str, description: str) -> bool:
        return self._commit(scenarios.set_scenario_description(self.budget, scenario_id, description))

    @_command
    def set_scenario_notes(self, scenario_id: str, notes: str) -> bool:
        return self._commit(scenarios.set_scenario_notes(self.budget, scenario_id, notes))

    @_command
    def duplicate_scenario(self, scenario_id: str, name: Optional[str] = None) -> Optional[Scenario]:
        duplicate = scenarios.duplicate_scenario(self.budget, scenario_id, name)
        self._commit(duplicate is not None)
        return duplicate

    @_command
    def set_scenario_override(self, scenario_id: str, category_id: str, amount: float) -> bool:
        return self._commit(scenarios.set_scenario_override(self.budget, scenario_id, category_id, amount))

    @_command
    def set_override_line_items(self, scenario_id: str, category_id: str, line_items: Sequence[LineItem]) -> bool:
        return self._commit(scenarios.set_override_line_items(self.budget, scenario_id, category_id, line_items))

    @_command
    def remove_scenario_override(self, scenario_id: str, category_id: str) -> bool:
        return self._commit(scenarios.remove_scenario_override(self.budget, scenario_id, category_id))

    @_command
    def clear_scenario_overrides(self, scenario_id: str) -> bool:
        return self._commit(scenarios.clear_scenario_overrides(self.budget, scenario_id))

    @_command
    def apply_scenario_to_baseline(self, scenario_id: str) -> bool:
        return self._commit(scenarios.apply_scenario_to_baseline(self.budget, scenario_id))

    @_command
    def add_virtual_item(self, scenario_id: str, name: str, amount: float, is_income: bool = False) -> Optional[str]:
        item_id = scenarios.add_virtual_item(self.budget, scenario_id, name, amount, is_income)
        self._commit(item_id is not None)
        return item_id

    @_command
    def rename_virtual_item(self, scenario_id: str, item_id: str, name: str) -> bool:
        return self._commit(scenarios.rename_virtual_item(self.budget, scenario_id, item_id, name))

    @_command
    def set_virtual_item_amount(self, scenario_id: str, item_id: str, amount: float) -> bool:
        return self._commit(scenarios.set_virtual_item_amount(self.budget, scenario_id, item_id, amount))

    @_command
    def set_virtual_item_income(self, scenario_id: str, item_id: str, is_income: bool) -> bool:
        return self._commit(scenarios.set_virtual_item_income(self.budget, scenario_id, item_id, is_income))

    @_command
    def remove_virtual_item(self, scenario_id: str, item_id: str) -> bool:
        return self._commit(scenarios.remove_virtual_item(self.budget, scenario_id, item_id))

    # Computation ------------------------------------------------------------

    @_command
    def compute(
        self,
        tree: CategoryTree,
        transactions: Iterable[Transaction],
        month: Optional[str] = None,
        scenario_id: Optional[str] = None,
    ) -> BudgetResult:
        """Aggregate planned versus actual for the baseline or a scenario.

        When ``month`` is given the transactions are first narrowed to
        the ones reporting in that month, honouring moved transactions.
        """
        template = (
            scenarios.get_resolved_template(self.budget, scenario_id)
            if scenario_id
            else self.budget.template
        )
        if month is not None:
            transactions = ledger.reporting_transactions(self.budget, month, transactions)
        return compute_budget(tree, template, transactions, self.budget.settings)

    @_command
    def impact_summary(self, tree: CategoryTree, scenario_id: str) -> Optional[scenarios.ScenarioImpactSummary]:
        return scenarios.compute_scenario_impact_summary(tree, self.budget, scenario_id)

    @_command
    def describe_month(
        self,
        tree: CategoryTree,
        transactions: Iterable[Transaction],
        month: str,
        scenario_id: Optional[str] = None,
    ) -> str:
        """Plain-text summary of one month for narrative consumers."""
        result = self.compute(tree, transactions, month=month, scenario_id=scenario_id)
        scenario = self.budget.find_scenario(scenario_id) if scenario_id else None
        return build_budget_context(
            result.income_rows,
            result.expense_rows,
            result.summary,
            month,
            scenario.name if scenario else None,
        )
