"""Value types for categories, transactions and budget templates.

The persisted shapes use camelCase keys so templates written by earlier
versions keep loading.  Every optional field defaults to an empty value
when it is missing from the source document, and ``to_dict`` leaves
empty optional fields out so the on-disk shape only ever grows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import numpy as np

from .config import DEFAULT_CURRENCY, TEMPLATE_VERSION

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def validate_amount(value: Any) -> float:
    """Return ``value`` as a float, rejecting non-numeric and non-finite input.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Amount must be a number, got {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Amount must be a number, got {value!r}") from e
    if not np.isfinite(amount):
        raise ValueError(f"Amount must be finite, got {value!r}")
    return amount


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return default
    return amount if np.isfinite(amount) else default


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


# ---------------------------------------------------------------------------
# Source data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    currency: str = DEFAULT_CURRENCY
    is_group: bool = False
    indentation: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=str(data.get('uuid') or data.get('id') or ''),
            name=str(data.get('name') or ''),
            currency=str(data.get('currency') or DEFAULT_CURRENCY),
            is_group=bool(data.get('group', data.get('isGroup', False))),
            indentation=int(data.get('indentation') or 0),
        )


@dataclass(frozen=True)
class Transaction:
    id: int
    amount: float  # negative = expense, positive = income
    booking_date: str  # YYYY-MM-DD
    category_id: str
    account_id: str = ''
    currency: str = DEFAULT_CURRENCY
    name: str = ''
    purpose: Optional[str] = None

    @property
    def month(self) -> str:
        return self.booking_date[:7]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=int(data['id']),
            amount=_as_float(data.get('amount')),
            booking_date=str(data.get('bookingDate') or data.get('booking_date') or ''),
            category_id=str(data.get('categoryUuid') or data.get('category_id') or ''),
            account_id=str(data.get('accountUuid') or data.get('account_id') or ''),
            currency=str(data.get('currency') or DEFAULT_CURRENCY),
            name=str(data.get('name') or ''),
            purpose=_optional_str(data.get('purpose')),
        )


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------


@dataclass
class LineItem:
    id: str
    name: str
    amount: float
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        return cls(
            id=str(data.get('id') or ''),
            name=str(data.get('name') or ''),
            amount=_as_float(data.get('amount')),
            description=_optional_str(data.get('description')),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'id': self.id, 'name': self.name, 'amount': self.amount}
        if self.description is not None:
            payload['description'] = self.description
        return payload


def _line_items(value: Any) -> List[LineItem]:
    if not isinstance(value, list):
        return []
    return [LineItem.from_dict(item) for item in value if isinstance(item, dict)]


@dataclass
class TemplateEntry:
    """Planned amount for one category.

    When ``line_items`` is non-empty, ``amount`` equals their sum.  The
    mutators in :mod:`budget_planner.store` keep that true; aggregation
    only ever reads ``amount``.
    """

    amount: float = 0.0
    source_account: Optional[str] = None
    target_account: Optional[str] = None
    line_items: List[LineItem] = field(default_factory=list)
    note: Optional[str] = None

    def recompute_amount(self) -> None:
        if self.line_items:
            self.amount = float(sum(item.amount for item in self.line_items))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateEntry":
        return cls(
            amount=_as_float(data.get('amount')),
            source_account=_optional_str(data.get('sourceAccount')),
            target_account=_optional_str(data.get('targetAccount')),
            line_items=_line_items(data.get('lineItems')),
            note=_optional_str(data.get('note')),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'amount': self.amount}
        if self.source_account is not None:
            payload['sourceAccount'] = self.source_account
        if self.target_account is not None:
            payload['targetAccount'] = self.target_account
        if self.line_items:
            payload['lineItems'] = [item.to_dict() for item in self.line_items]
        if self.note is not None:
            payload['note'] = self.note
        return payload


@dataclass
class BudgetSettings:
    currency: str = DEFAULT_CURRENCY
    accounts: List[str] = field(default_factory=list)
    income_categories: List[str] = field(default_factory=list)
    excluded_categories: List[str] = field(default_factory=list)
    start_date: str = field(default_factory=lambda: date.today().strftime('%Y-%m'))
    custom_entities: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BudgetSettings":
        defaults = cls()
        return cls(
            currency=str(data.get('currency') or defaults.currency),
            accounts=_as_str_list(data.get('accounts')),
            income_categories=_as_str_list(data.get('incomeCategories')),
            excluded_categories=_as_str_list(data.get('excludedCategories')),
            start_date=str(data.get('startDate') or defaults.start_date),
            custom_entities=_as_str_list(data.get('customEntities')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currency': self.currency,
            'accounts': list(self.accounts),
            'incomeCategories': list(self.income_categories),
            'excludedCategories': list(self.excluded_categories),
            'startDate': self.start_date,
            'customEntities': list(self.custom_entities),
        }


@dataclass
class UnplannedTransaction:
    """Snapshot of a transaction flagged as outside the plan."""

    tx_id: int
    name: str
    amount: float
    booking_date: str
    purpose: Optional[str] = None

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "UnplannedTransaction":
        return cls(
            tx_id=tx.id,
            name=tx.name,
            amount=tx.amount,
            booking_date=tx.booking_date,
            purpose=tx.purpose,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnplannedTransaction":
        return cls(
            tx_id=int(data.get('txId', 0)),
            name=str(data.get('name') or ''),
            amount=_as_float(data.get('amount')),
            booking_date=str(data.get('bookingDate') or ''),
            purpose=_optional_str(data.get('purpose')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'txId': self.tx_id,
            'name': self.name,
            'amount': self.amount,
            'bookingDate': self.booking_date,
            'purpose': self.purpose,
        }


@dataclass
class MovedTransaction:
    tx_id: int
    target_month: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MovedTransaction":
        return cls(tx_id=int(data.get('txId', 0)), target_month=str(data.get('targetMonth') or ''))

    def to_dict(self) -> Dict[str, Any]:
        return {'txId': self.tx_id, 'targetMonth': self.target_month}


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


@dataclass
class ScenarioOverride:
    amount: float
    line_items: List[LineItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioOverride":
        return cls(amount=_as_float(data.get('amount')), line_items=_line_items(data.get('lineItems')))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'amount': self.amount}
        if self.line_items:
            payload['lineItems'] = [item.to_dict() for item in self.line_items]
        return payload


@dataclass
class VirtualItem:
    id: str
    name: str
    amount: float
    is_income: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VirtualItem":
        return cls(
            id=str(data.get('id') or ''),
            name=str(data.get('name') or ''),
            amount=_as_float(data.get('amount')),
            is_income=bool(data.get('isIncome', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'amount': self.amount, 'isIncome': self.is_income}


@dataclass
class Scenario:
    id: str
    name: str
    created_at: str
    overrides: Dict[str, ScenarioOverride] = field(default_factory=dict)
    virtual_items: List[VirtualItem] = field(default_factory=list)
    description: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        overrides = {
            str(cat_id): ScenarioOverride.from_dict(raw)
            for cat_id, raw in _as_dict(data.get('overrides')).items()
            if isinstance(raw, dict)
        }
        raw_items = data.get('virtualItems')
        items = [VirtualItem.from_dict(v) for v in raw_items if isinstance(v, dict)] if isinstance(raw_items, list) else []
        return cls(
            id=str(data.get('id') or ''),
            name=str(data.get('name') or ''),
            created_at=str(data.get('createdAt') or ''),
            overrides=overrides,
            virtual_items=items,
            description=_optional_str(data.get('description')),
            notes=_optional_str(data.get('notes')),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'createdAt': self.created_at,
            'overrides': {cat_id: o.to_dict() for cat_id, o in self.overrides.items()},
        }
        if self.virtual_items:
            payload['virtualItems'] = [v.to_dict() for v in self.virtual_items]
        if self.description is not None:
            payload['description'] = self.description
        if self.notes is not None:
            payload['notes'] = self.notes
        return payload


# ---------------------------------------------------------------------------
# Budget template
# ---------------------------------------------------------------------------


@dataclass
class BudgetTemplate:
    name: str
    version: str = TEMPLATE_VERSION
    settings: BudgetSettings = field(default_factory=BudgetSettings)
    template: Dict[str, TemplateEntry] = field(default_factory=dict)
    comments: Dict[str, Dict[str, str]] = field(default_factory=dict)
    unplanned: Dict[str, Dict[str, List[UnplannedTransaction]]] = field(default_factory=dict)
    moved: Dict[str, List[MovedTransaction]] = field(default_factory=dict)
    scenarios: List[Scenario] = field(default_factory=list)

    def find_scenario(self, scenario_id: str) -> Optional[Scenario]:
        return next((s for s in self.scenarios if s.id == scenario_id), None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BudgetTemplate":
        """Build a template from its persisted shape, backfilling missing fields."""
        template = {
            str(cat_id): TemplateEntry.from_dict(raw)
            for cat_id, raw in _as_dict(data.get('template')).items()
            if isinstance(raw, dict)
        }
        comments = {
            str(month): {str(k): str(v) for k, v in entries.items() if v}
            for month, entries in _as_dict(data.get('comments')).items()
            if isinstance(entries, dict)
        }
        unplanned: Dict[str, Dict[str, List[UnplannedTransaction]]] = {}
        for month, buckets in _as_dict(data.get('unplanned')).items():
            if not isinstance(buckets, dict):
                continue
            unplanned[str(month)] = {
                str(cat_id): [UnplannedTransaction.from_dict(tx) for tx in txs if isinstance(tx, dict)]
                for cat_id, txs in buckets.items()
                if isinstance(txs, list)
            }
        moved = {
            str(month): [MovedTransaction.from_dict(rec) for rec in records if isinstance(rec, dict)]
            for month, records in _as_dict(data.get('moved')).items()
            if isinstance(records, list)
        }
        raw_scenarios = data.get('scenarios')
        scenarios = (
            [Scenario.from_dict(s) for s in raw_scenarios if isinstance(s, dict)]
            if isinstance(raw_scenarios, list)
            else []
        )
        return cls(
            name=str(data.get('name') or ''),
            version=str(data.get('version') or TEMPLATE_VERSION),
            settings=BudgetSettings.from_dict(_as_dict(data.get('settings'))),
            template=template,
            comments=comments,
            unplanned=unplanned,
            moved=moved,
            scenarios=scenarios,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'name': self.name,
            'version': self.version,
            'settings': self.settings.to_dict(),
            'template': {cat_id: entry.to_dict() for cat_id, entry in self.template.items()},
        }
        if self.comments:
            payload['comments'] = {month: dict(entries) for month, entries in self.comments.items()}
        if self.unplanned:
            payload['unplanned'] = {
                month: {cat_id: [tx.to_dict() for tx in txs] for cat_id, txs in buckets.items()}
                for month, buckets in self.unplanned.items()
            }
        if self.moved:
            payload['moved'] = {
                month: [rec.to_dict() for rec in records] for month, records in self.moved.items()
            }
        if self.scenarios:
            payload['scenarios'] = [s.to_dict() for s in self.scenarios]
        return payload
