"""Bookkeeping for unplanned and moved transactions.

Unplanned transactions are kept per ``(month, category id)`` bucket and
moved transactions per source month.  Both are set-unions keyed by
transaction id: adding a transaction that is already present is a no-op.
Every mutator returns ``True`` when the template actually changed.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set, Tuple

from .models import BudgetTemplate, MovedTransaction, Transaction, UnplannedTransaction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Unplanned
# ---------------------------------------------------------------------------


def mark_unplanned(
    template: BudgetTemplate, month: str, category_id: str, transactions: Iterable[Transaction]
) -> bool:
    """Flag transactions as unplanned for a category in a month.

    Args:
        template: Budget template to update
        month: Month in ``YYYY-MM`` form
        category_id: Category the transactions belong to
        transactions: Transactions to flag; ids already flagged are skipped

    Returns:
        True if at least one transaction was added
    """
    bucket = template.unplanned.get(month, {}).get(category_id, [])
    known = {tx.tx_id for tx in bucket}
    additions: List[UnplannedTransaction] = []
    for tx in transactions:
        if tx.id in known:
            continue
        known.add(tx.id)
        additions.append(UnplannedTransaction.from_transaction(tx))

    if not additions:
        return False
    template.unplanned.setdefault(month, {}).setdefault(category_id, []).extend(additions)
    return True


def unmark_unplanned(
    template: BudgetTemplate, month: str, category_id: str, tx_ids: Iterable[int]
) -> bool:
    """Remove transactions from a bucket, pruning empty buckets and months."""
    month_buckets = template.unplanned.get(month)
    if not month_buckets or category_id not in month_buckets:
        return False

    drop = set(tx_ids)
    bucket = month_buckets[category_id]
    kept = [tx for tx in bucket if tx.tx_id not in drop]
    if len(kept) == len(bucket):
        return False

    if kept:
        month_buckets[category_id] = kept
    else:
        del month_buckets[category_id]
        if not month_buckets:
            del template.unplanned[month]
    return True


def is_unplanned(template: BudgetTemplate, month: str, category_id: str, tx_id: int) -> bool:
    """Check whether a transaction is flagged in the ``(month, category)`` bucket."""
    bucket = template.unplanned.get(month, {}).get(category_id, [])
    return any(tx.tx_id == tx_id for tx in bucket)


def get_unplanned_for_month(
    template: BudgetTemplate, month: str
) -> List[Tuple[str, List[UnplannedTransaction]]]:
    """Return ``(category id, transactions)`` pairs for ``month``."""
    return [(cat_id, list(txs)) for cat_id, txs in template.unplanned.get(month, {}).items()]


# ---------------------------------------------------------------------------
# Moved
# ---------------------------------------------------------------------------


def move_transactions(
    template: BudgetTemplate, source_month: str, target_month: str, transactions: Iterable[Transaction]
) -> bool:
    """Record ``transactions`` as reported in ``target_month`` instead of ``source_month``.

    A transaction already moved out of ``source_month`` keeps its existing
    record; unmove it first to retarget it.
    """
    if source_month == target_month:
        logger.debug("Ignoring move of transactions within %s", source_month)
        return False

    bucket = template.moved.get(source_month, [])
    known = {rec.tx_id for rec in bucket}
    additions: List[MovedTransaction] = []
    for tx in transactions:
        if tx.id in known:
            continue
        known.add(tx.id)
        additions.append(MovedTransaction(tx_id=tx.id, target_month=target_month))

    if not additions:
        return False
    template.moved.setdefault(source_month, []).extend(additions)
    return True


def unmove_transactions(template: BudgetTemplate, source_month: str, tx_ids: Iterable[int]) -> bool:
    """Undo moves out of ``source_month``.

    Args:
        template: Budget template to update
        source_month: Month the transactions were booked in
        tx_ids: Ids of the transactions to restore

    Returns:
        True if any record was removed; an emptied month is pruned
    """
    bucket = template.moved.get(source_month)
    if not bucket:
        return False

    drop = set(tx_ids)
    kept = [rec for rec in bucket if rec.tx_id not in drop]
    if len(kept) == len(bucket):
        return False

    if kept:
        template.moved[source_month] = kept
    else:
        del template.moved[source_month]
    return True


def get_moved_out_for_month(template: BudgetTemplate, month: str) -> List[MovedTransaction]:
    """Records of transactions booked in ``month`` but reported elsewhere."""
    return list(template.moved.get(month, []))


def get_moved_in_for_month(template: BudgetTemplate, month: str) -> List[Tuple[str, MovedTransaction]]:
    """Return ``(source month, record)`` pairs whose target is ``month``.

    Scans every source bucket; the moved map is not indexed by target.
    """
    return [
        (source_month, rec)
        for source_month, records in template.moved.items()
        for rec in records
        if rec.target_month == month
    ]


def moved_out_ids(template: BudgetTemplate, month: str) -> Set[int]:
    return {rec.tx_id for rec in template.moved.get(month, [])}


def moved_in_ids(template: BudgetTemplate, month: str) -> Set[int]:
    return {rec.tx_id for _, rec in get_moved_in_for_month(template, month)}


# ---------------------------------------------------------------------------
# Reporting window
# ---------------------------------------------------------------------------


def exclude_moved_out(
    template: BudgetTemplate, month: str, transactions: Iterable[Transaction]
) -> List[Transaction]:
    """Drop transactions that were moved out of ``month``.

    The aggregator does not do this on its own; without this step a moved
    transaction counts in both its booking month and its target month.
    """
    moved_out = moved_out_ids(template, month)
    return [tx for tx in transactions if tx.id not in moved_out]


def reporting_transactions(
    template: BudgetTemplate, month: str, transactions: Iterable[Transaction]
) -> List[Transaction]:
    """Select the transactions that report in ``month``.

    ``transactions`` must cover the booking months of anything moved into
    ``month``.  The result is every transaction booked in ``month`` that was
    not moved out, followed by the transactions moved in from other months.
    """
    moved_out = moved_out_ids(template, month)
    moved_in: Dict[int, str] = {
        rec.tx_id: source for source, rec in get_moved_in_for_month(template, month)
    }
    booked: List[Transaction] = []
    arrived: List[Transaction] = []
    for tx in transactions:
        if tx.month == month:
            if tx.id not in moved_out:
                booked.append(tx)
        elif moved_in.get(tx.id) == tx.month:
            arrived.append(tx)
    return booked + arrived
