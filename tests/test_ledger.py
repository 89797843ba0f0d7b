from budget_planner import ledger
from budget_planner.models import BudgetTemplate, Transaction


def _tx(tx_id, day='2025-01-10', amount=-10.0, category_id='food'):
    return Transaction(id=tx_id, amount=amount, booking_date=day, category_id=category_id, name=f'tx{tx_id}')


def _budget():
    return BudgetTemplate(name='family')


def test_mark_unplanned_is_idempotent_union():
    budget = _budget()
    assert ledger.mark_unplanned(budget, '2025-01', 'food', [_tx(1), _tx(2)])
    assert ledger.mark_unplanned(budget, '2025-01', 'food', [_tx(2), _tx(3), _tx(3)])
    assert not ledger.mark_unplanned(budget, '2025-01', 'food', [_tx(1), _tx(2), _tx(3)])

    bucket = budget.unplanned['2025-01']['food']
    assert [tx.tx_id for tx in bucket] == [1, 2, 3]
    assert bucket[0].name == 'tx1'
    assert ledger.is_unplanned(budget, '2025-01', 'food', 2)


def test_mark_unplanned_without_transactions_creates_nothing():
    budget = _budget()
    assert not ledger.mark_unplanned(budget, '2025-01', 'food', [])
    assert budget.unplanned == {}


def test_unmark_unplanned_prunes_empty_buckets():
    budget = _budget()
    ledger.mark_unplanned(budget, '2025-01', 'food', [_tx(1), _tx(2)])
    ledger.mark_unplanned(budget, '2025-01', 'fun', [_tx(3)])

    assert ledger.unmark_unplanned(budget, '2025-01', 'food', [1])
    assert [tx.tx_id for tx in budget.unplanned['2025-01']['food']] == [2]

    assert ledger.unmark_unplanned(budget, '2025-01', 'food', [2])
    assert 'food' not in budget.unplanned['2025-01']
    assert ledger.unmark_unplanned(budget, '2025-01', 'fun', [3])
    assert budget.unplanned == {}
    assert not ledger.unmark_unplanned(budget, '2025-01', 'fun', [3])


def test_get_unplanned_for_month():
    budget = _budget()
    ledger.mark_unplanned(budget, '2025-01', 'food', [_tx(1)])
    entries = ledger.get_unplanned_for_month(budget, '2025-01')
    assert [(cat, [tx.tx_id for tx in txs]) for cat, txs in entries] == [('food', [1])]
    assert ledger.get_unplanned_for_month(budget, '2025-02') == []


def test_moved_transaction_appears_once_in_target_month():
    budget = _budget()
    assert ledger.move_transactions(budget, '2025-01', '2025-02', [_tx(5)])
    assert not ledger.move_transactions(budget, '2025-01', '2025-02', [_tx(5)])
    assert not ledger.move_transactions(budget, '2025-01', '2025-03', [_tx(5)])

    moved_in = ledger.get_moved_in_for_month(budget, '2025-02')
    assert [(source, rec.tx_id) for source, rec in moved_in] == [('2025-01', 5)]
    assert [rec.tx_id for rec in ledger.get_moved_out_for_month(budget, '2025-01')] == [5]
    assert ledger.get_moved_in_for_month(budget, '2025-03') == []


def test_unmove_prunes_source_month():
    budget = _budget()
    ledger.move_transactions(budget, '2025-01', '2025-02', [_tx(5), _tx(6)])
    assert ledger.unmove_transactions(budget, '2025-01', [5])
    assert ledger.moved_out_ids(budget, '2025-01') == {6}
    assert ledger.unmove_transactions(budget, '2025-01', [6])
    assert budget.moved == {}
    assert ledger.get_moved_in_for_month(budget, '2025-02') == []


def test_move_within_same_month_is_ignored():
    budget = _budget()
    assert not ledger.move_transactions(budget, '2025-01', '2025-01', [_tx(1)])
    assert budget.moved == {}


def test_reporting_transactions_follow_moves():
    budget = _budget()
    a = _tx(1, '2025-01-10')
    b = _tx(2, '2025-01-28')
    c = _tx(3, '2025-02-03')
    ledger.move_transactions(budget, '2025-01', '2025-02', [b])

    assert ledger.reporting_transactions(budget, '2025-01', [a, b, c]) == [a]
    assert ledger.reporting_transactions(budget, '2025-02', [a, b, c]) == [c, b]
    assert ledger.exclude_moved_out(budget, '2025-01', [a, b]) == [a]
    assert ledger.moved_in_ids(budget, '2025-02') == {2}
