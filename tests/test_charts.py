import pytest

from budget_planner.budget_calc import CategoryBudgetRow
from budget_planner.charts import (
    collect_over_budget_items,
    collect_unplanned_alerts,
    rows_to_bar_data,
    rows_to_frame,
    rows_to_pie_data,
)
from budget_planner.config import OTHER_SLICE_ID
from budget_planner.models import UnplannedTransaction


def _row(row_id, planned=0.0, actual=0.0, *, is_income=False, excluded=False, children=None):
    children = children or []
    if is_income:
        difference = actual - planned
    else:
        difference = planned - actual
    return CategoryBudgetRow(
        id=row_id,
        name=row_id.title(),
        is_group=bool(children),
        indentation=0,
        is_income=is_income,
        planned=planned,
        actual=actual,
        difference=0.0 if excluded else difference,
        children=children,
        excluded=excluded,
    )


def test_pie_merges_small_slices_and_conserves_total():
    rows = [
        _row('rent', planned=1000),
        _row('food', planned=500),
        _row('tea', planned=10),
        _row('gum', planned=5),
        _row('none', planned=0),
        _row('hidden', planned=300, excluded=True),
    ]
    slices = rows_to_pie_data(rows, 'planned')

    assert [s.id for s in slices] == ['rent', 'food', OTHER_SLICE_ID]
    assert slices[-1].value == pytest.approx(15)
    assert sum(s.value for s in slices) == pytest.approx(1515, abs=1e-6)
    total = sum(s.value for s in slices)
    assert all(s.value / total >= 0.02 for s in slices if s.id != OTHER_SLICE_ID)


def test_pie_without_small_slices_has_no_other():
    slices = rows_to_pie_data([_row('a', actual=-60), _row('b', actual=40)], 'actual')
    assert [(s.id, s.value) for s in slices] == [('a', 60), ('b', 40)]


def test_pie_marks_groups_for_drill_down():
    group = _row('home', planned=100, children=[_row('rent', planned=100)])
    slices = rows_to_pie_data([group], 'planned')
    assert slices[0].is_group
    assert slices[0].children[0].id == 'rent'


def test_pie_empty_and_invalid_mode():
    assert rows_to_pie_data([], 'planned') == []
    assert rows_to_pie_data([_row('a')], 'actual') == []
    with pytest.raises(ValueError):
        rows_to_pie_data([_row('a', planned=1)], 'difference')


def test_bar_data_flags_over_budget():
    rows = [
        _row('rent', planned=1000, actual=1100),
        _row('food', planned=400, actual=300),
        _row('gift', planned=0, actual=50),
        _row('idle'),
        _row('hidden', planned=10, actual=20, excluded=True),
    ]
    bars = rows_to_bar_data(rows)
    assert [(b.id, b.is_over_budget) for b in bars] == [('rent', True), ('food', False), ('gift', False)]
    assert bars[0].difference == -100


def test_over_budget_alerts_sorted_by_severity():
    expense_rows = [
        _row('home', planned=250, actual=300, children=[
            _row('rent', planned=100, actual=150),
            _row('power', planned=150, actual=150),
        ]),
        _row('tv', planned=10, actual=100, excluded=True),
    ]
    income_rows = [
        _row('salary', planned=100, actual=80, is_income=True),
        _row('bonus', planned=50, actual=0, is_income=True),
        _row('gift', planned=0, actual=-5, is_income=True),
    ]
    alerts = collect_over_budget_items(income_rows, expense_rows)

    assert [a.id for a in alerts] == ['bonus', 'rent', 'salary']
    assert alerts[0].severity == pytest.approx(50 / 0.01)
    assert alerts[1].severity == pytest.approx(1.5)
    assert alerts[1].over_amount == pytest.approx(50)
    assert alerts[2].over_amount == pytest.approx(20)
    assert alerts[2].is_income


def test_unplanned_alerts_resolve_names():
    rows = [_row('home', children=[_row('rent')])]
    entries = [
        ('rent', [
            UnplannedTransaction(tx_id=1, name='Repair', amount=-120, booking_date='2025-01-03'),
            UnplannedTransaction(tx_id=2, name='Refund', amount=20, booking_date='2025-01-09'),
        ]),
        ('ghost', [UnplannedTransaction(tx_id=3, name='?', amount=-5, booking_date='2025-01-10')]),
        ('empty', []),
    ]
    alerts = collect_unplanned_alerts(entries, rows)

    assert [(a.category_id, a.category_name) for a in alerts] == [('rent', 'Rent'), ('ghost', 'ghost')]
    assert alerts[0].total_amount == pytest.approx(140)


def test_rows_to_frame_flattens_tree():
    rows = [_row('home', planned=100, actual=90, children=[_row('rent', planned=100, actual=90)])]
    frame = rows_to_frame(rows)

    assert list(frame['Category Id']) == ['home', 'rent']
    assert list(frame['Depth']) == [0, 1]
    assert frame.loc[1, 'Parent Id'] == 'home'
    assert frame.loc[0, 'Difference'] == pytest.approx(10)


def test_rows_to_frame_empty():
    frame = rows_to_frame([])
    assert frame.empty
    assert 'Planned' in frame.columns
