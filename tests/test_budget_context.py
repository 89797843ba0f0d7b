from datetime import date

from budget_planner.budget_calc import CategoryBudgetRow, MonthSummary
from budget_planner.budget_context import build_budget_context, format_rows
from budget_planner.formatting import (
    current_month,
    format_currency,
    format_month_label,
    format_signed,
    month_to_date_range,
    offset_month,
)


def _row(row_id, planned, actual, children=None, excluded=False, is_income=False):
    return CategoryBudgetRow(
        id=row_id,
        name=row_id.title(),
        is_group=bool(children),
        indentation=0,
        is_income=is_income,
        planned=planned,
        actual=actual,
        difference=0.0,
        children=children or [],
        excluded=excluded,
    )


def _summary():
    return MonthSummary(
        total_income_planned=3000,
        total_income_actual=3100,
        total_expenses_planned=1700,
        total_expenses_actual=1740,
        net_planned=1300,
        net_actual=1360,
    )


def test_format_rows_nests_groups_and_skips_excluded():
    rows = [
        _row('home', 1300, 1290, children=[_row('rent', 1200, 1200), _row('power', 100, 90)]),
        _row('tv', 10, 12, excluded=True),
    ]
    assert format_rows(rows).splitlines() == [
        '[Home]',
        '  Rent: planned 1,200.00, actual 1,200.00, diff +0.00',
        '  Power: planned 100.00, actual 90.00, diff -10.00',
    ]


def test_context_without_scenario():
    text = build_budget_context(
        [_row('salary', 3000, 3100, is_income=True)], [_row('food', 400, 450)], _summary(), '2025-03'
    )
    lines = text.splitlines()

    assert lines[0] == 'You are a helpful financial advisor analyzing a personal budget.'
    assert lines[1] == 'Current month: March 2025'
    assert 'Active scenario' not in text
    assert 'Income planned: 3,000.00 | actual: 3,100.00' in lines
    assert 'Net planned: 1,300.00 | net actual: 1,360.00' in lines
    assert lines.index('== Income Categories ==') < lines.index('Salary: planned 3,000.00, actual 3,100.00, diff +100.00')
    assert lines[-1] == 'Food: planned 400.00, actual 450.00, diff +50.00'


def test_context_names_scenario():
    text = build_budget_context([], [], _summary(), '2025-03', scenario_name='Lean')
    assert text.splitlines()[2] == 'Active scenario: "Lean"'


def test_currency_formatting():
    assert format_currency(1234.5) == '1,234.50'
    assert format_currency(-20, 'EUR') == '-20.00 EUR'
    assert format_signed(0) == '+0.00'
    assert format_signed(-3.456) == '-3.46'


def test_month_helpers():
    assert current_month(date(2025, 3, 15)) == '2025-03'
    assert offset_month('2025-01', -1) == '2024-12'
    assert offset_month('2024-11', 14) == '2026-01'
    assert month_to_date_range('2024-02') == ('2024-02-01', '2024-02-29')
    assert month_to_date_range('2025-12') == ('2025-12-01', '2025-12-31')
    assert format_month_label('2025-07') == 'July 2025'
