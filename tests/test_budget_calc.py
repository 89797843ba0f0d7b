import pytest

from budget_planner.budget_calc import (
    collect_unreconciled,
    compute_budget,
    compute_category_rows,
    group_transactions_by_category,
)
from budget_planner.category_tree import build_category_tree
from budget_planner.charts import collect_over_budget_items, rows_to_bar_data
from budget_planner.models import BudgetSettings, Category, TemplateEntry, Transaction


def _cat(cat_id, indentation, group=False):
    return Category(id=cat_id, name=cat_id.title(), is_group=group, indentation=indentation)


def _tx(tx_id, amount, category_id, day='2025-03-05'):
    return Transaction(id=tx_id, amount=amount, booking_date=day, category_id=category_id)


def _build_tree():
    return build_category_tree([
        _cat('inc', 0, group=True),
        _cat('salary', 1),
        _cat('exp', 0, group=True),
        _cat('home', 1, group=True),
        _cat('rent', 2),
        _cat('power', 2),
        _cat('food', 1),
    ])


def _build_template():
    return {
        'salary': TemplateEntry(amount=3000),
        'home': TemplateEntry(amount=999, note='Flat costs'),
        'rent': TemplateEntry(amount=1200, source_account='acc-1'),
        'power': TemplateEntry(amount=100),
        'food': TemplateEntry(amount=400),
    }


def _build_transactions():
    return [
        _tx(1, 3100, 'salary'),
        _tx(2, -1200, 'rent'),
        _tx(3, -60, 'power'),
        _tx(4, -30, 'power'),
        _tx(5, -450, 'food'),
        _tx(6, -75, 'not-in-tree'),
    ]


def _settings(**kwargs):
    return BudgetSettings(income_categories=['inc'], **kwargs)


def test_group_transactions_sums_signed_amounts():
    grouped = group_transactions_by_category(_build_transactions())
    assert grouped['power'].total == pytest.approx(-90)
    assert [tx.id for tx in grouped['power'].transactions] == [3, 4]


def test_groups_sum_children_recursively():
    result = compute_budget(_build_tree(), _build_template(), _build_transactions(), _settings())
    exp = result.expense_rows[0]
    home = exp.children[0]

    assert home.planned == pytest.approx(1300)  # own template entry ignored
    assert home.actual == pytest.approx(1290)
    assert exp.planned == pytest.approx(sum(c.planned for c in exp.children))
    assert exp.actual == pytest.approx(sum(c.actual for c in exp.children))
    assert exp.difference == pytest.approx(1700 - 1740)


def test_group_metadata_comes_from_own_entry():
    result = compute_budget(_build_tree(), _build_template(), _build_transactions(), _settings())
    home = result.expense_rows[0].children[0]
    rent = home.children[0]
    assert home.note == 'Flat costs'
    assert rent.source_account == 'acc-1'
    assert rent.note is None


def test_expense_actual_is_absolute_and_income_is_signed():
    result = compute_budget(_build_tree(), _build_template(), _build_transactions(), _settings())
    salary = result.income_rows[0].children[0]
    food = result.expense_rows[0].children[1]
    assert salary.is_income and salary.actual == pytest.approx(3100)
    assert salary.difference == pytest.approx(100)
    assert not food.is_income and food.actual == pytest.approx(450)
    assert food.difference == pytest.approx(-50)


def test_excluded_group_keeps_actual_but_zeroes_planned():
    result = compute_budget(
        _build_tree(), _build_template(), _build_transactions(), _settings(excluded_categories=['home'])
    )
    home = result.expense_rows[0].children[0]
    assert home.excluded
    assert home.planned == 0
    assert home.actual == pytest.approx(1290)
    assert home.difference == 0


def test_excluded_leaf_under_group():
    result = compute_budget(
        _build_tree(), _build_template(), _build_transactions(), _settings(excluded_categories=['power'])
    )
    home = result.expense_rows[0].children[0]
    power = home.children[1]
    assert power.planned == 0 and power.difference == 0
    assert power.actual == pytest.approx(90)
    assert home.planned == pytest.approx(1200)
    assert home.actual == pytest.approx(1290)
    # month summary skips the excluded leaf entirely
    assert result.summary.total_expenses_actual == pytest.approx(1200 + 450)
    assert result.summary.total_expenses_planned == pytest.approx(1200 + 400)


def test_month_summary_totals():
    result = compute_budget(_build_tree(), _build_template(), _build_transactions(), _settings())
    summary = result.summary
    assert summary.total_income_planned == pytest.approx(3000)
    assert summary.total_income_actual == pytest.approx(3100)
    assert summary.total_expenses_planned == pytest.approx(1700)
    assert summary.total_expenses_actual == pytest.approx(1740)
    assert summary.net_planned == pytest.approx(1300)
    assert summary.net_actual == pytest.approx(1360)


def test_missing_template_entry_plans_zero():
    result = compute_budget(_build_tree(), {}, [], _settings())
    assert all(row.planned == 0 for row in result.all_rows)


def test_unmodeled_category_is_ignored_and_reported():
    tree = _build_tree()
    txs = _build_transactions()
    result = compute_budget(tree, _build_template(), txs, _settings())
    assert result.summary.total_expenses_actual == pytest.approx(1740)
    assert [tx.id for tx in collect_unreconciled(tree, txs)] == [6]


def test_empty_group_uses_own_entry_and_transactions():
    tree = build_category_tree([_cat('misc', 0, group=True)])
    rows = compute_category_rows(
        tree,
        tree.root_nodes(),
        {'misc': TemplateEntry(amount=50)},
        group_transactions_by_category([_tx(1, -20, 'misc')]),
        set(),
        False,
    )
    assert rows[0].planned == 50
    assert rows[0].actual == 20
    assert rows[0].difference == 30


def test_income_shortfall_end_to_end():
    tree = build_category_tree([_cat('A', 0)])
    result = compute_budget(
        tree, {'A': TemplateEntry(amount=100)}, [_tx(1, 80, 'A')], BudgetSettings(income_categories=['A'])
    )
    row = result.income_rows[0]
    assert (row.planned, row.actual, row.difference) == (100, 80, -20)

    alerts = collect_over_budget_items(result.income_rows, result.expense_rows)
    assert len(alerts) == 1
    assert alerts[0].id == 'A'
    assert alerts[0].is_income
    assert alerts[0].severity == pytest.approx(1.25)


def test_expense_overrun_end_to_end():
    tree = build_category_tree([_cat('B', 0)])
    result = compute_budget(
        tree, {'B': TemplateEntry(amount=200)}, [_tx(1, -130, 'B'), _tx(2, -120, 'B')], BudgetSettings()
    )
    row = result.expense_rows[0]
    assert row.actual == pytest.approx(250)
    assert row.difference == pytest.approx(-50)

    bars = rows_to_bar_data(result.expense_rows)
    assert bars[0].is_over_budget
