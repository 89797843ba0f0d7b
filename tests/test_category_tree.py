from budget_planner.category_tree import CategoryTree, build_category_tree
from budget_planner.models import Category


def _cat(cat_id, indentation, group=False):
    return Category(id=cat_id, name=cat_id.title(), is_group=group, indentation=indentation)


def _build_flat():
    return [
        _cat('inc', 0, group=True),
        _cat('salary', 1),
        _cat('bonus', 1),
        _cat('exp', 0, group=True),
        _cat('home', 1, group=True),
        _cat('rent', 2),
        _cat('power', 2),
        _cat('food', 1, group=True),  # group without children
        _cat('fun', 1),
        _cat('jump', 3),  # indentation jump is tolerated
    ]


def test_preorder_walk_reproduces_input_order():
    flat = _build_flat()
    tree = build_category_tree(flat)
    assert [node.id for node in tree.walk()] == [c.id for c in flat]


def test_roots_and_parents():
    tree = build_category_tree(_build_flat())
    assert [node.id for node in tree.root_nodes()] == ['inc', 'exp']

    rent = tree.find_node('rent')
    assert tree.parent_of(rent).id == 'home'
    assert tree.root_of(rent).id == 'exp'
    assert tree.parent_of(tree.find_node('jump')).id == 'exp'
    assert tree.parent_of(tree.find_node('exp')) is None


def test_siblings_keep_source_order():
    tree = build_category_tree(_build_flat())
    exp = tree.find_node('exp')
    assert [n.id for n in tree.children_of(exp)] == ['home', 'food', 'fun', 'jump']


def test_leaf_ids_treat_empty_group_as_leaf():
    tree = build_category_tree(_build_flat())
    assert tree.leaf_ids(tree.find_node('exp')) == ['rent', 'power', 'food', 'fun', 'jump']
    assert tree.leaf_ids(tree.find_node('food')) == ['food']
    assert tree.leaf_ids(tree.find_node('salary')) == ['salary']


def test_find_missing_node_returns_none():
    tree = build_category_tree(_build_flat())
    assert tree.find_node('nope') is None
    assert not tree.contains('nope')


def test_collect_all_ids_under_roots():
    tree = build_category_tree(_build_flat())
    home = tree.find_node('home')
    assert tree.collect_all_ids([home]) == ['home', 'rent', 'power']


def test_split_income_expense_uses_root_ids():
    tree = build_category_tree(_build_flat())
    income, expenses = tree.split_income_expense({'inc', 'salary'})
    assert [n.id for n in income] == ['inc']
    assert [n.id for n in expenses] == ['exp']


def test_non_group_never_becomes_parent():
    tree = CategoryTree.build([_cat('a', 0), _cat('b', 1)])
    assert [n.id for n in tree.root_nodes()] == ['a', 'b']


def test_empty_input_builds_empty_tree():
    tree = build_category_tree([])
    assert len(tree) == 0
    assert list(tree.walk()) == []
