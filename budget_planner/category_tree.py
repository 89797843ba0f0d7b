"""Build a category hierarchy from the flat, indentation-encoded list.

The banking source returns categories in display order where ``is_group``
marks nodes that may own children and ``indentation`` is the depth.
:class:`CategoryTree` stores every node in a single list and expresses
parent/child relations as integer indices into it, so the structure has
no reference cycles and can be copied or serialised trivially.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .models import Category

logger = logging.getLogger(__name__)


@dataclass
class CategoryNode:
    index: int
    category: Category
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.category.id

    @property
    def name(self) -> str:
        return self.category.name

    @property
    def is_group(self) -> bool:
        return self.category.is_group

    @property
    def indentation(self) -> int:
        return self.category.indentation

    @property
    def is_leaf(self) -> bool:
        """Leaf for arithmetic purposes: not a group, or a group without children."""
        return not self.is_group or not self.children


class CategoryTree:
    """Arena of :class:`CategoryNode` objects built once per fetch."""

    def __init__(self, nodes: List[CategoryNode], roots: List[int]) -> None:
        self.nodes = nodes
        self.roots = roots
        self._by_id: Dict[str, int] = {}
        for node in nodes:
            if node.id in self._by_id:
                logger.warning("Duplicate category id %r; keeping the first occurrence", node.id)
                continue
            self._by_id[node.id] = node.index

    @classmethod
    def build(cls, flat: Iterable[Category]) -> "CategoryTree":
        """Build the forest in a single left-to-right pass.

        For each category the ancestor stack is popped while its top is at
        the same or a deeper indentation; whatever remains on top becomes
        the parent.  Only groups are pushed.  Indentation jumps of more
        than one level are accepted as-is.
        """
        nodes: List[CategoryNode] = []
        roots: List[int] = []
        stack: List[CategoryNode] = []

        for category in flat:
            node = CategoryNode(index=len(nodes), category=category)
            nodes.append(node)

            while stack and stack[-1].indentation >= category.indentation:
                stack.pop()

            if stack:
                parent = stack[-1]
                node.parent = parent.index
                parent.children.append(node.index)
            else:
                roots.append(node.index)

            if category.is_group:
                stack.append(node)

        return cls(nodes, roots)

    # Navigation -------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.nodes)

    def root_nodes(self) -> List[CategoryNode]:
        """Top-level nodes in source order."""
        return [self.nodes[i] for i in self.roots]

    def children_of(self, node: CategoryNode) -> List[CategoryNode]:
        return [self.nodes[i] for i in node.children]

    def parent_of(self, node: CategoryNode) -> Optional[CategoryNode]:
        """Parent of ``node``, or ``None`` for a root."""
        return self.nodes[node.parent] if node.parent is not None else None

    def root_of(self, node: CategoryNode) -> CategoryNode:
        """Follow parent links up to the root that owns ``node``."""
        current = node
        while current.parent is not None:
            current = self.nodes[current.parent]
        return current

    def walk(self, nodes: Optional[Sequence[CategoryNode]] = None) -> Iterator[CategoryNode]:
        """Depth-first pre-order traversal (reproduces the source order)."""
        pending = list(reversed(nodes if nodes is not None else self.root_nodes()))
        while pending:
            node = pending.pop()
            yield node
            pending.extend(reversed(self.children_of(node)))

    # Queries ----------------------------------------------------------------

    def find_node(self, category_id: str) -> Optional[CategoryNode]:
        """Look up a node by category id.

        Args:
            category_id: Category id to find

        Returns:
            The node, or ``None`` when the id is not in the tree
        """
        index = self._by_id.get(category_id)
        return self.nodes[index] if index is not None else None

    def leaf_ids(self, node: CategoryNode) -> List[str]:
        """Ids of every arithmetic leaf under ``node`` (``node`` itself if it is one)."""
        return [n.id for n in self.walk([node]) if n.is_leaf]

    def collect_all_ids(self, nodes: Sequence[CategoryNode]) -> List[str]:
        """Ids of ``nodes`` and all their descendants, in pre-order.

        Args:
            nodes: Subtree roots to start from

        Returns:
            List of category ids, groups included
        """
        return [n.id for n in self.walk(nodes)]

    def contains(self, category_id: str) -> bool:
        return category_id in self._by_id

    def split_income_expense(
        self, income_ids: Iterable[str]
    ) -> Tuple[List[CategoryNode], List[CategoryNode]]:
        """Split the roots by whether a root's own id is an income category."""
        income_set: Set[str] = set(income_ids)
        income: List[CategoryNode] = []
        expenses: List[CategoryNode] = []
        for root in self.root_nodes():
            (income if root.id in income_set else expenses).append(root)
        return income, expenses


def build_category_tree(flat: Iterable[Category]) -> CategoryTree:
    """Build a :class:`CategoryTree` from the flat, indentation-ordered list."""
    return CategoryTree.build(flat)
