"""
Canonical ordering of the explorer forest.

Every sibling list is ordered the same way: all groups first, then all
files, and within each class by ascending label. Label comparison goes
through ``locale.strxfrm`` on the case-folded label so that the order
follows the active locale; the raw label breaks remaining ties so the
result is a total order and sorting is idempotent.

There is no manual reordering. The display order depends only on the
current labels and types, never on insertion history.
"""

from __future__ import annotations

import locale
from typing import List, Tuple

from custom_explorer.core.models import GROUP, Node


def node_sort_key(node: Node) -> Tuple[int, str, str]:
    """Return the sort key placing groups before files, then by label."""
    rank = 0 if node.type == GROUP else 1
    return (rank, locale.strxfrm(node.label.casefold()), node.label)


def sort_nodes_recursive(nodes: List[Node]) -> None:
    """Sort ``nodes`` in place and recurse into every group's children."""
    nodes.sort(key=node_sort_key)
    for node in nodes:
        if node.children:
            sort_nodes_recursive(node.children)
