"""
Derived lookup indexes over the explorer forest.

Two maps are derived from the forest by a full depth-first traversal:

- ``by_path``: absolute ``file_path`` → node, for every node that tracks
  a real file or imported directory. This is what the sync machinery
  uses to react to rename/delete notifications and to reveal the active
  file.
- ``by_uri``: logical identifier → node, for every node. Files and
  imported directories use their ``file://`` URI; groups without a real
  path use a synthetic ``customexplorer-group:`` URI built from their
  tree path and their id, so sibling groups sharing a label stay
  distinct. Decorations are requested by URI and resolved here.

The traversal also refreshes ``Node.cached_tree_path`` (root-relative,
slash-joined labels), which the synthetic group URIs are built from.

The indexes describe exactly the forest as of the last build. The node
store rebuilds them after every structural change; nothing else should
ever patch them in place.

When the same path is referenced by more than one node, ``by_path``
keeps the first node in display order and ``references`` keeps all of
them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

from custom_explorer.core.models import Node

#: URI scheme for groups that do not originate from a real directory.
GROUP_URI_SCHEME = "customexplorer-group"


def path_to_uri(file_path: str) -> str:
    """Return the ``file://`` URI for a filesystem path."""
    return Path(os.path.abspath(file_path)).as_uri()


def node_uri(node: Node) -> str:
    """
    Return the logical identifier of a node.

    Args:
        node (Node): Node whose ``cached_tree_path`` is current, i.e. the
            indexes have been built since its last structural change.

    Returns:
        str: A ``file://`` URI for nodes with a ``file_path``; otherwise
        a synthetic group URI made of the cached tree path and the id.
    """
    if node.file_path:
        return path_to_uri(node.file_path)
    tree_path = node.cached_tree_path or node.label
    return f"{GROUP_URI_SCHEME}:/{quote(tree_path)}?id={quote(node.id)}"


@dataclass
class ForestIndex:
    """Path and URI lookup maps for one snapshot of the forest."""

    by_path: Dict[str, Node] = field(default_factory=dict)
    by_uri: Dict[str, Node] = field(default_factory=dict)
    references: Dict[str, List[Node]] = field(default_factory=dict)

    def find_by_path(self, file_path: str) -> Optional[Node]:
        return self.by_path.get(file_path)

    def find_by_uri(self, uri: str) -> Optional[Node]:
        return self.by_uri.get(uri)

    def find_all_by_path(self, file_path: str) -> List[Node]:
        return list(self.references.get(file_path, ()))


def build_index(roots: Iterable[Node]) -> ForestIndex:
    """
    Build a fresh ``ForestIndex`` by traversing the whole forest.

    Args:
        roots (Iterable[Node]): Root-level entries, in display order.

    Returns:
        ForestIndex: New lookup maps. ``cached_tree_path`` is updated on
        every visited node as a side effect.
    """
    index = ForestIndex()

    def _visit(node: Node, parent_tree_path: Optional[str]) -> None:
        if parent_tree_path:
            node.cached_tree_path = f"{parent_tree_path}/{node.label}"
        else:
            node.cached_tree_path = node.label

        if node.file_path:
            index.by_path.setdefault(node.file_path, node)
            index.references.setdefault(node.file_path, []).append(node)
        index.by_uri.setdefault(node_uri(node), node)

        for child in node.children or []:
            _visit(child, node.cached_tree_path)

    for root in roots:
        _visit(root, None)
    return index
