"""
Serialization of the explorer forest.

The forest is stored as-is, recursively, under a single key of the
workspace state (``config.STORAGE_KEY``). Each node becomes a plain
dict:

.. code-block:: json

    {
      "id": "5b0c3e1f9a2d4c77",
      "label": "Docs",
      "type": "group",
      "file_path": "/home/me/project/docs",
      "collapsible_state": "expanded",
      "version": 3,
      "cached_tree_path": "Docs",
      "children": [
        {"id": "...", "label": "intro.md", "type": "file",
         "file_path": "/home/me/project/docs/intro.md",
         "collapsible_state": "none", "version": 0}
      ]
    }

Decoding is tolerant: entries with an unknown type, a missing label, or a
file entry without a path are logged and skipped (with their subtree)
rather than failing the whole load. Missing optional fields get defaults
so that older state files remain readable if fields are added later.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from custom_explorer.core import config
from custom_explorer.core.models import (
    FILE,
    GROUP,
    NODE_TYPES,
    CollapsibleState,
    Node,
    new_node_id,
)
from custom_explorer.core.workspace_state import WorkspaceState


def node_to_dict(node: Node) -> Dict[str, Any]:
    """
    Convert a node (and its subtree) into a JSON-serializable dict.

    Args:
        node (Node): Node to convert.

    Returns:
        Dict[str, Any]: Plain dict representation.
    """
    data: Dict[str, Any] = {
        "id": node.id,
        "label": node.label,
        "type": node.type,
        "collapsible_state": node.collapsible_state.value,
        "version": node.version,
    }
    if node.file_path is not None:
        data["file_path"] = node.file_path
    if node.cached_tree_path is not None:
        data["cached_tree_path"] = node.cached_tree_path
    if node.children is not None:
        data["children"] = [node_to_dict(child) for child in node.children]
    return data


def _decode_state(raw: Any, node_type: str) -> CollapsibleState:
    if node_type != GROUP:
        return CollapsibleState.NONE
    try:
        state = CollapsibleState(raw)
    except ValueError:
        return CollapsibleState.EXPANDED
    if state is CollapsibleState.NONE:
        return CollapsibleState.EXPANDED
    return state


def node_from_dict(data: Mapping) -> Optional[Node]:
    """
    Construct a node (and its subtree) from a decoded JSON mapping.

    Args:
        data (Mapping): Raw mapping loaded from JSON.

    Returns:
        Optional[Node]: The node, or ``None`` if the entry is malformed.
    """
    node_type = data.get("type")
    label = data.get("label")
    if node_type not in NODE_TYPES or not isinstance(label, str):
        logging.warning("Skipping malformed explorer entry: %r", dict(data))
        return None

    file_path = data.get("file_path")
    if not isinstance(file_path, str) or not file_path:
        file_path = None
    if node_type == FILE and file_path is None:
        logging.warning("Skipping file entry %r without a path", label)
        return None

    node_id = data.get("id")
    if not isinstance(node_id, str) or not node_id:
        node_id = new_node_id()

    version = data.get("version", 0)
    if not isinstance(version, int) or isinstance(version, bool):
        version = 0

    cached = data.get("cached_tree_path")
    node = Node(
        label=label,
        type=node_type,
        id=node_id,
        file_path=file_path,
        collapsible_state=_decode_state(data.get("collapsible_state"), node_type),
        version=version,
        cached_tree_path=cached if isinstance(cached, str) else None,
    )

    if node_type == GROUP:
        node.children = forest_from_data(data.get("children", []))
    return node


def forest_to_data(roots: List[Node]) -> List[Dict[str, Any]]:
    return [node_to_dict(node) for node in roots]


def forest_from_data(raw: Any) -> List[Node]:
    """Decode a list of raw node entries, skipping malformed ones."""
    if not isinstance(raw, list):
        return []
    nodes: List[Node] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            logging.warning("Skipping non-object explorer entry: %r", entry)
            continue
        node = node_from_dict(entry)
        if node is not None:
            nodes.append(node)
    return nodes


def load_forest(state: WorkspaceState, key: str = config.STORAGE_KEY) -> List[Node]:
    """
    Load the forest from the workspace state.

    Args:
        state (WorkspaceState): Backing key/value store.
        key (str): Storage key. Defaults to ``config.STORAGE_KEY``.

    Returns:
        List[Node]: Root-level entries; empty when nothing is stored.
    """
    return forest_from_data(state.get(key, []))


def save_forest(
    state: WorkspaceState,
    roots: List[Node],
    key: str = config.STORAGE_KEY,
) -> None:
    """Overwrite the stored forest with ``roots``."""
    state.update(key, forest_to_data(roots))
