"""
In-memory store for the explorer forest.

Design overview
---------------
The forest is a list of root-level ``Node`` objects; groups own their
children directly. Next to it the store keeps an arena of two maps:

- ``node id -> node`` for every node currently in the forest, and
- ``node id -> parent id`` (``None`` for root entries).

Both maps are maintained by the attach/detach primitives, so
``get_parent`` is a dictionary lookup and a moved node can never leave a
dangling back-reference behind.

Mutations and the save-and-refresh tail
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Every change goes through ``mutation()``, a context manager that records
what happened and, when the outermost mutation closes, runs the tail in
this order:

1. canonical sort (``sorting.sort_nodes_recursive``),
2. index rebuild (``indexes.build_index``), structural changes only,
3. persist the forest to the workspace state,
4. notify the host so it re-renders.

Mutations nest: an operation called inside an open ``batch()`` joins it,
so a multi-select delete or a drop of many entries sorts, reindexes,
persists and refreshes exactly once. A mutation that changed nothing
skips the tail entirely.

Presentation changes (expand/collapse) are non-structural: they do not
alter any label or path, so the index rebuild is skipped and only the
affected part of the tree is refreshed.

The path and URI indexes are valid only for the forest as of the last
rebuild. Reading them while a structural change is still pending raises
``StaleIndexError``; callers that need lookups during a batch resolve
their nodes before they start mutating.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from custom_explorer.core import config
from custom_explorer.core.exclusion import ExclusionPredicate
from custom_explorer.core.forest_store import load_forest, save_forest
from custom_explorer.core.host import NullHost, TreeHost
from custom_explorer.core.indexes import ForestIndex, build_index
from custom_explorer.core.models import (
    CollapsibleState,
    Node,
    make_file,
    make_group,
    new_node_id,
)
from custom_explorer.core.sorting import sort_nodes_recursive
from custom_explorer.core.workspace_state import WorkspaceState


class StaleIndexError(RuntimeError):
    """Raised when the indexes are read while a structural change is pending."""


def basename(path: str) -> str:
    """Return the last component of ``path``, ignoring trailing separators."""
    return os.path.basename(path.rstrip("/" + os.sep))


@dataclass
class _Batch:
    """Bookkeeping for one outermost mutation."""

    changed: bool = False
    structural: bool = False
    refresh_targets: List[Optional[Node]] = field(default_factory=list)


class NodeStore:
    """
    Owner of the explorer forest and of every mutation primitive.

    Args:
        state: Workspace key/value store the forest is loaded from and
            saved to.
        host: Tree view to notify after changes. Defaults to a
            ``NullHost``.
        is_excluded: Predicate deciding whether a basename may be added.
            Defaults to the configured excluded suffixes.
        storage_key: Key of the forest in ``state``.
    """

    def __init__(
        self,
        state: WorkspaceState,
        host: Optional[TreeHost] = None,
        is_excluded: Optional[Callable[[str], bool]] = None,
        storage_key: str = config.STORAGE_KEY,
    ) -> None:
        self._state = state
        self._host: TreeHost = host if host is not None else NullHost()
        self.is_excluded = is_excluded if is_excluded is not None else ExclusionPredicate()
        self._key = storage_key

        self._roots: List[Node] = []
        self._nodes: Dict[str, Node] = {}
        self._parents: Dict[str, Optional[str]] = {}
        self._index = ForestIndex()
        self._index_stale = False

        self._batch: Optional[_Batch] = None
        self._deferred: Optional[_Batch] = None

        self._load()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _load(self) -> None:
        self._roots = load_forest(self._state, self._key)
        self._nodes.clear()
        self._parents.clear()
        for root in self._roots:
            self._register(root, None)
        sort_nodes_recursive(self._roots)
        self._index = build_index(self._roots)
        self._index_stale = False
        logging.debug("Loaded %d explorer nodes", len(self._nodes))

    def reload(self) -> None:
        """Discard in-memory state and re-read the forest from storage."""
        self._state.reload()
        self._batch = None
        self._deferred = None
        self._load()
        self._host.refresh(None)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def host(self) -> TreeHost:
        return self._host

    @host.setter
    def host(self, host: Optional[TreeHost]) -> None:
        self._host = host if host is not None else NullHost()

    @property
    def roots(self) -> List[Node]:
        """Root-level entries, in display order."""
        return self._roots

    def __len__(self) -> int:
        return len(self._nodes)

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def contains(self, node: Optional[Node]) -> bool:
        """Return True if this exact node object is part of the forest."""
        return node is not None and self._nodes.get(node.id) is node

    def get_parent(self, node: Node) -> Optional[Node]:
        """
        Return the group that directly owns ``node``.

        Args:
            node (Node): Node to look up.

        Returns:
            Optional[Node]: The parent group, or ``None`` for root-level
            entries and nodes that are not in the forest.
        """
        parent_id = self._parents.get(node.id)
        if parent_id is None:
            return None
        return self._nodes.get(parent_id)

    def iter_nodes(self) -> Iterator[Node]:
        """Yield every node depth-first, in display order."""
        stack = list(reversed(self._roots))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def iter_descendants(self, node: Node) -> Iterator[Node]:
        stack = list(reversed(node.children or []))
        while stack:
            current = stack.pop()
            yield current
            if current.children:
                stack.extend(reversed(current.children))

    def is_descendant(self, node: Node, ancestor: Node) -> bool:
        """Return True if ``ancestor`` is a strict ancestor of ``node``."""
        parent_id = self._parents.get(node.id)
        while parent_id is not None:
            if parent_id == ancestor.id:
                return True
            parent_id = self._parents.get(parent_id)
        return False

    @property
    def index(self) -> ForestIndex:
        if self._index_stale:
            raise StaleIndexError(
                "Explorer indexes were read before the pending structural change was flushed"
            )
        return self._index

    def find_by_path(self, file_path: str) -> Optional[Node]:
        return self.index.find_by_path(file_path)

    def find_by_uri(self, uri: str) -> Optional[Node]:
        return self.index.find_by_uri(uri)

    def find_all_by_path(self, file_path: str) -> List[Node]:
        """Return every node referencing ``file_path``, in display order."""
        return self.index.find_all_by_path(file_path)

    @property
    def has_pending_changes(self) -> bool:
        return self._deferred is not None and self._deferred.changed

    # ------------------------------------------------------------------
    # Mutation wrapper
    # ------------------------------------------------------------------
    @contextmanager
    def mutation(
        self,
        structural: bool = True,
        refresh_target: Optional[Node] = None,
        notify: bool = True,
    ) -> Iterator[_Batch]:
        """
        Run a block of changes and flush them once.

        Args:
            structural (bool): Whether the block may change labels, paths
                or the shape of the forest. Structural changes rebuild the
                indexes and refresh the whole tree.
            refresh_target (Optional[Node]): Node to refresh after a
                non-structural change; ``None`` means the whole tree.
            notify (bool): Whether the host should be notified at all.

        Yields:
            _Batch: The batch record shared by all nested mutations.
        """
        outermost = self._batch is None
        if outermost:
            self._batch = self._deferred or _Batch()
            self._deferred = None
        batch = self._batch
        if notify and not structural:
            batch.refresh_targets.append(refresh_target)
        try:
            yield batch
        finally:
            if outermost:
                self._batch = None
                if batch.changed:
                    self._flush(batch)

    @contextmanager
    def batch(self) -> Iterator[_Batch]:
        """Group several structural operations into one save-and-refresh."""
        with self.mutation(structural=True) as batch:
            yield batch

    def _touch(self, structural: bool = True) -> None:
        batch = self._batch
        if batch is None:
            if self._deferred is None:
                self._deferred = _Batch()
            batch = self._deferred
        batch.changed = True
        if structural:
            batch.structural = True
            self._index_stale = True

    def _flush(self, batch: _Batch) -> None:
        sort_nodes_recursive(self._roots)
        if batch.structural:
            self._index = build_index(self._roots)
            self._index_stale = False
        save_forest(self._state, self._roots, self._key)
        logging.debug(
            "Flushed explorer change (structural=%s, nodes=%d)",
            batch.structural,
            len(self._nodes),
        )

        if batch.structural:
            self._host.refresh(None)
            return
        targets = {id(t): t for t in batch.refresh_targets}
        if not targets:
            return
        if len(targets) == 1:
            self._host.refresh(next(iter(targets.values())))
        else:
            self._host.refresh(None)

    def save_and_refresh(self) -> None:
        """Sort, reindex, persist and refresh the whole tree unconditionally."""
        batch = self._deferred or _Batch()
        self._deferred = None
        batch.changed = True
        batch.structural = True
        self._flush(batch)

    # ------------------------------------------------------------------
    # Arena maintenance
    # ------------------------------------------------------------------
    def _register(self, node: Node, parent_id: Optional[str]) -> None:
        existing = self._nodes.get(node.id)
        if existing is not None and existing is not node:
            old_id = node.id
            node.id = new_node_id()
            logging.debug("Re-issued duplicate node id %s as %s", old_id, node.id)
        self._nodes[node.id] = node
        self._parents[node.id] = parent_id
        for child in node.children or []:
            self._register(child, node.id)

    def _unregister(self, node: Node) -> None:
        self._nodes.pop(node.id, None)
        self._parents.pop(node.id, None)
        for child in node.children or []:
            self._unregister(child)

    def _siblings_of(self, node: Node) -> List[Node]:
        parent = self.get_parent(node)
        if parent is None:
            return self._roots
        if parent.children is None:
            parent.children = []
        return parent.children

    def _expand(self, node: Node) -> None:
        if node.collapsible_state is not CollapsibleState.EXPANDED:
            node.collapsible_state = CollapsibleState.EXPANDED
            node.version += 1

    # ------------------------------------------------------------------
    # Structural primitives
    # ------------------------------------------------------------------
    def attach(self, node: Node, parent: Optional[Node] = None) -> Node:
        """
        Insert ``node`` (with its subtree) into the forest.

        The node is appended to ``parent.children`` when ``parent`` is a
        group of this forest, and to the root level otherwise. The parent
        group is expanded. A node that is already in the forest is
        detached from its current place first.

        Args:
            node (Node): Node to insert.
            parent (Optional[Node]): Target group, or ``None`` for root.

        Returns:
            Node: The inserted node.
        """
        with self.mutation():
            if self.contains(node):
                self.detach(node)

            if parent is not None and parent.is_group and self.contains(parent):
                if parent.children is None:
                    parent.children = []
                parent.children.append(node)
                self._expand(parent)
                self._register(node, parent.id)
            else:
                self._roots.append(node)
                self._register(node, None)
            self._touch()
        return node

    def detach(self, node: Node) -> bool:
        """
        Remove ``node`` from the forest without any persistence of its own.

        Inside a batch the change is flushed when the batch closes;
        outside one it is flushed immediately.

        Returns:
            bool: Whether the node was part of the forest.
        """
        with self.mutation():
            return self._detach(node)

    def _detach(self, node: Node) -> bool:
        target = self._nodes.get(node.id)
        if target is None:
            return False
        siblings = self._siblings_of(target)
        for position, sibling in enumerate(siblings):
            if sibling is target:
                del siblings[position]
                break
        self._unregister(target)
        self._touch()
        return True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def add_group(self, label: str, parent: Optional[Node] = None) -> Node:
        """
        Create an expanded, empty group.

        Args:
            label (str): Group label, already validated by the caller.
            parent (Optional[Node]): Group to create it in. Root level when
                ``None`` or not a group.

        Returns:
            Node: The new group.
        """
        return self.attach(make_group(label), parent)

    def add_file(self, file_path: str, parent: Optional[Node] = None) -> Optional[Node]:
        """
        Create a file node labelled by the basename of ``file_path``.

        Args:
            file_path (str): Absolute path of the file.
            parent (Optional[Node]): Group to add it to. Root level when
                ``None`` or not a group.

        Returns:
            Optional[Node]: The new node, or ``None`` if the basename is
            excluded (nothing is changed in that case).
        """
        name = basename(file_path)
        if self.is_excluded(name):
            logging.debug("Not adding excluded file %s", file_path)
            return None
        return self.attach(make_file(file_path, name), parent)

    def rename_node(self, node: Node, new_label: str) -> bool:
        """
        Change the display label of a node.

        Only the label changes; ``file_path`` is left alone because
        renaming is a view operation, not a rename on disk.

        Returns:
            bool: False when the node is unknown or the label is blank.
        """
        target = self._nodes.get(node.id)
        label = new_label.strip() if isinstance(new_label, str) else ""
        if target is None or not label:
            return False
        with self.mutation():
            target.label = label
            self._touch()
        return True

    def update_path(self, node: Node, file_path: str, relabel: bool = False) -> bool:
        """
        Point ``node`` at a new location on disk.

        Args:
            node (Node): Node to update. Matched by identifier.
            file_path (str): The node's new path.
            relabel (bool): Also set the label to the new basename.

        Returns:
            bool: False when the node is not in the forest.
        """
        target = self._nodes.get(node.id)
        if target is None:
            return False
        with self.mutation():
            target.file_path = file_path
            if relabel:
                target.label = basename(file_path)
            self._touch()
        return True

    def remove_node(self, node: Node, save: bool = True) -> bool:
        """
        Remove a node and its subtree.

        Args:
            node (Node): Node to remove. Matched by identifier.
            save (bool): When False outside a batch, the sort, reindex,
                persist and refresh tail is deferred until the next
                ``save_and_refresh()`` so that callers removing many nodes
                pay for it once.

        Returns:
            bool: Whether a node was removed.
        """
        if save or self._batch is not None:
            return self.detach(node)
        return self._detach(node)

    def remove_nodes(self, nodes: List[Node]) -> int:
        """Remove several nodes with a single save-and-refresh."""
        removed = 0
        with self.batch():
            for node in nodes:
                if self.remove_node(node, save=False):
                    removed += 1
        return removed

    # ------------------------------------------------------------------
    # Presentation state
    # ------------------------------------------------------------------
    def _reset_state(self, node: Node, state: CollapsibleState) -> None:
        if not node.is_group:
            return
        node.collapsible_state = state
        node.version += 1
        for child in node.children or []:
            self._reset_state(child, state)

    def _apply_recursive(self, node: Optional[Node], state: CollapsibleState) -> None:
        if node is None:
            targets = list(self._roots)
            refresh_target = None
        else:
            targets = [node]
            refresh_target = self.get_parent(node)

        with self.mutation(structural=False, refresh_target=refresh_target):
            for target in targets:
                self._reset_state(target, state)
            self._touch(structural=False)

    def collapse_recursive(self, node: Optional[Node] = None) -> None:
        """Collapse ``node`` and all groups below it, or the whole forest."""
        self._apply_recursive(node, CollapsibleState.COLLAPSED)

    def expand_recursive(self, node: Optional[Node] = None) -> None:
        """Expand ``node`` and all groups below it, or the whole forest."""
        self._apply_recursive(node, CollapsibleState.EXPANDED)

    def record_expansion(self, node: Node, expanded: bool) -> bool:
        """
        Remember an expand/collapse the user performed in the host view.

        The host already shows the new state, so nothing is re-rendered;
        the state is only persisted.

        Returns:
            bool: Whether the stored state changed.
        """
        target = self._nodes.get(node.id)
        if target is None or not target.is_group:
            return False
        state = CollapsibleState.EXPANDED if expanded else CollapsibleState.COLLAPSED
        if target.collapsible_state is state:
            return False
        with self.mutation(structural=False, notify=False):
            target.collapsible_state = state
            self._touch(structural=False)
        return True
