"""
Keeps the explorer forest in step with the filesystem and the editor.

The host forwards four kinds of notifications:

- files or folders renamed on disk: nodes tracking the old path follow
  the rename (label and path), and every node tracked inside a renamed
  folder gets its path prefix rewritten,
- files or folders deleted on disk: the nodes tracking them, and every
  node tracked inside a deleted folder, are removed,
- the active editor changed: the matching node is revealed and selected,
- diagnostics changed: decorations of the affected nodes and all their
  ancestors are refreshed.

Each rename or delete notification is applied as one batch, so a folder
rename touching hundreds of tracked paths still sorts, reindexes,
persists and refreshes once.

Prefix matching is segment-aware: renaming ``/a/b`` rewrites
``/a/b/c.txt`` but leaves ``/a/bb/c.txt`` alone.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from custom_explorer.core.decorations import DecorationProvider
from custom_explorer.core.models import Node
from custom_explorer.core.node_store import NodeStore

_SEPARATORS = tuple({"/", os.sep})


def is_within(path: str, root: str) -> bool:
    """Return True if ``path`` lies strictly inside directory ``root``."""
    base = root.rstrip("/" + os.sep)
    if not base:
        return False
    return any(path.startswith(base + sep) for sep in _SEPARATORS)


def rebase(path: str, old_root: str, new_root: str) -> str:
    """Replace the ``old_root`` prefix of ``path`` with ``new_root``."""
    base = old_root.rstrip("/" + os.sep)
    return new_root.rstrip("/" + os.sep) + path[len(base):]


def pair_renames(
    vanished: Iterable[str], appeared: Iterable[str]
) -> Tuple[List[Tuple[str, str]], List[str]]:
    """
    Guess renames from entries that vanished and appeared in a directory.

    A watcher only sees that a directory changed. When exactly one entry
    vanished from a directory and exactly one appeared in the same
    directory, that is taken as a rename. Anything else is ambiguous and
    the vanished entries are treated as deletions.

    Args:
        vanished (Iterable[str]): Absolute paths that no longer exist.
        appeared (Iterable[str]): Absolute paths that are new on disk.

    Returns:
        Tuple[List[Tuple[str, str]], List[str]]: ``(old, new)`` rename
        pairs and the remaining vanished paths, both sorted.
    """
    gone: Dict[str, List[str]] = {}
    for path in vanished:
        gone.setdefault(os.path.dirname(path), []).append(path)
    new: Dict[str, List[str]] = {}
    for path in appeared:
        new.setdefault(os.path.dirname(path), []).append(path)

    renames: List[Tuple[str, str]] = []
    deleted: List[str] = []
    for parent, paths in gone.items():
        candidates = new.get(parent, [])
        if len(paths) == 1 and len(candidates) == 1:
            renames.append((paths[0], candidates[0]))
        else:
            deleted.extend(paths)
    return sorted(renames), sorted(deleted)


class SyncReconciler:
    """
    Applies external notifications to a node store.

    Args:
        store: The node store to keep in sync.
        decorations: Decoration provider used for diagnostics changes.
            Created on top of ``store`` when omitted.
    """

    def __init__(self, store: NodeStore, decorations: Optional[DecorationProvider] = None) -> None:
        self._store = store
        self._decorations = decorations or DecorationProvider(store)

    @property
    def decorations(self) -> DecorationProvider:
        return self._decorations

    def on_did_rename_files(self, renames: Iterable[Tuple[str, str]]) -> bool:
        """
        Follow renames and moves that happened on disk.

        Args:
            renames (Iterable[Tuple[str, str]]): ``(old_path, new_path)``
                pairs. Each pair acts on the nodes tracking ``old_path``
                before the call; when several pairs match one node, the
                first wins.

        Returns:
            bool: Whether any node changed.
        """
        pairs = [(old, new) for old, new in renames if old and new and old != new]
        if not pairs:
            return False

        # Every target is resolved against the forest as it was before the
        # batch, so a chain like a -> b, b -> c moves each node one step.
        targets: Dict[str, Tuple[Node, str, bool]] = {}
        for old, new in pairs:
            for node in self._store.find_all_by_path(old):
                targets.setdefault(node.id, (node, new, True))
            for node in self._store.iter_nodes():
                current = node.file_path
                if current and is_within(current, old):
                    targets.setdefault(node.id, (node, rebase(current, old, new), False))

        changed = False
        with self._store.batch():
            for node, new_path, relabel in targets.values():
                changed |= self._store.update_path(node, new_path, relabel=relabel)
        if changed:
            logging.info("Applied %d rename(s) to the explorer", len(pairs))
        return changed

    def on_did_delete_files(self, paths: Sequence[str]) -> bool:
        """
        Remove nodes whose files or folders were deleted on disk.

        Args:
            paths (Sequence[str]): Deleted paths.

        Returns:
            bool: Whether any node was removed.
        """
        deleted = [path for path in paths if path]
        if not deleted:
            return False

        direct = [self._store.find_by_path(path) for path in deleted]

        removed = 0
        with self._store.batch():
            for node in direct:
                if node is not None and self._store.remove_node(node, save=False):
                    removed += 1
            leftovers: List[Node] = [
                node
                for node in self._store.iter_nodes()
                if node.file_path
                and any(node.file_path == path or is_within(node.file_path, path) for path in deleted)
            ]
            for node in leftovers:
                if self._store.remove_node(node, save=False):
                    removed += 1
        if removed:
            logging.info("Removed %d explorer node(s) for deleted paths", removed)
        return removed > 0

    def on_active_editor_changed(self, file_path: Optional[str]) -> Optional[Node]:
        """
        Reveal the node for the file that became active in the editor.

        Returns:
            Optional[Node]: The revealed node, or ``None`` when the view is
            hidden or the file is not in the explorer.
        """
        if not file_path or not self._store.host.visible:
            return None
        node = self._store.find_by_path(file_path)
        if node is None:
            return None
        self._store.host.reveal(node)
        return node

    def on_diagnostics_changed(self, file_paths: Iterable[str]) -> List[str]:
        """Refresh decorations affected by new diagnostics for ``file_paths``."""
        uris = self._decorations.affected_uris(file_paths)
        if uris:
            self._store.host.refresh_decorations(uris)
        return uris
