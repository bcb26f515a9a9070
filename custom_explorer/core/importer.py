"""
Directory import: turn a real directory tree into explorer groups.

The imported directory becomes one expanded group that records the
directory's path (so that later renames and deletes of the directory can
be tracked). Its contents are scanned recursively:

- every subdirectory becomes a nested group, initially collapsed, that
  also records its path,
- every regular file becomes a file node,
- names matching the exclusion predicate are skipped, and so are
  reserved system artifacts such as ``.DS_Store``,
- symbolic links are followed only when they point at a file; linked
  directories are skipped so a link cycle cannot hang the scan.

A directory that cannot be read is logged and left out, and the scan
goes on with its siblings. The subtree is built detached and inserted in
one step, so an import costs a single save-and-refresh no matter how
many entries it contains.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from custom_explorer.core.exclusion import is_reserved
from custom_explorer.core.fs import EntryKind, LocalFileSystem
from custom_explorer.core.models import Node, make_file, make_group
from custom_explorer.core.node_store import NodeStore, basename


class DirectoryImporter:
    """
    Builds explorer subtrees from directories on disk.

    Args:
        store: Store the imported subtree is attached to. Its
            ``is_excluded`` predicate decides which names are skipped.
        fs: Filesystem collaborator. Defaults to ``LocalFileSystem``.
    """

    def __init__(self, store: NodeStore, fs: Optional[LocalFileSystem] = None) -> None:
        self._store = store
        self._fs = fs or LocalFileSystem()

    def import_directory(self, dir_path: str, parent: Optional[Node] = None) -> Optional[Node]:
        """
        Import ``dir_path`` as a group under ``parent`` (or at root level).

        Args:
            dir_path (str): Directory to import.
            parent (Optional[Node]): Group to import into.

        Returns:
            Optional[Node]: The new group, or ``None`` when the directory
            name is excluded or the directory cannot be read.
        """
        dir_path = os.path.normpath(dir_path)
        name = basename(dir_path)
        if self._store.is_excluded(name):
            logging.info("Not importing excluded directory %s", dir_path)
            return None

        group = self._scan(dir_path, name, expanded=True)
        if group is None:
            return None
        return self._store.attach(group, parent)

    def _scan(self, dir_path: str, label: str, expanded: bool) -> Optional[Node]:
        try:
            entries = self._fs.list_directory(dir_path)
        except OSError as exc:
            logging.warning("Skipping unreadable directory %s: %s", dir_path, exc)
            return None

        group = make_group(label, file_path=dir_path, expanded=expanded)
        for name, kind in entries:
            full_path = os.path.join(dir_path, name)
            if self._store.is_excluded(name):
                continue

            if kind is EntryKind.DIRECTORY:
                child = self._scan(full_path, name, expanded=False)
                if child is not None:
                    group.children.append(child)
            elif kind is EntryKind.FILE or (
                kind is EntryKind.SYMLINK and self._fs.is_file(full_path)
            ):
                if is_reserved(name):
                    continue
                group.children.append(make_file(full_path, name))
        return group
