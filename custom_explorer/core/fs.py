"""
Filesystem primitives used by the explorer core.

The core never touches ``os`` directly for reads; it goes through a
``LocalFileSystem`` instance so that tests can substitute an in-memory
fake. All calls are synchronous. ``list_directory`` raises ``OSError`` on
failure and leaves it to the caller to decide whether that is fatal
(directory import logs and skips the subtree).
"""

from __future__ import annotations

import os
from enum import Enum
from typing import List, Tuple


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


class LocalFileSystem:
    """Thin wrapper over ``os`` for existence, stat and listing."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def list_directory(self, path: str) -> List[Tuple[str, EntryKind]]:
        """
        List a directory with a type tag per entry.

        Symbolic links are reported as ``SYMLINK`` (never followed), so a
        link pointing at an ancestor cannot send a recursive scan into a
        loop.

        Args:
            path (str): Directory to list.

        Returns:
            List[Tuple[str, EntryKind]]: ``(name, kind)`` pairs in the
            order the operating system returns them.

        Raises:
            OSError: If the directory cannot be read.
        """
        entries: List[Tuple[str, EntryKind]] = []
        with os.scandir(path) as it:
            for entry in it:
                if entry.is_symlink():
                    kind = EntryKind.SYMLINK
                elif entry.is_dir(follow_symlinks=False):
                    kind = EntryKind.DIRECTORY
                elif entry.is_file(follow_symlinks=False):
                    kind = EntryKind.FILE
                else:
                    kind = EntryKind.OTHER
                entries.append((entry.name, kind))
        return entries
