"""
Drag-and-drop for the explorer tree.

A drop carries one of two payloads:

- an internal list of node ids (``INTERNAL_MIME``), produced when
  entries of the explorer itself are dragged; those nodes are moved,
- an external ``text/uri-list`` (``URI_LIST_MIME``), produced when files
  or folders are dragged in from a file manager or editor; those paths
  are added (files) or imported (directories) at the drop target.

Moves are validated before anything changes: a node cannot be dropped on
itself or on one of its own descendants, since that would cut the
subtree loose from the forest and create a cycle. Invalid sources are
skipped; if none of the sources is valid the forest is left untouched
and the host is not refreshed.

Each drop is one batch of the node store, so the canonical sort, index
rebuild, persistence and refresh run once for the whole drop.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse
from urllib.request import url2pathname

from custom_explorer.core.fs import LocalFileSystem
from custom_explorer.core.importer import DirectoryImporter
from custom_explorer.core.models import Node
from custom_explorer.core.node_store import NodeStore

# MIME type for drags originating from the explorer tree itself.
INTERNAL_MIME = "application/vnd.code.tree.customexplorer"

# MIME type for file/folder drags from outside the application.
URI_LIST_MIME = "text/uri-list"

DROP_MIME_TYPES = (INTERNAL_MIME, URI_LIST_MIME)
DRAG_MIME_TYPES = (INTERNAL_MIME,)


@dataclass
class DropPayload:
    """Data carried by a drag. Exactly one field is normally set."""

    node_ids: Optional[List[str]] = None
    uri_list: Optional[str] = None


def encode_node_ids(node_ids: Sequence[str]) -> bytes:
    return json.dumps(list(node_ids)).encode("utf-8")


def decode_node_ids(data: bytes) -> List[str]:
    """
    Decode an internal drag payload.

    Args:
        data (bytes): UTF-8 JSON list produced by ``encode_node_ids``.

    Returns:
        List[str]: The node ids; empty if the payload is unreadable.
    """
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        logging.warning("Ignoring unreadable drag payload: %s", exc)
        return []
    if not isinstance(raw, list):
        return []
    return [node_id for node_id in raw if isinstance(node_id, str)]


def uri_to_path(entry: str) -> Optional[str]:
    """
    Convert one ``text/uri-list`` line to a local path.

    ``file://`` URIs are decoded (percent-escapes included); other lines
    are taken as plain paths. URIs of any other scheme cannot refer to a
    local file and yield ``None``.
    """
    if entry.startswith("file:"):
        parsed = urlparse(entry)
        path = url2pathname(parsed.path)
        if parsed.netloc and parsed.netloc != "localhost":
            path = f"//{parsed.netloc}{path}"
        return path
    scheme = urlparse(entry).scheme
    if scheme and len(scheme) > 1:
        logging.warning("Ignoring dropped non-file URI %s", entry)
        return None
    return entry


def parse_uri_list(text: str) -> List[str]:
    """
    Split a ``text/uri-list`` payload into local paths.

    Lines may be separated by CRLF or LF. Blank lines and ``#`` comment
    lines are ignored.
    """
    paths: List[str] = []
    for line in text.splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        path = uri_to_path(entry)
        if path:
            paths.append(path)
    return paths


class MoveResolver:
    """
    Validates and applies drops onto the explorer tree.

    Args:
        store: The node store to mutate.
        importer: Used for directories dropped from outside. Created on
            top of ``store`` and ``fs`` when omitted.
        fs: Filesystem collaborator used to stat dropped paths.
    """

    def __init__(
        self,
        store: NodeStore,
        importer: Optional[DirectoryImporter] = None,
        fs: Optional[LocalFileSystem] = None,
    ) -> None:
        self._store = store
        self._fs = fs or LocalFileSystem()
        self._importer = importer or DirectoryImporter(store, self._fs)

    def is_valid_move(self, source: Node, target: Optional[Node]) -> bool:
        """
        Return True if ``source`` may be dropped onto ``target``.

        A move is invalid when the source is the target itself, when the
        target lies inside the source's subtree, or when either node is
        not part of the forest.
        """
        if source is target:
            return False
        if not self._store.contains(source):
            return False
        if target is None:
            return True
        if not self._store.contains(target):
            return False
        return not self._store.is_descendant(target, source)

    def move_nodes(self, sources: Iterable[Node], target: Optional[Node] = None) -> bool:
        """
        Move ``sources`` into ``target``.

        Sources land in ``target.children`` when the target is a group
        (which is then expanded), and at the root level otherwise.

        Args:
            sources (Iterable[Node]): Nodes to move.
            target (Optional[Node]): Drop target, or ``None`` for root.

        Returns:
            bool: Whether at least one node moved.
        """
        destination = target if target is not None and target.is_group else None
        moved = 0
        with self._store.batch():
            for source in sources:
                if not self.is_valid_move(source, target):
                    logging.debug("Rejected move of %r onto %r", source, target)
                    continue
                if self._store.detach(source):
                    self._store.attach(source, destination)
                    moved += 1
        return moved > 0

    def handle_drag(self, nodes: Iterable[Node]) -> DropPayload:
        return DropPayload(node_ids=[node.id for node in nodes])

    def handle_drop(self, target: Optional[Node], payload: DropPayload) -> bool:
        """
        Apply a drop onto ``target``.

        Internal payloads move the referenced nodes; ids that no longer
        exist are ignored. External payloads add every existing path at
        the drop target; missing paths are logged and skipped.

        Returns:
            bool: Whether the forest changed.
        """
        if payload.node_ids is not None:
            sources = [self._store.get_node(node_id) for node_id in payload.node_ids]
            return self.move_nodes([s for s in sources if s is not None], target)

        if payload.uri_list:
            return self.add_paths(parse_uri_list(payload.uri_list), target)
        return False

    def add_paths(self, paths: Iterable[str], target: Optional[Node] = None) -> bool:
        """Add files and import directories at ``target`` in one batch."""
        added = 0
        with self._store.batch():
            for path in paths:
                path = os.path.normpath(path)
                if not self._fs.exists(path):
                    logging.warning("Skipping dropped path that does not exist: %s", path)
                    continue
                if self._fs.is_dir(path):
                    node = self._importer.import_directory(path, target)
                else:
                    node = self._store.add_file(path, target)
                if node is not None:
                    added += 1
        return added > 0
