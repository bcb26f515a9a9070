from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional


#: Type tag for synthetic folder nodes.
GROUP = "group"

#: Type tag for leaf nodes that reference a file on disk.
FILE = "file"

NODE_TYPES = (GROUP, FILE)


class CollapsibleState(str, Enum):
    """Presentation flag for a node, mirrored by the host tree view."""

    NONE = "none"
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


class Severity(IntEnum):
    """Diagnostic severity of a node. Higher values dominate lower ones."""

    NONE = 0
    WARNING = 1
    ERROR = 2


def new_node_id() -> str:
    """Return a fresh opaque node identifier."""
    return uuid.uuid4().hex[:16]


@dataclass(eq=False)
class Node:
    """
    A single entry of the explorer forest.

    Nodes compare by identity: two nodes with equal fields are still
    different entries of the tree.
    """

    #: Display name. For files this is the basename at creation or
    #: rename time; for groups it is user-assigned or the basename of an
    #: imported directory.
    label: str

    #: Either ``GROUP`` or ``FILE``.
    type: str

    #: Stable identifier, unique across the whole forest.
    id: str = field(default_factory=new_node_id)

    #: Ordered children. Only groups carry a list; files keep ``None``.
    children: Optional[List["Node"]] = None

    #: Absolute path on disk. Always set on files; set on groups only
    #: when the group was imported from a real directory.
    file_path: Optional[str] = None

    #: Expanded/collapsed for groups, ``NONE`` for files.
    collapsible_state: CollapsibleState = CollapsibleState.NONE

    #: Presentation version. Bumped whenever the presentation state is
    #: reset so that the host re-renders the item from scratch.
    version: int = 0

    #: Root-relative, slash-joined labels. Recomputed on every index
    #: rebuild.
    cached_tree_path: Optional[str] = None

    @property
    def is_group(self) -> bool:
        return self.type == GROUP

    @property
    def is_file(self) -> bool:
        return self.type == FILE

    @property
    def presentation_id(self) -> str:
        """Identifier handed to the host; changes with ``version``."""
        return f"{self.id}#{self.version}"

    def __repr__(self) -> str:
        return f"Node({self.type}:{self.label!r}, id={self.id})"


def make_group(
    label: str,
    file_path: Optional[str] = None,
    expanded: bool = True,
) -> Node:
    """Create a detached group node."""
    state = CollapsibleState.EXPANDED if expanded else CollapsibleState.COLLAPSED
    return Node(
        label=label,
        type=GROUP,
        children=[],
        file_path=file_path,
        collapsible_state=state,
    )


def make_file(file_path: str, label: str) -> Node:
    """Create a detached file node."""
    return Node(label=label, type=FILE, file_path=file_path)
