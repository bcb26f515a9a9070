"""Fake collaborators for testing the explorer core."""

from typing import Any, List, Optional, Sequence, Set

from custom_explorer.core.fs import LocalFileSystem
from custom_explorer.core.models import Node
from custom_explorer.core.workspace_state import WorkspaceState


class RecordingHost:
    """Tree host that records every notification for assertions."""

    def __init__(self, visible: bool = True) -> None:
        self.visible = visible
        self.refreshes: List[Optional[Node]] = []
        self.revealed: List[Node] = []
        self.decorated: List[List[str]] = []

    def refresh(self, node: Optional[Node]) -> None:
        self.refreshes.append(node)

    def reveal(self, node: Node) -> None:
        self.revealed.append(node)

    def refresh_decorations(self, uris: Sequence[str]) -> None:
        self.decorated.append(list(uris))


class CountingWorkspaceState(WorkspaceState):
    """Real file-backed workspace state that counts writes."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.update_calls = 0
        super().__init__(*args, **kwargs)

    def update(self, key: str, value: Any) -> None:
        self.update_calls += 1
        super().update(key, value)


class UnreadableDirFileSystem(LocalFileSystem):
    """Local filesystem where selected directories fail to list."""

    def __init__(self, unreadable: Set[str]) -> None:
        self.unreadable = set(unreadable)

    def list_directory(self, path: str) -> List[tuple]:
        if path in self.unreadable:
            raise PermissionError(13, "Permission denied", path)
        return super().list_directory(path)
