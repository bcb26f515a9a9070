"""Protocol for the host UI that displays the explorer forest."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from custom_explorer.core.models import Node


@runtime_checkable
class TreeHost(Protocol):
    """Protocol for tree views notified by the explorer core."""

    @property
    def visible(self) -> bool:
        """Whether the tree view is currently shown."""
        ...

    def refresh(self, node: Optional[Node]) -> None:
        """Re-render ``node`` and its subtree, or everything for ``None``."""
        ...

    def reveal(self, node: Node) -> None:
        """Expand the ancestors of ``node`` and select it."""
        ...

    def refresh_decorations(self, uris: Sequence[str]) -> None:
        """Re-query decorations for the given node URIs."""
        ...


class NullHost:
    """Host used when the core runs headless. Ignores every notification."""

    visible = False

    def refresh(self, node: Optional[Node]) -> None:
        pass

    def reveal(self, node: Node) -> None:
        pass

    def refresh_decorations(self, uris: Sequence[str]) -> None:
        pass
