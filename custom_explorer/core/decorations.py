"""
Diagnostic decorations for explorer nodes.

A file node shows the severity the diagnostics source reports for its
path. A group shows the worst severity found anywhere below it, so a
collapsed folder still signals that one of its files has an error. The
walk stops at the first error, since nothing can outrank it.

When diagnostics change for some paths, the host has to re-query the
decoration of each affected file node and of every group above it, since
their rolled-up severity may have changed too.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from custom_explorer.core.indexes import node_uri
from custom_explorer.core.models import Node, Severity
from custom_explorer.core.node_store import NodeStore

#: Callable returning the current severity for a file path.
DiagnosticsSource = Callable[[str], Severity]


def _no_diagnostics(file_path: str) -> Severity:
    return Severity.NONE


class DecorationProvider:
    """
    Computes per-node severities and the URIs to refresh after changes.

    Args:
        store: Store whose forest and indexes are decorated.
        diagnostics: Severity lookup by file path. Defaults to reporting
            no problems.
    """

    def __init__(self, store: NodeStore, diagnostics: Optional[DiagnosticsSource] = None) -> None:
        self._store = store
        self.diagnostics = diagnostics or _no_diagnostics

    def severity_for(self, node: Node) -> Severity:
        if not node.is_group:
            if not node.file_path:
                return Severity.NONE
            return Severity(self.diagnostics(node.file_path))

        worst = Severity.NONE
        stack = list(node.children or [])
        while stack:
            current = stack.pop()
            if current.is_group:
                stack.extend(current.children or [])
                continue
            severity = self.severity_for(current)
            if severity is Severity.ERROR:
                return Severity.ERROR
            if severity > worst:
                worst = severity
        return worst

    def severity_for_uri(self, uri: str) -> Severity:
        node = self._store.find_by_uri(uri)
        if node is None:
            return Severity.NONE
        return self.severity_for(node)

    def affected_uris(self, file_paths: Iterable[str]) -> List[str]:
        """
        Return the URIs whose decoration may change with ``file_paths``.

        Args:
            file_paths (Iterable[str]): Paths whose diagnostics changed.

        Returns:
            List[str]: URIs of every node referencing one of the paths and
            of all their ancestors, without duplicates, in discovery order.
        """
        uris: List[str] = []
        seen = set()
        for file_path in file_paths:
            for node in self._store.find_all_by_path(file_path):
                while node is not None and node.id not in seen:
                    seen.add(node.id)
                    uri = node_uri(node)
                    if uri not in uris:
                        uris.append(uri)
                    node = self._store.get_parent(node)
        return uris
