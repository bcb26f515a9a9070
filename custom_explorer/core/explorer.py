"""
Explorer facade: the tree data provider and the user commands.

``CustomExplorer`` wires the node store together with directory import,
drag-and-drop, filesystem sync and decorations, and exposes what a host
tree view needs:

- ``get_children`` / ``get_parent`` / ``get_tree_item`` to render rows,
- ``handle_drag`` / ``handle_drop`` for drag-and-drop,
- command methods for the context menu and toolbar.

Commands that need a label take a ``prompt`` callable. The prompt
returns the text the user entered, or ``None`` when the dialog was
cancelled; a cancelled or blank answer abandons the whole command
without touching the forest.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from custom_explorer.core.decorations import DecorationProvider, DiagnosticsSource
from custom_explorer.core.exclusion import ExclusionPredicate
from custom_explorer.core.fs import LocalFileSystem
from custom_explorer.core.host import TreeHost
from custom_explorer.core.importer import DirectoryImporter
from custom_explorer.core.indexes import node_uri
from custom_explorer.core.models import CollapsibleState, Node, Severity
from custom_explorer.core.move_resolver import DropPayload, MoveResolver
from custom_explorer.core.node_store import NodeStore
from custom_explorer.core.sync import SyncReconciler
from custom_explorer.core.workspace_state import WorkspaceState

#: ``prompt(message, default_text) -> entered text or None``.
Prompt = Callable[[str, str], Optional[str]]

# Command identifier attached to file rows.
OPEN_COMMAND = "customExplorer.open"


@dataclass
class TreeItem:
    """Everything the host needs to render one row."""

    label: str
    collapsible_state: CollapsibleState
    id: str
    context_value: str
    resource_uri: str
    file_path: Optional[str] = None
    command: Optional[Tuple[str, str]] = None
    folder_icon: bool = False
    severity: Severity = Severity.NONE


def _ask(prompt: Prompt, message: str, default: str = "") -> Optional[str]:
    answer = prompt(message, default)
    if answer is None:
        return None
    answer = answer.strip()
    return answer or None


class CustomExplorer:
    """
    Tree data provider and command surface of the explorer.

    Args:
        state: Workspace state holding the persisted forest.
        host: Tree view to notify. May be set later via ``host``.
        fs: Filesystem collaborator.
        is_excluded: Exclusion predicate for names. Defaults to the
            configured excluded suffixes.
        diagnostics: Severity lookup by file path.
    """

    def __init__(
        self,
        state: WorkspaceState,
        host: Optional[TreeHost] = None,
        fs: Optional[LocalFileSystem] = None,
        is_excluded: Optional[Callable[[str], bool]] = None,
        diagnostics: Optional[DiagnosticsSource] = None,
    ) -> None:
        self.fs = fs or LocalFileSystem()
        self.store = NodeStore(state, host=host, is_excluded=is_excluded or ExclusionPredicate())
        self.importer = DirectoryImporter(self.store, self.fs)
        self.resolver = MoveResolver(self.store, self.importer, self.fs)
        self.decorations = DecorationProvider(self.store, diagnostics)
        self.sync = SyncReconciler(self.store, self.decorations)

    @property
    def host(self) -> TreeHost:
        return self.store.host

    @host.setter
    def host(self, host: Optional[TreeHost]) -> None:
        self.store.host = host

    # ------------------------------------------------------------------
    # Tree data provider
    # ------------------------------------------------------------------
    def get_children(self, node: Optional[Node] = None) -> List[Node]:
        if node is None:
            return list(self.store.roots)
        return list(node.children or [])

    def get_parent(self, node: Node) -> Optional[Node]:
        return self.store.get_parent(node)

    def get_tree_item(self, node: Node) -> TreeItem:
        if node.is_group:
            state = node.collapsible_state
            if state is CollapsibleState.NONE:
                state = CollapsibleState.EXPANDED
        else:
            state = CollapsibleState.NONE

        item = TreeItem(
            label=node.label,
            collapsible_state=state,
            id=node.presentation_id,
            context_value=node.type,
            resource_uri=node_uri(node),
            file_path=node.file_path,
            severity=self.decorations.severity_for(node),
        )
        if node.is_file and node.file_path:
            item.command = (OPEN_COMMAND, node.file_path)
        else:
            item.folder_icon = True
        return item

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------
    def handle_drag(self, nodes: Iterable[Node]) -> DropPayload:
        return self.resolver.handle_drag(nodes)

    def handle_drop(self, target: Optional[Node], payload: DropPayload) -> bool:
        return self.resolver.handle_drop(target, payload)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def add_root_group(self, prompt: Prompt) -> Optional[Node]:
        label = _ask(prompt, "Enter root group name")
        if label is None:
            return None
        return self.store.add_group(label, None)

    def add_group(self, node: Optional[Node], prompt: Prompt) -> Optional[Node]:
        label = _ask(prompt, "Enter group name")
        if label is None:
            return None
        return self.store.add_group(label, node)

    def rename_entry(self, node: Node, prompt: Prompt) -> bool:
        label = _ask(prompt, "Enter new name", node.label)
        if label is None or label == node.label:
            return False
        return self.store.rename_node(node, label)

    def remove_entries(self, nodes: Iterable[Node]) -> int:
        """Remove a multi-selection with one save-and-refresh."""
        return self.store.remove_nodes(list(nodes))

    def add_files(self, paths: Iterable[str], parent: Optional[Node] = None) -> bool:
        return self.resolver.add_paths(paths, parent)

    def import_directory(self, dir_path: str, parent: Optional[Node] = None) -> Optional[Node]:
        return self.importer.import_directory(dir_path, parent)

    def collapse_recursive(self, node: Optional[Node] = None) -> None:
        self.store.collapse_recursive(node)

    def expand_recursive(self, node: Optional[Node] = None) -> None:
        self.store.expand_recursive(node)

    def collapse_all(self) -> None:
        self.store.collapse_recursive(None)

    def expand_all(self) -> None:
        self.store.expand_recursive(None)
