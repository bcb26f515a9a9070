from custom_explorer.core.config import (
    get_excluded_suffixes,
    get_workspace_state_path,
    set_excluded_suffixes,
)
from custom_explorer.core.explorer import CustomExplorer, TreeItem
from custom_explorer.core.models import FILE, GROUP, CollapsibleState, Node, Severity
from custom_explorer.core.node_store import NodeStore, StaleIndexError
from custom_explorer.core.workspace_state import WorkspaceState

__all__ = [
    "FILE",
    "GROUP",
    "CollapsibleState",
    "CustomExplorer",
    "Node",
    "NodeStore",
    "Severity",
    "StaleIndexError",
    "TreeItem",
    "WorkspaceState",
    "get_excluded_suffixes",
    "get_workspace_state_path",
    "set_excluded_suffixes",
]
