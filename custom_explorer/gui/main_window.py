"""
Main window for the Custom Explorer GUI.

Design overview
---------------

The window is a thin host around the headless explorer core:

Workspace and persistence
-------------------------
- A *workspace* is a directory on disk. Each workspace has its own state
  file (see ``config.get_workspace_state_path``) holding the curated
  forest under ``config.STORAGE_KEY``.
- The last opened workspace, the window geometry and the toolbar layout
  are per-machine UI settings stored via ``QSettings``; they never end
  up in the workspace state.

Views
-----
- Central widget: ``ExplorerTree``, a tree of user-created groups and
  file references. Groups can be nested arbitrarily; the same file may
  appear in several groups.
- The window implements the tree-host protocol expected by the core
  (``visible``, ``refresh``, ``reveal``, ``refresh_decorations``), so
  every change made through the core re-renders the tree.

Interaction flow
----------------
- Context menu on a group: new group, rename, remove, collapse/expand
  recursively. On a file: rename, remove. On empty space: new root
  group, collapse/expand all.
- Dragging rows moves them into the group under the cursor (or to the
  root level when dropped on a file row or on empty space). Dragging
  files or folders in from a file manager adds them; folders are
  imported recursively, honouring the excluded suffixes.
- Double-clicking a file opens it with the system's default application
  and marks it as the active file, which reveals it in the tree.

Keeping in sync with disk
-------------------------
A ``QFileSystemWatcher`` watches the directories that contain tracked
paths. When one of them changes, its entries are compared with the
listing taken at the last refresh. One entry vanishing and one appearing
in the same directory is reported to the core as a rename, so the nodes
follow it. Tracked paths that are still missing afterwards are reported
as deletions and their nodes disappear. A folder renamed in a directory
that is not watched (no tracked path sits directly in it) is seen only
as the deletion of its tracked contents.

Toolbar and menus
-----------------
Toolbar:
    - Add root group, Add files, Import folder
    - Collapse all, Expand all
    - Reload from disk

Menus:
    - File: open workspace, add files, import folder, reload, excluded
      suffixes
    - View: collapse all, expand all
    - Help: help + about
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from PySide6.QtCore import QFileSystemWatcher, QSettings, QTimer, QUrl
from PySide6.QtGui import QAction, QDesktopServices
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QStatusBar,
    QWidget,
)

from custom_explorer import __version__
from custom_explorer.core import config
from custom_explorer.core.explorer import CustomExplorer
from custom_explorer.core.models import Node
from custom_explorer.core.move_resolver import DropPayload
from custom_explorer.core.sync import pair_renames
from custom_explorer.core.workspace_state import WorkspaceState
from custom_explorer.gui.explorer_tree import ExplorerTree


class MainWindow(QMainWindow):
    """
    Main window for the Custom Explorer GUI.

    The window shows one ``ExplorerTree`` for the current workspace and
    acts as the tree host of its ``CustomExplorer``.

    Args:
        workspace_dir: Workspace to open. Defaults to the last workspace
            opened on this machine, or the current directory.
        parent: Optional parent widget.
    """

    def __init__(self, workspace_dir: Optional[str] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        # Per-machine UI settings (geometry, last workspace) are kept in
        # QSettings so they do not leak into the workspace state.
        self._settings = QSettings("CustomExplorer", "CustomExplorer")

        self._tree = ExplorerTree(self)
        self._tree.addGroupRequested.connect(self._on_add_group)
        self._tree.renameRequested.connect(self._on_rename)
        self._tree.removeRequested.connect(self._on_remove)
        self._tree.collapseRecursiveRequested.connect(self._on_collapse_recursive)
        self._tree.expandRecursiveRequested.connect(self._on_expand_recursive)
        self._tree.dropRequested.connect(self._on_drop)
        self._tree.openFileRequested.connect(self._on_open_file)
        self._tree.expansionChanged.connect(self._on_expansion_changed)
        self.setCentralWidget(self._tree)

        # Filesystem watcher for tracked paths. Bursts of change events
        # (e.g. a folder being deleted recursively) are coalesced by a
        # short single-shot timer.
        self._watcher = QFileSystemWatcher(self)
        self._watcher.directoryChanged.connect(self._on_watched_path_changed)
        self._watcher.fileChanged.connect(self._on_watched_path_changed)
        # Entry names of each watched directory as of the last refresh.
        self._listings: Dict[str, Set[str]] = {}
        self._missing_check_timer = QTimer(self)
        self._missing_check_timer.setSingleShot(True)
        self._missing_check_timer.setInterval(200)  # milliseconds
        self._missing_check_timer.timeout.connect(self._check_missing_paths)

        self._create_actions()
        self._create_toolbar()
        self._create_menus()
        self.setStatusBar(QStatusBar(self))

        self._workspace_dir = ""
        self._explorer: Optional[CustomExplorer] = None

        self.resize(420, 700)
        geometry = self._settings.value("window/geometry")
        if geometry is not None:
            self.restoreGeometry(geometry)

        if workspace_dir is None:
            workspace_dir = self._settings.value("workspace/last", os.getcwd())
        self.open_workspace(str(workspace_dir))

    # ------------------------------------------------------------------
    # Tree host protocol
    # ------------------------------------------------------------------
    @property
    def visible(self) -> bool:
        return self.isVisible()

    def refresh(self, node: Optional[Node]) -> None:
        # Rebuilding the whole model is fast enough for hand-curated
        # trees, so a partial refresh re-renders everything as well.
        if self._explorer is None:
            return
        self._tree.set_forest(self._explorer)
        self._update_watched_paths()

    def reveal(self, node: Node) -> None:
        self._tree.select_node_id(node.id)

    def refresh_decorations(self, uris: Sequence[str]) -> None:
        if self._explorer is None:
            return
        store = self._explorer.store
        for uri in uris:
            node = store.find_by_uri(uri)
            if node is not None:
                self._tree.update_severity(node.id, self._explorer.decorations.severity_for(node))

    # ------------------------------------------------------------------
    # Workspace handling
    # ------------------------------------------------------------------
    def open_workspace(self, workspace_dir: str) -> None:
        """
        Load the explorer forest stored for ``workspace_dir``.

        Args:
            workspace_dir (str): Directory whose workspace state to load.
        """
        workspace_dir = os.path.abspath(workspace_dir)
        state = WorkspaceState(workspace_dir=workspace_dir)
        self._explorer = CustomExplorer(state, host=self)
        self._workspace_dir = workspace_dir
        self._settings.setValue("workspace/last", workspace_dir)

        self.setWindowTitle(f"Custom Explorer - {Path(workspace_dir).name or workspace_dir}")
        self.refresh(None)
        self.statusBar().showMessage(f"Workspace state: {state.path}", 5000)
        logging.info("Opened workspace %s (state file %s)", workspace_dir, state.path)

    def _node(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None or self._explorer is None:
            return None
        return self._explorer.store.get_node(node_id)

    def _run_command(self, title: str, func: Callable[..., Any], *args: Any) -> Any:
        """
        Run an explorer command, reporting unexpected failures to the user.

        Every command either completes or raises before its changes are
        flushed, so the tree stays consistent after a failure.

        Args:
            title (str): Dialog title used if the command fails.
            func: Explorer command to call.
            *args: Arguments for ``func``.

        Returns:
            Any: The command's result, or ``None`` if it raised.
        """
        try:
            return func(*args)
        except Exception as exc:  # pragma: no cover
            logging.exception("Explorer command %r failed", title)
            QMessageBox.warning(
                self,
                title,
                f"The command could not be completed:\n{exc}",
            )
            return None

    def _prompt(self, message: str, default: str) -> Optional[str]:
        """Ask for a single line of text; ``None`` when cancelled."""
        text, ok = QInputDialog.getText(self, "Custom Explorer", message, text=default)
        if not ok:
            return None
        return text

    # ------------------------------------------------------------------
    # Actions, toolbar and menus
    # ------------------------------------------------------------------
    def _create_actions(self) -> None:
        """Create shared actions used by the toolbar and menus."""
        self._add_root_group_action = QAction("Add root group", self)
        self._add_root_group_action.setToolTip("Create a new group at the root level")
        self._add_root_group_action.triggered.connect(lambda checked=False: self._on_add_group(None))

        self._add_files_action = QAction("Add files…", self)
        self._add_files_action.setToolTip("Add files to the selected group")
        self._add_files_action.triggered.connect(self._on_add_files)

        self._import_folder_action = QAction("Import folder…", self)
        self._import_folder_action.setToolTip("Import a folder as a group, recursively")
        self._import_folder_action.triggered.connect(self._on_import_folder)

        self._collapse_all_action = QAction("Collapse all", self)
        self._collapse_all_action.triggered.connect(lambda checked=False: self._on_collapse_recursive(None))

        self._expand_all_action = QAction("Expand all", self)
        self._expand_all_action.triggered.connect(lambda checked=False: self._on_expand_recursive(None))

        # Reload from disk: re-read the workspace state file, e.g. after it
        # was changed by another instance.
        self._reload_action = QAction("Reload from disk", self)
        self._reload_action.setToolTip("Reload the explorer tree from the workspace state file")
        self._reload_action.setShortcut("Ctrl+R")
        self._reload_action.triggered.connect(self._on_reload_from_disk)
        self.addAction(self._reload_action)

        self._open_workspace_action = QAction("Open workspace…", self)
        self._open_workspace_action.setShortcut("Ctrl+O")
        self._open_workspace_action.triggered.connect(self._on_open_workspace)

        self._excluded_suffixes_action = QAction("Excluded suffixes…", self)
        self._excluded_suffixes_action.setToolTip("File name suffixes never added to the explorer")
        self._excluded_suffixes_action.triggered.connect(self._on_edit_excluded_suffixes)

        self._help_action = QAction("Help", self)
        self._help_action.triggered.connect(self._on_help)

        self._about_action = QAction("About", self)
        self._about_action.triggered.connect(self._on_about)

    def _create_toolbar(self) -> None:
        toolbar = self.addToolBar("Main")
        toolbar.setObjectName("MainToolbar")
        toolbar.setMovable(False)
        toolbar.setFloatable(False)

        toolbar.addAction(self._add_root_group_action)
        toolbar.addAction(self._add_files_action)
        toolbar.addAction(self._import_folder_action)
        toolbar.addSeparator()
        toolbar.addAction(self._collapse_all_action)
        toolbar.addAction(self._expand_all_action)
        toolbar.addSeparator()
        toolbar.addAction(self._reload_action)

    def _create_menus(self) -> None:
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        file_menu.addAction(self._open_workspace_action)
        file_menu.addSeparator()
        file_menu.addAction(self._add_root_group_action)
        file_menu.addAction(self._add_files_action)
        file_menu.addAction(self._import_folder_action)
        file_menu.addSeparator()
        file_menu.addAction(self._reload_action)
        file_menu.addAction(self._excluded_suffixes_action)

        view_menu = menubar.addMenu("&View")
        view_menu.addAction(self._collapse_all_action)
        view_menu.addAction(self._expand_all_action)

        help_menu = menubar.addMenu("&Help")
        help_menu.addAction(self._help_action)
        help_menu.addAction(self._about_action)

    def _selected_group(self) -> Optional[Node]:
        """Return the selected group, or the group of a selected file."""
        ids = self._tree.selected_node_ids()
        node = self._node(ids[0]) if ids else None
        if node is None or self._explorer is None:
            return None
        if node.is_group:
            return node
        return self._explorer.get_parent(node)

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def _on_add_group(self, parent_id: object) -> None:
        if self._explorer is None:
            return
        parent = self._node(parent_id) if isinstance(parent_id, str) else None
        if parent is None:
            self._run_command("New root group", self._explorer.add_root_group, self._prompt)
        else:
            self._run_command("New group", self._explorer.add_group, parent, self._prompt)

    def _on_rename(self, node_id: str) -> None:
        node = self._node(node_id)
        if node is None:
            return
        self._run_command("Rename", self._explorer.rename_entry, node, self._prompt)

    def _on_remove(self, node_ids: List[str]) -> None:
        nodes = [n for n in (self._node(i) for i in node_ids) if n is not None]
        if not nodes:
            return
        if len(nodes) > 1:
            reply = QMessageBox.question(
                self,
                "Remove entries",
                f"Remove {len(nodes)} entries from the explorer?\n"
                "Files on disk are not touched.",
                QMessageBox.Yes | QMessageBox.No,
                QMessageBox.Yes,
            )
            if reply != QMessageBox.Yes:
                return
        removed = self._run_command("Remove entries", self._explorer.remove_entries, nodes)
        if removed:
            self.statusBar().showMessage(f"Removed {removed} entries", 3000)

    def _on_collapse_recursive(self, node_id: object) -> None:
        if self._explorer is None:
            return
        node = self._node(node_id) if isinstance(node_id, str) else None
        self._run_command("Collapse", self._explorer.collapse_recursive, node)

    def _on_expand_recursive(self, node_id: object) -> None:
        if self._explorer is None:
            return
        node = self._node(node_id) if isinstance(node_id, str) else None
        self._run_command("Expand", self._explorer.expand_recursive, node)

    def _on_drop(self, target_id: object, payload: DropPayload) -> None:
        if self._explorer is None:
            return
        target = self._node(target_id) if isinstance(target_id, str) else None
        if not self._run_command("Drop", self._explorer.handle_drop, target, payload):
            self.statusBar().showMessage("Nothing to drop here", 3000)

    def _on_expansion_changed(self, node_id: str, expanded: bool) -> None:
        node = self._node(node_id)
        if node is not None:
            self._explorer.store.record_expansion(node, expanded)

    def _on_open_file(self, file_path: str) -> None:
        if not os.path.exists(file_path):
            QMessageBox.warning(
                self,
                "File not found",
                f"The file no longer exists:\n{file_path}",
            )
            self._check_missing_paths()
            return
        QDesktopServices.openUrl(QUrl.fromLocalFile(file_path))
        self._explorer.sync.on_active_editor_changed(file_path)

    def _on_add_files(self) -> None:
        if self._explorer is None:
            return
        paths, _ = QFileDialog.getOpenFileNames(self, "Add files", self._workspace_dir)
        if paths:
            self._run_command("Add files", self._explorer.add_files, paths, self._selected_group())

    def _on_import_folder(self) -> None:
        if self._explorer is None:
            return
        dir_path = QFileDialog.getExistingDirectory(self, "Import folder", self._workspace_dir)
        if not dir_path:
            return
        group = self._run_command(
            "Import folder", self._explorer.import_directory, dir_path, self._selected_group()
        )
        if group is None:
            QMessageBox.warning(
                self,
                "Import folder",
                f"Nothing was imported from:\n{dir_path}\n\n"
                "The folder is excluded or could not be read.",
            )

    def _on_reload_from_disk(self) -> None:
        if self._explorer is None:
            return
        self._run_command("Reload from disk", self._explorer.store.reload)
        self.statusBar().showMessage("Reloaded explorer tree from disk", 3000)

    def _on_open_workspace(self) -> None:
        dir_path = QFileDialog.getExistingDirectory(self, "Open workspace", self._workspace_dir)
        if dir_path:
            self.open_workspace(dir_path)

    def _on_edit_excluded_suffixes(self) -> None:
        current = ", ".join(config.get_excluded_suffixes())
        text, ok = QInputDialog.getText(
            self,
            "Excluded suffixes",
            "Comma-separated file name suffixes to exclude (e.g. .pyc, .log):",
            text=current,
        )
        if not ok:
            return
        suffixes = [part.strip() for part in text.split(",")]
        try:
            config.set_excluded_suffixes(suffixes)
        except OSError as exc:
            QMessageBox.warning(
                self,
                "Excluded suffixes",
                f"Could not save the configuration:\n{exc}",
            )

    def _on_help(self) -> None:
        QMessageBox.information(
            self,
            "Custom Explorer help",
            "Right-click the tree to create groups, rename or remove entries.\n\n"
            "Drag entries onto a group to move them; drop on empty space to move "
            "them to the root level. Drag files or folders from your file manager "
            "to add them.\n\n"
            "Double-click a file to open it.",
        )

    def _on_about(self) -> None:
        QMessageBox.information(
            self,
            "About Custom Explorer",
            f"Custom Explorer {__version__}\n\n"
            "A hand-curated tree of files and groups that follows renames "
            "and deletions on disk.",
        )

    # ------------------------------------------------------------------
    # Filesystem watching
    # ------------------------------------------------------------------
    def _tracked_paths(self) -> List[str]:
        if self._explorer is None:
            return []
        return [n.file_path for n in self._explorer.store.iter_nodes() if n.file_path]

    def _update_watched_paths(self) -> None:
        """Watch every tracked directory and the parent of every tracked path."""
        wanted = set()
        for path in self._tracked_paths():
            parent = os.path.dirname(path)
            if parent and os.path.isdir(parent):
                wanted.add(parent)
            if os.path.isdir(path):
                wanted.add(path)

        current = set(self._watcher.directories())
        stale = sorted(current - wanted)
        new = sorted(wanted - current)
        if stale:
            self._watcher.removePaths(stale)
        if new:
            failed = self._watcher.addPaths(new)
            if failed:
                logging.debug("Could not watch %d path(s): %s", len(failed), failed)

        self._listings = {}
        for directory in wanted:
            try:
                self._listings[directory] = set(os.listdir(directory))
            except OSError as exc:
                logging.debug("Could not list %s: %s", directory, exc)

    def _on_watched_path_changed(self, path: str) -> None:
        self._missing_check_timer.start()

    def _check_missing_paths(self) -> None:
        """Report renames and deletions of tracked paths to the core."""
        if self._explorer is None:
            return

        vanished: List[str] = []
        appeared: List[str] = []
        for directory, before in self._listings.items():
            try:
                after = set(os.listdir(directory))
            except OSError:
                continue
            vanished.extend(os.path.join(directory, name) for name in before - after)
            appeared.extend(os.path.join(directory, name) for name in after - before)
        renames, _ = pair_renames(vanished, appeared)
        if renames:
            logging.info("Paths renamed on disk: %s", renames)
            self._run_command("Sync with disk", self._explorer.sync.on_did_rename_files, renames)

        missing = sorted({p for p in self._tracked_paths() if not os.path.exists(p)})
        if missing:
            logging.info("Tracked paths deleted on disk: %s", missing)
            self._run_command("Sync with disk", self._explorer.sync.on_did_delete_files, missing)
        self._update_watched_paths()

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------
    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._settings.setValue("window/geometry", self.saveGeometry())
        super().closeEvent(event)

    # ------------------------------------------------------------------
    # Application entry points
    # ------------------------------------------------------------------


def run(workspace_dir: Optional[str] = None) -> None:
    """
    Start the Qt application and show the main window.

    This is intended for programmatic use:

        from custom_explorer.gui.main_window import run
        run("/path/to/workspace")
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)

    window = MainWindow(workspace_dir)
    window.show()

    app.exec()


def main() -> None:
    """
    Console-script entry point.

    This is what ``custom-explorer`` calls after installation. An optional
    first argument names the workspace directory.
    """
    args = [arg for arg in sys.argv[1:] if not arg.startswith("-")]
    run(args[0] if args else None)
