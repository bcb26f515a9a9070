from __future__ import annotations

"""
Tree widget showing the explorer forest.

Design
------
The tree mirrors the forest held by ``CustomExplorer``: one row per node,
groups with a folder icon, files with a file icon. Each row stores the
node id under ``NodeIdRole``; the widget never keeps ``Node`` objects of
its own, so a rebuild after every change is cheap and cannot go stale.

The widget does not mutate the forest. It emits high-level signals that
the main window handles by calling into the explorer:

- context menu: add group, rename, remove, collapse/expand recursively,
- drag-and-drop: rows dragged inside the tree carry their node ids under
  ``INTERNAL_MIME``; files dragged in from a file manager arrive as
  ``text/uri-list``. Both become ``dropRequested``,
- double-click on a file row: ``openFileRequested``,
- user expand/collapse: ``expansionChanged`` so the state is persisted.

While dragging, the row under the cursor is highlighted as the drop
target, and a collapsed group under the cursor expands after a short
hover so nested groups can be reached.
"""

from typing import Dict, List, Optional

from PySide6.QtCore import QMimeData, QModelIndex, Qt, QTimer, Signal
from PySide6.QtGui import QBrush, QColor, QDrag, QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QAbstractItemView,
    QMenu,
    QStyle,
    QStyleOptionViewItem,
    QTreeView,
)

from custom_explorer.core.explorer import CustomExplorer, TreeItem
from custom_explorer.core.models import CollapsibleState, Severity
from custom_explorer.core.move_resolver import (
    INTERNAL_MIME,
    URI_LIST_MIME,
    DropPayload,
    decode_node_ids,
    encode_node_ids,
)


# Custom role for storing node ids on tree items.
NodeIdRole = Qt.UserRole + 1

# Custom role for storing the node type ("group" / "file").
NodeTypeRole = Qt.UserRole + 2

# Custom role for storing the absolute path of file and imported rows.
FilePathRole = Qt.UserRole + 3

_SEVERITY_COLORS = {
    Severity.ERROR: QColor(200, 40, 40),
    Severity.WARNING: QColor(190, 130, 0),
}


class ExplorerTree(QTreeView):
    """
    Tree view over the explorer forest.

    Emits:
        addGroupRequested (str | None): Create a group under the node with
            this id, or at the root level for None.
        renameRequested (str): Rename the node with this id.
        removeRequested (list): Remove the nodes with these ids.
        collapseRecursiveRequested (str | None): Collapse this node's
            subtree, or everything for None.
        expandRecursiveRequested (str | None): Expand this node's
            subtree, or everything for None.
        dropRequested (str | None, DropPayload): A drop onto the node with
            this id, or onto empty space (root level) for None.
        openFileRequested (str): Open the file at this path.
        expansionChanged (str, bool): The user expanded (True) or
            collapsed (False) the group with this id.
    """

    addGroupRequested = Signal(object)
    renameRequested = Signal(str)
    removeRequested = Signal(list)
    collapseRecursiveRequested = Signal(object)
    expandRecursiveRequested = Signal(object)
    dropRequested = Signal(object, object)
    openFileRequested = Signal(str)
    expansionChanged = Signal(str, bool)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)

        self._model = QStandardItemModel(self)
        self.setModel(self._model)
        self.setHeaderHidden(True)

        self.setSelectionMode(QAbstractItemView.ExtendedSelection)
        self.setDragEnabled(True)
        self.setAcceptDrops(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDrop)

        # Row currently highlighted as a potential drop target. Used only
        # for painting.
        self._drop_highlight_index: QModelIndex = QModelIndex()

        # Auto-expand of collapsed groups while hovering during a drag.
        self._expand_timer = QTimer(self)
        self._expand_timer.setSingleShot(True)
        self._expand_timer.setInterval(600)  # milliseconds
        self._expand_timer.timeout.connect(self._on_expand_timer_timeout)
        self._pending_expand_index: QModelIndex = QModelIndex()

        # Expansion signals fired while the model is rebuilt are not user
        # actions and must not be persisted.
        self._rebuilding = False

        self._items_by_id: Dict[str, QStandardItem] = {}

        self.expanded.connect(lambda index: self._on_expansion(index, True))
        self.collapsed.connect(lambda index: self._on_expansion(index, False))
        self.doubleClicked.connect(self._on_double_clicked)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def set_forest(self, explorer: CustomExplorer) -> None:
        """
        Rebuild all rows from the explorer's current forest.

        The current row and the scroll position are kept when the
        corresponding node still exists.

        Args:
            explorer (CustomExplorer): Source of nodes and row data.
        """
        current_id = self._node_id_for_index(self.currentIndex())
        scroll = self.verticalScrollBar().value()

        self._rebuilding = True
        try:
            self._model.clear()
            self._items_by_id = {}
            root = self._model.invisibleRootItem()
            for node in explorer.get_children(None):
                self._append_node(explorer, root, node)
        finally:
            self._rebuilding = False

        if current_id and current_id in self._items_by_id:
            self.setCurrentIndex(self._items_by_id[current_id].index())
        self.verticalScrollBar().setValue(scroll)

    def select_node_id(self, node_id: str) -> bool:
        """Expand the ancestors of a row, select it and scroll to it."""
        item = self._items_by_id.get(node_id)
        if item is None:
            return False
        parent = item.parent()
        while parent is not None:
            self.expand(parent.index())
            parent = parent.parent()
        self.setCurrentIndex(item.index())
        self.scrollTo(item.index())
        return True

    def update_severity(self, node_id: str, severity: Severity) -> None:
        item = self._items_by_id.get(node_id)
        if item is not None:
            self._apply_severity(item, severity)

    def selected_node_ids(self) -> List[str]:
        ids = []
        for index in self.selectionModel().selectedRows():
            node_id = self._node_id_for_index(index)
            if node_id:
                ids.append(node_id)
        return ids

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _append_node(self, explorer: CustomExplorer, parent: QStandardItem, node) -> None:
        tree_item = explorer.get_tree_item(node)
        item = self._make_item(tree_item, node.id)
        parent.appendRow(item)
        self._items_by_id[node.id] = item

        for child in explorer.get_children(node):
            self._append_node(explorer, item, child)

        if tree_item.collapsible_state is CollapsibleState.EXPANDED:
            self.expand(item.index())

    def _make_item(self, tree_item: TreeItem, node_id: str) -> QStandardItem:
        item = QStandardItem(tree_item.label)
        item.setEditable(False)
        item.setData(node_id, NodeIdRole)
        item.setData(tree_item.context_value, NodeTypeRole)
        icon = QStyle.SP_DirIcon if tree_item.folder_icon else QStyle.SP_FileIcon
        item.setIcon(self.style().standardIcon(icon))
        if tree_item.file_path:
            item.setData(tree_item.file_path, FilePathRole)
            item.setToolTip(tree_item.file_path)
        self._apply_severity(item, tree_item.severity)
        return item

    def _apply_severity(self, item: QStandardItem, severity: Severity) -> None:
        color = _SEVERITY_COLORS.get(severity)
        item.setForeground(QBrush(color) if color is not None else QBrush())

    def _node_id_for_index(self, index: QModelIndex) -> Optional[str]:
        if not index.isValid():
            return None
        value = index.data(NodeIdRole)
        return value if isinstance(value, str) else None

    def _on_expansion(self, index: QModelIndex, expanded: bool) -> None:
        if self._rebuilding:
            return
        node_id = self._node_id_for_index(index)
        if node_id:
            self.expansionChanged.emit(node_id, expanded)

    def _on_double_clicked(self, index: QModelIndex) -> None:
        item = self._model.itemFromIndex(index)
        if item is None or item.data(NodeTypeRole) != "file":
            return
        path = item.data(FilePathRole)
        if path:
            self.openFileRequested.emit(path)

    def _schedule_expand_index(self, index: QModelIndex) -> None:
        """Schedule auto-expand for a collapsed group under the cursor.

        An invalid index, a file row or an already expanded group cancels
        any pending expand.
        """
        item = self._model.itemFromIndex(index) if index.isValid() else None
        if item is None or item.rowCount() == 0 or self.isExpanded(index):
            self._expand_timer.stop()
            self._pending_expand_index = QModelIndex()
            return

        if self._pending_expand_index == index and self._expand_timer.isActive():
            return

        self._pending_expand_index = index
        self._expand_timer.start()

    def _on_expand_timer_timeout(self) -> None:
        """Expand the group we have been hovering over during a drag."""
        if not self._pending_expand_index.isValid():
            return
        self.expand(self._pending_expand_index)
        self._pending_expand_index = QModelIndex()

    def _set_drop_highlight_index(self, index: QModelIndex) -> None:
        """Update which row is highlighted as the current drop target."""
        if self._drop_highlight_index == index:
            return
        self._drop_highlight_index = index
        self.viewport().update()

    def _clear_drag_feedback(self) -> None:
        self._set_drop_highlight_index(QModelIndex())
        self._schedule_expand_index(QModelIndex())

    @staticmethod
    def _accepts(mime) -> bool:
        return mime is not None and (
            mime.hasFormat(INTERNAL_MIME) or mime.hasFormat(URI_LIST_MIME) or mime.hasUrls()
        )

    # ------------------------------------------------------------------
    # Context menu
    # ------------------------------------------------------------------
    def contextMenuEvent(self, event) -> None:
        """Show the context menu for the row under the cursor."""
        index = self.indexAt(event.pos())
        node_id = self._node_id_for_index(index)
        node_type = index.data(NodeTypeRole) if index.isValid() else None

        menu = QMenu(self)

        if node_id is None:
            menu.addAction("New root group…").triggered.connect(
                lambda checked=False: self.addGroupRequested.emit(None)
            )
            menu.addSeparator()
            menu.addAction("Collapse all").triggered.connect(
                lambda checked=False: self.collapseRecursiveRequested.emit(None)
            )
            menu.addAction("Expand all").triggered.connect(
                lambda checked=False: self.expandRecursiveRequested.emit(None)
            )
        else:
            if node_type == "group":
                menu.addAction("New group…").triggered.connect(
                    lambda checked=False, nid=node_id: self.addGroupRequested.emit(nid)
                )
            menu.addAction("Rename…").triggered.connect(
                lambda checked=False, nid=node_id: self.renameRequested.emit(nid)
            )

            # Remove acts on the whole selection when the clicked row is
            # part of it, and on the clicked row alone otherwise.
            selected = self.selected_node_ids()
            targets = selected if node_id in selected else [node_id]
            remove_label = "Remove" if len(targets) == 1 else f"Remove {len(targets)} entries"
            menu.addAction(remove_label).triggered.connect(
                lambda checked=False, ids=targets: self.removeRequested.emit(list(ids))
            )

            if node_type == "group":
                menu.addSeparator()
                menu.addAction("Collapse recursively").triggered.connect(
                    lambda checked=False, nid=node_id: self.collapseRecursiveRequested.emit(nid)
                )
                menu.addAction("Expand recursively").triggered.connect(
                    lambda checked=False, nid=node_id: self.expandRecursiveRequested.emit(nid)
                )

        if not menu.isEmpty():
            menu.exec(event.globalPos())

    # ------------------------------------------------------------------
    # Drag-and-drop handling
    # ------------------------------------------------------------------
    def startDrag(self, supportedActions) -> None:  # type: ignore[override]
        """Start a drag carrying the ids of the selected rows."""
        node_ids = self.selected_node_ids()
        if not node_ids:
            return

        mime = QMimeData()
        mime.setData(INTERNAL_MIME, encode_node_ids(node_ids))

        drag = QDrag(self)
        drag.setMimeData(mime)
        drag.exec(Qt.MoveAction)

    def dragEnterEvent(self, event) -> None:
        """Accept internal row drags and external file drags."""
        if not self._accepts(event.mimeData()):
            self._clear_drag_feedback()
            event.ignore()
            return
        index = self.indexAt(event.position().toPoint())
        self._set_drop_highlight_index(index)
        self._schedule_expand_index(index)
        event.acceptProposedAction()

    def dragMoveEvent(self, event) -> None:
        """Keep the highlight on the row under the cursor."""
        if not self._accepts(event.mimeData()):
            self._clear_drag_feedback()
            event.ignore()
            return
        index = self.indexAt(event.position().toPoint())
        self._set_drop_highlight_index(index)
        self._schedule_expand_index(index)
        event.acceptProposedAction()

    def dragLeaveEvent(self, event) -> None:
        """Clear any drop highlight when the drag leaves the tree."""
        self._clear_drag_feedback()
        super().dragLeaveEvent(event)

    def dropEvent(self, event) -> None:
        """
        Turn a drop into a ``dropRequested`` signal.

        Dropping on empty space targets the root level. The forest itself
        is not touched here.
        """
        self._clear_drag_feedback()

        mime = event.mimeData()
        if not self._accepts(mime):
            event.ignore()
            return

        target_id = self._node_id_for_index(self.indexAt(event.position().toPoint()))

        if mime.hasFormat(INTERNAL_MIME):
            node_ids = decode_node_ids(bytes(mime.data(INTERNAL_MIME)))
            if not node_ids:
                event.ignore()
                return
            payload = DropPayload(node_ids=node_ids)
        elif mime.hasUrls():
            lines = [url.toLocalFile() if url.isLocalFile() else url.toString() for url in mime.urls()]
            payload = DropPayload(uri_list="\r\n".join(lines))
        else:
            payload = DropPayload(uri_list=bytes(mime.data(URI_LIST_MIME)).decode("utf-8", "replace"))

        self.dropRequested.emit(target_id, payload)
        # The forest is rebuilt from the model, so Qt must not remove the
        # source rows itself.
        event.setDropAction(Qt.CopyAction)
        event.accept()

    def drawRow(self, painter, options, index) -> None:  # type: ignore[override]
        """Draw rows, adding a highlight for the current drop target."""
        opt = QStyleOptionViewItem(options)
        if self._drop_highlight_index.isValid() and index == self._drop_highlight_index:
            opt.state |= QStyle.State_Selected
        super().drawRow(painter, opt, index)
