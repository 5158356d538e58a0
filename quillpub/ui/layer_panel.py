from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from quillpub.qt import QtCore, QtGui, QtWidgets
from quillpub.core.layers import LayerNode, effective_visibility
from quillpub.ui.theme import Theme, INDENT_PX
import qtawesome as qta


class ClickLabel(QtWidgets.QLabel):
    clicked = QtCore.Signal()
    def mousePressEvent(self, e: QtGui.QMouseEvent):
        if e.button() == QtCore.Qt.LeftButton:
            self.clicked.emit()


class LayerRowWidget(QtWidgets.QWidget):
    """
    One line of the layer list: eye toggle, name (click to rename inline) and
    the layer type. The row never edits the model itself; it asks through
    signals and is refreshed with set_layer() once the session has applied the edit.
    """
    visibilityToggled = QtCore.Signal(str, bool)   # (layer name, requested own visibility)
    renameRequested   = QtCore.Signal(str, str)    # (old name, new name)
    hoverEntered      = QtCore.Signal(str)
    hoverLeft         = QtCore.Signal(str)

    def __init__(self, node: LayerNode, parent_visible: bool = True, has_renderable: bool = False, parent=None):
        super().__init__(parent)
        self.node = node
        self.parent_visible = parent_visible
        self.has_renderable = has_renderable
        self._editing = False

        self.setMouseTracking(True)
        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(2, 1, 6, 1); layout.setSpacing(6)

        self.eye = QtWidgets.QToolButton()
        self.eye.setAutoRaise(True)
        self.eye.setIconSize(QtCore.QSize(14, 14))
        self.eye.setFixedSize(22, 22)
        self.eye.setCursor(QtCore.Qt.PointingHandCursor)
        self.eye.setStyleSheet("QToolButton { background: transparent; border: 0; padding: 0; }")
        layout.addWidget(self.eye)

        self.title = ClickLabel(node.name)
        self.title.setCursor(QtCore.Qt.IBeamCursor)
        self._title_stack = QtWidgets.QStackedWidget()
        self._title_stack.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Preferred)
        self._title_stack.addWidget(self.title)

        # Page 1: inline editor (hidden until rename)
        self.title_edit = QtWidgets.QLineEdit(node.name)
        self.title_edit.setFont(self.title.font())
        self.title_edit.setStyleSheet(
            f"QLineEdit {{ background: {Theme.panel_alt.name()}; border: 1px solid {Theme.stroke.name()};"
            f" color:{Theme.text.name()}; padding:0 2px; }}"
        )
        self._title_stack.addWidget(self.title_edit)
        self._title_stack.setCurrentWidget(self.title)
        layout.addWidget(self._title_stack, 1)

        self.kind_label = QtWidgets.QLabel()
        self.kind_label.setMinimumWidth(60)
        self.kind_label.setStyleSheet(f"color:{Theme.text_dim.name()}; font-size: 11px;")
        layout.addWidget(self.kind_label)

        self.eye.clicked.connect(self._on_eye_clicked)
        self.title.clicked.connect(self.begin_rename)
        self.title_edit.returnPressed.connect(self._commit_rename)
        self.title_edit.editingFinished.connect(self._commit_rename)

        self._refresh()

    @property
    def effective_visible(self) -> bool:
        return effective_visibility(self.node, self.parent_visible)

    def set_layer(self, node: LayerNode, parent_visible: bool, has_renderable: bool) -> None:
        self.node = node
        self.parent_visible = parent_visible
        self.has_renderable = has_renderable
        self._refresh()

    def _refresh(self) -> None:
        eff = self.effective_visible
        self.title.setText(self.node.name)
        self.kind_label.setText(f"({self.node.kind})")
        color = Theme.text if eff else Theme.text_off
        self.title.setStyleSheet(f"color:{color.name()};")
        # A hidden ancestor overrides this layer, so its own flag cannot be toggled
        self.eye.setEnabled(self.parent_visible)
        if not self.has_renderable:
            self.eye.setToolTip("No matching scene object")
        else:
            self.eye.setToolTip("Hide Layer" if self.node.visible else "Show Layer")
        self._update_icons()

    def _update_icons(self) -> None:
        eff = self.effective_visible
        if not self.has_renderable or not self.parent_visible:
            col = Theme.icon_off.name()
        else:
            col = Theme.icon_hover.name() if self.underMouse() else Theme.icon_idle.name()
        try:
            self.eye.setText("")
            self.eye.setIcon(qta.icon("fa5s.eye" if eff else "fa5s.eye-slash", color=col))
        except Exception:
            # Safe fallback so the list works without QtAwesome fonts
            self.eye.setIcon(QtGui.QIcon())
            self.eye.setText("👁" if eff else "–")

    def _on_eye_clicked(self) -> None:
        self.visibilityToggled.emit(self.node.name, not self.node.visible)

    # Hover drives the scene highlight
    def enterEvent(self, e: QtCore.QEvent) -> None:
        self.hoverEntered.emit(self.node.name)
        self._update_icons()
        super().enterEvent(e)

    def leaveEvent(self, e: QtCore.QEvent) -> None:
        self.hoverLeft.emit(self.node.name)
        self._update_icons()
        super().leaveEvent(e)

    # ── Inline rename ──────────────────────────────────────────────────
    @property
    def is_renaming(self) -> bool:
        return self._editing

    def begin_rename(self) -> None:
        self._editing = True
        self.title_edit.blockSignals(True)
        self.title_edit.setText(self.node.name)
        self.title_edit.blockSignals(False)
        self._title_stack.setCurrentWidget(self.title_edit)

        def _focus_and_select():
            if not self.title_edit.isVisible():
                return
            self.title_edit.setFocus(QtCore.Qt.FocusReason.MouseFocusReason)
            self.title_edit.selectAll()
        QtCore.QTimer.singleShot(0, _focus_and_select)

    def cancel_rename(self) -> None:
        self._editing = False
        self._title_stack.setCurrentWidget(self.title)

    def _commit_rename(self) -> None:
        # returnPressed and the focus-out editingFinished both land here
        if not self._editing:
            return
        new_text = (self.title_edit.text() or "").strip()
        old = self.node.name
        self.cancel_rename()
        if new_text and new_text != old:
            self.renameRequested.emit(old, new_text)

    def keyPressEvent(self, e: QtGui.QKeyEvent) -> None:
        if self._editing and e.key() == QtCore.Qt.Key_Escape:
            self.cancel_rename()
            e.accept()
            return
        super().keyPressEvent(e)


@dataclass(eq=False)
class _Entry:
    item: QtWidgets.QTreeWidgetItem
    row: LayerRowWidget
    node: LayerNode
    parent_visible: bool
    children: List["_Entry"] = field(default_factory=list)


class LayerTree(QtWidgets.QTreeWidget):
    """
    Layer list for the current project tree.

    set_root() walks the new tree against the rows already shown and skips every
    subtree whose node object is unchanged (edits rebuild only the path to the
    edited layer), so a toggle refreshes a handful of rows, not the whole list.
    """
    visibilityToggled = QtCore.Signal(str, bool)
    renameRequested   = QtCore.Signal(str, str)
    hoverEntered      = QtCore.Signal(str)
    hoverLeft         = QtCore.Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setHeaderHidden(True)
        self.setRootIsDecorated(True)
        self.setIndentation(INDENT_PX)
        self.setUniformRowHeights(True)
        self.setSelectionMode(QtWidgets.QAbstractItemView.NoSelection)
        self.setVerticalScrollMode(QtWidgets.QAbstractItemView.ScrollPerPixel)
        self.setStyleSheet(
            f"QTreeWidget {{ background: {Theme.panel.name()}; border: 0; }}"
            f"QTreeWidget::item:hover {{ background: {Theme.row_hover.name()}; }}"
        )

        self.expand_on_load = True
        self._has_renderable: Callable[[str], bool] = lambda _name: False
        self._root_entry: Optional[_Entry] = None

    def set_has_renderable(self, fn: Callable[[str], bool]) -> None:
        self._has_renderable = fn

    def set_root(self, root: Optional[LayerNode], force: bool = False) -> None:
        """Show ``root``; ``force`` refreshes every row (e.g. after a new mesh)."""
        if root is None:
            self.clear()
            self._root_entry = None
            return
        if self._root_entry is None:
            self._root_entry = self._make_entry(QtWidgets.QTreeWidgetItem(self), root, True)
        else:
            self._sync(self._root_entry, root, True, force)

    def rows(self) -> List[LayerRowWidget]:
        """All rows in display order."""
        out: List[LayerRowWidget] = []
        stack = [self._root_entry] if self._root_entry else []
        while stack:
            entry = stack.pop()
            out.append(entry.row)
            stack.extend(reversed(entry.children))
        return out

    def row_for(self, name: str) -> Optional[LayerRowWidget]:
        for row in self.rows():
            if row.node.name == name:
                return row
        return None

    def _make_entry(self, item: QtWidgets.QTreeWidgetItem, node: LayerNode, parent_visible: bool) -> _Entry:
        row = LayerRowWidget(node, parent_visible, self._has_renderable(node.name))
        row.visibilityToggled.connect(self.visibilityToggled)
        row.renameRequested.connect(self.renameRequested)
        row.hoverEntered.connect(self.hoverEntered)
        row.hoverLeft.connect(self.hoverLeft)
        self.setItemWidget(item, 0, row)

        entry = _Entry(item, row, node, parent_visible)
        eff = effective_visibility(node, parent_visible)
        for child in node.children:
            entry.children.append(self._make_entry(QtWidgets.QTreeWidgetItem(item), child, eff))
        item.setExpanded(self.expand_on_load)
        return entry

    def _sync(self, entry: _Entry, node: LayerNode, parent_visible: bool, force: bool) -> None:
        if not force and entry.node is node and entry.parent_visible == parent_visible:
            return
        entry.row.set_layer(node, parent_visible, self._has_renderable(node.name))
        eff = effective_visibility(node, parent_visible)
        if len(entry.children) == len(node.children):
            for child_entry, child in zip(entry.children, node.children):
                self._sync(child_entry, child, eff, force)
        else:
            entry.item.takeChildren()
            entry.children = [
                self._make_entry(QtWidgets.QTreeWidgetItem(entry.item), child, eff)
                for child in node.children
            ]
        entry.node = node
        entry.parent_visible = parent_visible
