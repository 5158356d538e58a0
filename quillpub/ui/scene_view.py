from __future__ import annotations
from typing import Optional

from quillpub.qt import QtCore, QtGui, QtWidgets
from quillpub.core.asset import SceneObject, asset_summary
from quillpub.ui.theme import Theme


class SceneOutline(QtWidgets.QWidget):
    """Read-only outline of the loaded mesh: object hierarchy plus a size summary."""

    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self._root: Optional[SceneObject] = None

        self.summary = QtWidgets.QLabel("No mesh loaded")
        self.summary.setWordWrap(True)
        self.summary.setStyleSheet(f"color:{Theme.text_dim.name()}; padding: 6px;")

        self.tree = QtWidgets.QTreeWidget()
        self.tree.setHeaderLabels(["Object", "Vertices"])
        self.tree.setColumnWidth(0, 260)
        self.tree.setStyleSheet(f"QTreeWidget {{ background: {Theme.panel.name()}; border: 0; }}")

        lay = QtWidgets.QVBoxLayout(self)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(0)
        lay.addWidget(self.summary)
        lay.addWidget(self.tree, 1)

    def set_asset(self, root: Optional[SceneObject], label: str = "") -> None:
        self._root = root
        self.tree.clear()
        if root is None:
            self.summary.setText("No mesh loaded")
            return
        self._add(None, root, True)
        self.tree.expandToDepth(1)
        self.refresh()
        if label:
            self.summary.setToolTip(label)

    def refresh(self) -> None:
        """Re-read visibility flags and the summary after layers were toggled."""
        if self._root is None:
            return
        s = asset_summary(self._root)
        text = f"{s['objects']} objects • {s['meshes']} meshes • {s['vertices']:,} vertices"
        if s["bounds"] is not None:
            size = s["bounds"][1] - s["bounds"][0]
            text += "  •  visible extent {:.2f} × {:.2f} × {:.2f}".format(*size)
        self.summary.setText(text)

        it = QtWidgets.QTreeWidgetItemIterator(self.tree)
        while it.value():
            item = it.value()
            obj = item.data(0, QtCore.Qt.UserRole)
            shown = obj.visible and self._ancestors_visible(item)
            item.setForeground(0, QtGui.QBrush(Theme.text if shown else Theme.text_off))
            it += 1

    def _ancestors_visible(self, item: QtWidgets.QTreeWidgetItem) -> bool:
        parent = item.parent()
        while parent is not None:
            if not parent.data(0, QtCore.Qt.UserRole).visible:
                return False
            parent = parent.parent()
        return True

    def _add(self, parent_item: Optional[QtWidgets.QTreeWidgetItem], obj: SceneObject, top: bool) -> None:
        item = QtWidgets.QTreeWidgetItem(self.tree if top else parent_item)
        item.setText(0, obj.name or "<unnamed>")
        item.setText(1, str(len(obj.geometry.vertices)) if obj.is_mesh else "")
        item.setData(0, QtCore.Qt.UserRole, obj)
        for child in obj.children:
            self._add(item, child, False)
