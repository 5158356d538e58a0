# quillpub/ui/main_window.py
from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

from quillpub.qt import QtCore, QtGui, QtWidgets
from quillpub.core.config import get_settings
from quillpub.core.exporter import ExportError, ExportFormat
from quillpub.core.logging import get_logger
from quillpub.core.project import SaveError
from quillpub.core.session import ProjectSession, SessionState
from quillpub.ui.layer_panel import LayerTree
from quillpub.ui.scene_view import SceneOutline
from app_config import APP_NAME, MESH_EXTS, PROJECT_EXTS


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, session: Optional[ProjectSession] = None):
        super().__init__()
        self._log = get_logger(__name__)
        self.setWindowTitle(APP_NAME)
        self.resize(1200, 720)
        self.settings = get_settings()

        self.session = session or ProjectSession(exporter=self.settings.get("export/exporter_path"))

        self.scene_view = SceneOutline(self)
        self.layers = LayerTree(self)
        self.layers.expand_on_load = self.settings.get_bool("viewer/expand_on_load", True)
        self.layers.set_has_renderable(self.session.has_renderable)

        layers_box = QtWidgets.QWidget()
        lb = QtWidgets.QVBoxLayout(layers_box)
        lb.setContentsMargins(0, 0, 0, 0)
        header = QtWidgets.QLabel("Layers")
        header.setStyleSheet("font-weight:600; padding: 6px;")
        lb.addWidget(header)
        lb.addWidget(self.layers, 1)

        splitter = QtWidgets.QSplitter()
        splitter.addWidget(self.scene_view)
        splitter.addWidget(layers_box)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        self.setCentralWidget(splitter)

        self._build_menu()
        self._wire_session()
        self._restore_state()
        self._sync_actions()

    # ──────────────────────────────────────────────────────────────────────────
    # Menu
    # ──────────────────────────────────────────────────────────────────────────
    def _build_menu(self):
        bar = self.menuBar()
        file_menu = bar.addMenu("&File")

        self.open_act = QtGui.QAction("&Open Project...", self)
        self.open_act.setShortcut(QtGui.QKeySequence.Open)
        self.open_act.triggered.connect(self._open_dialog)
        file_menu.addAction(self.open_act)

        self.open_mesh_act = QtGui.QAction("Open &Mesh...", self)
        self.open_mesh_act.triggered.connect(self._open_mesh_dialog)
        file_menu.addAction(self.open_mesh_act)

        file_menu.addSeparator()
        self.save_act = QtGui.QAction("&Save Project", self)
        self.save_act.setShortcut(QtGui.QKeySequence.Save)
        self.save_act.triggered.connect(self._save)
        file_menu.addAction(self.save_act)

        self.save_as_act = QtGui.QAction("Save Project &As...", self)
        self.save_as_act.setShortcut(QtGui.QKeySequence.SaveAs)
        self.save_as_act.triggered.connect(self._save_as)
        file_menu.addAction(self.save_as_act)

        self.export_menu = file_menu.addMenu("&Export")
        for fmt in ExportFormat:
            act = QtGui.QAction(f"{fmt.value} (*.{fmt.extension})...", self)
            act.triggered.connect(lambda _checked=False, f=fmt: self._export(f))
            self.export_menu.addAction(act)

        file_menu.addSeparator()
        self.close_act = QtGui.QAction("&Close Project", self)
        self.close_act.triggered.connect(lambda _checked=False: self.close_project())
        file_menu.addAction(self.close_act)

        exit_act = QtGui.QAction("E&xit", self)
        exit_act.triggered.connect(self.close)
        file_menu.addAction(exit_act)

    def _wire_session(self):
        s = self.session
        s.projectChanged.connect(self._on_project_changed)
        s.sceneIndexChanged.connect(self._on_scene_index_changed)
        s.stateChanged.connect(lambda _state: self._sync_actions())
        s.loadFailed.connect(lambda msg: self._warn("Load Project", msg))
        s.assetFailed.connect(lambda msg: self._warn("Open Mesh", msg))
        s.projectSaved.connect(lambda path: self.statusBar().showMessage(f"Saved {path}", 5000))
        s.exportFinished.connect(lambda path: self.statusBar().showMessage(f"Exported {path}", 8000))
        s.exportFailed.connect(lambda msg: self._warn("Export", msg))

        self.layers.visibilityToggled.connect(lambda name, v: s.update_layer(name, visible=v))
        self.layers.renameRequested.connect(lambda old, new: s.update_layer(old, name=new))
        self.layers.hoverEntered.connect(s.highlight_layer)
        self.layers.hoverLeft.connect(s.unhighlight_layer)
        s.layerUpdated.connect(lambda _name, _changes: self.scene_view.refresh())

    # ──────────────────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────────────────
    def open_project(self, path: str, mesh: Optional[str] = None) -> None:
        self.statusBar().showMessage(f"Loading {path}…")
        self.session.load_project(path, mesh)

    def close_project(self) -> bool:
        """Close the project unless the user keeps unsaved edits. Returns True if closed."""
        if not self._confirm_discard("Close the project anyway?"):
            return False
        self.session.close()
        return True

    def open_mesh(self, path: str) -> None:
        self.statusBar().showMessage(f"Loading mesh {path}…")
        self.session.load_asset(path)

    # ──────────────────────────────────────────────────────────────────────────
    # Session → UI
    # ──────────────────────────────────────────────────────────────────────────
    def _on_project_changed(self, project) -> None:
        self.layers.set_root(project.root if project is not None else None)
        self._sync_actions()

    def _on_scene_index_changed(self, index) -> None:
        root = self.session.asset_root if index is not None else None
        path = self.session.asset_path
        self.scene_view.set_asset(root, str(path) if path else "")
        project = self.session.project
        if project is not None:
            # Renderable availability changed for every row
            self.layers.set_root(project.root, force=True)
        if index is not None:
            self.statusBar().showMessage(f"Mesh ready: {len(index)} objects", 5000)

    def _sync_actions(self) -> None:
        state = self.session.state
        has_project = self.session.project is not None
        self.save_act.setEnabled(has_project)
        self.save_as_act.setEnabled(has_project)
        self.close_act.setEnabled(state != SessionState.EMPTY)
        self.export_menu.setEnabled(has_project and state != SessionState.EXPORTING)
        title = APP_NAME
        if self.session.project_path is not None:
            title = f"{self.session.project_path.name} — {APP_NAME}"
        self.setWindowTitle(title)
        if state == SessionState.EXPORTING:
            self.statusBar().showMessage("Exporting…")

    # ──────────────────────────────────────────────────────────────────────────
    # Dialogs
    # ──────────────────────────────────────────────────────────────────────────
    def _open_dialog(self):
        patterns = " ".join(f"*{e}" for e in PROJECT_EXTS)
        path, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Open Quill project", self.settings.get("paths/last_project_dir"),
            f"Quill Project ({patterns})"
        )
        if not path:
            return
        self.settings.set("paths/last_project_dir", QtCore.QFileInfo(path).absolutePath())
        self.open_project(path)

    def _open_mesh_dialog(self):
        patterns = " ".join(f"*{e}" for e in MESH_EXTS)
        path, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Open mesh", self.settings.get("paths/last_mesh_dir"),
            f"Meshes ({patterns})"
        )
        if not path:
            return
        self.settings.set("paths/last_mesh_dir", QtCore.QFileInfo(path).absolutePath())
        self.open_mesh(path)

    def _save(self):
        if self.session.project_path is None:
            self._save_as()
            return
        self._do_save(None)

    def _save_as(self):
        start = str(self.session.project_path or self.settings.get("paths/last_project_dir"))
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Save Quill project", start, "Quill Project (*.json)")
        if not path:
            return
        self._do_save(path)

    def _do_save(self, path: Optional[str]):
        try:
            written = self.session.save_project(path)
        except SaveError as ex:
            self._warn("Save Project", str(ex))
            return
        self.settings.set("paths/last_project_dir", str(written.parent))
        self._sync_actions()

    def _export(self, fmt: ExportFormat):
        start_dir = self.settings.get("paths/last_export_dir")
        stem = self.session.project_path.parent.name if self.session.project_path else "export"
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, f"Export {fmt.value}", os.path.join(start_dir, f"{stem}.{fmt.extension}"),
            f"{fmt.value} (*.{fmt.extension})"
        )
        if not path:
            return
        self.settings.set("paths/last_export_dir", str(Path(path).parent))
        try:
            self.session.request_export(fmt, path)
        except ExportError as ex:
            self._warn("Export", str(ex))

    def _warn(self, title: str, message: str) -> None:
        self._log.warning("%s: %s", title, message)
        self.statusBar().showMessage(message, 8000)
        QtWidgets.QMessageBox.warning(self, title, message)

    # ──────────────────────────────────────────────────────────────────────────
    # Window state
    # ──────────────────────────────────────────────────────────────────────────
    def _restore_state(self):
        g = self.settings.get("ui/main_geometry")
        if isinstance(g, QtCore.QByteArray):
            self.restoreGeometry(g)

    def _confirm_discard(self, question: str) -> bool:
        if not self.session.dirty:
            return True
        answer = QtWidgets.QMessageBox.question(
            self, APP_NAME, f"The project has unsaved changes. {question}",
            QtWidgets.QMessageBox.Yes | QtWidgets.QMessageBox.No, QtWidgets.QMessageBox.No,
        )
        return answer == QtWidgets.QMessageBox.Yes

    def closeEvent(self, e: QtGui.QCloseEvent) -> None:
        if not self._confirm_discard("Quit anyway?"):
            e.ignore()
            return
        self.settings.set("ui/main_geometry", self.saveGeometry())
        return super().closeEvent(e)

    def dev_seed_from_config(self) -> None:
        """
        Dev auto-open controlled by app_config:
          - DEV_MODE: enable when True
          - DEV_STARTUP_PROJECT: absolute path to a project to open on startup ("" disables)
        """
        from app_config import DEV_MODE, DEV_STARTUP_PROJECT
        if not DEV_MODE:
            return
        proj = (DEV_STARTUP_PROJECT or "").strip()
        if proj and os.path.isabs(proj) and os.path.exists(proj):
            self.open_project(proj)
