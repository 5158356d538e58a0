"""
Main window wiring: session signals drive the layer list and the mesh outline,
and row actions come back to the session as edits.
"""
import pytest

from quillpub.qt import QtCore, QtWidgets
from quillpub.core import session as session_module
from quillpub.core.session import ProjectSession
from quillpub.ui.main_window import MainWindow


@pytest.fixture
def window(qtbot, tmp_path, monkeypatch, fake_exporter):
    # Keep QSettings and message boxes away from the real user profile
    QtCore.QSettings.setPath(QtCore.QSettings.NativeFormat, QtCore.QSettings.UserScope, str(tmp_path / "settings"))
    warnings = []
    monkeypatch.setattr(QtWidgets.QMessageBox, "warning", lambda _parent, title, msg: warnings.append((title, msg)))
    monkeypatch.setattr(QtWidgets.QMessageBox, "question", lambda *_args: QtWidgets.QMessageBox.Yes)
    session = ProjectSession(exporter=fake_exporter, threaded=False, cache_dir=tmp_path / "cache")
    win = MainWindow(session=session)
    win.warnings = warnings
    qtbot.addWidget(win)
    return win


class TestMainWindow:

    def test_starts_empty(self, window):
        assert window.layers.rows() == []
        assert not window.save_act.isEnabled()
        assert not window.export_menu.isEnabled()

    def test_open_project_fills_layers(self, window, sample_project_file):
        window.open_project(str(sample_project_file))
        assert [r.node.name for r in window.layers.rows()] == ["Root", "A", "B", "Cam", "Empty"]
        assert window.save_act.isEnabled()
        assert window.windowTitle().startswith("Quill.json")

    def test_eye_click_edits_session(self, window, sample_project_file):
        window.open_project(str(sample_project_file))
        window.layers.row_for("A").eye.click()
        assert window.session.dirty
        assert window.session.project.root.children[0].visible is True
        assert window.layers.row_for("B").eye.isEnabled()

    def test_rename_goes_through_session(self, window, sample_project_file):
        window.open_project(str(sample_project_file))
        window.layers.renameRequested.emit("Cam", "Camera 1")
        assert window.layers.row_for("Camera 1") is not None
        assert window.session.project.root.children[1].name == "Camera 1"

    def test_mesh_outline(self, window, sample_project_file, monkeypatch, scene_root):
        monkeypatch.setattr(session_module, "load_asset", lambda _path: scene_root)
        window.open_project(str(sample_project_file), mesh="Forest.glb")
        assert window.scene_view.tree.topLevelItemCount() == 1
        assert window.scene_view.summary.text().startswith("5 objects")
        assert window.layers.row_for("A").has_renderable

    def test_load_failure_is_reported(self, window, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")
        window.open_project(str(bad))
        assert window.warnings and window.warnings[0][0] == "Load Project"
        assert window.layers.rows() == []

    def test_close_project_asks_before_dropping_edits(self, window, sample_project_file, monkeypatch):
        asked = []
        answer = [QtWidgets.QMessageBox.No]
        monkeypatch.setattr(QtWidgets.QMessageBox, "question", lambda *args: asked.append(args) or answer[0])
        window.open_project(str(sample_project_file))
        window.session.update_layer("Cam", visible=False)

        window.close_act.trigger()
        assert len(asked) == 1
        assert window.session.project is not None

        answer[0] = QtWidgets.QMessageBox.Yes
        window.close_act.trigger()
        assert window.session.project is None
        assert window.layers.rows() == []

    def test_close_clean_project_without_asking(self, window, sample_project_file, monkeypatch):
        monkeypatch.setattr(QtWidgets.QMessageBox, "question", lambda *args: pytest.fail("unexpected prompt"))
        window.open_project(str(sample_project_file))
        assert window.close_project()
        assert window.session.project is None
