"""
Ambient plumbing: logging setup, settings defaults and the command line.
"""
import logging

import pytest

from app_config import DEFAULTS, LOG_LEVEL_ENV
from quillpub.qt import QtCore
from quillpub.core.config import Settings
from quillpub.core.logging import QUIET_LOGGERS, get_logger, setup_logging


@pytest.fixture
def root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    quiet = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    for name, lvl in quiet.items():
        logging.getLogger(name).setLevel(lvl)


class TestLogging:

    def test_file_and_console_handlers(self, root_logger, tmp_path):
        setup_logging(logging.INFO, log_dir=tmp_path / "logs")
        kinds = {type(h).__name__ for h in root_logger.handlers}
        assert kinds == {"RotatingFileHandler", "StreamHandler"}
        get_logger("quillpub.test").info("hello from the test")
        for h in root_logger.handlers:
            h.flush()
        text = (tmp_path / "logs" / "quillpub.log").read_text(encoding="utf-8")
        assert "hello from the test" in text

    def test_reinit_does_not_stack_handlers(self, root_logger, tmp_path):
        setup_logging(logging.INFO, log_dir=tmp_path)
        setup_logging(logging.INFO, log_dir=tmp_path)
        assert len(root_logger.handlers) == 2

    def test_dependency_loggers_quietened(self, root_logger, tmp_path):
        setup_logging(logging.INFO, log_dir=tmp_path)
        assert logging.getLogger("trimesh").level == logging.WARNING
        setup_logging(logging.DEBUG, log_dir=tmp_path)
        assert logging.getLogger("trimesh").level == logging.DEBUG

    def test_level_from_environment(self, root_logger, tmp_path, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "warning")
        setup_logging(log_dir=tmp_path)
        assert root_logger.level == logging.WARNING

    def test_default_logger_name(self):
        assert get_logger().name == "quillpub"


class TestSettings:

    @pytest.fixture
    def settings(self, qapp, tmp_path):
        QtCore.QSettings.setPath(QtCore.QSettings.NativeFormat, QtCore.QSettings.UserScope, str(tmp_path))
        return Settings()

    def test_defaults(self, settings):
        assert settings.get("paths/last_mesh_dir") == DEFAULTS["paths"]["last_mesh_dir"]
        assert settings.get("nope/missing", "fallback") == "fallback"

    def test_set_and_get(self, settings):
        settings.set("paths/last_export_dir", "/exports")
        assert settings.get("paths/last_export_dir") == "/exports"

    @pytest.mark.parametrize("stored,expected", [("false", False), ("true", True), (True, True)])
    def test_get_bool(self, settings, stored, expected):
        settings.set("viewer/expand_on_load", stored)
        assert settings.get_bool("viewer/expand_on_load") is expected


class TestCommandLine:

    def test_project_and_mesh(self):
        from main import parse_args
        args = parse_args(["Quill.json", "--mesh", "forest.glb", "--debug"])
        assert (args.project, args.mesh, args.debug) == ("Quill.json", "forest.glb", True)

    def test_no_arguments(self):
        from main import parse_args
        args = parse_args([])
        assert args.project is None and args.mesh is None and not args.debug
