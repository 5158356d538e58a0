# quillpub/qt.py
import PySide6
from PySide6 import QtCore, QtGui, QtWidgets


def qt_versions() -> str:
    """Binding and runtime versions, for the startup log."""
    return f"PySide6 {PySide6.__version__} / Qt {QtCore.qVersion()}"


__all__ = ["QtCore", "QtGui", "QtWidgets", "qt_versions"]
