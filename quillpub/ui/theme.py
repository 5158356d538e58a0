# quillpub/ui/theme.py
from quillpub.qt import QtGui, QtWidgets

INDENT_PX = 16


class Theme:
    bg          = QtGui.QColor("#1f2124")
    panel       = QtGui.QColor("#26292e")
    panel_alt   = QtGui.QColor("#2c3036")
    stroke      = QtGui.QColor("#3a3f46")
    text        = QtGui.QColor("#d6d7d9")
    text_dim    = QtGui.QColor("#aab0b7")
    text_off    = QtGui.QColor("#6b7178")
    accent      = QtGui.QColor("#3fb6ff")
    icon_idle   = QtGui.QColor("#bfc5cc")
    icon_hover  = QtGui.QColor("#e3e6ea")
    icon_off    = QtGui.QColor("#5d636a")

    row_hover = QtGui.QColor("#2c3036")


def apply_fusion_theme(app: QtWidgets.QApplication) -> None:
    app.setStyle("Fusion")
    pal = QtGui.QPalette()
    pal.setColor(QtGui.QPalette.Window, Theme.bg)
    pal.setColor(QtGui.QPalette.Base, Theme.panel)
    pal.setColor(QtGui.QPalette.AlternateBase, Theme.panel_alt)
    pal.setColor(QtGui.QPalette.Text, Theme.text)
    pal.setColor(QtGui.QPalette.WindowText, Theme.text)
    pal.setColor(QtGui.QPalette.ButtonText, Theme.text)
    pal.setColor(QtGui.QPalette.Button, Theme.panel)
    pal.setColor(QtGui.QPalette.ToolTipBase, Theme.panel)
    pal.setColor(QtGui.QPalette.ToolTipText, Theme.text)
    pal.setColor(QtGui.QPalette.Highlight, Theme.accent)
    pal.setColor(QtGui.QPalette.HighlightedText, QtGui.QColor("#0c0d0e"))
    pal.setColor(QtGui.QPalette.ColorGroup.Disabled, QtGui.QPalette.ColorRole.Text, Theme.text_off)
    pal.setColor(QtGui.QPalette.ColorGroup.Disabled, QtGui.QPalette.ColorRole.ButtonText, Theme.text_off)
    app.setPalette(pal)
