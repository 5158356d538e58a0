# main.py
from __future__ import annotations
import argparse
import logging
import sys
from quillpub.qt import QtWidgets, qt_versions
from app_config import CLI_EXAMPLES, CLI_NAME, TAGLINE, ensure_app_dirs, apply_qsettings_org, banner
from quillpub.core.logging import setup_logging
from quillpub.ui.main_window import MainWindow
from quillpub.ui.theme import apply_fusion_theme


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=CLI_NAME,
        description=TAGLINE,
        epilog=f"examples:\n{CLI_EXAMPLES}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("project", nargs="?", help="Quill project (.json) to open")
    parser.add_argument("--mesh", help="mesh file to show next to the project")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser.parse_args(argv)


def main() -> int:
    args = parse_args(sys.argv[1:])
    ensure_app_dirs()
    apply_qsettings_org()
    logger = setup_logging(level=logging.DEBUG if args.debug else logging.INFO)

    app = QtWidgets.QApplication(sys.argv[:1])
    logger.info(banner())
    logger.info(qt_versions())

    apply_fusion_theme(app)
    mw = MainWindow()
    mw.show()

    if args.project:
        mw.open_project(args.project, args.mesh)
    elif args.mesh:
        mw.open_mesh(args.mesh)
    else:
        mw.dev_seed_from_config()

    return app.exec()

if __name__ == "__main__":
    raise SystemExit(main())
