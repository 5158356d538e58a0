"""
Application configuration settings
Do not modify these values once your application has been distributed to users.
This file centralises brand, paths, formats, and runtime defaults.
"""

from __future__ import annotations
import os
import sys
import platform
from pathlib import Path

DEV_MODE = False
DEV_STARTUP_PROJECT = ""

# ───────────────────────────────────────────────────────────────────────────────
# Core identity
# ───────────────────────────────────────────────────────────────────────────────
APP_NAME = "Quill Publisher"
APP_VERSION = "0.1.0"
COMPANY_NAME = "Quill Publisher Contributors"

APP_ID = "org.quillpub.publisher"

# Organization identifiers (for QSettings, folders, About box)
ORG_NAME = "Quill Publisher"
ORG_DIRNAME = "QuillPublisher"   # filesystem safe (no spaces)
ORG_DOMAIN = "quillpub.org"

PACKAGE_NAME = "quillpub"        # Python import package

TAGLINE = "Browse, tidy and publish layered VR paintings."

BUILD_COMMIT = os.getenv("QUILLPUB_BUILD_COMMIT", "")[:7]
BUILD_CHANNEL = os.getenv("QUILLPUB_BUILD_CHANNEL", "dev")  # dev/beta/stable


def version_string() -> str:
    """Human-friendly version string for About dialogs and logs."""
    meta = f"+{BUILD_COMMIT}" if BUILD_COMMIT else ""
    chan = f" ({BUILD_CHANNEL})" if BUILD_CHANNEL and BUILD_CHANNEL != "stable" else ""
    return f"{APP_VERSION}{meta}{chan}"


# ───────────────────────────────────────────────────────────────────────────────
# Supported formats
# ───────────────────────────────────────────────────────────────────────────────
PROJECT_EXTS = (".json",)
# Order matters: sibling mesh discovery tries these in turn
MESH_EXTS = (".glb", ".gltf", ".obj", ".dae", ".ply", ".stl", ".off")

# External exporter binary (converts a project to FBX/Alembic/USD/USDZ/IMM)
EXPORTER_ENV = "QUILLPUB_EXPORTER"
LOG_LEVEL_ENV = "QUILLPUB_LOG_LEVEL"
EXPORTER_BINARY = "QuillExporter.exe" if platform.system() == "Windows" else "QuillExporter"


# ───────────────────────────────────────────────────────────────────────────────
# Runtime helpers
# ───────────────────────────────────────────────────────────────────────────────
def resource_path(*parts: str) -> Path:
    """
    Path to bundled/static files. Inside a frozen bundle, resolves under sys._MEIPASS;
    otherwise relative to this file's directory.
    """
    base = Path(getattr(sys, "_MEIPASS", Path(__file__).resolve().parent))
    return base.joinpath(*parts)


DEFAULT_EXPORTER_PATH = Path(os.getenv(EXPORTER_ENV) or resource_path("binaries", EXPORTER_BINARY))


# ───────────────────────────────────────────────────────────────────────────────
# User data locations (settings, logs, cache)
# ───────────────────────────────────────────────────────────────────────────────
def _appdata_base() -> Path:
    system = platform.system()
    if system == "Windows":
        base = os.getenv("APPDATA") or (Path.home() / "AppData" / "Roaming")
    elif system == "Darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return Path(base) / ORG_DIRNAME


APPDATA_DIR = _appdata_base()
LOG_DIR = APPDATA_DIR / "logs"
CACHE_DIR = APPDATA_DIR / "cache"


def ensure_app_dirs() -> None:
    """Create required folders if they don't exist."""
    for p in (APPDATA_DIR, LOG_DIR, CACHE_DIR):
        p.mkdir(parents=True, exist_ok=True)


def apply_qsettings_org() -> None:
    """
    Apply org/app metadata for QSettings. Call early in startup,
    before constructing your first QSettings instance.
    """
    try:
        from PySide6.QtCore import QCoreApplication
        QCoreApplication.setOrganizationName(ORG_NAME)
        QCoreApplication.setOrganizationDomain(ORG_DOMAIN)
        QCoreApplication.setApplicationName(APP_NAME)
    except ImportError:
        # Safe to import this module in non-Qt contexts (e.g., CLI tools)
        pass


# ───────────────────────────────────────────────────────────────────────────────
# CLI hints
# ───────────────────────────────────────────────────────────────────────────────
CLI_NAME = "quillpub"
CLI_EXAMPLES = (
    'quillpub "C:/paintings/forest/Quill.json"\n'
    'quillpub "C:/paintings/forest/Quill.json" --mesh "C:/paintings/forest/forest.glb"\n'
)

# ───────────────────────────────────────────────────────────────────────────────
# Defaults (read by settings wrapper)
# ───────────────────────────────────────────────────────────────────────────────
DEFAULTS = {
    "paths": {
        "last_project_dir": str(Path.home()),
        "last_mesh_dir": str(Path.home()),
        "last_export_dir": str(Path.home()),
    },
    "export": {
        "exporter_path": str(DEFAULT_EXPORTER_PATH),
    },
    "viewer": {
        "expand_on_load": True,
    },
}


def banner() -> str:
    return (
        f"{APP_NAME} {version_string()}  •  {APP_ID}\n"
        f"Vendor: {COMPANY_NAME}\n"
        f"Data: {APPDATA_DIR}"
    )


if __name__ == "__main__":
    ensure_app_dirs()
    print(banner())
    print("Cache:   ", CACHE_DIR)
    print("Exporter:", DEFAULT_EXPORTER_PATH)
