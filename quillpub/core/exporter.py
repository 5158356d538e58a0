"""
Bridge to the external exporter binary.

The exporter reads a JSON settings document (input project, output file,
format and its own option tree) and writes the converted file. Everything in
that option tree belongs to the exporter; this module only fills in the tool's
defaults, runs it and reports the outcome.
"""
from __future__ import annotations
import json
import subprocess
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from app_config import CACHE_DIR, DEFAULT_EXPORTER_PATH
from quillpub.core.logging import get_logger

log = get_logger(__name__)

PathLike = Union[str, Path]
ExporterCommand = Union[PathLike, Sequence[PathLike]]


class ExportError(Exception):
    """Exporter missing, misconfigured, cancelled or reported a failure."""


class ExportFormat(str, Enum):
    FBX = "FBX"
    ALEMBIC = "Alembic"
    USD = "USD"
    USDZ = "USDZ"
    IMM = "IMM"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        if isinstance(value, cls):
            return value
        for fmt in cls:
            if fmt.value.lower() == str(value).strip().lower():
                return fmt
        raise ExportError(f"Unsupported export format: {value!r}")


_EXTENSIONS = {
    ExportFormat.FBX: "fbx",
    ExportFormat.ALEMBIC: "abc",
    ExportFormat.USD: "usd",
    ExportFormat.USDZ: "usdz",
    ExportFormat.IMM: "imm",
}


def _stamp() -> int:
    return int(time.time() * 1000)


def export_settings(project_path: PathLike, fmt: ExportFormat, output_path: PathLike) -> Dict[str, Any]:
    """Settings document with the exporter's stock options."""
    return {
        "Exporter": fmt.value,
        "InputFile": str(project_path),
        "ExtraInputs": [],
        "OutputFile": str(output_path),
        "ExportOptions": {
            "AbortOnErrors": False,
            "ExportHidden": False,
            "ExcludeList": [],
            "GroupExtraInputs": False,
            "Optimize": {
                "Optimize": False,
                "OptimizeKeepOldLayers": False,
                "OptimizeSimplifyThreshold": 0.02,
                "OptimizeIncludeList": [],
            },
            "Asset": {
                "UseFullName": False,
                "ExportMeshes": True,
                "ExportCurves": False,
                "BakeTransforms": True,
                "ExportUVs": True,
                "ExportAnimation": True,
                "MaterialPerLayer": False,
                "ColorSpace": "Linear",
                "ExportExtraAttrs": False,
                "SeparateAlphaChannel": False,
                "FixFlip": False,
                "Scale": 1.0,
            },
            "IMM": {
                "CanGrab": False,
                "ExportToSpaces": False,
                "ExportOpusAudio": True,
                "OpusBitRate": 96000,
            },
            "Import": {
                "RemoveCorruptStrokes": True,
                "TryFixCorruptStrokes": True,
                "RemoveDuplicates": False,
            },
        },
    }


def temp_output_path(fmt: ExportFormat, cache_dir: PathLike = CACHE_DIR) -> Path:
    return Path(cache_dir) / f"temp_{_stamp()}.{fmt.extension}"


def write_settings(settings: Dict[str, Any], cache_dir: PathLike = CACHE_DIR) -> Path:
    cache = Path(cache_dir)
    path = cache / f"temp_export_settings_{_stamp()}.json"
    try:
        cache.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
    except OSError as ex:
        raise ExportError(f"Cannot write exporter settings to {path}: {ex.strerror or ex}") from ex
    return path


def _command(exporter: ExporterCommand, settings_path: Path) -> List[str]:
    if isinstance(exporter, (str, Path)):
        return [str(exporter), str(settings_path)]
    return [str(part) for part in exporter] + [str(settings_path)]


def run_exporter(settings_path: PathLike, exporter: ExporterCommand = DEFAULT_EXPORTER_PATH) -> str:
    """Run the exporter on a settings file; returns its stdout."""
    command = _command(exporter, Path(settings_path))
    log.info("Executing: %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except FileNotFoundError as ex:
        raise ExportError(f"Exporter not found: {command[0]}") from ex
    except OSError as ex:
        raise ExportError(f"Exporter could not be started: {ex.strerror or ex}") from ex
    if result.stdout:
        log.debug("Exporter stdout:\n%s", result.stdout)
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip().splitlines()
        tail = detail[-1] if detail else "no output"
        log.error("Exporter exited with %d: %s", result.returncode, tail)
        raise ExportError(f"Exporter failed (exit code {result.returncode}): {tail}")
    return result.stdout


def export_project(
    project_path: PathLike,
    fmt: Union[str, ExportFormat],
    output_path: Optional[PathLike] = None,
    exporter: ExporterCommand = DEFAULT_EXPORTER_PATH,
    temp: bool = False,
    cache_dir: PathLike = CACHE_DIR,
) -> Path:
    """
    Convert the project at ``project_path`` to ``fmt``.

    With ``temp`` the output lands in the cache directory under a timestamped
    name; otherwise ``output_path`` is required (no path means the user
    cancelled the save dialog).
    """
    fmt = ExportFormat.parse(fmt)
    if temp:
        output = temp_output_path(fmt, cache_dir)
    elif output_path:
        output = Path(output_path)
    else:
        raise ExportError("Export cancelled by user")

    settings_path = write_settings(export_settings(project_path, fmt, output), cache_dir)
    try:
        run_exporter(settings_path, exporter)
    finally:
        settings_path.unlink(missing_ok=True)
    if not output.exists():
        raise ExportError(f"Exporter finished but produced no file at {output}")
    log.info("Export completed successfully: %s", output)
    return output
