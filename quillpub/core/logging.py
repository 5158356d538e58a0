from __future__ import annotations
import logging, logging.handlers, os
from pathlib import Path
from app_config import APP_NAME, LOG_DIR, LOG_LEVEL_ENV, PACKAGE_NAME, version_string

# Third-party loggers that are chatty at INFO/DEBUG (trimesh logs every loader step)
QUIET_LOGGERS = ("trimesh", "PIL", "PySide6")

def _env_level() -> int | None:
    name = (os.getenv(LOG_LEVEL_ENV) or "").strip().upper()
    level = logging.getLevelName(name) if name else None
    return level if isinstance(level, int) else None

def setup_logging(level: int | None = None, log_dir: Path = LOG_DIR) -> logging.Logger:
    """
    Configure the root logger: rotating file in ``log_dir`` plus console.
    ``level`` defaults to $QUILLPUB_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = _env_level() or logging.INFO
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{PACKAGE_NAME}.log"

    logger = logging.getLogger()  # root
    logger.setLevel(level)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    fh = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
    )
    fh.setFormatter(fmt)
    fh.setLevel(level)
    logger.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch.setLevel(level)
    logger.addHandler(ch)

    # Only let dependency noise through when we are debugging ourselves
    quiet = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    logger.info("%s %s logging to %s", APP_NAME, version_string(), log_file)
    return logger

def get_logger(name: str | None = None) -> logging.Logger:
    """
    Usage: from quillpub.core.logging import get_logger; log = get_logger(__name__)
    Module names already sit under the ``quillpub`` package logger.
    """
    return logging.getLogger(name or PACKAGE_NAME)
