# quillpub/core/config.py
from __future__ import annotations
from typing import Any
from PySide6.QtCore import QSettings
from app_config import apply_qsettings_org, DEFAULTS

class Settings:
    """
    Thin wrapper over QSettings with defaults and simple get/set.
    Keys are "group/name" strings; unset keys fall back to app_config.DEFAULTS.
    """
    def __init__(self):
        apply_qsettings_org()
        self._qs = QSettings()
        self._defaults = {
            f"{group}/{k}": v
            for group, values in DEFAULTS.items()
            for k, v in values.items()
        }

    def get(self, key: str, default: Any = None) -> Any:
        if default is None:
            default = self._defaults.get(key)
        val = self._qs.value(key, default)
        return val if val is not None else default

    def get_bool(self, key: str, default: bool = False) -> bool:
        val = self.get(key, default)
        # Native backends hand booleans back as "true"/"false" strings
        if isinstance(val, str):
            return val.strip().lower() in ("1", "true", "yes", "on")
        return bool(val)

    def set(self, key: str, value: Any) -> None:
        self._qs.setValue(key, value)
        self._qs.sync()

    def begin_group(self, group: str): self._qs.beginGroup(group)
    def end_group(self): self._qs.endGroup()

def get_settings() -> Settings:
    return Settings()
