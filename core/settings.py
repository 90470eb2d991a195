"""
JSON-backed configuration for the StreamPulse runtime.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.live_checker import (
    DEFAULT_CHECK_INTERVAL_MINUTES,
    MAX_CHECK_INTERVAL_MINUTES,
    MIN_CHECK_INTERVAL_MINUTES,
)
from shared.app_paths import APP_DATA_DIR, SETTINGS_FILE_NAME
from streampulse_core.streampulse_core import logger as app_logger

_LOGGER = app_logger.get_logger()

DEFAULT_SETTINGS_PATH = APP_DATA_DIR / SETTINGS_FILE_NAME

_FIELD_KEYS = {
    "auto_start": "autoStart",
    "minimize_to_tray": "minimizeToTray",
    "check_interval_minutes": "checkIntervalMinutes",
    "showcase_mode": "showcaseMode",
}


@dataclass(eq=True)
class AppSettings:
    auto_start: bool = False
    minimize_to_tray: bool = False
    check_interval_minutes: int = DEFAULT_CHECK_INTERVAL_MINUTES
    showcase_mode: bool = False

    def to_document(self) -> Dict[str, Any]:
        return {_FIELD_KEYS[name]: value for name, value in asdict(self).items()}


class SettingsManager:
    """Loads persisted settings from disk and clamps invalid data."""

    def __init__(self, path: Path = DEFAULT_SETTINGS_PATH) -> None:
        self.path = Path(path)

    def read_settings(self) -> AppSettings:
        raw = self._read_document()
        if raw is None:
            return AppSettings()

        return AppSettings(
            auto_start=self._read_bool(raw, "autoStart", False),
            minimize_to_tray=self._read_bool(raw, "minimizeToTray", False),
            check_interval_minutes=self._read_interval(raw),
            showcase_mode=self._read_bool(raw, "showcaseMode", False),
        )

    def write_settings(self, settings: AppSettings) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(settings.to_document(), indent=2), encoding="utf-8")
        except OSError as exc:
            _LOGGER.error("Failed to save settings to {}: {}", self.path, exc)
            return False
        _LOGGER.info(
            "Settings saved (autoStart={}, minimizeToTray={}, interval={} min, showcaseMode={})",
            settings.auto_start,
            settings.minimize_to_tray,
            settings.check_interval_minutes,
            settings.showcase_mode,
        )
        return True

    def _read_document(self) -> Optional[Dict[str, Any]]:
        try:
            contents = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            _LOGGER.warning("Unable to read settings {}: {}. Using defaults.", self.path, exc)
            return None

        if not contents.strip():
            return None
        try:
            raw = json.loads(contents)
        except json.JSONDecodeError as exc:
            _LOGGER.warning("Settings file {} is not valid JSON ({}). Using defaults.", self.path, exc)
            return None
        if not isinstance(raw, dict):
            _LOGGER.warning("Settings file {} must contain a JSON object. Using defaults.", self.path)
            return None
        return {str(key).casefold(): value for key, value in raw.items()}

    def _read_bool(self, raw: Dict[str, Any], name: str, default: bool) -> bool:
        value = raw.get(name.casefold())
        if value is None:
            return default
        if not isinstance(value, bool):
            _LOGGER.warning("Setting {} has unexpected type {}.", name, type(value).__name__)
            return default
        return value

    def _read_interval(self, raw: Dict[str, Any]) -> int:
        value = raw.get("checkintervalminutes")
        if value is None:
            return DEFAULT_CHECK_INTERVAL_MINUTES
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            _LOGGER.warning("Setting checkIntervalMinutes has unexpected value {!r}.", value)
            return DEFAULT_CHECK_INTERVAL_MINUTES
        interval = int(value)
        if interval < MIN_CHECK_INTERVAL_MINUTES or interval > MAX_CHECK_INTERVAL_MINUTES:
            _LOGGER.warning(
                "Invalid check interval {} found in settings. Clamping to safe bounds.",
                interval,
            )
        return max(MIN_CHECK_INTERVAL_MINUTES, min(MAX_CHECK_INTERVAL_MINUTES, interval))
