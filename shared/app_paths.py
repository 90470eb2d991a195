"""
Filesystem locations shared by the StreamPulse runtime and its tools.
"""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "StreamPulse"


def _default_data_dir() -> Path:
    override = os.environ.get("STREAMPULSE_DATA_DIR")
    if override:
        return Path(override)
    roaming = os.environ.get("APPDATA")
    if roaming:
        return Path(roaming) / APP_NAME
    return Path.home() / "AppData" / "Roaming" / APP_NAME


APP_DATA_DIR = _default_data_dir()
FOLLOWS_FILE_NAME = "follows.json"
SETTINGS_FILE_NAME = "settings.json"
LOG_DIR = APP_DATA_DIR / "Logs"
