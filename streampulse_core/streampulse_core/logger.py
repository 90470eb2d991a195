"""
Loguru sinks for StreamPulse.

Records come from two threads: the Qt GUI thread and the live-checker loop
thread. Both sinks are enqueued and the thread name is part of every line.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from shared.app_paths import LOG_DIR

DEFAULT_LOG_PATH = LOG_DIR / "streampulse.log"
LOG_LEVEL_ENV = "STREAMPULSE_LOG_LEVEL"
LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | "
    "{name}:{function}:{line} - {message}"
)

_configured = False


def configure(log_path: Optional[Path] = None, *, console_level: Optional[str] = None) -> None:
    """
    Install the console and rotating file sinks once per process.

    ``console_level`` defaults to ``$STREAMPULSE_LOG_LEVEL`` or INFO; the file
    sink always records DEBUG.
    """
    global _configured
    if _configured:
        return
    log_file = Path(log_path) if log_path else DEFAULT_LOG_PATH
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = (console_level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()

    _logger.remove()
    # pythonw.exe has no stderr.
    if sys.stderr is not None:
        _logger.add(sys.stderr, level=level, format=LOG_FORMAT, enqueue=True)
    _logger.add(
        log_file,
        level="DEBUG",
        format=LOG_FORMAT,
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    _configured = True
    _logger.debug("Logging to {} (console level {})", log_file, level)


def get_logger():
    """Return the shared logger, configuring it on first use."""
    configure()
    return _logger
