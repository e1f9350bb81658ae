"""Logging setup shared by the web UI and the terminal editor."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from folia.workspace import logs_dir

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(root: Path | None = None, to_file: bool = False, stream=None, console: bool = True) -> None:
    """Configure the root logger once per process.

    Level comes from FOLIA_LOG_LEVEL (default INFO). With ``to_file`` a daily
    log file is written under <workspace>/logs/. The terminal editor turns
    ``console`` off so records do not draw over the screen.
    """
    level_name = os.environ.get("FOLIA_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(stream or sys.stderr))
    if to_file:
        log_dir = logs_dir(root)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"folia_{datetime.now().strftime('%Y%m%d')}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
