# steel_schedule – logging setup
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from steel_schedule.config.settings import settings

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(level_name: Optional[str] = None, log_file: Optional[str] = None) -> Optional[Path]:
    """
    Configure the root logger once per process.

    Level defaults to STEEL_SCHEDULE_LOG_LEVEL (INFO). Console output goes to
    stderr so JSON printed on stdout stays clean; a rotating file handler is
    added when a log file is configured. Returns the log file path, if any.
    """
    global _configured

    level_name = (level_name or settings.LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_file = log_file if log_file is not None else settings.LOG_FILE

    root = logging.getLogger()
    root.setLevel(level)

    if _configured:
        return Path(log_file) if log_file else None

    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(logging.Formatter(FORMAT, DATEFMT))
    ch.setLevel(level)
    root.addHandler(ch)

    logfile = None
    if log_file:
        logfile = Path(log_file).expanduser()
        logfile.parent.mkdir(parents=True, exist_ok=True)
        # rotate at 5MB, keep 7 backups
        fh = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=7, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FORMAT, DATEFMT))
        fh.setLevel(level)
        root.addHandler(fh)

    _configured = True
    logging.getLogger(__name__).debug("Logging initialized at %s; file: %s", level_name, logfile)
    return logfile
