# phasetrack - logging setup
from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_LEVEL_ENV_VAR = "PHASETRACK_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARK = "_phasetrack_handler"


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> logging.Logger:
    """Configure the ``phasetrack`` logger.

    Level comes from ``level``, then $PHASETRACK_LOG_LEVEL, then WARNING.
    Calling it again replaces the handlers installed by a previous call.
    """
    level_name = (level or os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING")).upper()
    numeric = getattr(logging, level_name, logging.WARNING)

    logger = logging.getLogger("phasetrack")
    logger.setLevel(numeric)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    # Console goes to stderr so --json output on stdout stays parseable
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(numeric)
    setattr(console, _HANDLER_MARK, True)
    logger.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # rotate at 5MB, keep 7 backups
        fh = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=7, encoding="utf-8")
        fh.setFormatter(formatter)
        fh.setLevel(numeric)
        setattr(fh, _HANDLER_MARK, True)
        logger.addHandler(fh)

    logger.debug("Logging initialized at %s%s", level_name, f"; file: {log_file}" if log_file else "")
    return logger
