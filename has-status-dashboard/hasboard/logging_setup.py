from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from hasboard.config_utils import env_optional_str, env_str

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"

# Streamlit re-executes page scripts on every interaction; handlers are
# attached to the root logger only once per process.
_configured = False


def setup_logging(level_name: Optional[str] = None, log_file: Optional[str] = None) -> None:
    global _configured
    if _configured:
        return

    level_name = (level_name or env_str("HASBOARD_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_file = log_file or env_optional_str("HASBOARD_LOG_FILE")

    root = logging.getLogger()
    root.setLevel(level)

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(logging.Formatter(FORMAT, DATEFMT))
    ch.setLevel(level)
    root.addHandler(ch)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        # rotate at 5MB, keep 7 backups
        fh = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=7, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FORMAT, DATEFMT))
        fh.setLevel(level)
        root.addHandler(fh)

    # chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).info("Logging initialized at %s; file: %s", level_name, log_file or "-")
