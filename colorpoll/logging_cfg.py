"""
Root logger setup for the colorpoll service.

The app lifespan calls setup_logging() once at startup when nothing else
(uvicorn --log-config, a test harness) has configured logging already.
"""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def _level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def setup_logging(level: str | int = "INFO", log_dir: str | None = None) -> Path | None:
    """Replace root handlers with a console handler, plus a per-run file under
    log_dir when given. Returns the log file path, or None without log_dir.
    """
    root = logging.getLogger()
    for h in root.handlers[:]:
        root.removeHandler(h)

    logging.basicConfig(level=_level(level), format=LOG_FORMAT, datefmt=DATE_FORMAT)
    if not log_dir:
        return None

    out_dir = Path(log_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    log_path = out_dir / f"colorpoll_{datetime.now():%Y%m%d_%H%M%S}.log"
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(fh)
    return log_path
