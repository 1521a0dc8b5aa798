# src/config/logging_config.py

"""Per-run logging for the price tooling.

Each run (a scheduled history update, a price refresh, a summary) writes
``logs/run_YYYYMMDD_HHMMSS.log`` with every ``ai_price_compare.*`` record
at DEBUG.  Only warnings and errors reach stderr by default, leaving the
rich status console readable; ``PRICE_LOG_LEVEL`` raises or lowers that.
A daily job would otherwise pile up log files, so only the newest
``Settings.LOG_KEEP_RUNS`` are kept.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

ROOT_LOGGER_NAME = "ai_price_compare"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_RUN_LOG_GLOB = "run_*.log"


def _console_level() -> int:
    """Resolve the configured console level name, defaulting to WARNING."""
    level = logging.getLevelName(Settings.LOG_CONSOLE_LEVEL)
    return level if isinstance(level, int) else logging.WARNING


def _make_handler(
    handler: logging.Handler, level: int, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def prune_run_logs(logs_dir: Path, keep: int) -> list[Path]:
    """Delete all but the newest *keep* run logs; return what was removed.

    Run log names embed their timestamp, so name order is age order.
    """
    if keep < 1:
        return []
    run_logs = sorted(logs_dir.glob(_RUN_LOG_GLOB))
    stale = run_logs[:-keep]
    for path in stale:
        path.unlink(missing_ok=True)
    return stale


def setup_logging() -> Path:
    """Attach the run log file and the stderr console to the project logger.

    Safe to call more than once: handlers are only added the first time.

    Returns:
        The path of this run's log file.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    project_logger = logging.getLogger(ROOT_LOGGER_NAME)
    project_logger.setLevel(logging.DEBUG)
    if project_logger.handlers:
        return log_file

    project_logger.addHandler(_make_handler(
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.DEBUG,
        _FILE_FORMAT,
    ))
    project_logger.addHandler(_make_handler(
        logging.StreamHandler(sys.stderr),
        _console_level(),
        _CONSOLE_FORMAT,
    ))

    removed = prune_run_logs(logs_dir, Settings.LOG_KEEP_RUNS)
    project_logger.debug(
        "Run log %s opened (%d old run logs pruned)", log_file, len(removed),
    )
    return log_file
