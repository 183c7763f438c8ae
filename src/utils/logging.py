"""
Run logging for WooCommerce ingestion.

Every stage (PageFetcher, ProductExpander, MediaResolver, GraphLoader, ...)
logs through a Loguru logger bound to its component name, so one run's
console and log file read as a per-stage trace:

    2024-03-01 10:00:00 | WARNING  | PageFetcher | products (site: shop) page 2 failed: ...

Each call to setup_logging() starts a new ingest_<timestamp>.log file.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{extra[component]}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {extra[component]} | {message}"

LOG_FILE_PREFIX = "ingest"
LOG_ROTATION = "10 MB"
LOG_RETENTION = "30 days"

# Loguru's stderr sink is dropped at import; lines logged before
# setup_logging() (e.g. from tests) carry "-" as their component
logger.remove()
logger.configure(extra={"component": "-"})

# Handler ids added by the last setup_logging() call
_handler_ids: List[int] = []


def setup_logging(
    log_dir: Path,
    level: str = "INFO",
    log_format: Optional[str] = None,
    console: bool = True,
    file: bool = True,
) -> Path:
    """
    Route a run's log lines to stderr and/or a fresh log file.

    Calling it again replaces the sinks of the previous call, so a
    process that runs the pipeline twice gets one file per run.

    Args:
        log_dir: Directory for ingest_<timestamp>.log files; created if missing.
        level: Minimum level for both sinks.
        log_format: Console format; defaults to CONSOLE_FORMAT.
        console: Whether to log to stderr.
        file: Whether to log to the run's file.

    Returns:
        Path of the run's log file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_file = log_dir / f"{LOG_FILE_PREFIX}_{timestamp}.log"

    while _handler_ids:
        logger.remove(_handler_ids.pop())

    if console:
        _handler_ids.append(logger.add(
            sys.stderr,
            format=log_format or CONSOLE_FORMAT,
            level=level,
            colorize=True,
        ))
    if file:
        _handler_ids.append(logger.add(
            log_file,
            format=FILE_FORMAT,
            level=level,
            rotation=LOG_ROTATION,
            retention=LOG_RETENTION,
            compression="gz",
        ))

    get_logger("Logging").info(f"Run log: {log_file}")
    return log_file


def get_logger(component: str = "Pipeline"):
    """Logger whose lines are tagged with a stage name."""
    return logger.bind(component=component)
