"""Logging configuration for the analysis queue."""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from analysis_queue.config.defaults import LOG_FILE_ENV_VAR

ROOT_LOGGER = "analysis_queue"

# HTTP client chatter from every scoring call
LIBRARY_LOGGERS = ("httpx", "httpcore", "anthropic")

FILE_FORMAT = "%(asctime)s %(levelname)-7s %(component)-10s %(message)s"

_PREFIX = re.compile(r"^\[(\w+)\]")


class ComponentFilter(logging.Filter):
    """Tag records with the queue component that emitted them.

    Messages logged as ``"[Queue] ..."`` or ``"[Limiter] ..."`` take the
    bracketed name; anything else takes the last segment of its logger name,
    so ``analysis_queue.orchestration.admission`` becomes ``admission``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        match = _PREFIX.match(str(record.msg))
        if match:
            record.component = match.group(1).lower()
        else:
            record.component = record.name.rsplit(".", 1)[-1]
        return True


def resolve_log_file(log_file: Optional[Path] = None) -> Optional[Path]:
    """Pick the log file: an explicit path wins over ``ANALYSIS_QUEUE_LOG_FILE``."""
    if log_file is not None:
        return log_file
    env_path = os.environ.get(LOG_FILE_ENV_VAR)
    return Path(env_path).expanduser() if env_path else None


def setup_logging(
    verbosity: int = 1,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Set up console logging for queue activity, plus an optional log file.

    The console shows job admission, retries and fallbacks at INFO. The file,
    when configured, always records DEBUG, which includes limiter token
    accounting and per-job metrics, one line per event tagged with its
    component.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG, 3=DEBUG+libs).
        log_file: Log file path. Defaults to ``ANALYSIS_QUEUE_LOG_FILE``.

    Returns:
        The ``analysis_queue`` logger.
    """
    level = logging.WARNING if verbosity <= 0 else logging.INFO if verbosity == 1 else logging.DEBUG

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbosity >= 2,
        show_path=verbosity >= 2,
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 3,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    log_path = resolve_log_file(log_file)
    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(ComponentFilter())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    lib_level = logging.DEBUG if verbosity >= 3 else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(lib_level)

    return logger
