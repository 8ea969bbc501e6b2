"""Logging setup for jobplan.

Handlers are attached to the ``jobplan`` package logger only. The root logger
is left alone, so an application embedding jobplan keeps its own logging
configuration.
"""

import logging
import os
import sys
from typing import IO, Optional

LOGGER_NAME = "jobplan"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    stream: Optional[IO[str]] = None,
    format_str: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the jobplan package logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level name. Defaults to the JOBPLAN_LOG_LEVEL env var or INFO;
               unknown names fall back to INFO.
        log_file: Optional path to a log file, written in addition to the stream.
        stream: Console stream. Defaults to stderr so plan output on stdout
                stays parseable.
        format_str: Format string for log records.

    Returns:
        The configured ``jobplan`` logger.
    """
    if level is None:
        level = os.environ.get("JOBPLAN_LOG_LEVEL", "INFO")
    level = level.upper()

    numeric_level = logging.getLevelName(level)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(format_str)
    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)
    logger.setLevel(numeric_level)
    logger.propagate = False

    if log_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to set up file logging at {log_file}: {e}. Falling back to console-only logging.")
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at level {logging.getLevelName(numeric_level)}")
    return logger
