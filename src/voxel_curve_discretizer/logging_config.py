"""Logging setup for voxel_curve_discretizer.

Only the package logger is configured; the root logger and other libraries
are left alone. While tqdm progress bars are shown, console records are
written through tqdm so they do not break the bars.
"""

import logging
import sys
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

from tqdm.contrib.logging import logging_redirect_tqdm

PACKAGE_LOGGER_NAME = "voxel_curve_discretizer"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_package_logger() -> logging.Logger:
    return logging.getLogger(PACKAGE_LOGGER_NAME)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path | str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """Attach console and optional file handlers to the package logger.

    Calling this again replaces the handlers added by the previous call.

    Args:
        level: Level of the package logger (e.g. logging.DEBUG)
        log_file: Optional path of a log file, written in addition to stdout
        format_string: Optional format for log records

    Returns:
        The configured package logger
    """
    logger = get_package_logger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def progress_logging(show_progress: bool):
    """Context for a loop with an optional tqdm bar.

    With show_progress set, console handlers of the package logger are
    redirected through tqdm.write for the duration of the block.
    """
    if not show_progress:
        return nullcontext()
    return logging_redirect_tqdm(loggers=[get_package_logger()])
