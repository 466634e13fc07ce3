"""
Logging for the Replicon automation.

Every module logs under the ``replicon_bot`` namespace. The worker thread
and the host share one handler, so the thread name is part of each line.
Run events carry a level name ("info", "success", "warning", "error")
that is both logged here and forwarded to the host as a LOG message.
"""

import logging
import os
import sys
from typing import Optional, TextIO


LOGGER_NAME = 'replicon_bot'

LINE_FORMAT = '%(asctime)s %(levelname)-8s | %(threadName)s | %(message)s'
TIME_FORMAT = '%H:%M:%S'

RESET = '\033[0m'
LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[35m',
}

# Run event level -> (logging level, line marker)
EVENT_LEVELS = {
    'info': (logging.INFO, ''),
    'step': (logging.INFO, '→ '),
    'success': (logging.INFO, '✓ '),
    'warning': (logging.WARNING, '⚠ '),
    'error': (logging.ERROR, '✗ '),
}


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        # Color a copy so other handlers see the plain record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(colored)


def _wants_color(stream: TextIO, use_colors: Optional[bool]) -> bool:
    if use_colors is not None:
        return use_colors
    if os.environ.get('NO_COLOR'):
        return False
    return hasattr(stream, 'isatty') and stream.isatty()


def setup_logging(verbose: bool = False, use_colors: Optional[bool] = None,
                  stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        verbose: DEBUG level when True, INFO otherwise
        use_colors: Force colors on or off; by default colors are used on
            terminals unless NO_COLOR is set
        stream: Output stream (stdout by default)

    Returns:
        The configured ``replicon_bot`` logger
    """
    stream = stream or sys.stdout
    level = logging.DEBUG if verbose else logging.INFO

    formatter_class = ColoredFormatter if _wants_color(stream, use_colors) else logging.Formatter
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter_class(fmt=LINE_FORMAT, datefmt=TIME_FORMAT))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get the application logger or one of its children.

    Args:
        name: Child name (e.g., "runner" gives ``replicon_bot.runner``)
    """
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def log_event(level: str, message: str, logger: Optional[logging.Logger] = None):
    """
    Log a run event by its level name.

    Unknown level names are logged as info.
    """
    logger = logger or get_logger()
    log_level, marker = EVENT_LEVELS.get(level, EVENT_LEVELS['info'])
    logger.log(log_level, f"{marker}{message}")


def log_section(title: str, logger: Optional[logging.Logger] = None):
    """Log a banner separating the phases of a command."""
    logger = logger or get_logger()
    logger.info("")
    logger.info("=" * 60)
    logger.info(f"  {title}")
    logger.info("=" * 60)


def log_step(step: str, logger: Optional[logging.Logger] = None):
    log_event('step', step, logger)


def log_success(message: str, logger: Optional[logging.Logger] = None):
    log_event('success', message, logger)


def log_warning(warning: str, logger: Optional[logging.Logger] = None):
    log_event('warning', warning, logger)


def log_error(error: str, logger: Optional[logging.Logger] = None):
    log_event('error', error, logger)
