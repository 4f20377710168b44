"""
Centralized logging configuration for SlotCraft.
Logs errors to both console and file for easy debugging and error reporting.
"""

import logging
import logging.handlers
from datetime import datetime
import platform
import sys
from typing import Dict, Optional

from .constants import APP_NAME, get_user_data_dir


LOGGER_ROOT = "slotcraft"


def get_log_dir():
    """Directory that holds the rotating log files."""
    return get_user_data_dir() / 'logs'


def setup_logging(log_level=logging.INFO, log_to_file=True):
    """
    Set up comprehensive logging for the entire application.

    Args:
        log_level: Minimum level to log (default: INFO)
        log_to_file: Whether to also log to file (default: True)

    Returns:
        Path to log file if logging to file, None otherwise
    """
    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Create formatters
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(levelname)s - %(message)s'
    )

    # Console handler (simple format for user)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)  # Only show warnings and errors in console
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if not log_to_file:
        return None

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"slotcraft_{timestamp}.log"

    # File handler (detailed format for debugging)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(file_handler)

    root_logger.info("=" * 60)
    root_logger.info(f"{APP_NAME} Started")
    root_logger.info(f"Python: {sys.executable}")
    root_logger.info(f"Platform: {platform.platform()}")
    root_logger.info(f"Log file: {log_file}")
    root_logger.info("=" * 60)

    # Capture Python warnings to the log file
    logging.captureWarnings(True)
    logging.getLogger('py.warnings').setLevel(logging.WARNING)

    return log_file


class LogManager:
    """Hands out loggers under the ``slotcraft`` namespace.

    Layout modules ask for short names (``layout.spots``) so their records
    can be filtered as a group regardless of the module path.
    """

    _loggers: Dict[str, logging.Logger] = {}

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        full_name = f"{LOGGER_ROOT}.{name}" if name else LOGGER_ROOT
        logger = self._loggers.get(full_name)
        if logger is None:
            logger = logging.getLogger(full_name)
            self._loggers[full_name] = logger
        return logger
