"""
Logging setup for the MQTT publish node.

File logging with rotation plus a console handler for immediate feedback.
paho-mqtt's own logger is routed through the same handlers.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "mqtt_publish_node"
LOG_FILE = "mqtt-node.log"


def _get_formatter():
    """Get detailed formatter for file logging."""
    return logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )


def _get_console_formatter():
    """Get simple formatter for console output."""
    return logging.Formatter('%(levelname)s: %(message)s')


def setup_logging(log_dir: Optional[str] = None, log_level: str = "INFO") -> logging.Logger:
    """
    Setup logging for the application.

    Args:
        log_dir: Directory where mqtt-node.log is written. No file handler if None.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The package logger.
    """
    level = getattr(logging, log_level.upper())
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)

    # Replace handlers from a previous call instead of stacking them
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path / LOG_FILE,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(_get_formatter())
        app_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_get_console_formatter())
    app_logger.addHandler(console_handler)

    # paho logs through the client's enable_logger() hook
    paho_logger = logging.getLogger(f"{LOGGER_NAME}.paho")
    paho_logger.setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return app_logger
