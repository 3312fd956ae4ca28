"""
logging_config.py — Centralized Logging Configuration for the Order Service

This module configures unified logging behavior for the entire application.
It ensures that all modules log messages consistently to both console and file.

Features:
    • Combined console and file logging output
    • Process ID tagging for multi-process visibility
    • Standardized log format for all modules
    • Reduced verbosity for external dependencies (e.g., SQLAlchemy)

Configuration (Env Vars):
    ORDER_LOG_FILE   Log file path (default: 'order_processing.log')
    ORDER_LOG_LEVEL  Log level name (default: 'INFO')
"""

import logging
import os
import sys

LOG_FILE = os.environ.get("ORDER_LOG_FILE", "order_processing.log")
LOG_LEVEL = os.environ.get("ORDER_LOG_LEVEL", "INFO")


def setup_logging(log_file=LOG_FILE, level=LOG_LEVEL):
    """
    Configures the global logging system for the application.

    The library modules only create loggers. The hosting application must call this
    once at startup, before the first order is processed; until then records go to
    whatever handlers the host has configured.

    The configuration includes:
        - Log level: from ORDER_LOG_LEVEL (default INFO)
        - Log format: timestamp, log level, process ID, and message
        - Output destinations:
            1. File: ORDER_LOG_FILE (persistent log), skipped if set to an empty string
            2. Console (stdout): real-time logs, Docker/Kubernetes compatible
        - Reduced verbosity for third-party libraries such as SQLAlchemy
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.getLevelName(level.upper()) if isinstance(level, str) else level,
        format=log_format,
        handlers=handlers,
        force=True,
    )

    # Reduce verbosity from external libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a configured logger instance for a given module or component name.

    Args:
        name (str): The logger name, typically the module’s __name__.

    Returns:
        logging.Logger: A preconfigured logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
