"""
Logging configuration for the FleetGeo enrichment framework.

This module provides centralized logging setup with environment-specific
configuration and structured logging for long-running enrichment batches.
"""

import functools
import json
import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path
from typing import Optional, Dict, Any

STANDARD_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_RESERVED_RECORD_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'message', 'asctime',
})

_NOISY_LOGGERS = ("pymongo", "pymongo.serverSelection", "pymongo.connection")


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Extra fields such as record_id or point coordinates
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def _build_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JSONFormatter(datefmt=JSON_DATE_FORMAT)
    return logging.Formatter(STANDARD_FORMAT)


def setup_logging(environment: str = "development",
                  log_level: str = "INFO",
                  log_dir: Optional[str] = None,
                  log_format: Optional[str] = None) -> None:
    """
    Set up logging configuration for FleetGeo processing runs.

    Args:
        environment: Environment name (development/production)
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR)
        log_dir: Directory for log files (optional)
        log_format: "json" or "standard"; defaults to json in production
    """
    if log_format is None:
        use_json = environment == "production"
    else:
        use_json = log_format.lower() == "json"

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_build_formatter(use_json))
    logger.addHandler(console_handler)

    if log_dir:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=os.path.join(log_dir, f"fleetgeo_{environment}.log"),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(_build_formatter(use_json))
        logger.addHandler(file_handler)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_logging_from_config(env_config: Dict[str, Any],
                              environment: str,
                              log_level: Optional[str] = None) -> None:
    """
    Configure logging from the ``logging`` block of an environment config.

    Args:
        env_config: Environment configuration as returned by ConfigLoader
        environment: Environment name
        log_level: Optional override for the configured level
    """
    logging_config = env_config.get("logging", {})
    setup_logging(
        environment=environment,
        log_level=log_level or logging_config.get("level", "INFO"),
        log_dir=logging_config.get("log_dir"),
        log_format=logging_config.get("format"),
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_performance(func):
    """
    Decorator to log function execution time.

    Args:
        func: Function to wrap

    Returns:
        Wrapped function with performance logging
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()

        logger.info(f"Starting {func.__name__}")
        try:
            result = func(*args, **kwargs)
            duration = time.perf_counter() - start_time
            logger.info(f"Completed {func.__name__} in {duration:.3f}s")
            return result
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(f"Failed {func.__name__} after {duration:.3f}s: {str(e)}")
            raise

    return wrapper
