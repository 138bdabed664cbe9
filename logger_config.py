"""
Logging configuration for the service layer and provisioning tools.

Works the same when running locally against LocalStack and inside AWS
Lambda, where stdout is shipped to CloudWatch Logs.
"""
import logging
import os
import sys
from typing import Optional, Set

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# SDK loggers are chatty at DEBUG and leak request signing details
NOISY_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')

VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

_configured_loggers: Set[str] = set()


def _resolve_level(level: Optional[str]) -> int:
    level_name = (level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    if level_name not in VALID_LOG_LEVELS:
        # A bad LOG_LEVEL is reported by Config.from_env
        if level is None:
            return logging.INFO
        raise ValueError(f'Log level must be one of {VALID_LOG_LEVELS}, got: {level}')
    return getattr(logging, level_name)


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (defaults to this module's name if not provided)

    Returns:
        Configured logger instance
    """
    logger_name = name or __name__
    logger = logging.getLogger(logger_name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(_resolve_level(None))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    _configured_loggers.add(logger_name)
    return logger


def set_log_level(level: str) -> None:
    """
    Change the level of every logger handed out by get_logger.

    Used by the command line entry point, where the level is chosen after
    the service modules have already been imported.

    Args:
        level: Level name such as DEBUG or INFO

    Raises:
        ValueError: If the level name is unknown
    """
    resolved = _resolve_level(level)
    for logger_name in _configured_loggers:
        logging.getLogger(logger_name).setLevel(resolved)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(resolved, logging.WARNING))
