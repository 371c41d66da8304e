"""Logging configuration module for the simulator services."""

import sys
from typing import Optional

from loguru import logger as loguru_logger


def setup_service_logger(
    service_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
) -> loguru_logger:
    """Configure a logger for a service with standardized settings.

    Args:
        service_name: Name of the service (e.g., 'pizza-simulator')
        log_level: Logging level (default: INFO)
        log_file: Optional path to log file

    Returns:
        logger: Configured loguru logger instance
    """
    # Remove any existing handlers
    loguru_logger.remove()

    loguru_logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<magenta>{thread.name}</magenta> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        loguru_logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="1 week",
            compression="gz",
            enqueue=True,
        )

    return loguru_logger.bind(service=service_name)


def get_backend_logger(service_name: str, backend: str) -> loguru_logger:
    """Get a logger bound to a specific order backend.

    Unlike ``setup_service_logger`` this does not touch the configured sinks,
    so backends can be created at any time without resetting handlers.

    Args:
        service_name: Name of the service
        backend: Backend label, e.g. ``database`` or ``microservice``

    Returns:
        logger: Logger carrying service and backend context
    """
    return loguru_logger.bind(service=service_name, backend=backend)
