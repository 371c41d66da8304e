"""Logger module for the simulator service."""

import os

from logging_utils.config import setup_service_logger

SERVICE_NAME = "pizza-simulator"

logger = setup_service_logger(
    SERVICE_NAME,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE"),
)

__all__ = ["logger", "SERVICE_NAME"]
