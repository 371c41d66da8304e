"""Logging utilities for the pizza order simulator."""

from .config import get_backend_logger, setup_service_logger

__all__ = [
    "setup_service_logger",
    "get_backend_logger",
]
