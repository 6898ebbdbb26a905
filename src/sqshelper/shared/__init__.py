"""Shared utilities: errors and structured logging."""
from .exceptions import (
    BatchDeleteError,
    ConfigurationError,
    HandleDecodeError,
    HelperError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from .logging import configure_logging, correlation_scope, get_logger

__all__ = [
    "BatchDeleteError",
    "ConfigurationError",
    "HandleDecodeError",
    "HelperError",
    "NotFoundError",
    "TransportError",
    "ValidationError",
    "configure_logging",
    "correlation_scope",
    "get_logger",
]
