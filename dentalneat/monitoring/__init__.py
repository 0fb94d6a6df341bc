"""
Monitoring for DentalNEAT.

Structured logging configuration and engine event logging.
"""

from .logging_config import (
    EngineEventLogger,
    LogContext,
    configure_logging,
    get_logger,
    log_error,
)

__all__ = [
    "EngineEventLogger",
    "LogContext",
    "configure_logging",
    "get_logger",
    "log_error",
]
