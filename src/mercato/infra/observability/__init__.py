"""Mercato Infra Observability: structlog structured logging."""

from mercato.infra.observability.logging import (
    LoggingSettings,
    SensitiveDataProcessor,
    configure_logging,
    get_logger,
    get_logging_settings,
)

__all__ = [
    "LoggingSettings",
    "SensitiveDataProcessor",
    "configure_logging",
    "get_logger",
    "get_logging_settings",
]
