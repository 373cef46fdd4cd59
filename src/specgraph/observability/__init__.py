"""Observability: structured JSON-lines logging with correlation fields."""

from specgraph.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    correlation_scope,
    get_logger,
    setup_structured_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "correlation_scope",
    "get_logger",
    "setup_structured_logging",
]
