"""Observability infrastructure for structured logging."""

from cleanplay.infrastructure.observability.logging import (
    bind_user,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "bind_user",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
