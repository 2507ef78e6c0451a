"""Observability utilities for the debounce guard.

This package provides:
- Prometheus metrics for guard decisions and lock occupancy
- Structured logging with contextual information
"""

from debounce_guard.observability.logging import (
    configure_logging,
    get_logger,
    guard_context,
)
from debounce_guard.observability.metrics import (
    record_decision,
    record_guarded_duration,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "guard_context",
    "record_decision",
    "record_guarded_duration",
]
