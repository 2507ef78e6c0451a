"""Prometheus metrics for the debounce guard.

Metrics include:

- Guard decisions by result (acquired, rejected, bypassed, store_error)
- Duration of guarded executions
- Locks currently held by this process
- Expired in-memory locks removed by the cleanup sweep

Examples:
    >>> record_decision("rejected")
    >>> record_guarded_duration(0.25)
"""

from prometheus_client import Counter, Gauge, Histogram

DECISION_RESULTS = ("acquired", "rejected", "bypassed", "store_error")

# Labels: result (acquired, rejected, bypassed, store_error)
decisions_total = Counter(
    "debounce_decisions_total",
    "Total number of guard decisions",
    ["result"],
)

# Only covers calls that acquired the lock
guarded_duration_seconds = Histogram(
    "debounce_guarded_duration_seconds",
    "Duration of guarded executions in seconds",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

held_locks = Gauge(
    "debounce_held_locks",
    "Number of debounce locks currently held by this process",
)


def record_decision(result: str) -> None:
    """Record a guard decision.

    Args:
        result: One of DECISION_RESULTS
    """
    decisions_total.labels(result=result).inc()


def record_guarded_duration(seconds: float) -> None:
    """Record how long a guarded execution ran."""
    guarded_duration_seconds.observe(seconds)


def increment_held_locks() -> None:
    held_locks.inc()


def decrement_held_locks() -> None:
    held_locks.dec()


expired_locks_removed_total = Counter(
    "debounce_expired_locks_removed_total",
    "Expired in-memory locks removed by the cleanup sweep",
)


def record_expired_locks_removed(count: int) -> None:
    expired_locks_removed_total.inc(count)
