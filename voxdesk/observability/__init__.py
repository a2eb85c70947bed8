"""Observability module for metrics."""

from voxdesk.observability.metrics import (
    ACTION_TOTAL,
    ACTIVE_CALLS,
    CALL_DURATION,
    CALL_TOTAL,
    TURN_LATENCY,
    record_call_metrics,
    record_decision,
    record_dispatch_failure,
    record_turn_failure,
)

__all__ = [
    "CALL_TOTAL",
    "CALL_DURATION",
    "ACTIVE_CALLS",
    "ACTION_TOTAL",
    "TURN_LATENCY",
    "record_call_metrics",
    "record_decision",
    "record_dispatch_failure",
    "record_turn_failure",
]
