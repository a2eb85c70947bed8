"""Prometheus metrics for the Voxdesk receptionist.

Provides metrics for monitoring call outcomes, turn latency, and action dispatch.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

# =============================================================================
# Counters
# =============================================================================

CALL_TOTAL = Counter(
    "voxdesk_call_total",
    "Total calls handled by the receptionist",
    ["outcome"],
)

ACTION_TOTAL = Counter(
    "voxdesk_action_total",
    "Next-action decisions by action and how they were chosen",
    ["action", "source"],
)

TURN_FAILURES = Counter(
    "voxdesk_turn_failures_total",
    "Turns that failed before producing a decision",
    ["kind"],
)

DISPATCH_FAILURES = Counter(
    "voxdesk_dispatch_failures_total",
    "Side effects that failed during action dispatch",
    ["action"],
)

ESCALATIONS = Counter(
    "voxdesk_escalations_total",
    "Calls escalated after repeated turn failures",
    ["action"],
)

# =============================================================================
# Gauges
# =============================================================================

ACTIVE_CALLS = Gauge(
    "voxdesk_active_calls",
    "Currently active calls",
)

# =============================================================================
# Histograms
# =============================================================================

CALL_DURATION = Histogram(
    "voxdesk_call_duration_seconds",
    "Call duration in seconds",
    buckets=[10, 30, 60, 120, 300, 600, 900, 1800],
)

TURN_LATENCY = Histogram(
    "voxdesk_turn_latency_seconds",
    "Caller input to decision latency",
    buckets=[0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0, 8.0],
)

TRANSCRIPTION_LATENCY = Histogram(
    "voxdesk_transcription_latency_seconds",
    "Utterance transcription latency",
    buckets=[0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0],
)

COMPLETION_LATENCY = Histogram(
    "voxdesk_completion_latency_seconds",
    "Completion engine request latency",
    buckets=[0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0, 8.0],
)

SYNTHESIS_LATENCY = Histogram(
    "voxdesk_synthesis_latency_seconds",
    "Speech synthesis latency",
    buckets=[0.05, 0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 4.0],
)

# =============================================================================
# Helper Functions
# =============================================================================


def record_call_metrics(outcome: str, duration_seconds: float) -> None:
    """Record metrics for a completed call.

    Args:
        outcome: Call outcome (completed, transferred, abandoned, failed)
        duration_seconds: Total call duration
    """
    CALL_TOTAL.labels(outcome=outcome).inc()
    CALL_DURATION.observe(duration_seconds)


def record_decision(action: str, source: str, latency_seconds: float | None = None) -> None:
    """Record a turn decision and, when known, how long it took."""
    ACTION_TOTAL.labels(action=action, source=source).inc()
    if latency_seconds is not None and latency_seconds > 0:
        TURN_LATENCY.observe(latency_seconds)


def record_turn_failure(kind: str) -> None:
    """Record a failed turn (transcription, completion, unexpected)."""
    TURN_FAILURES.labels(kind=kind).inc()


def record_dispatch_failure(action: str) -> None:
    """Record a failed transfer, schedule, or hangup side effect."""
    DISPATCH_FAILURES.labels(action=action).inc()


def record_escalation(action: str) -> None:
    ESCALATIONS.labels(action=action).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format.
    """
    return generate_latest()


def get_content_type() -> str:
    """Get the content type for Prometheus metrics.

    Returns:
        Content-Type header value for Prometheus metrics.
    """
    return CONTENT_TYPE_LATEST
