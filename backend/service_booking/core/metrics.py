"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking metrics
booking_attempts = Counter(
    "booking_attempts_total",
    "Total booking create/update attempts",
    ["outcome"],  # success, conflict, rejected, error
)

booking_transitions = Counter(
    "booking_transitions_total",
    "Booking lifecycle transitions",
    ["target", "outcome"],  # outcome: success, rejected, conflict, error
)

booking_latency = Histogram(
    "booking_latency_seconds",
    "Latency of booking mutations including validation and audit",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Interval index metrics
interval_conflicts = Counter(
    "interval_conflicts_total",
    "Reservations refused because of an overlapping active booking",
)

# Review metrics
review_submissions = Counter(
    "review_submissions_total",
    "Review submissions",
    ["outcome"],  # accepted, rejected
)

# Audit metrics
audit_entries = Counter(
    "audit_entries_total",
    "Audit log entries written",
    ["table", "action"],
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def record_booking_attempt(outcome: str):
    """Record booking attempt. Outcome: success, conflict, rejected, error"""
    booking_attempts.labels(outcome=outcome).inc()


def record_transition(target: str, outcome: str):
    booking_transitions.labels(target=target, outcome=outcome).inc()


def record_interval_conflict():
    interval_conflicts.inc()


def record_review_submission(accepted: bool):
    outcome = "accepted" if accepted else "rejected"
    review_submissions.labels(outcome=outcome).inc()


def record_audit_entry(table: str, action: str):
    audit_entries.labels(table=table, action=action).inc()
