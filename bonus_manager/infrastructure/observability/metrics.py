"""Prometheus metrics for monitoring spend outcomes and extraction health"""

from prometheus_client import Counter, Gauge, Histogram

from bonus_manager.domain.models import APPLIED, ActionResult, Snapshot

# Action metrics
action_counter = Counter(
    "bonus_action_total",
    "Plan step outcomes",
    ["action", "status"],  # applied | planned | skipped | failed
)

spent_points_counter = Counter(
    "bonus_points_spent_total",
    "Bonus points spent by applied steps",
    ["action"],
)

# Extraction metrics
extraction_failures_counter = Counter(
    "bonus_extraction_failures_total",
    "Page reads where no bonus value could be parsed",
)

bonus_points_gauge = Gauge(
    "bonus_points_current",
    "Bonus balance from the latest snapshot",
)

snapshot_fetch_histogram = Histogram(
    "bonus_snapshot_fetch_seconds",
    "Time spent reading and extracting one snapshot",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_action(result: ActionResult) -> None:
    """Count a step outcome and the points it actually spent"""
    action_counter.labels(action=result.name, status=result.status).inc()
    if result.status == APPLIED and result.cost > 0:
        spent_points_counter.labels(action=result.name).inc(result.cost)


def record_snapshot(snapshot: Snapshot, duration_seconds: float) -> None:
    bonus_points_gauge.set(snapshot.bonus_points)
    snapshot_fetch_histogram.observe(duration_seconds)
