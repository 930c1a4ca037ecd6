"""Prometheus metrics for snapshot health, advisory generation and deal engagement"""

from prometheus_client import Counter, Histogram

# Snapshot metrics
snapshot_counter = Counter(
    "spurz_snapshot_total",
    "Snapshots computed",
    ["band"],  # UNKNOWN | CRITICAL | STRESSED | BALANCED | OPTIMIZER
)

scenario_counter = Counter(
    "spurz_scenario_total",
    "Scenario codes assigned",
    ["scenario"],
)

health_score_histogram = Histogram(
    "spurz_health_score",
    "Distribution of health scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

refresh_failure_counter = Counter(
    "spurz_snapshot_refresh_failures_total",
    "Post-mutation snapshot refreshes that exhausted their retries",
)

# Advisory metrics
advisory_failure_counter = Counter(
    "spurz_advisory_failures_total",
    "Advisory generations that degraded to an empty result",
    ["generator"],  # recommendations | upgrades | insights | actions | deals
)

recommendation_counter = Counter(
    "spurz_recommendations_total",
    "Card recommendations emitted",
    ["reason"],
)

# Deals
deal_engagement_counter = Counter(
    "spurz_deal_engagement_total",
    "Deal engagement events",
    ["event"],  # view | click | redemption
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_snapshot(band: str, scenario: str, score: int) -> None:
    """Record snapshot outcome for monitoring the health distribution"""
    snapshot_counter.labels(band=band).inc()
    scenario_counter.labels(scenario=scenario).inc()
    health_score_histogram.observe(score)


def record_recommendations(reasons) -> None:
    for reason in reasons:
        recommendation_counter.labels(reason=reason).inc()
