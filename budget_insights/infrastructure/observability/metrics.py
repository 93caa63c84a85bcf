"""Prometheus metrics for analysis runs, generated insights and notification delivery"""

from typing import Iterable, Optional

from prometheus_client import Counter, Gauge, Histogram

from budget_insights.domain.models import FinancialHealthScore, Insight

# Analysis metrics
analysis_run_counter = Counter(
    "insight_analysis_runs_total",
    "Total analysis runs",
    ["outcome"],  # completed | skipped | degraded | cancelled | superseded
)

analysis_duration_histogram = Histogram(
    "insight_analysis_duration_seconds",
    "Full pipeline duration",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

insights_generated_counter = Counter(
    "insights_generated_total",
    "Insights emitted by the rule engine",
    ["type"],
)

health_score_gauge = Gauge(
    "financial_health_score",
    "Overall score of the latest analysis run",
)

# Notification metrics
notification_counter = Counter(
    "insight_notifications_total",
    "Insight notification outcomes",
    ["outcome"],  # delivered | suppressed | failed | disabled | gated
)

notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_analysis(
    outcome: str,
    duration_seconds: Optional[float] = None,
    insights: Iterable[Insight] = (),
    health_score: Optional[FinancialHealthScore] = None,
) -> None:
    """Record one analysis run with its generated insight mix"""
    analysis_run_counter.labels(outcome=outcome).inc()

    if duration_seconds is not None:
        analysis_duration_histogram.observe(duration_seconds)

    for insight in insights:
        insights_generated_counter.labels(type=insight.type.value).inc()

    if health_score is not None:
        health_score_gauge.set(health_score.overall)


def record_notification(outcome: str) -> None:
    notification_counter.labels(outcome=outcome).inc()
