"""Productivity trend direction and strength"""

from typing import Optional, Sequence

from budget_insights.domain.assembler import series_has_activity
from budget_insights.domain.models import DailyPoint, ProductivityTrend
from budget_insights.domain.statistics import clamp, mean, variance

MIN_TREND_POINTS = 8


def analyze_productivity_trend(series: Sequence[DailyPoint]) -> Optional[ProductivityTrend]:
    """
    Compare the first and second half of the chronological completion rates.

    Returns None ("no trend available") for seven or fewer points or an
    empty window. For odd lengths the middle day belongs to neither half.

    Confidence = max(0.3, 1 - variance(all rates)): a volatile series lowers
    confidence but a trend is never reported below 0.3.
    """
    if len(series) < MIN_TREND_POINTS or not series_has_activity(series):
        return None

    rates = [p.completion_rate for p in sorted(series, key=lambda p: p.date)]
    half = len(rates) // 2
    first_avg = mean(rates[:half])
    second_avg = mean(rates[-half:])

    return ProductivityTrend(
        average_completion_rate=mean(rates),
        is_improving=second_avg > first_avg,
        strength=abs(second_avg - first_avg),
        confidence=clamp(max(0.3, 1.0 - variance(rates)), 0.3, 1.0),
    )
