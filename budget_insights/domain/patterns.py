"""Weekend/weekday disparity, optimal spend band and the correlation result"""

from datetime import datetime
from typing import Optional, Sequence

from budget_insights.domain.assembler import series_has_activity
from budget_insights.domain.models import (
    CorrelationResult,
    DailyPoint,
    OptimalSpendingRange,
    WeekendSpendingPattern,
)
from budget_insights.domain.statistics import clamp, mean, pearson_correlation, variance
from budget_insights.domain.trends import analyze_productivity_trend

WEEKEND_DAYS_PER_MONTH = 8
BASELINE_COMPLETION_RATE = 0.5
TOP_PERFORMER_DAYS = 10


def analyze_weekend_spending(series: Sequence[DailyPoint]) -> WeekendSpendingPattern:
    """
    Average spend on weekdays vs weekends.

    relative_increase is 0 when there is no weekday spend to compare against.
    projected_monthly_savings assumes eight weekend days per month.
    """
    avg_weekday = mean([p.spend for p in series if not p.is_weekend])
    avg_weekend = mean([p.spend for p in series if p.is_weekend])

    increase = (avg_weekend - avg_weekday) / avg_weekday if avg_weekday > 0 else 0.0

    return WeekendSpendingPattern(
        avg_weekday=avg_weekday,
        avg_weekend=avg_weekend,
        relative_increase=increase,
        projected_monthly_savings=max(0.0, increase * avg_weekday * WEEKEND_DAYS_PER_MONTH),
    )


def find_optimal_spending_range(
    series: Sequence[DailyPoint],
    top_k: int = TOP_PERFORMER_DAYS,
) -> Optional[OptimalSpendingRange]:
    """
    Spend band on the top-K days by completion rate; None for an empty window.

    Tighter spend among top performers means higher confidence:
    confidence = clamp(100 - 2 * variance(spend), 50, 100).
    """
    if not series_has_activity(series):
        return None

    top_days = sorted(series, key=lambda p: p.completion_rate, reverse=True)[:top_k]
    spends = sorted(p.spend for p in top_days)
    avg_productivity = mean([p.completion_rate for p in top_days])

    return OptimalSpendingRange(
        min_amount=spends[0],
        max_amount=spends[-1],
        avg_productivity_in_range=avg_productivity,
        confidence=clamp(100.0 - variance(spends) * 2, 50.0, 100.0),
        productivity_boost=avg_productivity - BASELINE_COMPLETION_RATE,
    )


def overall_confidence(series: Sequence[DailyPoint], full_window: int = 30) -> float:
    """More days and steadier completion rates raise confidence in the whole analysis"""
    base = min(len(series) / full_window, 1.0)
    consistency_bonus = max(0.0, 1.0 - variance([p.completion_rate for p in series])) * 0.2
    return clamp(base + consistency_bonus, 0.0, 1.0)


def analyze_correlation(series: Sequence[DailyPoint], now: Optional[datetime] = None) -> CorrelationResult:
    """Relate completion rate to spend over the series and attach the derived patterns"""
    coefficient = pearson_correlation(
        [p.completion_rate for p in series],
        [p.spend for p in series],
    )

    return CorrelationResult(
        coefficient=coefficient,
        weekend_pattern=analyze_weekend_spending(series),
        optimal_range=find_optimal_spending_range(series),
        trend=analyze_productivity_trend(series),
        series=tuple(series),
        computed_at=now or datetime.now(),
        overall_confidence=overall_confidence(series),
    )
