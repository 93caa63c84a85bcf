"""Per-category spending patterns and next-period forecasts"""

import math
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence

from budget_insights.domain.models import BudgetForecast, EXPENSE, SpendingPattern, TransactionRecord
from budget_insights.domain.statistics import clamp, mean, std_dev
from budget_insights.utils.date_utils import first_of_next_month

MIN_PATTERN_TRANSACTIONS = 3
MIN_FORECAST_TRANSACTIONS = 5
Z_95 = 1.96
MIN_SPREAD_RATIO = 0.05
MIN_INTERVAL_CONFIDENCE = 0.05

SUMMER_MONTHS = (6, 7, 8)
WINTER_MONTHS = (12, 1, 2)


def build_spending_pattern(category_id: str, transactions: Sequence[TransactionRecord]) -> SpendingPattern:
    """
    Summarise one category's history.

    Confidence grows with sample size (saturating at 10 transactions) and
    drops with irregular amounts (coefficient of variation).
    """
    amounts = [abs(t.amount) for t in transactions]
    average = mean(amounts)

    by_weekday = [0.0] * 7
    by_month = [0.0] * 12
    for txn in transactions:
        by_weekday[txn.date.weekday()] += abs(txn.amount)
        by_month[txn.date.month - 1] += abs(txn.amount)

    weekday_total = sum(by_weekday)
    if weekday_total > 0:
        distribution = tuple(v / weekday_total for v in by_weekday)
    else:
        distribution = tuple([1.0 / 7] * 7)

    cv = std_dev(amounts) / average if average > 0 else 0.0
    sample_factor = min(len(amounts) / 10.0, 1.0)
    regularity_factor = 1.0 - 0.5 * min(cv, 1.0)

    return SpendingPattern(
        category_id=category_id,
        average_amount=average,
        frequency=len(amounts),
        day_of_week_distribution=distribution,
        monthly_trend=tuple(by_month),
        seasonal_factor=_seasonal_factor(transactions),
        confidence_score=clamp(sample_factor * regularity_factor, 0.0, 1.0),
    )


def _seasonal_factor(transactions: Sequence[TransactionRecord]) -> float:
    """Holiday- and summer-weighted average relative to the plain average"""
    if not transactions:
        return 1.0

    weighted = []
    for txn in transactions:
        amount = abs(txn.amount)
        if txn.date.month in SUMMER_MONTHS:
            weighted.append(amount * 1.1)
        elif txn.date.month in WINTER_MONTHS:
            weighted.append(amount * 1.2)
        else:
            weighted.append(amount)

    regular = mean([abs(t.amount) for t in transactions])
    return mean(weighted) / regular if regular > 0 else 1.0


def forecast_category(
    category_id: str,
    transactions: Sequence[TransactionRecord],
    pattern: SpendingPattern,
    today: Optional[date] = None,
) -> BudgetForecast:
    """
    Project the next transaction amount for a category.

    Point estimate blends a least-squares trend projection with the pattern
    average, weighted by pattern confidence. The interval half width is
    max(1.96 * standard error, 5% of the average) / confidence, so it narrows
    as confidence rises and always leaves the point strictly inside.
    """
    if today is None:
        today = date.today()

    amounts = [abs(t.amount) for t in sorted(transactions, key=lambda t: t.date)]
    n = len(amounts)
    xs = list(range(1, n + 1))

    slope, intercept = _linear_fit(xs, amounts)
    projection = max(0.0, slope * (n + 1) + intercept)

    confidence = pattern.confidence_score
    forecast = max(0.0, confidence * projection + (1.0 - confidence) * pattern.average_amount)

    residuals = [(slope * x + intercept) - y for x, y in zip(xs, amounts)]
    standard_error = math.sqrt(sum(r * r for r in residuals) / n) if n else 0.0
    spread = max(Z_95 * standard_error, MIN_SPREAD_RATIO * max(pattern.average_amount, 1.0))
    half_width = spread / max(confidence, MIN_INTERVAL_CONFIDENCE)

    return BudgetForecast(
        category_id=category_id,
        forecast_amount=forecast,
        confidence_interval=(forecast - half_width, forecast + half_width),
        forecast_date=first_of_next_month(today),
        based_on_pattern=pattern,
    )


def _linear_fit(xs: List[int], ys: List[float]) -> tuple[float, float]:
    n = len(xs)
    if n == 0:
        return 0.0, 0.0
    if n == 1:
        return 0.0, ys[0]

    mean_x = mean(xs)
    mean_y = mean(ys)
    ss_x = sum((x - mean_x) ** 2 for x in xs)
    slope = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys)) / ss_x
    return slope, mean_y - slope * mean_x


def group_expenses_by_category(transactions: Sequence[TransactionRecord]) -> Dict[str, List[TransactionRecord]]:
    groups: Dict[str, List[TransactionRecord]] = defaultdict(list)
    for txn in transactions:
        if txn.type == EXPENSE and txn.category_id:
            groups[txn.category_id].append(txn)
    return groups


def detect_spending_patterns(
    transactions: Sequence[TransactionRecord],
    min_transactions: int = MIN_PATTERN_TRANSACTIONS,
) -> Dict[str, SpendingPattern]:
    return {
        category_id: build_spending_pattern(category_id, txns)
        for category_id, txns in group_expenses_by_category(transactions).items()
        if len(txns) >= min_transactions
    }


def generate_forecasts(
    transactions: Sequence[TransactionRecord],
    patterns: Dict[str, SpendingPattern],
    today: Optional[date] = None,
    min_transactions: int = MIN_FORECAST_TRANSACTIONS,
) -> Dict[str, BudgetForecast]:
    """Independent forecast per category with enough history and a detected pattern"""
    forecasts = {}
    for category_id, txns in group_expenses_by_category(transactions).items():
        pattern = patterns.get(category_id)
        if pattern is None or len(txns) < min_transactions:
            continue
        forecasts[category_id] = forecast_category(category_id, txns, pattern, today)
    return forecasts
