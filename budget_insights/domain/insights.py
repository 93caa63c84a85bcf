"""Rule engine turning analysis outputs into typed, confidence-scored insights"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from budget_insights.domain.anomalies import severity_to_priority
from budget_insights.domain.assembler import series_has_activity
from budget_insights.domain.models import (
    AnomalyResult,
    BudgetForecast,
    BudgetPlanRecord,
    CorrelationResult,
    EXPENSE,
    FinancialHealthScore,
    Insight,
    InsightPriority,
    InsightType,
    PeriodTotals,
    TransactionRecord,
)
from budget_insights.domain.statistics import clamp, mean

CORRELATION_THRESHOLD = 0.3
STRONG_CORRELATION = 0.5
WEEKEND_INCREASE_THRESHOLD = 0.2
OVERDUE_TASK_THRESHOLD = 3
HIGH_PERFORMER_RATE = 0.8
LOW_PERFORMER_RATE = 0.5
RATIO_HIGH = 1.2
RATIO_LOW = 0.8
CATEGORY_GROWTH_RATIO = 1.3


def _percent(ratio_delta: float) -> int:
    # Truncate like a display percentage; round first so 0.3000000004 stays 30
    return int(round(ratio_delta * 100, 6))


def _make(now: datetime, **fields) -> Insight:
    fields["confidence_score"] = clamp(fields["confidence_score"], 0.0, 100.0)
    return Insight(created_at=now, **fields)


def fallback_insight(now: Optional[datetime] = None) -> Insight:
    """The single "getting started" insight for first use or a degraded run"""
    return _make(
        now or datetime.now(),
        type=InsightType.PRODUCTIVITY,
        title="Getting Started",
        description="Complete more tasks and track your spending to unlock personalized insights and recommendations.",
        priority=InsightPriority.LOW,
        confidence_score=50.0,
        potential_impact="Unlock insights",
        action_title="Add More Data",
    )


def correlation_insights(correlation: CorrelationResult, now: datetime) -> List[Insight]:
    insights = []
    r = correlation.coefficient

    if abs(r) > CORRELATION_THRESHOLD:
        if r > STRONG_CORRELATION:
            insights.append(_make(
                now,
                type=InsightType.HABIT,
                title="Productivity-Spending Synergy",
                description=(
                    f"Your productivity increases with moderate spending. You're {int(r * 100)}% "
                    "more efficient on days with balanced expenses."
                ),
                priority=InsightPriority.MEDIUM,
                confidence_score=min(r * 100, 95.0),
                potential_impact=f"+{int(r * 40)}% efficiency",
                action_title="Maintain Balance",
            ))
        elif r < -STRONG_CORRELATION:
            insights.append(_make(
                now,
                type=InsightType.WARNING,
                title="Spending Impact Alert",
                description="Higher spending correlates with lower productivity. Consider budget limits to maintain focus.",
                priority=InsightPriority.HIGH,
                confidence_score=min(abs(r) * 100, 95.0),
                potential_impact="Reduce overspending",
                action_title="Set Spending Limits",
            ))
        else:
            insights.append(_make(
                now,
                type=InsightType.OPTIMIZATION,
                title="Balanced Approach",
                description=(
                    "Your productivity and spending show a neutral relationship. "
                    "Focus on consistency in both areas."
                ),
                priority=InsightPriority.LOW,
                confidence_score=60.0,
                potential_impact="Maintain consistency",
                action_title="Track Both Metrics",
            ))

    weekend = correlation.weekend_pattern
    if weekend.relative_increase > WEEKEND_INCREASE_THRESHOLD:
        insights.append(_make(
            now,
            type=InsightType.FINANCIAL,
            title="Weekend Spending Pattern",
            description=(
                f"Your weekend spending increases by {_percent(weekend.relative_increase)}% on average. "
                "Consider setting weekend-specific budgets."
            ),
            priority=InsightPriority.MEDIUM,
            confidence_score=min(weekend.relative_increase * 100 + 50, 90.0),
            potential_impact=f"Save ${int(weekend.projected_monthly_savings)}/month",
            action_title="Set Weekend Budget",
        ))

    optimal = correlation.optimal_range
    if optimal is not None:
        insights.append(_make(
            now,
            type=InsightType.OPTIMIZATION,
            title="Optimal Spending Zone",
            description=(
                f"Your peak productivity occurs when daily spending is between "
                f"${int(optimal.min_amount)}-${int(optimal.max_amount)}."
            ),
            priority=InsightPriority.LOW,
            confidence_score=optimal.confidence,
            potential_impact=f"+{int(optimal.productivity_boost * 100)}% productivity",
            action_title="Stay in Range",
        ))

    return insights


def task_insights(correlation: Optional[CorrelationResult], overdue_count: int, now: datetime) -> List[Insight]:
    insights = []

    if overdue_count > OVERDUE_TASK_THRESHOLD:
        insights.append(_make(
            now,
            type=InsightType.WARNING,
            title="Overdue Tasks Alert",
            description=(
                f"You have {overdue_count} overdue tasks. Clearing these can improve your productivity momentum."
            ),
            priority=InsightPriority.HIGH,
            confidence_score=85.0,
            potential_impact="Clear backlog",
            action_title="Review Overdue Tasks",
        ))

    trend = correlation.trend if correlation else None
    if trend is None:
        return insights

    rate_percent = int(trend.average_completion_rate * 100)
    if trend.average_completion_rate > HIGH_PERFORMER_RATE:
        insights.append(_make(
            now,
            type=InsightType.PRODUCTIVITY,
            title="High Performer",
            description=(
                f"You're maintaining an excellent {rate_percent}% task completion rate. Keep up the momentum!"
            ),
            priority=InsightPriority.LOW,
            confidence_score=90.0,
            actionable=False,
            potential_impact="Maintain excellence",
            action_title="Set New Goals",
        ))
    elif trend.average_completion_rate < LOW_PERFORMER_RATE:
        insights.append(_make(
            now,
            type=InsightType.PRODUCTIVITY,
            title="Productivity Boost Needed",
            description=(
                f"Your completion rate is {rate_percent}%. Try breaking tasks into smaller, manageable chunks."
            ),
            priority=InsightPriority.MEDIUM,
            confidence_score=75.0,
            potential_impact="Improve completion",
            action_title="Break Down Tasks",
        ))

    if trend.is_improving and trend.confidence > 0.7:
        insights.append(_make(
            now,
            type=InsightType.OPTIMIZATION,
            title="Momentum Building",
            description=(
                "Your productivity is trending upward! Maintain current habits to reach peak performance by month-end."
            ),
            priority=InsightPriority.LOW,
            confidence_score=trend.confidence * 100,
            potential_impact="Peak performance",
            action_title="Keep Current Pace",
        ))
    elif not trend.is_improving and trend.confidence > 0.6:
        insights.append(_make(
            now,
            type=InsightType.HABIT,
            title="Course Correction Needed",
            description=(
                "Productivity is trending downward. Consider reviewing your recent patterns and making adjustments."
            ),
            priority=InsightPriority.MEDIUM,
            confidence_score=trend.confidence * 100,
            potential_impact="Reverse trend",
            action_title="Review Recent Changes",
        ))

    return insights


def budget_insights(totals: PeriodTotals, now: datetime) -> List[Insight]:
    """Income: more than planned is good. Expenses: less than planned is good."""
    insights = []

    if totals.planned_income > 0:
        income_ratio = totals.actual_income / totals.planned_income
        if income_ratio >= RATIO_HIGH:
            insights.append(_make(
                now,
                type=InsightType.FINANCIAL,
                title="Income Achievement!",
                description=(
                    f"Congratulations! You've earned {_percent(income_ratio - 1.0)}% more than your income target. "
                    "Great work!"
                ),
                priority=InsightPriority.LOW,
                confidence_score=95.0,
                actionable=False,
                potential_impact="Increase savings",
                action_title="Boost Savings Goal",
            ))
        elif income_ratio < RATIO_LOW:
            insights.append(_make(
                now,
                type=InsightType.WARNING,
                title="Income Below Target",
                description=(
                    f"Your income is {_percent(1.0 - income_ratio)}% below target. "
                    "Consider reviewing income sources or adjusting budget expectations."
                ),
                priority=InsightPriority.HIGH,
                confidence_score=85.0,
                potential_impact="Meet income goals",
                action_title="Review Income Strategy",
            ))

    if totals.planned_expense > 0:
        expense_ratio = totals.actual_expense / totals.planned_expense
        if expense_ratio > RATIO_HIGH:
            insights.append(_make(
                now,
                type=InsightType.WARNING,
                title="Expense Budget Alert",
                description=(
                    f"You're {_percent(expense_ratio - 1.0)}% over your planned expenses. "
                    "Consider adjusting spending or budget categories."
                ),
                priority=InsightPriority.HIGH,
                confidence_score=90.0,
                potential_impact="Get back on track",
                action_title="Review Spending",
            ))
        elif expense_ratio <= RATIO_LOW:
            insights.append(_make(
                now,
                type=InsightType.FINANCIAL,
                title="Expense Champion!",
                description=(
                    f"Excellent spending discipline! You're {_percent(1.0 - expense_ratio)}% under your expense "
                    "budget. Consider increasing savings goals."
                ),
                priority=InsightPriority.LOW,
                confidence_score=85.0,
                actionable=False,
                potential_impact="Increase savings",
                action_title="Boost Savings Goal",
            ))

    return insights


def category_budget_insights(
    plans: Sequence[BudgetPlanRecord],
    category_spend: Mapping[str, float],
    now: datetime,
) -> List[Insight]:
    """Per-category plan vs. actual: exceeded above 100%, warning above 90%"""
    insights = []
    for plan in plans:
        if plan.type != EXPENSE or plan.planned_amount <= 0:
            continue

        actual = category_spend.get(plan.category_id, 0.0)
        used = actual / plan.planned_amount * 100

        if used > 100:
            insights.append(_make(
                now,
                type=InsightType.BUDGET_ALERT,
                title="Budget Exceeded",
                description=(
                    f"You've exceeded your {plan.category_id} budget by ${int(actual - plan.planned_amount)}. "
                    "Consider reviewing your spending."
                ),
                priority=InsightPriority.HIGH,
                confidence_score=90.0,
                related_category_id=plan.category_id,
                action_title="View Budget",
            ))
        elif used > 90:
            insights.append(_make(
                now,
                type=InsightType.BUDGET_ALERT,
                title="Budget Warning",
                description=(
                    f"You've used {int(used)}% of your {plan.category_id} budget. "
                    f"${int(plan.planned_amount - actual)} remaining."
                ),
                priority=InsightPriority.MEDIUM,
                confidence_score=80.0,
                related_category_id=plan.category_id,
                action_title="View Spending",
            ))

    return insights


def health_insights(health_score: FinancialHealthScore, now: datetime) -> List[Insight]:
    insights = []
    score = int(health_score.overall)

    if health_score.overall < 60:
        insights.append(_make(
            now,
            type=InsightType.HEALTH_SCORE,
            title="Financial Health Needs Attention",
            description=f"Your financial health score is {score}/100. Focus on budget adherence and consistency.",
            priority=InsightPriority.HIGH,
            confidence_score=80.0,
        ))
    elif health_score.overall > 85:
        insights.append(_make(
            now,
            type=InsightType.HEALTH_SCORE,
            title="Excellent Financial Health!",
            description=f"Your financial health score is {score}/100. Keep up the great work!",
            priority=InsightPriority.LOW,
            confidence_score=80.0,
            actionable=False,
        ))

    if health_score.overall < 70:
        areas = [
            ("Budget Adherence", health_score.budget_adherence),
            ("Consistency", health_score.consistency),
            ("Savings Rate", health_score.savings_rate),
            ("Category Balance", health_score.category_balance),
        ]
        name, value = min(areas, key=lambda a: a[1])
        improvement = max(0, int(75 - value))
        insights.append(_make(
            now,
            type=InsightType.RECOMMENDATION,
            title=f"Focus on {name}",
            description=(
                f"Your {name.lower()} score is {int(value)}/100. Improving this by {improvement} points "
                "would boost your overall health score significantly. Start with small, consistent changes."
            ),
            priority=InsightPriority.HIGH,
            confidence_score=95.0,
            action_title="Create Goal",
        ))

    return insights


def forecast_insights(forecasts: Mapping[str, BudgetForecast], now: datetime) -> List[Insight]:
    insights = []
    for category_id, forecast in sorted(forecasts.items()):
        pattern = forecast.based_on_pattern
        confidence = pattern.confidence_score * 100 if pattern else 50.0
        insights.append(_make(
            now,
            type=InsightType.FORECAST,
            title="Spending Forecast",
            description=(
                f"Based on your pattern, you're likely to spend ${int(forecast.forecast_amount)} "
                f"on {category_id} next time."
            ),
            priority=InsightPriority.MEDIUM,
            confidence_score=confidence,
            related_category_id=category_id,
        ))
    return insights


def anomaly_insights(anomalies: Iterable[AnomalyResult], now: datetime) -> List[Insight]:
    return [
        _make(
            now,
            type=InsightType.ANOMALY,
            title="Unusual Transaction Detected",
            description=anomaly.reason,
            priority=severity_to_priority(anomaly.severity),
            confidence_score=anomaly.confidence * 100,
            related_category_id=anomaly.transaction.category_id,
        )
        for anomaly in anomalies
    ]


def category_trend_insights(transactions: Sequence[TransactionRecord], now: datetime) -> List[Insight]:
    """Categories whose recent-half average grew more than 30% over the earlier half"""
    by_category: Dict[str, List[TransactionRecord]] = defaultdict(list)
    for txn in transactions:
        if txn.type == EXPENSE:
            by_category[txn.category_id].append(txn)

    insights = []
    for category_id, txns in sorted(by_category.items()):
        if len(txns) < 4:
            continue
        ordered = sorted(txns, key=lambda t: t.date)
        half = len(ordered) // 2
        earlier_avg = mean([abs(t.amount) for t in ordered[:half]])
        recent_avg = mean([abs(t.amount) for t in ordered[-half:]])
        if earlier_avg > 0 and recent_avg > earlier_avg * CATEGORY_GROWTH_RATIO:
            insights.append(_make(
                now,
                type=InsightType.RECOMMENDATION,
                title=f"Increasing {category_id} Spending",
                description=(
                    f"Your {category_id} spending has increased by {_percent(recent_avg / earlier_avg - 1.0)}% "
                    f"recently. Consider setting a limit of ${int(earlier_avg * 1.1)} per purchase."
                ),
                priority=InsightPriority.HIGH,
                confidence_score=90.0,
                related_category_id=category_id,
                action_title="Set Budget Limit",
            ))
    return insights


def generate_insights(
    correlation: Optional[CorrelationResult],
    totals: PeriodTotals,
    overdue_count: int = 0,
    health_score: Optional[FinancialHealthScore] = None,
    forecasts: Optional[Mapping[str, BudgetForecast]] = None,
    anomalies: Iterable[AnomalyResult] = (),
    transactions: Sequence[TransactionRecord] = (),
    plans: Sequence[BudgetPlanRecord] = (),
    category_spend: Optional[Mapping[str, float]] = None,
    now: Optional[datetime] = None,
) -> List[Insight]:
    """
    Apply every rule independently; order of rules does not matter.

    When nothing fires and the inputs carry essentially no data, returns
    exactly one fallback insight so a first-use feed is never empty.
    """
    now = now or datetime.now()
    insights: List[Insight] = []

    if correlation is not None:
        insights.extend(correlation_insights(correlation, now))
    insights.extend(task_insights(correlation, overdue_count, now))
    insights.extend(budget_insights(totals, now))
    insights.extend(category_budget_insights(plans, category_spend or {}, now))
    if health_score is not None and transactions:
        insights.extend(health_insights(health_score, now))
    insights.extend(forecast_insights(forecasts or {}, now))
    insights.extend(anomaly_insights(anomalies, now))
    insights.extend(category_trend_insights(transactions, now))

    if not insights and _has_no_data(correlation, totals, overdue_count, transactions):
        return [fallback_insight(now)]

    return insights


def _has_no_data(
    correlation: Optional[CorrelationResult],
    totals: PeriodTotals,
    overdue_count: int,
    transactions: Sequence[TransactionRecord],
) -> bool:
    has_series = correlation is not None and series_has_activity(correlation.series)
    return not has_series and totals.is_empty() and overdue_count == 0 and not transactions
