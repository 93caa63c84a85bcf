"""Unit tests for the insight rule engine"""

from datetime import timedelta

from budget_insights.domain.assembler import assemble_daily_points
from budget_insights.domain.health import compute_health_score
from budget_insights.domain.insights import (
    category_budget_insights,
    category_trend_insights,
    fallback_insight,
    generate_insights,
)
from budget_insights.domain.models import (
    AnomalyResult,
    AnomalySeverity,
    BudgetPlanRecord,
    EXPENSE,
    InsightPriority,
    InsightType,
    PeriodTotals,
)
from budget_insights.domain.patterns import analyze_correlation
from tests.factories import NOW, TODAY, expense, series_of, task

CORRELATION_TITLES = {"Productivity-Spending Synergy", "Spending Impact Alert", "Balanced Approach"}


def titles(insights):
    return {i.title for i in insights}


def test_empty_input_yields_exactly_the_fallback():
    insights = generate_insights(None, PeriodTotals(), now=NOW)

    assert len(insights) == 1
    assert insights[0].title == "Getting Started"
    assert insights[0].confidence_score == 50.0
    assert insights[0].priority == InsightPriority.LOW


def test_all_zero_series_yields_exactly_the_fallback():
    correlation = analyze_correlation(series_of([0.0] * 30, [0.0] * 30), NOW)

    insights = generate_insights(correlation, PeriodTotals(), now=NOW)

    assert [i.title for i in insights] == ["Getting Started"]


def test_flat_series_emits_no_correlation_insight():
    correlation = analyze_correlation(series_of([0.5] * 30, [50.0] * 30), NOW)

    insights = generate_insights(correlation, PeriodTotals(), now=NOW)

    assert correlation.coefficient == 0.0
    assert not titles(insights) & CORRELATION_TITLES


def test_positive_correlation_synergy():
    rates = [i / 10 for i in range(10)]
    spends = [10.0 * i for i in range(10)]
    correlation = analyze_correlation(series_of(rates, spends), NOW)

    insights = generate_insights(correlation, PeriodTotals(), now=NOW)
    synergy = next(i for i in insights if i.title == "Productivity-Spending Synergy")

    assert synergy.type == InsightType.HABIT
    assert synergy.confidence_score == 95.0


def test_negative_correlation_warning():
    rates = [i / 10 for i in range(10)]
    spends = [100.0 - 10.0 * i for i in range(10)]
    correlation = analyze_correlation(series_of(rates, spends), NOW)

    insights = generate_insights(correlation, PeriodTotals(), now=NOW)

    alert = next(i for i in insights if i.title == "Spending Impact Alert")
    assert alert.priority == InsightPriority.HIGH


def test_weekend_spending_confidence_is_capped():
    days = [TODAY - timedelta(days=i) for i in range(14)]
    spends = [100.0 if d.weekday() >= 5 else 50.0 for d in reversed(days)]
    correlation = analyze_correlation(series_of([0.5] * 14, spends), NOW)

    insights = generate_insights(correlation, PeriodTotals(), now=NOW)
    weekend = next(i for i in insights if i.title == "Weekend Spending Pattern")

    assert weekend.confidence_score == 90.0
    assert "100%" in weekend.description
    assert weekend.potential_impact == "Save $400/month"


def test_over_budget_reports_percentage():
    totals = PeriodTotals(planned_expense=1000.0, actual_expense=1300.0)

    insights = generate_insights(None, totals, now=NOW)
    alert = next(i for i in insights if i.title == "Expense Budget Alert")

    assert alert.confidence_score == 90.0
    assert "30% over" in alert.description
    assert alert.type == InsightType.WARNING


def test_income_celebration_reports_percentage():
    totals = PeriodTotals(planned_income=1000.0, actual_income=1250.0)

    insights = generate_insights(None, totals, now=NOW)
    celebration = next(i for i in insights if i.title == "Income Achievement!")

    assert celebration.confidence_score == 95.0
    assert "25% more" in celebration.description


def test_income_shortfall_and_expense_champion():
    totals = PeriodTotals(planned_income=1000.0, actual_income=500.0, planned_expense=1000.0, actual_expense=800.0)

    insights = generate_insights(None, totals, now=NOW)

    assert {"Income Below Target", "Expense Champion!"} <= titles(insights)


def test_overdue_tasks_warning():
    insights = generate_insights(None, PeriodTotals(), overdue_count=4, now=NOW)

    assert [i.title for i in insights] == ["Overdue Tasks Alert"]
    assert insights[0].confidence_score == 85.0


def test_completion_rate_insights():
    high = analyze_correlation(series_of([0.9] * 10, [0.0] * 10), NOW)
    low = analyze_correlation(series_of([0.2] * 10, [0.0] * 10), NOW)

    assert "High Performer" in titles(generate_insights(high, PeriodTotals(), now=NOW))
    assert "Productivity Boost Needed" in titles(generate_insights(low, PeriodTotals(), now=NOW))


def test_due_tasks_never_completed_get_a_productivity_nudge():
    tasks = [task(TODAY - timedelta(days=offset), False) for offset in range(10)]
    correlation = analyze_correlation(assemble_daily_points(tasks, [], today=TODAY), NOW)

    insights = generate_insights(correlation, PeriodTotals(), now=NOW)

    assert correlation.trend is not None
    assert correlation.optimal_range is not None
    nudge = next(i for i in insights if i.title == "Productivity Boost Needed")
    assert nudge.confidence_score == 75.0
    assert "Getting Started" not in titles(insights)


def test_category_budget_thresholds():
    plans = [
        BudgetPlanRecord("dining", 100.0, EXPENSE),
        BudgetPlanRecord("fuel", 100.0, EXPENSE),
        BudgetPlanRecord("books", 100.0, EXPENSE),
        BudgetPlanRecord("empty", 0.0, EXPENSE),
    ]
    spend = {"dining": 120.0, "fuel": 95.0, "books": 50.0, "empty": 10.0}

    insights = category_budget_insights(plans, spend, NOW)

    by_category = {i.related_category_id: i for i in insights}
    assert set(by_category) == {"dining", "fuel"}
    assert by_category["dining"].title == "Budget Exceeded"
    assert by_category["fuel"].title == "Budget Warning"
    assert by_category["fuel"].priority == InsightPriority.MEDIUM


def test_health_insights_need_transactions(steady_month):
    poor = compute_health_score([], PeriodTotals(planned_expense=100.0, actual_expense=500.0), now=NOW)

    without = generate_insights(None, PeriodTotals(), health_score=poor, now=NOW)
    with_txns = generate_insights(None, PeriodTotals(), health_score=poor, transactions=steady_month, now=NOW)

    assert not any(i.type == InsightType.HEALTH_SCORE for i in without)
    assert any(i.type == InsightType.HEALTH_SCORE for i in with_txns)
    assert any(i.title.startswith("Focus on") and i.confidence_score == 95.0 for i in with_txns)


def test_anomaly_insight_priority_follows_severity():
    anomaly = AnomalyResult(
        transaction=expense(TODAY, 900.0, "electronics"),
        z_score=4.2,
        confidence=1.0,
        severity=AnomalySeverity.CRITICAL,
        reason="Transaction amount is 4.2 standard deviations from your average",
    )

    insights = generate_insights(None, PeriodTotals(), anomalies=[anomaly], now=NOW)

    assert insights[0].type == InsightType.ANOMALY
    assert insights[0].priority == InsightPriority.URGENT
    assert insights[0].related_category_id == "electronics"


def test_growing_category_spend():
    txns = [expense(TODAY - timedelta(days=4 - i), amount) for i, amount in enumerate([10.0, 10.0, 20.0, 20.0])]

    insights = category_trend_insights(txns, NOW)

    assert [i.title for i in insights] == ["Increasing groceries Spending"]


def test_confidence_always_clamped():
    for insight in generate_insights(None, PeriodTotals(planned_expense=1.0, actual_expense=1000.0), now=NOW):
        assert 0.0 <= insight.confidence_score <= 100.0
    assert fallback_insight(NOW).created_at == NOW
