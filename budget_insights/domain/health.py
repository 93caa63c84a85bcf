"""Financial health score - weighted composite of five sub-scores"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Optional, Sequence, Tuple

from budget_insights.domain.models import EXPENSE, FinancialHealthScore, PeriodTotals, TransactionRecord
from budget_insights.domain.statistics import clamp, mean, std_dev

# adherence, consistency, savings rate, category balance, trend
DEFAULT_WEIGHTS: Tuple[float, float, float, float, float] = (0.25, 0.20, 0.25, 0.15, 0.15)
NEUTRAL_SCORE = 50.0


def budget_adherence_score(planned_expense: float, actual_expense: float) -> float:
    """
    Share of the expense budget left unspent, as 0-100.

    With no plan: 100 when nothing was spent either, otherwise 0.
    """
    if planned_expense > 0:
        return clamp(100.0 * (planned_expense - actual_expense) / planned_expense, 0.0, 100.0)
    return 100.0 if actual_expense == 0 else 0.0


def consistency_score(amounts: Sequence[float]) -> float:
    """Lower coefficient of variation = higher consistency"""
    if len(amounts) < 2:
        return 100.0
    avg = mean(amounts)
    cv = std_dev(amounts) / avg if avg > 0 else 0.0
    return clamp(100.0 * (1.0 - min(cv, 1.0)), 0.0, 100.0)


def savings_rate_score(actual_income: float, actual_expense: float, target_rate: float = 0.2) -> float:
    """
    Savings ratio (income - expense) / income, scaled so target_rate scores 100.

    Neutral 50 with no money movement at all; 0 when there is spending but no income.
    """
    if actual_income <= 0:
        return NEUTRAL_SCORE if actual_expense <= 0 else 0.0
    ratio = (actual_income - actual_expense) / actual_income
    return clamp(100.0 * ratio / target_rate, 0.0, 100.0) if target_rate > 0 else 100.0


def category_balance_score(transactions: Sequence[TransactionRecord]) -> float:
    """100 * (1 - Gini) over per-category expense totals"""
    totals: Dict[str, float] = defaultdict(float)
    for txn in transactions:
        if txn.type == EXPENSE:
            totals[txn.category_id] += abs(txn.amount)

    if len(totals) < 2:
        return NEUTRAL_SCORE

    grand_total = sum(totals.values())
    if grand_total == 0:
        return 100.0

    proportions = sorted(v / grand_total for v in totals.values())
    n = len(proportions)
    gini_sum = sum((2 * (i + 1) - n - 1) * p for i, p in enumerate(proportions))
    gini = gini_sum / (n - 1) / sum(proportions)

    return clamp(100.0 * (1.0 - gini), 0.0, 100.0)


def trend_score(transactions: Sequence[TransactionRecord]) -> float:
    """
    Compare the latest third of expenses to the earliest third.

    Flat spend scores 100. A drop scores 100 * ratio and growth 100 / ratio,
    so sharp swings either way read as unstable.
    """
    expenses = sorted((t for t in transactions if t.type == EXPENSE), key=lambda t: t.date)
    if len(expenses) < 3:
        return NEUTRAL_SCORE

    third = len(expenses) // 3
    earlier = sum(abs(t.amount) for t in expenses[:third])
    recent = sum(abs(t.amount) for t in expenses[-third:])

    if earlier == 0:
        return NEUTRAL_SCORE

    ratio = recent / earlier
    if ratio <= 1.0:
        return clamp(100.0 * ratio, 0.0, 100.0)
    return clamp(100.0 / ratio, 0.0, 100.0)


def compute_health_score(
    transactions: Sequence[TransactionRecord],
    totals: PeriodTotals,
    now: Optional[datetime] = None,
    weights: Optional[Sequence[float]] = None,
    target_savings_rate: float = 0.2,
) -> FinancialHealthScore:
    """
    Weighted overall score from five sub-scores, each clamped to 0-100.

    Default weights: adherence 25%, consistency 20%, savings 25%,
    category balance 15%, trend 15%.
    """
    weights = tuple(weights) if weights is not None else DEFAULT_WEIGHTS
    if len(weights) != 5 or abs(sum(weights) - 1.0) > 1e-6:
        raise ValueError(f"Expected five weights summing to 1, got {weights}")

    expense_amounts = [abs(t.amount) for t in transactions if t.type == EXPENSE]

    scores = (
        budget_adherence_score(totals.planned_expense, totals.actual_expense),
        consistency_score(expense_amounts),
        savings_rate_score(totals.actual_income, totals.actual_expense, target_savings_rate),
        category_balance_score(transactions),
        trend_score(transactions),
    )
    overall = sum(w * s for w, s in zip(weights, scores))

    return FinancialHealthScore(
        overall=clamp(overall, 0.0, 100.0),
        budget_adherence=scores[0],
        consistency=scores[1],
        savings_rate=scores[2],
        category_balance=scores[3],
        trend=scores[4],
        last_calculated=now or datetime.now(),
    )


def grade_for(score: float) -> str:
    if score >= 90:
        return "A"
    elif score >= 80:
        return "B"
    elif score >= 70:
        return "C"
    elif score >= 60:
        return "D"
    else:
        return "F"


def status_for(score: float) -> str:
    if score >= 85:
        return "excellent"
    elif score >= 70:
        return "good"
    elif score >= 50:
        return "fair"
    else:
        return "needs attention"
