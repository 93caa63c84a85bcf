"""Rolling daily series of task completion and spend"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from budget_insights.domain.models import DailyPoint, EXPENSE, TaskRecord, TransactionRecord
from budget_insights.utils.date_utils import day_bounds, is_weekend


def assemble_daily_points(
    tasks: Sequence[TaskRecord],
    transactions: Sequence[TransactionRecord],
    today: Optional[date] = None,
    window_days: int = 30,
) -> List[DailyPoint]:
    """
    Build exactly window_days points, newest first, ending on today.

    Requirements:
    - Tasks belong to the day their due date falls in: [day_start, day_start + 1 day)
    - completion_rate = completed / max(total, 1), so empty days report 0
    - Spend is the sum of ledger expenses dated that day
    - Days with no activity are still present
    """
    if today is None:
        today = date.today()

    spend_by_day = daily_expense_totals(transactions)
    dated_tasks = [t for t in tasks if t.due_date is not None]

    points = []
    for offset in range(window_days):
        day = today - timedelta(days=offset)
        day_start, day_end = day_bounds(day)

        day_tasks = [t for t in dated_tasks if day_start <= _as_naive(t.due_date) < day_end]
        completed = sum(1 for t in day_tasks if t.is_completed)
        total = max(len(day_tasks), 1)

        points.append(
            DailyPoint(
                date=day,
                tasks_completed=completed,
                total_tasks=total,
                completion_rate=completed / total,
                spend=max(0.0, spend_by_day.get(day, 0.0)),
                is_weekend=is_weekend(day),
                task_count=len(day_tasks),
            )
        )

    return points


def daily_expense_totals(transactions: Iterable[TransactionRecord]) -> Dict[date, float]:
    totals: Dict[date, float] = defaultdict(float)
    for txn in transactions:
        if txn.type == EXPENSE:
            totals[txn.date] += abs(txn.amount)
    return totals


def series_has_activity(series: Sequence[DailyPoint]) -> bool:
    """False when no day has a due task or any spend"""
    return any(p.task_count > 0 or p.completion_rate > 0 or p.spend > 0 for p in series)


def count_overdue_tasks(tasks: Iterable[TaskRecord], now: Optional[datetime] = None) -> int:
    if now is None:
        now = datetime.now()
    return sum(
        1 for t in tasks
        if not t.is_completed and t.due_date is not None and _as_naive(t.due_date) < now
    )


def _as_naive(value: datetime) -> datetime:
    # Stored timestamps may carry a timezone; the series works in local naive time
    return value.replace(tzinfo=None) if value.tzinfo else value
