"""Record builders and test doubles shared across test suites"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from budget_insights.domain.exceptions import DeliveryError
from budget_insights.domain.models import EXPENSE, INCOME, DailyPoint, Insight, TaskRecord, TransactionRecord
from budget_insights.infrastructure.database.models import BudgetPlan, LedgerTransaction, TaskRow, UserPreference
from budget_insights.utils.date_utils import is_weekend, month_bounds

# Fixed clock so weekday/weekend splits are deterministic; 2024-06-15 is a Saturday
TODAY = date(2024, 6, 15)
NOW = datetime(2024, 6, 15, 18, 0)


class RecordingNotifier:
    """Notifier double that records deliveries and can be told to fail"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Insight] = []

    async def send(self, insight: Insight) -> None:
        if self.fail:
            raise DeliveryError("channel rejected the notification")
        self.sent.append(insight)


def expense(day: date, amount: float, category_id: str = "groceries") -> TransactionRecord:
    return TransactionRecord(date=day, amount=amount, category_id=category_id, type=EXPENSE)


def income(day: date, amount: float, category_id: str = "salary") -> TransactionRecord:
    return TransactionRecord(date=day, amount=amount, category_id=category_id, type=INCOME)


def task(day: date, completed: bool, hour: int = 12) -> TaskRecord:
    return TaskRecord(due_date=datetime(day.year, day.month, day.day, hour), is_completed=completed)


def point(day: date, rate: float = 0.0, spend: float = 0.0, tasks: Optional[int] = None) -> DailyPoint:
    """Ten tasks due on any day with completions unless told otherwise"""
    if tasks is None:
        tasks = 10 if rate > 0 else 0
    return DailyPoint(
        date=day,
        tasks_completed=int(rate * tasks),
        total_tasks=max(tasks, 1),
        completion_rate=rate,
        spend=spend,
        is_weekend=is_weekend(day),
        task_count=tasks,
    )


def series_of(
    rates: List[float],
    spends: List[float],
    end: date = TODAY,
    tasks: Optional[int] = None,
) -> List[DailyPoint]:
    """Newest-first series; rates and spends are given oldest first"""
    days = [end - timedelta(days=len(rates) - 1 - i) for i in range(len(rates))]
    return list(reversed([point(d, r, s, tasks) for d, r, s in zip(days, rates, spends)]))


def seed_transactions(db, rows) -> None:
    """rows: iterable of (date, amount, category_id, type)"""
    for day, amount, category_id, type_ in rows:
        db.add(LedgerTransaction(date=day, amount=amount, category_id=category_id, type=type_))
    db.commit()


def seed_plan(db, category_id: str, planned_amount: float, type_: str = EXPENSE, today: Optional[date] = None) -> None:
    start, end = month_bounds(today or date.today())
    db.add(BudgetPlan(
        category_id=category_id,
        planned_amount=planned_amount,
        type=type_,
        period_start=start,
        period_end=end,
    ))
    db.commit()


def seed_tasks(db, rows) -> None:
    """rows: iterable of (due datetime, is_completed)"""
    for due, completed in rows:
        db.add(TaskRow(title="task", due_date=due, is_completed=completed))
    db.commit()


def set_notifications(db, enabled: bool) -> None:
    db.add(UserPreference(id=1, notifications_enabled=enabled))
    db.commit()
