"""Data access layer for records feeding the analysis and for the insight feed"""

import uuid
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from budget_insights.config import settings
from budget_insights.domain.exceptions import CollaboratorUnavailableError, InvalidRecordError
from budget_insights.domain.models import (
    EXPENSE,
    INCOME,
    AnalysisInputs,
    BudgetPlanRecord,
    Insight,
    InsightPriority,
    InsightType,
    PeriodTotals,
    TaskRecord,
    TransactionRecord,
)
from budget_insights.infrastructure.database.models import (
    BudgetPlan,
    LedgerTransaction,
    SmartInsight,
    TaskRow,
    UserPreference,
)
from budget_insights.utils.date_utils import month_bounds

RECORD_TYPES = (INCOME, EXPENSE)


class SqlRecordSource:
    """
    Snapshot of tasks, ledger, plans and preferences for one analysis run.

    The active period defaults to the calendar month containing today.
    """

    def __init__(
        self,
        db: Session,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.now = now
        self.today = today or (now.date() if now else date.today())
        default_start, default_end = month_bounds(self.today)
        self.period_start = period_start or default_start
        self.period_end = period_end or default_end

    def load(self) -> AnalysisInputs:
        try:
            task_rows = self.db.query(TaskRow).all()
            txn_rows = self.db.query(LedgerTransaction).order_by(LedgerTransaction.date).all()
            plan_rows = (
                self.db.query(BudgetPlan)
                .filter(BudgetPlan.period_start <= self.period_end)
                .filter(BudgetPlan.period_end >= self.period_start)
                .all()
            )
            preference = self.db.query(UserPreference).first()
        except SQLAlchemyError as e:
            raise CollaboratorUnavailableError(f"Record store unavailable: {e}") from e

        tasks = [
            TaskRecord(
                due_date=row.due_date,
                is_completed=bool(row.is_completed),
                priority=row.priority,
                created_date=row.created_date,
                completed_date=row.completed_date,
            )
            for row in task_rows
        ]
        transactions = [self._to_transaction(row) for row in txn_rows]
        plans = [self._to_plan(row) for row in plan_rows]

        return AnalysisInputs(
            tasks=tasks,
            transactions=transactions,
            plans=plans,
            totals=self._period_totals(transactions, plans),
            notifications_enabled=preference.notifications_enabled if preference else True,
            period_start=self.period_start,
            period_end=self.period_end,
            today=self.today,
            now=self.now,
        )

    def _period_totals(self, transactions: List[TransactionRecord], plans: List[BudgetPlanRecord]) -> PeriodTotals:
        totals = PeriodTotals()
        for plan in plans:
            if plan.type == INCOME:
                totals.planned_income += plan.planned_amount
            else:
                totals.planned_expense += plan.planned_amount

        for txn in transactions:
            if not self.period_start <= txn.date <= self.period_end:
                continue
            if txn.type == INCOME:
                totals.actual_income += abs(txn.amount)
            else:
                totals.actual_expense += abs(txn.amount)
        return totals

    @staticmethod
    def _to_transaction(row: LedgerTransaction) -> TransactionRecord:
        if row.type not in RECORD_TYPES:
            raise InvalidRecordError(f"Transaction {row.id} has unknown type {row.type!r}")
        return TransactionRecord(
            date=row.date,
            amount=row.amount,
            category_id=row.category_id,
            type=row.type,
            notes=row.notes,
        )

    @staticmethod
    def _to_plan(row: BudgetPlan) -> BudgetPlanRecord:
        if row.type not in RECORD_TYPES:
            raise InvalidRecordError(f"Budget plan {row.id} has unknown type {row.type!r}")
        return BudgetPlanRecord(category_id=row.category_id, planned_amount=row.planned_amount, type=row.type)


class InsightRepository:
    """Repository for the persisted insight feed, capped at `capacity` visible rows"""

    def __init__(self, db: Session, capacity: Optional[int] = None):
        self.db = db
        self.capacity = capacity if capacity is not None else settings.inbox_capacity

    def save_insights(self, insights: Iterable[Insight]) -> List[SmartInsight]:
        """
        Persist insights not seen before.

        A unique key already stored, including a dismissed one, is skipped so
        cleared insights do not come back on the next run.
        Visible rows beyond capacity are evicted oldest first.
        """
        insights = list(insights)
        keys = [i.unique_key for i in insights]
        existing = {
            row.unique_key
            for row in self.db.query(SmartInsight.unique_key).filter(SmartInsight.unique_key.in_(keys)).all()
        }

        saved = []
        for insight in insights:
            if insight.unique_key in existing:
                continue
            row = SmartInsight(
                id=insight.id,
                unique_key=insight.unique_key,
                type=insight.type.value,
                title=insight.title,
                description=insight.description,
                priority=insight.priority.value,
                confidence_score=insight.confidence_score,
                actionable=insight.actionable,
                related_category_id=insight.related_category_id,
                potential_impact=insight.potential_impact,
                action_title=insight.action_title,
                is_read=insight.is_read,
                created_at=insight.created_at,
            )
            self.db.add(row)
            existing.add(insight.unique_key)
            saved.append(row)

        self.db.flush()
        self._evict_overflow()
        return saved

    def _evict_overflow(self) -> int:
        # Dismissed rows stay as tombstones and do not count against the cap
        visible = self.db.query(SmartInsight).filter(SmartInsight.is_dismissed.is_(False))
        overflow = visible.count() - self.capacity
        if overflow <= 0:
            return 0

        stale = (
            visible.order_by(SmartInsight.created_at.asc(), SmartInsight.confidence_score.asc())
            .limit(overflow)
            .all()
        )
        for row in stale:
            self.db.delete(row)
        self.db.flush()
        return len(stale)

    def list_insights(self, unread_only: bool = False, include_dismissed: bool = False) -> List[Insight]:
        """Fetch the feed, highest confidence first"""
        query = self.db.query(SmartInsight)
        if not include_dismissed:
            query = query.filter(SmartInsight.is_dismissed.is_(False))
        if unread_only:
            query = query.filter(SmartInsight.is_read.is_(False))
        rows = query.order_by(SmartInsight.confidence_score.desc(), SmartInsight.created_at.desc()).all()
        return [to_domain(row) for row in rows]

    def mark_read(self, insight_id: uuid.UUID) -> Optional[Insight]:
        row = self.db.query(SmartInsight).filter(SmartInsight.id == insight_id).first()
        if row is None:
            return None
        row.is_read = True
        self.db.flush()
        return to_domain(row)

    def dismiss_all(self) -> int:
        """Hide every visible insight; returns how many were dismissed"""
        count = (
            self.db.query(SmartInsight)
            .filter(SmartInsight.is_dismissed.is_(False))
            .update({SmartInsight.is_dismissed: True}, synchronize_session=False)
        )
        self.db.flush()
        return count


def to_domain(row: SmartInsight) -> Insight:
    return Insight(
        id=row.id,
        type=InsightType(row.type),
        title=row.title,
        description=row.description,
        priority=InsightPriority(row.priority),
        confidence_score=row.confidence_score,
        actionable=row.actionable,
        related_category_id=row.related_category_id,
        potential_impact=row.potential_impact,
        action_title=row.action_title,
        created_at=row.created_at,
        is_read=row.is_read,
    )
