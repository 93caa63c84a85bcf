"""Domain models - pure Python dataclasses representing business entities"""

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

INCOME = "INCOME"
EXPENSE = "EXPENSE"


@dataclass
class TaskRecord:
    """Task snapshot from the task store"""

    due_date: Optional[datetime]
    is_completed: bool
    priority: str = "medium"
    created_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None


@dataclass
class TransactionRecord:
    """Ledger transaction snapshot"""

    date: date
    amount: float
    category_id: str
    type: str  # "INCOME" or "EXPENSE"
    notes: Optional[str] = None


@dataclass
class BudgetPlanRecord:
    """Planned amount for one category in the active period"""

    category_id: str
    planned_amount: float
    type: str  # "INCOME" or "EXPENSE"


@dataclass
class PeriodTotals:
    """Aggregate sums over the active accounting period"""

    planned_income: float = 0.0
    actual_income: float = 0.0
    planned_expense: float = 0.0
    actual_expense: float = 0.0

    def is_empty(self) -> bool:
        return not any((self.planned_income, self.actual_income, self.planned_expense, self.actual_expense))


@dataclass
class AnalysisInputs:
    """Read-only snapshot of everything one analysis run consumes"""

    tasks: List[TaskRecord] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)
    plans: List[BudgetPlanRecord] = field(default_factory=list)
    totals: PeriodTotals = field(default_factory=PeriodTotals)
    notifications_enabled: bool = True
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    today: Optional[date] = None
    now: Optional[datetime] = None

    def fingerprint(self) -> str:
        """Stable digest of the data volume, sums, latest dates and delivery preference"""
        latest_txn = max((t.date for t in self.transactions), default=None)
        latest_due = max((t.due_date for t in self.tasks if t.due_date), default=None)
        parts = [
            len(self.tasks),
            sum(1 for t in self.tasks if t.is_completed),
            len(self.transactions),
            round(sum(t.amount for t in self.transactions), 2),
            len(self.plans),
            round(sum(p.planned_amount for p in self.plans), 2),
            latest_txn,
            latest_due,
            self.totals,
            self.notifications_enabled,
            self.period_start,
            self.period_end,
            self.today,
        ]
        return hashlib.sha256(repr(parts).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DailyPoint:
    """One day of behavioral and financial observations"""

    date: date
    tasks_completed: int
    total_tasks: int
    completion_rate: float
    spend: float
    is_weekend: bool
    task_count: int = 0  # tasks actually due; total_tasks floors this at 1


@dataclass(frozen=True)
class WeekendSpendingPattern:
    avg_weekday: float
    avg_weekend: float
    relative_increase: float  # Can be negative
    projected_monthly_savings: float


@dataclass(frozen=True)
class OptimalSpendingRange:
    """Spend band observed on the most productive days"""

    min_amount: float
    max_amount: float
    avg_productivity_in_range: float
    confidence: float  # 50-100
    productivity_boost: float


@dataclass(frozen=True)
class ProductivityTrend:
    average_completion_rate: float
    is_improving: bool
    strength: float
    confidence: float  # 0.3-1.0


@dataclass(frozen=True)
class CorrelationResult:
    """Output of one productivity/spending correlation analysis"""

    coefficient: float
    weekend_pattern: WeekendSpendingPattern
    optimal_range: Optional[OptimalSpendingRange]
    trend: Optional[ProductivityTrend]
    series: Tuple[DailyPoint, ...]
    computed_at: datetime
    overall_confidence: float


@dataclass(frozen=True)
class SpendingPattern:
    """Per-category spending habits"""

    category_id: str
    average_amount: float
    frequency: int
    day_of_week_distribution: Tuple[float, ...]  # Monday first, sums to 1
    monthly_trend: Tuple[float, ...]  # January first
    seasonal_factor: float
    confidence_score: float  # 0-1


@dataclass(frozen=True)
class BudgetForecast:
    category_id: str
    forecast_amount: float
    confidence_interval: Tuple[float, float]
    forecast_date: date
    based_on_pattern: Optional[SpendingPattern] = None


@dataclass(frozen=True)
class FinancialHealthScore:
    """Weighted composite of five 0-100 sub-scores"""

    overall: float
    budget_adherence: float
    consistency: float
    savings_rate: float
    category_balance: float
    trend: float
    last_calculated: datetime

    @property
    def grade(self) -> str:
        from budget_insights.domain.health import grade_for

        return grade_for(self.overall)

    @property
    def status(self) -> str:
        from budget_insights.domain.health import status_for

        return status_for(self.overall)


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AnomalyResult:
    """Expense whose amount sits far outside the usual distribution"""

    transaction: TransactionRecord
    z_score: float
    confidence: float  # 0-1
    severity: AnomalySeverity
    reason: str


class InsightType(str, Enum):
    BUDGET_ALERT = "budget_alert"
    SPENDING_PATTERN = "spending_pattern"
    ANOMALY = "anomaly"
    RECOMMENDATION = "recommendation"
    FORECAST = "forecast"
    HEALTH_SCORE = "health_score"
    HABIT = "habit"
    WARNING = "warning"
    OPTIMIZATION = "optimization"
    PRODUCTIVITY = "productivity"
    FINANCIAL = "financial"


class InsightPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    InsightPriority.LOW: 1,
    InsightPriority.MEDIUM: 2,
    InsightPriority.HIGH: 3,
    InsightPriority.URGENT: 4,
}


@dataclass(frozen=True)
class Insight:
    """
    Typed, confidence-scored finding surfaced to the user.

    Only is_read ever changes; the inbox swaps in a copy via dataclasses.replace.
    Corrections are new insights, never edits.
    """

    type: InsightType
    title: str
    description: str
    priority: InsightPriority
    confidence_score: float  # 0-100
    actionable: bool = True
    related_category_id: Optional[str] = None
    potential_impact: Optional[str] = None
    action_title: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=datetime.now)
    is_read: bool = False

    @property
    def unique_key(self) -> str:
        return f"{self.type.value}|{self.title}|{self.related_category_id or ''}"


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable snapshot published by one analysis run"""

    run_id: str
    correlation: Optional[CorrelationResult]
    forecasts: Dict[str, BudgetForecast]
    patterns: Dict[str, SpendingPattern]
    health_score: Optional[FinancialHealthScore]
    insights: Tuple[Insight, ...]
    suggestions: Tuple[Insight, ...]
    anomalies: Tuple[AnomalyResult, ...] = ()
    degraded: bool = False
    completed_at: datetime = field(default_factory=datetime.now)
