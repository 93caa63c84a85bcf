"""Insight engine - runs the full analysis pipeline and publishes immutable snapshots"""

import asyncio
import logging
import time
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from budget_insights.config import settings
from budget_insights.domain.anomalies import detect_anomalies
from budget_insights.domain.assembler import assemble_daily_points, count_overdue_tasks
from budget_insights.domain.exceptions import CollaboratorUnavailableError, DeliveryError
from budget_insights.domain.forecasting import detect_spending_patterns, generate_forecasts
from budget_insights.domain.health import compute_health_score
from budget_insights.domain.insights import fallback_insight, generate_insights
from budget_insights.domain.models import (
    AnalysisInputs,
    AnalysisResult,
    EXPENSE,
    Insight,
    TransactionRecord,
)
from budget_insights.domain.patterns import analyze_correlation
from budget_insights.domain.ranking import CadenceGate, CooldownGate, InsightInbox, rank_insights, top_suggestions
from budget_insights.infrastructure.observability.logging import log_analysis_run, log_delivery
from budget_insights.infrastructure.observability.metrics import record_analysis, record_notification

logger = logging.getLogger(__name__)

Subscriber = Callable[[AnalysisResult], None]


class RecordSource(Protocol):
    """Collaborator that snapshots tasks, ledger, plans and preferences"""

    def load(self) -> AnalysisInputs:
        ...


class Notifier(Protocol):
    """Collaborator that delivers one insight to the user"""

    async def send(self, insight: Insight) -> None:
        ...


class _Cancelled(Exception):
    pass


def period_category_spend(
    transactions: Sequence[TransactionRecord],
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
) -> Dict[str, float]:
    """Expense totals per category inside the active period (inclusive bounds)"""
    totals: Dict[str, float] = defaultdict(float)
    for txn in transactions:
        if txn.type != EXPENSE:
            continue
        if period_start is not None and txn.date < period_start:
            continue
        if period_end is not None and txn.date > period_end:
            continue
        totals[txn.category_id] += abs(txn.amount)
    return dict(totals)


def _default(value, fallback):
    return fallback if value is None else value


class InsightEngine:
    """
    Single-flight analysis pipeline.

    One analyze() call runs assemble -> detect -> trend -> forecast -> score ->
    generate -> rank to completion and publishes one AnalysisResult. A run that
    finishes after a newer run started is discarded; results are never merged.
    """

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        window_days: Optional[int] = None,
        suggestion_limit: Optional[int] = None,
        inbox_capacity: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
        budget_check_interval_seconds: Optional[float] = None,
        min_analysis_interval_seconds: Optional[float] = None,
        health_weights: Optional[Sequence[float]] = None,
        target_savings_rate: Optional[float] = None,
    ):
        self.notifier = notifier
        self.window_days = _default(window_days, settings.analysis_window_days)
        self.suggestion_limit = _default(suggestion_limit, settings.suggestion_limit)
        self.min_analysis_interval = timedelta(
            seconds=_default(min_analysis_interval_seconds, settings.min_analysis_interval_seconds)
        )
        self.health_weights = tuple(_default(health_weights, settings.health_weights))
        self.target_savings_rate = _default(target_savings_rate, settings.target_savings_rate)

        self.inbox = InsightInbox(capacity=_default(inbox_capacity, settings.inbox_capacity))
        self.cooldown = CooldownGate(
            cooldown=timedelta(seconds=_default(cooldown_seconds, settings.notification_cooldown_seconds))
        )
        self.budget_check = CadenceGate(
            interval=timedelta(
                seconds=_default(budget_check_interval_seconds, settings.budget_check_interval_seconds)
            )
        )

        self.latest: Optional[AnalysisResult] = None
        self._generation = 0
        self._last_fingerprint: Optional[str] = None
        self._last_run_at: Optional[datetime] = None
        self._subscribers: List[Subscriber] = []

    # Observer channel

    def subscribe(self, callback: Subscriber) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _publish(self, result: AnalysisResult) -> None:
        self.latest = result
        self.inbox.clear_old_read(result.completed_at)
        self.inbox.add(result.insights)
        for callback in list(self._subscribers):
            try:
                callback(result)
            except Exception:
                logger.exception("Analysis subscriber failed", extra={"run_id": result.run_id})

    # Pipeline

    async def refresh(
        self,
        source: RecordSource,
        force: bool = False,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ) -> Optional[AnalysisResult]:
        """
        Load a fresh snapshot from the record source and analyze it.

        If the source is unavailable the whole run degrades to the single
        fallback insight instead of partial output.
        """
        try:
            inputs = source.load()
        except CollaboratorUnavailableError as e:
            logger.error(f"Record source unavailable: {e}")
            return self._degrade()

        return await self.analyze(inputs, force=force, is_cancelled=is_cancelled)

    async def analyze(
        self,
        inputs: AnalysisInputs,
        force: bool = False,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ) -> Optional[AnalysisResult]:
        """
        Run the full pipeline over one input snapshot.

        Returns the published result, the previous result when the same data
        was analyzed within the minimum interval (unless forced), or None when
        the run was cancelled or superseded.
        """
        now = inputs.now or datetime.now()
        today = inputs.today or now.date()

        fingerprint = inputs.fingerprint()
        if not force and self._is_fresh(fingerprint, now):
            record_analysis("skipped")
            return self.latest

        self._generation += 1
        generation = self._generation
        run_id = uuid.uuid4().hex
        start_time = time.perf_counter()

        async def checkpoint() -> None:
            # Yield between stages; a torn-down caller drops the run here
            await asyncio.sleep(0)
            if is_cancelled is not None and is_cancelled():
                raise _Cancelled()

        try:
            series = assemble_daily_points(inputs.tasks, inputs.transactions, today, self.window_days)
            await checkpoint()

            correlation = analyze_correlation(series, now)
            await checkpoint()

            patterns = detect_spending_patterns(inputs.transactions)
            forecasts = generate_forecasts(inputs.transactions, patterns, today)
            anomalies = detect_anomalies(inputs.transactions)
            await checkpoint()

            health_score = compute_health_score(
                inputs.transactions,
                inputs.totals,
                now=now,
                weights=self.health_weights,
                target_savings_rate=self.target_savings_rate,
            )
            await checkpoint()

            insights = generate_insights(
                correlation,
                inputs.totals,
                overdue_count=count_overdue_tasks(inputs.tasks, now),
                health_score=health_score,
                forecasts=forecasts,
                anomalies=anomalies,
                transactions=inputs.transactions,
                plans=inputs.plans,
                category_spend=period_category_spend(inputs.transactions, inputs.period_start, inputs.period_end),
                now=now,
            )
            ranked = rank_insights(insights)
            await checkpoint()
        except _Cancelled:
            self._finish(run_id, "cancelled", start_time)
            return None

        if generation != self._generation:
            self._finish(run_id, "superseded", start_time)
            return None

        result = AnalysisResult(
            run_id=run_id,
            correlation=correlation,
            forecasts=forecasts,
            patterns=patterns,
            health_score=health_score,
            insights=tuple(ranked),
            suggestions=tuple(top_suggestions(ranked, self.suggestion_limit)),
            anomalies=tuple(anomalies),
            completed_at=now,
        )

        self._last_fingerprint = fingerprint
        self._last_run_at = now
        self._publish(result)
        self._finish(run_id, "completed", start_time, result)

        await self.deliver(result.suggestions, inputs.notifications_enabled, now=now, force=force)
        return result

    def _is_fresh(self, fingerprint: str, now: datetime) -> bool:
        return (
            self.latest is not None
            and not self.latest.degraded
            and fingerprint == self._last_fingerprint
            and self._last_run_at is not None
            and now - self._last_run_at < self.min_analysis_interval
        )

    def _degrade(self) -> AnalysisResult:
        # A newer run in flight must not publish over the degraded snapshot
        self._generation += 1
        self._last_fingerprint = None
        run_id = uuid.uuid4().hex
        fallback = fallback_insight()
        result = AnalysisResult(
            run_id=run_id,
            correlation=None,
            forecasts={},
            patterns={},
            health_score=None,
            insights=(fallback,),
            suggestions=(fallback,),
            degraded=True,
        )
        self._publish(result)
        record_analysis("degraded", insights=result.insights)
        log_analysis_run(run_id, "degraded", 1, 0.0)
        return result

    def _finish(
        self,
        run_id: str,
        outcome: str,
        start_time: float,
        result: Optional[AnalysisResult] = None,
    ) -> None:
        duration = time.perf_counter() - start_time
        insights = result.insights if result else ()
        record_analysis(
            outcome,
            duration_seconds=duration,
            insights=insights,
            health_score=result.health_score if result else None,
        )
        log_analysis_run(run_id, outcome, len(insights), duration * 1000)

    # Delivery

    async def deliver(
        self,
        insights: Sequence[Insight],
        notifications_enabled: bool = True,
        now: Optional[datetime] = None,
        force: bool = False,
    ) -> List[Insight]:
        """
        Forward insights to the notifier, honoring the preference and rate limits.

        The budget-check cadence gate allows one pass per interval (force
        bypasses it). Within a pass, a (type, category) pair delivered inside
        the cooldown is suppressed. A failed delivery is logged and dropped;
        the insight stays in the inbox and the cooldown is not started.
        """
        if self.notifier is None or not insights:
            return []

        if not notifications_enabled:
            for insight in insights:
                record_notification("disabled")
            return []

        now = now or datetime.now()
        if not self.budget_check.allow(now, force=force):
            record_notification("gated")
            return []

        delivered = []
        for insight in insights:
            if self.cooldown.is_suppressed(insight, now):
                record_notification("suppressed")
                log_delivery(insight, "suppressed")
                continue

            try:
                await self.notifier.send(insight)
            except DeliveryError as e:
                logger.warning(f"Notification delivery failed: {e}", extra={"insight_id": str(insight.id)})
                record_notification("failed")
                log_delivery(insight, "failed", str(e))
                continue

            self.cooldown.record(insight, now)
            record_notification("delivered")
            log_delivery(insight, "delivered")
            delivered.append(insight)

        return delivered

    def mark_read(self, insight_id: uuid.UUID) -> Optional[Insight]:
        return self.inbox.mark_read(insight_id)
