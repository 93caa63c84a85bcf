"""Ranking, retention and delivery throttling for insights"""

import dataclasses
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from budget_insights.domain.models import Insight

DEFAULT_SUGGESTION_LIMIT = 5
DEFAULT_INBOX_CAPACITY = 100
DEFAULT_COOLDOWN = timedelta(hours=1)
DEFAULT_BUDGET_CHECK_INTERVAL = timedelta(minutes=30)
READ_INSIGHT_MAX_AGE = timedelta(days=30)


def rank_insights(insights: Iterable[Insight], limit: Optional[int] = None) -> List[Insight]:
    """
    Deduplicate by unique key (highest confidence wins) and sort by confidence, descending.

    Stable and idempotent: ranking an already-ranked list returns it unchanged.
    """
    best: Dict[str, Insight] = {}
    for insight in insights:
        current = best.get(insight.unique_key)
        if current is None or insight.confidence_score > current.confidence_score:
            best[insight.unique_key] = insight

    ranked = sorted(best.values(), key=lambda i: i.confidence_score, reverse=True)
    return ranked[:limit] if limit is not None else ranked


def top_suggestions(insights: Iterable[Insight], limit: int = DEFAULT_SUGGESTION_LIMIT) -> List[Insight]:
    """Primary dashboard feed"""
    return rank_insights(insights, limit=limit)


class InsightInbox:
    """
    Full insight list with a hard retention cap.

    Insights arrive in order; beyond capacity the oldest are evicted first.
    An insight whose unique key is already held is not added again.
    """

    def __init__(self, capacity: int = DEFAULT_INBOX_CAPACITY):
        self.capacity = capacity
        self._items: "OrderedDict[uuid.UUID, Insight]" = OrderedDict()

    def add(self, insights: Iterable[Insight]) -> List[Insight]:
        """Store new insights, returning the ones actually added"""
        known_keys = {i.unique_key for i in self._items.values()}
        added = []
        for insight in insights:
            if insight.unique_key in known_keys:
                continue
            self._items[insight.id] = insight
            known_keys.add(insight.unique_key)
            added.append(insight)

        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

        return added

    def get(self, insight_id: uuid.UUID) -> Optional[Insight]:
        return self._items.get(insight_id)

    def mark_read(self, insight_id: uuid.UUID) -> Optional[Insight]:
        insight = self._items.get(insight_id)
        if insight is None:
            return None
        updated = dataclasses.replace(insight, is_read=True)
        self._items[insight_id] = updated
        return updated

    def unread(self) -> List[Insight]:
        return [i for i in self._items.values() if not i.is_read]

    def clear_old_read(self, now: Optional[datetime] = None, max_age: timedelta = READ_INSIGHT_MAX_AGE) -> int:
        """Drop read insights older than max_age; unread ones are kept"""
        cutoff = (now or datetime.now()) - max_age
        stale = [k for k, i in self._items.items() if i.is_read and i.created_at < cutoff]
        for key in stale:
            del self._items[key]
        return len(stale)

    def clear(self) -> None:
        self._items.clear()

    def __iter__(self) -> Iterator[Insight]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


class CooldownGate:
    """
    Suppresses repeat deliveries of the same (type, category) pair.

    A repeat inside the cooldown window is dropped, not queued. The cache is
    bounded; the oldest entries are evicted first.
    """

    def __init__(self, cooldown: timedelta = DEFAULT_COOLDOWN, max_entries: int = 1000):
        self.cooldown = cooldown
        self.max_entries = max_entries
        self._last_sent: "OrderedDict[Tuple[str, str], datetime]" = OrderedDict()

    @staticmethod
    def key_for(insight: Insight) -> Tuple[str, str]:
        return insight.type.value, insight.related_category_id or ""

    def is_suppressed(self, insight: Insight, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        last_sent = self._last_sent.get(self.key_for(insight))
        return last_sent is not None and now - last_sent < self.cooldown

    def record(self, insight: Insight, now: Optional[datetime] = None) -> None:
        key = self.key_for(insight)
        self._last_sent.pop(key, None)
        self._last_sent[key] = now or datetime.now()
        self._evict(now or datetime.now())

    def _evict(self, now: datetime) -> None:
        expired = [k for k, sent in self._last_sent.items() if now - sent >= self.cooldown]
        for key in expired:
            del self._last_sent[key]
        while len(self._last_sent) > self.max_entries:
            self._last_sent.popitem(last=False)

    def __len__(self) -> int:
        return len(self._last_sent)


class CadenceGate:
    """Allows a full budget check at most once per interval unless forced"""

    def __init__(self, interval: timedelta = DEFAULT_BUDGET_CHECK_INTERVAL):
        self.interval = interval
        self._last_check: Optional[datetime] = None

    def allow(self, now: Optional[datetime] = None, force: bool = False) -> bool:
        now = now or datetime.now()
        if not force and self._last_check is not None and now - self._last_check < self.interval:
            return False
        self._last_check = now
        return True
