"""Notification webhook client with exponential backoff retry logic"""

import asyncio
from typing import Any, Dict

import httpx

from budget_insights.config import settings
from budget_insights.domain.exceptions import DeliveryError
from budget_insights.domain.models import Insight, InsightPriority
from budget_insights.infrastructure.observability.metrics import notification_latency_histogram

# Maps insight priority onto how strongly the device should interrupt the user
INTERRUPTION_LEVELS = {
    InsightPriority.LOW: "passive",
    InsightPriority.MEDIUM: "active",
    InsightPriority.HIGH: "time_sensitive",
    InsightPriority.URGENT: "critical",
}


def build_payload(insight: Insight) -> Dict[str, Any]:
    """Serialize one insight into the notification webhook body"""
    return {
        "title": insight.title,
        "body": insight.description,
        "priority": insight.priority.value,
        "interruption_level": INTERRUPTION_LEVELS[insight.priority],
        "category_id": insight.related_category_id,
        "insight_type": insight.type.value,
        "insight_id": str(insight.id),
        "confidence": insight.confidence_score,
    }


class NotificationClient:
    """Client for pushing insight notifications to the delivery webhook"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    async def send(self, insight: Insight) -> None:
        """
        Deliver one insight with retry logic.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base ...
        - Retries on 5xx errors and network failures
        - 4xx responses are final, the channel rejected the payload

        Raises:
            DeliveryError: the webhook never acknowledged the insight
        """
        payload = build_payload(insight)
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport) as client:
            while True:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return  # Success

                except httpx.HTTPStatusError as e:
                    if e.response.status_code < 500:
                        raise DeliveryError(f"Notification rejected with status {e.response.status_code}") from e
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise DeliveryError(
                            f"Notification failed after {attempt} attempts: status {e.response.status_code}"
                        ) from e

                except httpx.RequestError as e:
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise DeliveryError(f"Notification failed after {attempt} attempts: {e}") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)
