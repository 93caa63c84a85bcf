"""Unit tests for the notification webhook client"""

import httpx
import pytest

from budget_insights.domain.exceptions import DeliveryError
from budget_insights.domain.models import Insight, InsightPriority, InsightType
from budget_insights.infrastructure.clients.notifier import NotificationClient, build_payload


def make_insight(priority=InsightPriority.HIGH):
    return Insight(
        type=InsightType.BUDGET_ALERT,
        title="Budget Exceeded",
        description="You've exceeded your dining budget by $20.",
        priority=priority,
        confidence_score=90.0,
        related_category_id="dining",
    )


def client_with(handler, max_retries=3):
    return NotificationClient(
        webhook_url="http://notify.test/hook",
        max_retries=max_retries,
        backoff_base=0,
        transport=httpx.MockTransport(handler),
    )


def test_payload_carries_metadata():
    insight = make_insight()

    payload = build_payload(insight)

    assert payload["title"] == "Budget Exceeded"
    assert payload["body"].startswith("You've exceeded")
    assert payload["priority"] == "high"
    assert payload["interruption_level"] == "time_sensitive"
    assert payload["category_id"] == "dining"
    assert payload["insight_type"] == "budget_alert"
    assert payload["insight_id"] == str(insight.id)
    assert build_payload(make_insight(InsightPriority.URGENT))["interruption_level"] == "critical"


async def test_send_success():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(202)

    await client_with(handler).send(make_insight())

    assert len(requests) == 1
    assert requests[0].url == "http://notify.test/hook"


async def test_send_retries_server_errors_then_succeeds():
    responses = iter([httpx.Response(503), httpx.Response(500), httpx.Response(200)])

    def handler(request):
        return next(responses)

    await client_with(handler).send(make_insight())


async def test_send_gives_up_after_max_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(502)

    with pytest.raises(DeliveryError):
        await client_with(handler, max_retries=3).send(make_insight())

    assert len(attempts) == 3


async def test_client_errors_are_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400)

    with pytest.raises(DeliveryError):
        await client_with(handler).send(make_insight())

    assert len(attempts) == 1


async def test_network_errors_become_delivery_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DeliveryError):
        await client_with(handler, max_retries=2).send(make_insight())
