"""Integration tests for API endpoints"""

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from budget_insights.domain.models import EXPENSE, INCOME
from budget_insights.infrastructure.database.models import LedgerTransaction
from budget_insights.scheduler.refresh import RefreshScheduler
from tests.factories import seed_plan, seed_tasks, seed_transactions, set_notifications


@pytest.fixture
def over_budget(db):
    """Groceries plan of $100 with $300 already spent today"""
    today = date.today()
    seed_plan(db, "groceries", 100.0)
    seed_plan(db, "salary", 3000.0, INCOME)
    seed_transactions(db, [(today, 50.0, "groceries", EXPENSE) for _ in range(6)])
    seed_transactions(db, [(today, 3000.0, "salary", INCOME)])
    return db


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.post("/v1/analysis", json={})

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "insight_analysis_runs_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_first_use_returns_fallback(client: TestClient):
    """Empty store: exactly one getting-started suggestion"""
    response = client.post("/v1/analysis", json={"force": True})

    assert response.status_code == 200
    data = response.json()
    assert data["degraded"] is False
    assert [s["title"] for s in data["suggestions"]] == ["Getting Started"]
    assert data["forecasts"] == []


def test_analysis_flags_over_budget(client: TestClient, over_budget, notifier):
    response = client.post("/v1/analysis", json={"force": True})

    assert response.status_code == 200
    data = response.json()
    titles = {s["title"] for s in data["suggestions"]}
    assert "Budget Exceeded" in titles
    assert "Expense Budget Alert" in titles
    assert len(data["suggestions"]) <= 5
    assert data["health_score"]["grade"] in {"A", "B", "C", "D", "F"}
    assert notifier.sent


def test_analysis_uses_requested_period(client: TestClient, over_budget):
    """Plans outside the requested period are not compared"""
    last_year = date.today() - timedelta(days=400)

    response = client.post(
        "/v1/analysis",
        json={"force": True, "period_start": str(last_year), "period_end": str(last_year + timedelta(days=30))},
    )

    titles = {s["title"] for s in response.json()["suggestions"]}
    assert "Budget Exceeded" not in titles


def test_inverted_period_is_rejected(client: TestClient):
    response = client.post("/v1/analysis", json={"period_start": "2024-06-30", "period_end": "2024-06-01"})
    assert response.status_code == 422


def test_malformed_record_returns_422(client: TestClient, db):
    db.add(LedgerTransaction(date=date.today(), amount=10.0, category_id="misc", type="REFUND"))
    db.commit()

    response = client.post("/v1/analysis", json={"force": True})

    assert response.status_code == 422
    assert "REFUND" in response.json()["detail"]


def test_notifications_disabled_preference(client: TestClient, over_budget, notifier):
    set_notifications(over_budget, False)

    response = client.post("/v1/analysis", json={"force": True})

    assert response.status_code == 200
    assert response.json()["suggestions"]
    assert notifier.sent == []


def test_insight_feed_lifecycle(client: TestClient, over_budget):
    client.post("/v1/analysis", json={"force": True})

    feed = client.get("/v1/insights").json()
    assert feed["insights"]
    assert feed["unread_count"] == len(feed["insights"])
    confidences = [i["confidence_score"] for i in feed["insights"]]
    assert confidences == sorted(confidences, reverse=True)

    target = feed["insights"][0]["id"]
    response = client.post(f"/v1/insights/{target}/read")
    assert response.status_code == 200
    assert response.json()["is_read"] is True

    unread = client.get("/v1/insights", params={"unread_only": True}).json()
    assert target not in {i["id"] for i in unread["insights"]}

    dismissed = client.delete("/v1/insights").json()["dismissed"]
    assert dismissed == len(feed["insights"])
    assert client.get("/v1/insights").json()["insights"] == []

    # Dismissed findings are not re-added by the next run
    client.post("/v1/analysis", json={"force": True})
    assert client.get("/v1/insights").json()["insights"] == []


def test_mark_read_errors(client: TestClient):
    assert client.post("/v1/insights/not-a-uuid/read").status_code == 400
    assert client.post("/v1/insights/00000000-0000-0000-0000-000000000000/read").status_code == 404


def test_health_score_and_forecasts(client: TestClient, db):
    assert client.get("/v1/health-score").status_code == 404
    assert client.get("/v1/forecasts").json() == {"forecasts": []}

    today = date.today()
    seed_transactions(db, [(today - timedelta(days=i), 20.0 + i % 2, "coffee", EXPENSE) for i in range(8)])
    client.post("/v1/analysis", json={"force": True})

    score = client.get("/v1/health-score").json()
    assert 0 <= score["overall"] <= 100
    assert score["status"] in {"excellent", "good", "fair", "needs attention"}

    forecasts = client.get("/v1/forecasts").json()["forecasts"]
    assert [f["category_id"] for f in forecasts] == ["coffee"]
    lower, upper = forecasts[0]["confidence_interval"]
    assert lower < forecasts[0]["forecast_amount"] < upper


def test_suggestions_run_analysis_on_first_request(client: TestClient, over_budget):
    response = client.get("/v1/suggestions")

    assert response.status_code == 200
    assert response.json()["suggestions"]

    again = client.get("/v1/suggestions").json()
    assert again["run_id"] == response.json()["run_id"]


def test_surface_lifecycle(client: TestClient):
    runs = []

    async def run(force: bool) -> None:
        runs.append(force)

    client.app.state.scheduler = RefreshScheduler(run, interval_seconds=3600)

    with client:
        response = client.post("/v1/surface", json={"active": True, "period_key": "2024-06"})
        assert response.json() == {"active": True, "forced_refresh": False}

        response = client.post("/v1/surface", json={"active": True, "period_key": "2024-07"})
        assert response.json()["forced_refresh"] is True

        response = client.post("/v1/surface", json={"active": False})
        assert response.json()["active"] is False

    assert True in runs


def test_tasks_feed_productivity_insights(client: TestClient, db):
    now = datetime.now()
    seed_tasks(db, [(now - timedelta(days=d, hours=1), False) for d in range(1, 6)])

    data = client.post("/v1/analysis", json={"force": True}).json()

    assert "Overdue Tasks Alert" in {s["title"] for s in data["suggestions"]}
