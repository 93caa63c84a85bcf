"""Integration tests for the persisted insight feed"""

from datetime import timedelta

from budget_insights.domain.models import Insight, InsightPriority, InsightType
from budget_insights.infrastructure.database.repositories import InsightRepository
from tests.factories import NOW


def make_insight(n: int) -> Insight:
    return Insight(
        type=InsightType.RECOMMENDATION,
        title=f"Recommendation {n}",
        description="Review this category",
        priority=InsightPriority.MEDIUM,
        confidence_score=70.0,
        created_at=NOW + timedelta(minutes=n),
    )


def test_feed_is_capped_with_oldest_evicted(db):
    repo = InsightRepository(db)

    for n in range(150):
        repo.save_insights([make_insight(n)])
    db.commit()

    titles = {i.title for i in repo.list_insights()}
    assert len(titles) == 100
    assert "Recommendation 0" not in titles
    assert "Recommendation 49" not in titles
    assert "Recommendation 50" in titles
    assert "Recommendation 149" in titles


def test_dismissed_rows_do_not_count_against_the_cap(db):
    repo = InsightRepository(db, capacity=3)
    repo.save_insights([make_insight(n) for n in range(3)])
    repo.dismiss_all()

    repo.save_insights([make_insight(n) for n in range(10, 13)])
    db.commit()

    assert len(repo.list_insights()) == 3
    assert len(repo.list_insights(include_dismissed=True)) == 6


def test_dismissed_key_is_not_saved_again(db):
    repo = InsightRepository(db)
    repo.save_insights([make_insight(1)])
    repo.dismiss_all()

    saved = repo.save_insights([make_insight(1)])

    assert saved == []
    assert repo.list_insights() == []
