"""Insight feed endpoints - list, mark read, dismiss"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from budget_insights.api.dependencies import get_db, get_engine
from budget_insights.api.v1.schemas import DismissResponse, InsightListResponse, InsightSchema
from budget_insights.domain.engine import InsightEngine
from budget_insights.infrastructure.database.repositories import InsightRepository

router = APIRouter()


@router.get("/insights", response_model=InsightListResponse)
def list_insights(
    unread_only: bool = Query(False, description="Only return insights not yet read"),
    db: Session = Depends(get_db),
):
    repo = InsightRepository(db)
    insights = repo.list_insights(unread_only=unread_only)

    return InsightListResponse(
        insights=[InsightSchema.from_domain(i) for i in insights],
        unread_count=sum(1 for i in insights if not i.is_read),
    )


@router.post("/insights/{insight_id}/read", response_model=InsightSchema)
def mark_insight_read(
    insight_id: str,
    db: Session = Depends(get_db),
    engine: InsightEngine = Depends(get_engine),
):
    """Mark one insight as read in the feed and in the in-memory inbox"""
    try:
        insight_uuid = uuid.UUID(insight_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid insight ID format")

    insight = InsightRepository(db).mark_read(insight_uuid)
    if insight is None:
        raise HTTPException(status_code=404, detail="Insight not found")

    db.commit()
    engine.mark_read(insight_uuid)
    return InsightSchema.from_domain(insight)


@router.delete("/insights", response_model=DismissResponse)
def dismiss_insights(
    db: Session = Depends(get_db),
    engine: InsightEngine = Depends(get_engine),
):
    """
    Clear the feed.

    Dismissed insights stay stored so the same finding is not re-added on
    the next run.
    """
    dismissed = InsightRepository(db).dismiss_all()
    db.commit()
    engine.inbox.clear()
    return DismissResponse(dismissed=dismissed)
