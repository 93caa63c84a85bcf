"""POST /v1/analysis and GET /v1/suggestions - run the insight pipeline"""

import logging
from datetime import date
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from budget_insights.api.dependencies import get_db, get_engine, get_request_id
from budget_insights.api.v1.schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ForecastSchema,
    HealthScoreResponse,
    InsightSchema,
    SuggestionsResponse,
)
from budget_insights.domain.engine import InsightEngine
from budget_insights.domain.exceptions import InvalidRecordError
from budget_insights.domain.models import AnalysisResult
from budget_insights.infrastructure.database.repositories import InsightRepository, SqlRecordSource

router = APIRouter()


async def run_analysis(
    engine: InsightEngine,
    db: Session,
    force: bool = False,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
) -> Optional[AnalysisResult]:
    """
    Refresh the engine from the database and persist any new insights.

    Returns None when the run was cancelled or superseded by a newer one.
    """
    source = SqlRecordSource(db, period_start=period_start, period_end=period_end)
    result = await engine.refresh(source, force=force, is_cancelled=is_cancelled)
    if result is None:
        return None

    InsightRepository(db).save_insights(result.insights)
    db.commit()
    return result


@router.post("/analysis", response_model=AnalysisResponse)
async def create_analysis(
    request_body: AnalysisRequest,
    request: Request,
    db: Session = Depends(get_db),
    engine: InsightEngine = Depends(get_engine),
):
    """
    Run the full analysis over the current tasks, ledger and budget plans.

    Flow:
    1. Snapshot records for the active period
    2. Correlate, forecast, score and generate insights
    3. Persist new insights to the feed
    4. Forward suggestions to the notification channel
    5. Return suggestions, health score and forecasts
    """
    request_id = get_request_id(request)

    try:
        result = await run_analysis(
            engine,
            db,
            force=request_body.force,
            period_start=request_body.period_start,
            period_end=request_body.period_end,
        )

    except InvalidRecordError as e:
        db.rollback()
        logging.warning(f"Invalid record: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    if result is None:
        raise HTTPException(status_code=409, detail="Analysis superseded by a newer run")

    return AnalysisResponse(
        run_id=result.run_id,
        degraded=result.degraded,
        completed_at=result.completed_at,
        insight_count=len(result.insights),
        correlation=result.correlation.coefficient if result.correlation else None,
        suggestions=[InsightSchema.from_domain(i) for i in result.suggestions],
        health_score=HealthScoreResponse.from_domain(result.health_score) if result.health_score else None,
        forecasts=[ForecastSchema.from_domain(f) for f in result.forecasts.values()],
    )


@router.get("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    db: Session = Depends(get_db),
    engine: InsightEngine = Depends(get_engine),
):
    """
    Top suggestions for the dashboard.

    Runs a first analysis when none has been published yet.
    """
    result = engine.latest
    if result is None:
        try:
            result = await run_analysis(engine, db)
        except InvalidRecordError as e:
            db.rollback()
            raise HTTPException(status_code=422, detail=str(e))

    if result is None:
        raise HTTPException(status_code=409, detail="Analysis superseded by a newer run")

    return SuggestionsResponse(
        run_id=result.run_id,
        suggestions=[InsightSchema.from_domain(i) for i in result.suggestions],
    )
