"""GET /v1/health-score and GET /v1/forecasts - latest published analysis"""

from fastapi import APIRouter, Depends, HTTPException

from budget_insights.api.dependencies import get_engine
from budget_insights.api.v1.schemas import ForecastListResponse, ForecastSchema, HealthScoreResponse
from budget_insights.domain.engine import InsightEngine

router = APIRouter()


@router.get("/health-score", response_model=HealthScoreResponse)
def get_health_score(engine: InsightEngine = Depends(get_engine)):
    result = engine.latest
    if result is None or result.health_score is None:
        raise HTTPException(status_code=404, detail="No health score calculated yet")

    return HealthScoreResponse.from_domain(result.health_score)


@router.get("/forecasts", response_model=ForecastListResponse)
def get_forecasts(engine: InsightEngine = Depends(get_engine)):
    """
    Next-month forecasts per category.

    Empty until an analysis has run over enough expense history.
    """
    result = engine.latest
    if result is None:
        return ForecastListResponse(forecasts=[])

    forecasts = sorted(result.forecasts.values(), key=lambda f: f.category_id)
    return ForecastListResponse(forecasts=[ForecastSchema.from_domain(f) for f in forecasts])
