"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from budget_insights.domain.models import BudgetForecast, FinancialHealthScore, Insight


class AnalysisRequest(BaseModel):
    """Request body for POST /v1/analysis"""

    force: bool = Field(False, description="Bypass the freshness check and the budget-check cadence")
    period_start: Optional[date] = Field(None, description="Active accounting period start (inclusive)")
    period_end: Optional[date] = Field(None, description="Active accounting period end (inclusive)")

    @model_validator(mode="after")
    def check_period(self) -> "AnalysisRequest":
        if self.period_start and self.period_end and self.period_start > self.period_end:
            raise ValueError("period_start must not be after period_end")
        return self


class InsightSchema(BaseModel):
    """Single insight in a feed"""

    id: str
    type: str
    title: str
    description: str
    priority: str
    confidence_score: float
    actionable: bool
    related_category_id: Optional[str] = None
    potential_impact: Optional[str] = None
    action_title: Optional[str] = None
    is_read: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, insight: Insight) -> "InsightSchema":
        return cls(
            id=str(insight.id),
            type=insight.type.value,
            title=insight.title,
            description=insight.description,
            priority=insight.priority.value,
            confidence_score=insight.confidence_score,
            actionable=insight.actionable,
            related_category_id=insight.related_category_id,
            potential_impact=insight.potential_impact,
            action_title=insight.action_title,
            is_read=insight.is_read,
            created_at=insight.created_at,
        )


class HealthScoreResponse(BaseModel):
    """Response for GET /v1/health-score"""

    overall: float
    grade: str
    status: str
    budget_adherence: float
    consistency: float
    savings_rate: float
    category_balance: float
    trend: float
    last_calculated: datetime

    @classmethod
    def from_domain(cls, score: FinancialHealthScore) -> "HealthScoreResponse":
        return cls(
            overall=score.overall,
            grade=score.grade,
            status=score.status,
            budget_adherence=score.budget_adherence,
            consistency=score.consistency,
            savings_rate=score.savings_rate,
            category_balance=score.category_balance,
            trend=score.trend,
            last_calculated=score.last_calculated,
        )


class ForecastSchema(BaseModel):
    """Next-month forecast for one category"""

    category_id: str
    forecast_amount: float
    confidence_interval: Tuple[float, float]
    forecast_date: date

    @classmethod
    def from_domain(cls, forecast: BudgetForecast) -> "ForecastSchema":
        return cls(
            category_id=forecast.category_id,
            forecast_amount=forecast.forecast_amount,
            confidence_interval=forecast.confidence_interval,
            forecast_date=forecast.forecast_date,
        )


class AnalysisResponse(BaseModel):
    """Response for POST /v1/analysis"""

    run_id: str
    degraded: bool
    completed_at: datetime
    insight_count: int
    correlation: Optional[float] = None
    suggestions: List[InsightSchema]
    health_score: Optional[HealthScoreResponse] = None
    forecasts: List[ForecastSchema]


class SuggestionsResponse(BaseModel):
    """Response for GET /v1/suggestions"""

    run_id: str
    suggestions: List[InsightSchema]


class InsightListResponse(BaseModel):
    """Response for GET /v1/insights"""

    insights: List[InsightSchema]
    unread_count: int


class DismissResponse(BaseModel):
    """Response for DELETE /v1/insights"""

    dismissed: int


class ForecastListResponse(BaseModel):
    """Response for GET /v1/forecasts"""

    forecasts: List[ForecastSchema]


class SurfaceRequest(BaseModel):
    """Request body for POST /v1/surface"""

    active: bool = Field(..., description="Whether the consuming surface is on screen")
    period_key: Optional[str] = Field(None, min_length=1, description="Identifier of the active accounting period")


class SurfaceResponse(BaseModel):
    """Response for POST /v1/surface"""

    active: bool
    forced_refresh: bool
