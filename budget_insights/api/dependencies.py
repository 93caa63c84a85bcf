"""Dependency injection for FastAPI endpoints"""

from typing import Iterator

from fastapi import Request
from sqlalchemy.orm import Session

from budget_insights.domain.engine import InsightEngine
from budget_insights.scheduler.refresh import RefreshScheduler


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_db(request: Request) -> Iterator[Session]:
    """Database session from the application's session factory"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_engine(request: Request) -> InsightEngine:
    """Provide the process-wide insight engine"""
    return request.app.state.engine


def get_scheduler(request: Request) -> RefreshScheduler:
    """Provide the refresh scheduler bound to the engine"""
    return request.app.state.scheduler
