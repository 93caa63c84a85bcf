"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import sessionmaker
from starlette.responses import Response

from budget_insights.api.middleware import MetricsMiddleware, RequestIDMiddleware
from budget_insights.api.v1 import analysis, insights, reports, surface
from budget_insights.config import settings
from budget_insights.domain.engine import InsightEngine, Notifier
from budget_insights.infrastructure.clients.notifier import NotificationClient
from budget_insights.infrastructure.database.models import Base
from budget_insights.infrastructure.database.session import SessionLocal
from budget_insights.infrastructure.observability.logging import setup_logging
from budget_insights.scheduler.refresh import RefreshScheduler

# Setup structured logging
setup_logging(settings.log_level, settings.service_name)


def create_app(
    session_factory: Optional[sessionmaker] = None,
    notifier: Optional[Notifier] = None,
    engine: Optional[InsightEngine] = None,
    refresh_interval_seconds: Optional[float] = None,
) -> FastAPI:
    """Create and configure FastAPI application"""
    session_factory = session_factory or SessionLocal
    engine = engine or InsightEngine(notifier=notifier or NotificationClient())

    async def scheduled_run(force: bool) -> None:
        # Periodic runs are dropped if the surface goes away mid-run; forced runs always publish
        db = session_factory()
        try:
            await analysis.run_analysis(
                engine,
                db,
                force=force,
                is_cancelled=None if force else scheduler.is_cancelled,
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    scheduler = RefreshScheduler(scheduled_run, interval_seconds=refresh_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=session_factory.kw["bind"])
        yield
        await scheduler.deactivate()

    app = FastAPI(
        title="Budget Insights",
        description="Productivity and spending correlation, forecasts, health score and insight feed",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.engine = engine
    app.state.scheduler = scheduler

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(analysis.router, prefix="/v1", tags=["analysis"])
    app.include_router(insights.router, prefix="/v1", tags=["insights"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])
    app.include_router(surface.router, prefix="/v1", tags=["surface"])

    return app


app = create_app()
