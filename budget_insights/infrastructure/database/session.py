"""Database session management with connection pooling"""

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from budget_insights.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared with the scheduler task"""
    options: Dict[str, Any] = {"pool_pre_ping": True}  # Verify connections before using
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        # Recycle after 1 hour to avoid stale connections
        options.update(pool_size=10, max_overflow=10, pool_recycle=3600)
    return create_engine(database_url, **options)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
