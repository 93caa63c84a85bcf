"""Pytest fixtures for testing"""

from datetime import timedelta
from typing import Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from budget_insights.api.main import create_app
from budget_insights.domain.engine import InsightEngine
from budget_insights.domain.models import TransactionRecord
from budget_insights.infrastructure.database.models import Base
from tests.factories import TODAY, RecordingNotifier, expense, income


@pytest.fixture
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    """Create a throwaway SQLite database per test"""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def insight_engine(notifier: RecordingNotifier) -> InsightEngine:
    return InsightEngine(notifier=notifier)


@pytest.fixture
def client(session_factory: sessionmaker, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app(session_factory=session_factory, notifier=notifier)
    return TestClient(app)


@pytest.fixture
def steady_month() -> List[TransactionRecord]:
    """Thirty days of moderate groceries spend plus a salary deposit"""
    transactions = [income(TODAY - timedelta(days=14), 4000.0)]
    for offset in range(30):
        transactions.append(expense(TODAY - timedelta(days=offset), 40.0 + (offset % 3)))
    return transactions
