"""SQLAlchemy ORM models for the task store, ledger, budget plans and insight feed"""

import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TaskRow(Base):
    """Task tracked by the productivity side of the app"""

    __tablename__ = "task_record"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False, default="")
    due_date = Column(DateTime, nullable=True, index=True)
    created_date = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    priority = Column(String(16), nullable=False, default="medium")


class LedgerTransaction(Base):
    """Income or expense entry"""

    __tablename__ = "ledger_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    category_id = Column(Text, nullable=False, index=True)
    type = Column(String(16), nullable=False)  # INCOME | EXPENSE
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BudgetPlan(Base):
    """Planned amount for a category over one accounting period"""

    __tablename__ = "budget_plan"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id = Column(Text, nullable=False, index=True)
    planned_amount = Column(Float, nullable=False)
    type = Column(String(16), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)


class UserPreference(Base):
    """Single-row user preferences"""

    __tablename__ = "user_preference"

    id = Column(Integer, primary_key=True)
    notifications_enabled = Column(Boolean, nullable=False, default=True)


class SmartInsight(Base):
    """Persisted insight feed entry"""

    __tablename__ = "smart_insight"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    unique_key = Column(Text, nullable=False, unique=True)
    type = Column(String(32), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String(16), nullable=False)
    confidence_score = Column(Float, nullable=False)
    actionable = Column(Boolean, nullable=False, default=True)
    related_category_id = Column(Text, nullable=True)
    potential_impact = Column(Text, nullable=True)
    action_title = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    is_dismissed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)
