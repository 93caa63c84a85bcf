"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from budget_insights.domain.models import Insight


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = "budget-insights", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "budget-insights") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_analysis_run(
    run_id: str,
    outcome: str,
    insight_count: int,
    duration_ms: float,
) -> None:
    """Log structured analysis outcome"""
    logging.getLogger("budget_insights.analysis").info(
        "Analysis run finished",
        extra={
            "run_id": run_id,
            "step": "analysis_complete",
            "outcome": outcome,
            "insight_count": insight_count,
            "duration_ms": duration_ms,
        },
    )


def log_delivery(insight: Insight, outcome: str, detail: str = "") -> None:
    """Log one notification hand-off attempt"""
    logging.getLogger("budget_insights.delivery").info(
        "Insight delivery",
        extra={
            "insight_id": str(insight.id),
            "insight_type": insight.type.value,
            "category_id": insight.related_category_id,
            "outcome": outcome,
            "detail": detail,
        },
    )
