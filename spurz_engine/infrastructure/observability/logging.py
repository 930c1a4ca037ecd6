"""Structured JSON logging for production observability"""

import logging
import sys
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from spurz_engine.config import settings
from spurz_engine.utils.date_utils import utcnow


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_snapshot(
    owner_id: str,
    health_band: str,
    scenario_code: str,
    health_score: int,
    duration_ms: float,
) -> None:
    """Log structured snapshot outcome for analysis"""
    logging.info(
        "Snapshot computed",
        extra={
            "user_id": owner_id,
            "step": "snapshot_complete",
            "health_band": health_band,
            "scenario_code": scenario_code,
            "health_score": health_score,
            "duration_ms": duration_ms,
        },
    )


def log_refresh_failure(owner_id: str, trigger: str, attempts: int, error: Exception) -> None:
    logging.error(
        "Snapshot refresh failed",
        extra={
            "user_id": owner_id,
            "step": "snapshot_refresh",
            "trigger": trigger,
            "attempts": attempts,
            "error": str(error),
        },
    )
