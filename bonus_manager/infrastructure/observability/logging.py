"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from pythonjsonlogger import jsonlogger

from bonus_manager.domain.models import ActionResult


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = "bonus-manager", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None, service_name: str = "bonus-manager") -> None:
    """
    Configure structured JSON logging.

    The CLI passes stderr so stdout carries nothing but the run's JSON output.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_action(run_id: str, result: ActionResult, duration_ms: float) -> None:
    """Log structured step outcome for analysis"""
    logging.getLogger("bonus_manager.actions").info(
        "Step completed",
        extra={
            "run_id": run_id,
            "action": result.name,
            "step": result.kind,
            "status": result.status,
            "cost": result.cost,
            "reason": result.reason,
            "attempts": len(result.attempts),
            "duration_ms": duration_ms,
        },
    )
