"""Structured JSON logging for production observability"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from smartspend_scheduler.config import settings
from smartspend_scheduler.domain.models import RunReport

# Set by the HTTP middleware for the duration of a request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name
        request_id = request_id_var.get()
        if request_id and "request_id" not in log_record:
            log_record["request_id"] = request_id


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # APScheduler logs every execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def log_job_run(report: RunReport, duration_ms: float) -> None:
    """Log structured run outcome for analysis"""
    logging.getLogger("smartspend_scheduler.jobs").info(
        "Job completed",
        extra={
            "job": report.job,
            "step": "job_complete",
            "outcome": report.outcome,
            "selected": report.selected,
            "succeeded": report.succeeded,
            "failed": report.failed,
            "skipped": report.skipped,
            "failed_ids": report.failed_ids,
            "duration_ms": duration_ms,
        },
    )
