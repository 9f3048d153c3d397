"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, Dict, List
from pythonjsonlogger import jsonlogger
from finledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


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


def log_materialization(
    rule_id: str,
    owner_id: str,
    created: List[date],
    duplicates_skipped: int,
    watermark: date | None,
    duration_ms: float,
) -> None:
    """Log structured materialization outcome for one rule"""
    logging.info(
        "Materialization completed",
        extra={
            "rule_id": rule_id,
            "owner_id": owner_id,
            "step": "materialization_complete",
            "occurrences_created": len(created),
            "duplicates_skipped": duplicates_skipped,
            "watermark": watermark.isoformat() if watermark else None,
            "duration_ms": duration_ms,
        },
    )


def log_sweep(
    horizon: date,
    rules_processed: int,
    occurrences_created: int,
    failures: int,
    duration_ms: float,
) -> None:
    """Log structured summary of one scheduler sweep"""
    logging.info(
        "Sweep completed",
        extra={
            "step": "sweep_complete",
            "horizon": horizon.isoformat(),
            "rules_processed": rules_processed,
            "occurrences_created": occurrences_created,
            "failures": failures,
            "duration_ms": duration_ms,
        },
    )


def log_balance_transition(
    owner_id: str,
    transition: str,
    transaction_id: str,
    adjustments: Dict[str, int],
) -> None:
    """Log the per-account balance deltas applied by a transaction transition"""
    logging.info(
        "Balance transition applied",
        extra={
            "owner_id": owner_id,
            "step": "balance_transition",
            "transition": transition,
            "transaction_id": transaction_id,
            "adjustments": adjustments,
        },
    )
