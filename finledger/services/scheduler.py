"""Scheduler - periodic sweep keeping a rolling horizon of occurrences materialized"""

import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional
from sqlalchemy.orm import Session, sessionmaker

from finledger.config import settings
from finledger.domain.models import MaterializationResult, SweepReport
from finledger.infrastructure.database.repositories import RuleRepository
from finledger.infrastructure.database.session import SessionLocal
from finledger.infrastructure.observability.logging import log_sweep
from finledger.infrastructure.observability.metrics import sweep_duration_histogram
from finledger.services.materializer import Materializer
from finledger.utils.date_utils import horizon_date, utc_now

Clock = Callable[[], datetime]


@dataclass
class SweepState:
    """When the last sweep ran; written only by Scheduler.tick"""

    last_sweep_time: Optional[datetime] = None
    last_report: Optional[SweepReport] = None


# Process-wide sweep state, created at import and shared by every Scheduler that is not given its own
sweep_state = SweepState()


class Scheduler:
    """
    Each tick lists eligible rules and runs the Materializer once per rule.

    The clock and session factory are injected so tests can drive ticks with a
    virtual clock against a test database.
    """

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        clock: Clock = utc_now,
        state: SweepState | None = None,
        horizon_days: int | None = None,
        interval_seconds: int | None = None,
        poll_seconds: float | None = None,
        workers: int | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.state = state if state is not None else sweep_state
        self.horizon_days = horizon_days if horizon_days is not None else settings.horizon_days
        self.interval_seconds = interval_seconds if interval_seconds is not None else settings.sweep_interval_seconds
        self.poll_seconds = poll_seconds if poll_seconds is not None else settings.sweep_poll_seconds
        self.workers = workers or settings.sweep_workers

    def is_due(self, now: datetime) -> bool:
        last = self.state.last_sweep_time
        return last is None or (now - last).total_seconds() >= self.interval_seconds

    def tick(self) -> SweepReport:
        """
        Run one sweep.

        A failing rule is logged and counted, never raised; it is retried on
        the next sweep because its watermark did not move.
        """
        start_time = time.time()
        now = self.clock()
        today = now.date()
        horizon = horizon_date(today, self.horizon_days)
        report = SweepReport(started_at=now, horizon=horizon)

        with self.session_factory() as db:
            rule_ids = RuleRepository(db).list_eligible_ids(horizon, today)

        with sweep_duration_histogram.time():
            for rule_id, result, error in self._sweep(rule_ids, horizon):
                report.rules_processed += 1
                if error is not None:
                    report.failures += 1
                    logging.error(
                        f"Materialization failed for rule {rule_id}: {error}",
                        extra={"rule_id": str(rule_id), "step": "sweep_rule_failed"},
                    )
                    continue
                report.occurrences_created += len(result.created)

        self.state.last_sweep_time = now
        self.state.last_report = report

        duration_ms = (time.time() - start_time) * 1000
        log_sweep(horizon, report.rules_processed, report.occurrences_created, report.failures, duration_ms)
        return report

    def run_forever(self, stop_event: threading.Event) -> None:
        """Tick whenever the sweep interval has elapsed, until stop_event is set"""
        logging.info(
            "Scheduler started",
            extra={"interval_seconds": self.interval_seconds, "horizon_days": self.horizon_days},
        )
        while not stop_event.is_set():
            if self.is_due(self.clock()):
                self.tick()
            stop_event.wait(self.poll_seconds)
        logging.info("Scheduler stopped")

    def _sweep(self, rule_ids: List[uuid.UUID], horizon: date):
        if self.workers <= 1:
            for rule_id in rule_ids:
                yield self._sweep_one(rule_id, horizon)
            return

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._sweep_one, rule_id, horizon) for rule_id in rule_ids]
            for future in as_completed(futures):
                yield future.result()

    def _sweep_one(self, rule_id: uuid.UUID, horizon: date):
        db: Session = self.session_factory()
        try:
            result: MaterializationResult = Materializer(db, trigger="sweep").materialize(rule_id, horizon=horizon)
            return rule_id, result, None
        except Exception as e:
            return rule_id, None, e
        finally:
            db.close()
