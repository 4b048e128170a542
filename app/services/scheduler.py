import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

import croniter
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.settings import settings
from app.db.session import SessionLocal


logger = logging.getLogger(__name__)


@dataclass
class CronJob:
    name: str
    expression: str
    func: Callable[[Session, datetime], int]
    next_run: Optional[datetime] = None

    def schedule_from(self, base: datetime) -> datetime:
        self.next_run = croniter.croniter(self.expression, base).get_next(datetime)
        return self.next_run


class Scheduler:
    """Runs cron-scheduled jobs on a daemon thread, one session per run."""

    def __init__(
        self,
        jobs: Iterable[CronJob],
        session_factory: Callable[[], Session] = SessionLocal,
        poll_seconds: Optional[int] = None,
    ):
        self.jobs: Dict[str, CronJob] = {}
        for job in jobs:
            if not croniter.croniter.is_valid(job.expression):
                raise ValueError(f"Invalid cron expression for {job.name}: {job.expression!r}")
            self.jobs[job.name] = job
        self._session_factory = session_factory
        self._poll_seconds = poll_seconds or settings.scheduler_poll_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def schedule_all(self, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        for job in self.jobs.values():
            job.schedule_from(now)

    def run_job(self, name: str, now: Optional[datetime] = None) -> Optional[int]:
        """Run one job now. Returns its count, or None if it failed."""
        job = self.jobs[name]
        now = now or utcnow()
        db = self._session_factory()
        try:
            count = job.func(db, now)
            db.commit()
            logger.info("Job %s finished: %s", name, count)
            return count
        except Exception:
            db.rollback()
            logger.exception("Job %s failed", name)
            return None
        finally:
            db.close()

    def run_pending(self, now: Optional[datetime] = None) -> List[str]:
        now = now or utcnow()
        ran = []
        for job in self.jobs.values():
            if job.next_run is None:
                job.schedule_from(now)
                continue
            if job.next_run <= now:
                self.run_job(job.name, now)
                job.schedule_from(now)
                ran.append(job.name)
        return ran

    def _loop(self) -> None:
        self.schedule_all()
        while not self._stop.wait(self._poll_seconds):
            self.run_pending()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started with jobs: %s", ", ".join(self.jobs))

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Scheduler stopped")


_scheduler: Optional[Scheduler] = None


def get_scheduler() -> Scheduler:
    global _scheduler
    if _scheduler is None:
        from app.services.jobs import default_jobs

        _scheduler = Scheduler(default_jobs())
    return _scheduler
