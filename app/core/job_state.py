"""In-memory bookkeeping of the order check job"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class JobError:
    """An error recorded against a job run"""
    job: str
    error_type: str
    message: str
    recorded_at: datetime


@dataclass
class SweepResult:
    """Outcome of a stale order sweep"""
    candidates: int = 0
    notified: int = 0
    failed: int = 0
    finished_at: Optional[datetime] = None


@dataclass
class JobRunState:
    """
    State of the current or last order check run.

    Lives for the whole process. ``processed_count`` is reset when a run
    starts; ``errors`` keeps the most recent errors across runs.
    """
    is_working: bool = False
    start: Optional[datetime] = None
    finish: Optional[datetime] = None
    processed_count: int = 0
    errors: Deque[JobError] = field(default_factory=lambda: deque(maxlen=100))
    last_sweep: Optional[SweepResult] = None

    @classmethod
    def with_history(cls, size: int) -> "JobRunState":
        return cls(errors=deque(maxlen=size))

    def try_start(self) -> bool:
        """
        Mark a run as started unless one is already in progress.

        There is no await between the check and the set, so this is atomic on
        the event loop.
        """
        if self.is_working:
            return False
        self.on_job_start()
        return True

    def on_job_start(self):
        self.is_working = True
        self.start = datetime.now(timezone.utc)
        self.processed_count = 0
        logger.info(f"Started order check at {self.start.isoformat()}")

    def on_job_end(self, err: Optional[BaseException] = None):
        if err is not None:
            self.record_error("check_orders", err)
        self.finish = datetime.now(timezone.utc)
        self.is_working = False
        duration = (self.finish - self.start).total_seconds() if self.start else 0.0
        logger.info(f"Finished order check at {self.finish.isoformat()}")
        logger.info(f"Order check took {duration:.3f} seconds")
        logger.info(f"Processed {self.processed_count} orders")

    def record_error(self, job: str, err: BaseException):
        self.errors.append(JobError(
            job=job,
            error_type=type(err).__name__,
            message=str(err),
            recorded_at=datetime.now(timezone.utc),
        ))

    def snapshot(self) -> dict:
        """Read-only view served by the status endpoint"""
        return {
            "isWorking": self.is_working,
            "lastStartDate": self.start.isoformat() if self.start else None,
            "lastFinishDate": self.finish.isoformat() if self.finish else None,
            "lastNumberOfProcessedOrders": self.processed_count,
        }
