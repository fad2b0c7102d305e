"""APScheduler integration for the order check and stale sweep jobs"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
import httpx
import logging

from app.database import SessionLocal
from app.core.carrier_client import CarrierClient
from app.core.email_client import EmailDispatchClient
from app.core.job_state import JobRunState, SweepResult
from app.services.order_service import OrderService
from app.services.shipment_job_service import ShipmentJobService
from app.config import settings

logger = logging.getLogger(__name__)

ORDER_CHECK_JOB = "check_orders"
STALE_SWEEP_JOB = "stale_sweep"


@dataclass
class ScheduledTask:
    """A named job with its own trigger"""
    id: str
    name: str
    func: Callable[[], Awaitable]
    trigger: BaseTrigger
    run_at_startup: bool = False


class SchedulerManager:
    """Manages the APScheduler instance and job definitions"""

    def __init__(
        self,
        session_factory=SessionLocal,
        carrier_transport: Optional[httpx.AsyncBaseTransport] = None,
        email_transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.job_state = JobRunState.with_history(settings.ERROR_HISTORY_SIZE)
        self._session_factory = session_factory
        self._carrier_transport = carrier_transport
        self._email_transport = email_transport

    def build_tasks(self) -> list[ScheduledTask]:
        """Registry of scheduled jobs built from settings"""
        order_check_trigger = CronTrigger.from_crontab(
            settings.ORDER_CHECK_CRON, timezone=timezone.utc
        )
        if settings.STALE_SWEEP_RECURRING:
            sweep_trigger = CronTrigger.from_crontab(
                settings.ORDER_CHECK_CRON, timezone=timezone.utc
            )
        else:
            sweep_trigger = DateTrigger(timezone=timezone.utc)

        return [
            ScheduledTask(
                id=ORDER_CHECK_JOB,
                name="Delivered Orders Check",
                func=self.run_order_check,
                trigger=order_check_trigger,
                run_at_startup=True,
            ),
            ScheduledTask(
                id=STALE_SWEEP_JOB,
                name="Untracked Orders Sweep",
                func=self.run_stale_sweep,
                trigger=sweep_trigger,
                run_at_startup=settings.STALE_SWEEP_RECURRING,
            ),
        ]

    def start(self):
        """Start the scheduler with configured jobs"""
        for task in self.build_tasks():
            job_options = {}
            if task.run_at_startup:
                job_options["next_run_time"] = datetime.now(timezone.utc)
            self.scheduler.add_job(
                task.func,
                trigger=task.trigger,
                id=task.id,
                name=task.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **job_options
            )

        self.scheduler.start()
        logger.info(f"Scheduler started - order check on '{settings.ORDER_CHECK_CRON}'")

    def shutdown(self):
        """Gracefully shutdown the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shut down")

    def _carrier_client(self) -> CarrierClient:
        return CarrierClient(
            settings.CARRIER_API_KEY,
            settings.CARRIER_API_URL,
            timeout=settings.HTTP_TIMEOUT,
            transport=self._carrier_transport
        )

    def _email_client(self) -> EmailDispatchClient:
        return EmailDispatchClient(
            settings.EMAIL_SERVICE_TOKEN,
            settings.EMAIL_SERVICE_URL,
            timeout=settings.HTTP_TIMEOUT,
            transport=self._email_transport
        )

    def _job_service(self, db, carrier, email) -> ShipmentJobService:
        return ShipmentJobService(
            OrderService(db),
            carrier,
            email,
            self.job_state,
            grace_period=timedelta(hours=settings.DELIVERY_GRACE_HOURS),
            stale_threshold=timedelta(days=settings.STALE_THRESHOLD_DAYS),
            max_concurrency=settings.MAX_CONCURRENCY,
            mark_email_sent=settings.MARK_EMAIL_SENT
        )

    async def trigger_order_check(self) -> bool:
        """Run the order check now, outside of its schedule"""
        return await self.run_order_check()

    async def run_order_check(self) -> bool:
        """
        Execute one order check run.

        Returns False when skipped because another run is still in progress.
        Errors end the run and are recorded in the job state.
        """
        if not self.job_state.try_start():
            logger.warning("Order check already running - skipping this invocation")
            return False

        db = self._session_factory()
        error = None
        try:
            async with self._carrier_client() as carrier, self._email_client() as email:
                service = self._job_service(db, carrier, email)
                orders = service.order_service.fetch_trackable()
                await service.run_batch(orders)
        except Exception as e:
            logger.exception(f"Order check failed: {e}")
            error = e
        finally:
            self.job_state.on_job_end(error)
            db.close()

        return True

    async def run_stale_sweep(self) -> Optional[SweepResult]:
        """Notify untracked orders that are old enough, recording any failure"""
        db = self._session_factory()
        try:
            async with self._email_client() as email:
                # The sweep never talks to the carrier
                service = self._job_service(db, None, email)
                return await service.sweep_stale_orders()
        except Exception as e:
            logger.exception(f"Stale sweep failed: {e}")
            self.job_state.record_error(STALE_SWEEP_JOB, e)
            return None
        finally:
            db.close()

    def get_next_run_time(self, task_id: str = ORDER_CHECK_JOB) -> Optional[datetime]:
        """Get the next scheduled run time of a task"""
        job = self.scheduler.get_job(task_id)
        return getattr(job, "next_run_time", None) if job else None

    def is_order_check_running(self) -> bool:
        return self.job_state.is_working


# Global scheduler instance
scheduler_manager = SchedulerManager()
