"""Order check and stale sweep: carrier lookup, classification and notification"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from app.models.order import Order
from app.core.carrier_client import CarrierClient
from app.core.email_client import EmailDispatchClient
from app.core.classifier import should_notify
from app.core.job_state import JobRunState, SweepResult
from app.core.exceptions import CarrierLookupError, NotifyError, StoreQueryError
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


# Whether an error raised by a per-order pipeline stops new orders from being
# dispatched for the rest of the batch. Pipelines already running always finish.
FAILURE_HALTS_DISPATCH = {
    CarrierLookupError: False,
    NotifyError: True,
}


def halts_dispatch(err: BaseException) -> bool:
    for error_type, halts in FAILURE_HALTS_DISPATCH.items():
        if isinstance(err, error_type):
            return halts
    # Anything unexpected is treated as fatal to the batch
    return True


class ShipmentJobService:
    """Runs the per-order notification pipeline over batches of orders"""

    def __init__(
        self,
        order_service: OrderService,
        carrier_client: CarrierClient,
        email_client: EmailDispatchClient,
        job_state: JobRunState,
        grace_period: timedelta = timedelta(hours=24),
        stale_threshold: timedelta = timedelta(days=8),
        max_concurrency: int = 4,
        mark_email_sent: bool = True
    ):
        self.order_service = order_service
        self.carrier_client = carrier_client
        self.email_client = email_client
        self.job_state = job_state
        self.grace_period = grace_period
        self.stale_threshold = stale_threshold
        self.max_concurrency = max_concurrency
        self.mark_email_sent = mark_email_sent

    async def notify(self, order: Order):
        """Ask the email service to send the promotion for one order"""
        await self.email_client.send_promotion(order.to_payload())
        logger.info(f"Notified email service for order {order.id}")

        if self.mark_email_sent:
            try:
                self.order_service.mark_email_sent(order.id)
            except StoreQueryError as e:
                # The email is out; the order may be notified again next run
                logger.error(str(e))

    async def process_order(self, order: Order) -> bool:
        """
        Look up, classify and possibly notify a single order.

        Returns True if the order was notified. A failed lookup clears the
        tracking number before the CarrierLookupError is re-raised.
        """
        tracking = order.shipping_tracking
        try:
            shipment = await self.carrier_client.get_shipment_status(
                tracking.tracking_number,
                tracking.tracking_company
            )
        except CarrierLookupError:
            self._move_to_untracked(order)
            raise

        if not should_notify(shipment, grace_period=self.grace_period):
            logger.debug(f"Order {order.id} not ready for notification ({shipment.status})")
            return False

        await self.notify(order)
        self.job_state.processed_count += 1
        return True

    def _move_to_untracked(self, order: Order):
        try:
            self.order_service.clear_tracking_number(order.id)
        except StoreQueryError as e:
            logger.error(str(e))

    async def run_batch(self, orders: list[Order]) -> int:
        """
        Process orders with at most ``max_concurrency`` pipelines in flight.

        Returns the number of processed orders. If a pipeline fails with an
        error that halts dispatch, no new orders are started, running ones are
        awaited, and the first such error is raised.
        """
        pending = iter(orders)
        halted = asyncio.Event()
        fatal_errors: list[BaseException] = []

        async def worker():
            while not halted.is_set():
                order = next(pending, None)
                if order is None:
                    return
                try:
                    await self.process_order(order)
                except Exception as e:
                    if halts_dispatch(e):
                        logger.error(f"Stopping dispatch after order {order.id}: {e}")
                        fatal_errors.append(e)
                        halted.set()
                        return
                    logger.warning(f"Can't process order {order.id}, moved to untracked: {e}")

        workers = min(self.max_concurrency, len(orders))
        await asyncio.gather(*(worker() for _ in range(workers)))

        if fatal_errors:
            raise fatal_errors[0]
        return self.job_state.processed_count

    async def sweep_stale_orders(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Notify untracked orders older than the stale threshold.

        Every order is notified at once without a concurrency ceiling. Each
        outcome is awaited, failures are logged and recorded in the job state.
        """
        now = now or datetime.now(timezone.utc)
        orders = self.order_service.fetch_stale_untracked()
        stale = OrderService.filter_stale(orders, self.stale_threshold, now)

        result = SweepResult(candidates=len(stale))
        outcomes = await asyncio.gather(
            *(self.notify(order) for order in stale),
            return_exceptions=True
        )
        for order, outcome in zip(stale, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Stale sweep failed for order {order.id}: {outcome}")
                self.job_state.record_error("stale_sweep", outcome)
                result.failed += 1
            else:
                result.notified += 1

        result.finished_at = datetime.now(timezone.utc)
        self.job_state.last_sweep = result
        logger.info(
            f"Stale sweep done: {result.notified} notified, "
            f"{result.failed} failed out of {result.candidates}"
        )
        return result
