"""Order store queries used by the notification jobs"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.order import Order, ShippingTracking
from app.core.exceptions import StoreQueryError

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo, stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OrderService:
    """Reads pending orders and applies the job's per-order updates"""

    def __init__(self, db: Session):
        self.db = db

    def fetch_trackable(self) -> list[Order]:
        """Orders not yet notified that carry a tracking number"""
        try:
            orders = (
                self.db.query(Order)
                .join(ShippingTracking)
                .options(joinedload(Order.shipping_tracking))
                .filter(Order.email_sent == False)
                .filter(ShippingTracking.tracking_number.isnot(None))
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreQueryError(f"Failed to fetch trackable orders: {e}")

        logger.info(f"Number of orders to evaluate: {len(orders)}")
        return orders

    def fetch_stale_untracked(self) -> list[Order]:
        """Orders not yet notified whose tracking number was cleared or never set"""
        try:
            orders = (
                self.db.query(Order)
                .join(ShippingTracking)
                .options(joinedload(Order.shipping_tracking))
                .filter(Order.email_sent == False)
                .filter(ShippingTracking.tracking_number.is_(None))
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreQueryError(f"Failed to fetch untracked orders: {e}")

        logger.info(f"Number of orders to evaluate without shipping info: {len(orders)}")
        return orders

    @staticmethod
    def filter_stale(
        orders: list[Order],
        threshold: timedelta,
        now: Optional[datetime] = None
    ) -> list[Order]:
        """Keep the orders created at least ``threshold`` ago"""
        now = now or datetime.now(timezone.utc)
        return [
            order for order in orders
            if order.created_at is not None
            and now - _as_utc(order.created_at) >= threshold
        ]

    def clear_tracking_number(self, order_id: str):
        """Move an order to the untracked list so the stale sweep picks it up"""
        try:
            tracking = (
                self.db.query(ShippingTracking)
                .filter(ShippingTracking.order_id == order_id)
                .first()
            )
            if tracking:
                tracking.tracking_number = None
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreQueryError(f"Failed to clear tracking number of order {order_id}: {e}")

    def mark_email_sent(self, order_id: str):
        try:
            order = self.db.query(Order).filter(Order.id == order_id).first()
            if order:
                order.email_sent = True
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreQueryError(f"Failed to mark order {order_id} as emailed: {e}")
