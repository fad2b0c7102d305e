"""Decides whether a delivered shipment is ready for its promotion email"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from app.core.carrier_client import ShipmentStatus

DELIVERED = "delivered"
DEFAULT_GRACE_PERIOD = timedelta(hours=24)


def parse_event_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a carrier event timestamp into an aware UTC datetime.

    Returns None for missing or malformed values. Naive values are read as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def should_notify(
    snapshot: ShipmentStatus,
    now: Optional[datetime] = None,
    grace_period: timedelta = DEFAULT_GRACE_PERIOD
) -> bool:
    """True once the shipment has been delivered for at least the grace period"""
    if getattr(snapshot, "status", None) != DELIVERED:
        return False

    details = getattr(snapshot, "tracking_details", None)
    if not details or not isinstance(details, list):
        return False

    delivered_at = parse_event_datetime(getattr(details[-1], "datetime", None))
    if delivered_at is None:
        return False

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now - delivered_at >= grace_period
