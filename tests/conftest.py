"""
pytest configuration and fixtures.

Provides an in-memory order store shared by the service and scheduler tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models.order import Order, ShippingTracking


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def add_order(db):
    """Insert an order, with a tracking row unless ``tracked`` is False."""

    def _add(
        order_id: str,
        tracking_number: str | None = "1Z1",
        tracking_company: str = "ups",
        age: timedelta = timedelta(days=1),
        email_sent: bool = False,
        tracked: bool = True,
    ) -> Order:
        order = Order(
            id=order_id,
            created_at=datetime.now(timezone.utc) - age,
            email_sent=email_sent,
            customer_email=f"{order_id.lower()}@example.com",
        )
        if tracked:
            order.shipping_tracking = ShippingTracking(
                tracking_number=tracking_number,
                tracking_company=tracking_company,
            )
        db.add(order)
        db.commit()
        return order

    return _add
