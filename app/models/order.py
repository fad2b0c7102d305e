from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value):
    return value.isoformat() if value else None


class Order(Base):
    """Customer order waiting for its promotional email"""
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
    email_sent = Column(Boolean, default=False, nullable=False, index=True)
    customer_email = Column(String(255))
    customer_name = Column(String(255))
    details = Column(JSON)

    shipping_tracking = relationship(
        "ShippingTracking",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def to_payload(self) -> dict:
        """Serialize the order as sent to the email service"""
        payload = {
            "_id": self.id,
            "created_at": _isoformat(self.created_at),
            "email_sent": self.email_sent,
            "customer_email": self.customer_email,
            "customer_name": self.customer_name,
            "details": self.details,
        }
        if self.shipping_tracking is not None:
            payload["shipping_tracking"] = self.shipping_tracking.to_payload()
        return payload

    def __repr__(self):
        return f"<Order(id={self.id}, email_sent={self.email_sent})>"


class ShippingTracking(Base):
    """Carrier tracking reference attached to an order"""
    __tablename__ = "shipping_trackings"

    order_id = Column(String(64), ForeignKey("orders.id"), primary_key=True)
    # NULL means the carrier could not track the parcel
    tracking_number = Column(String(100), index=True)
    tracking_company = Column(String(50))
    expected_delivery = Column(DateTime)

    order = relationship("Order", back_populates="shipping_tracking")

    def to_payload(self) -> dict:
        return {
            "tracking_number": self.tracking_number,
            "tracking_company": self.tracking_company,
            "expected_delivery": _isoformat(self.expected_delivery),
        }

    def __repr__(self):
        return f"<ShippingTracking(order={self.order_id}, number={self.tracking_number})>"
