"""Custom exceptions for the shipment notification jobs"""


class ShipmentJobError(Exception):
    """Base exception for shipment job operations"""
    pass


class StoreQueryError(ShipmentJobError):
    """Failed to read or update orders in the store"""
    pass


class CarrierLookupError(ShipmentJobError):
    """Carrier tracking service could not return a shipment status"""
    def __init__(self, tracking_number: str, reason: str):
        self.tracking_number = tracking_number
        self.reason = reason
        super().__init__(f"Failed to look up shipment {tracking_number}: {reason}")


class NotifyError(ShipmentJobError):
    """Email service refused or failed to send the promotion for an order"""
    def __init__(self, order_id: str, reason: str):
        self.order_id = order_id
        self.reason = reason
        super().__init__(f"Failed to notify email service for order {order_id}: {reason}")
