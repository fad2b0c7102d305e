"""Carrier tracking API client"""

import httpx
from typing import Any, Optional
from dataclasses import dataclass, field
import logging

from app.core.exceptions import CarrierLookupError

logger = logging.getLogger(__name__)


@dataclass
class TrackingEvent:
    """A single scan event reported by the carrier"""
    status: Optional[str]
    datetime: Any  # raw value from the carrier, parsed by the classifier
    message: Optional[str] = None


@dataclass
class ShipmentStatus:
    """Shipment status snapshot returned by the tracking service"""
    status: str
    tracking_details: list[TrackingEvent] = field(default_factory=list)
    est_delivery_date: Optional[str] = None


class CarrierClient:
    """Client for the carrier tracking service"""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            auth=(self.api_key, ""),
            timeout=self.timeout,
            transport=self._transport
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()

    async def get_shipment_status(
        self,
        tracking_number: str,
        tracking_company: Optional[str]
    ) -> ShipmentStatus:
        """
        Fetch the current status of a shipment.

        Makes exactly one request. Any non-2xx response, transport failure or
        unexpected body raises CarrierLookupError.
        """
        try:
            response = await self._client.post(
                self.api_url,
                json={
                    "tracker": {
                        "tracking_code": tracking_number,
                        "carrier": tracking_company,
                    }
                }
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise CarrierLookupError(
                tracking_number, f"HTTP {e.response.status_code}"
            )
        except httpx.RequestError as e:
            raise CarrierLookupError(tracking_number, f"connection failed: {e}")
        except ValueError as e:
            raise CarrierLookupError(tracking_number, f"invalid JSON body: {e}")

        return self._parse_status(tracking_number, data)

    def _parse_status(self, tracking_number: str, data: Any) -> ShipmentStatus:
        """Parse raw API response into ShipmentStatus dataclass"""
        if not isinstance(data, dict) or not isinstance(data.get("status"), str):
            raise CarrierLookupError(tracking_number, "response has no status")

        details = data.get("tracking_details") or []
        if not isinstance(details, list):
            raise CarrierLookupError(tracking_number, "tracking_details is not a list")
        events = [
            TrackingEvent(
                status=detail.get("status"),
                datetime=detail.get("datetime"),
                message=detail.get("message"),
            )
            for detail in details
            if isinstance(detail, dict)
        ]

        logger.debug(f"Shipment {tracking_number} is {data['status']} ({len(events)} events)")
        return ShipmentStatus(
            status=data["status"],
            tracking_details=events,
            est_delivery_date=data.get("est_delivery_date"),
        )
