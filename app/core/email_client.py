"""Email dispatch service client"""

import httpx
from typing import Optional
import logging

from app.core.exceptions import NotifyError

logger = logging.getLogger(__name__)


class EmailDispatchClient:
    """Asks the email service to send the post-delivery promotion"""

    AUTH_HEADER = "disco-auth"

    def __init__(
        self,
        token: str,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.token = token
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            headers={self.AUTH_HEADER: self.token},
            timeout=self.timeout,
            transport=self._transport
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()

    async def send_promotion(self, order_payload: dict) -> None:
        """Send one promotion request for an order, raising NotifyError on failure"""
        order_id = order_payload.get("_id")
        try:
            response = await self._client.post(
                self.api_url,
                json={"order": order_payload}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotifyError(order_id, f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            raise NotifyError(order_id, f"connection failed: {e}")
