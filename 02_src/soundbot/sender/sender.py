"""Send API client for delivering messages to the platform."""

from typing import Protocol

import httpx

from ..config import DEFAULT_SEND_API_URL
from ..logging_config import get_logger
from ..models import OutboundMessage, SendResult

logger = get_logger(__name__)


class ISender(Protocol):
    """Delivers a single message. Ordering across concurrent calls is not guaranteed."""

    async def send(self, message: OutboundMessage) -> SendResult:
        """Attempt delivery and report the outcome."""
        ...


class SendAPIClient:
    """HTTP client for the Messenger Send API."""

    def __init__(
        self,
        page_access_token: str,
        api_url: str = DEFAULT_SEND_API_URL,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not page_access_token:
            raise ValueError("Page access token is required")

        self._token = page_access_token
        self._api_url = api_url
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_client:
            await self._client.aclose()

    async def send(self, message: OutboundMessage) -> SendResult:
        """POST one message to the Send API."""
        try:
            response = await self._client.post(
                self._api_url,
                params={"access_token": self._token},
                json=message.to_request(),
            )
        except httpx.HTTPError as e:
            logger.error(
                "Failed calling Send API for recipient %s: %s",
                message.recipient_id,
                e,
            )
            return SendResult(
                success=False,
                recipient_id=message.recipient_id,
                reason=f"transport error: {e}",
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code != 200:
            error = body.get("error") or {}
            if isinstance(error, dict):
                reason = error.get("message")
            else:
                reason = str(error)
            logger.error(
                "Failed calling Send API: %s %s %s",
                response.status_code,
                response.reason_phrase,
                error,
            )
            return SendResult(
                success=False,
                recipient_id=message.recipient_id,
                reason=reason or f"HTTP {response.status_code}",
                details={"status_code": response.status_code, "error": error},
            )

        recipient_id = str(body.get("recipient_id", message.recipient_id))
        message_id = body.get("message_id")
        if message_id:
            logger.info(
                "Successfully sent message with id %s to recipient %s",
                message_id,
                recipient_id,
            )
        else:
            logger.info("Successfully called Send API for recipient %s", recipient_id)

        return SendResult(success=True, recipient_id=recipient_id, message_id=message_id)
