"""Messenger webhook routes."""

import hmac
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from ...app import Application
from ...ingress import SignatureError, iter_events, verify_signature
from ...logging_config import get_logger

logger = get_logger(__name__)


class WebhookEntry(BaseModel):
    """One page entry of a webhook batch."""

    id: str | int | None = None
    time: int | None = None
    messaging: list[dict[str, Any]] = []


class WebhookPayload(BaseModel):
    """Request model for a webhook delivery."""

    object: str
    entry: list[WebhookEntry] = []


class WebhookAck(BaseModel):
    """Response model for a processed webhook delivery."""

    status: str
    handled: int
    failed: int


def create_webhook_router(app: Application) -> APIRouter:
    """Create webhook router."""
    router = APIRouter(tags=["webhook"])

    @router.get("/webhook", response_class=PlainTextResponse)
    async def verify_subscription(
        mode: str | None = Query(None, alias="hub.mode"),
        verify_token: str | None = Query(None, alias="hub.verify_token"),
        challenge: str = Query("", alias="hub.challenge"),
    ) -> str:
        """Answer the platform's subscription handshake."""
        expected = app.settings.validation_token
        if (
            mode == "subscribe"
            and verify_token is not None
            and hmac.compare_digest(verify_token.encode("utf-8"), expected.encode("utf-8"))
        ):
            logger.info("Validating webhook")
            return challenge

        logger.error("Failed validation. Make sure the validation tokens match.")
        raise HTTPException(status_code=403, detail="Failed validation")

    @router.post("/webhook", response_model=WebhookAck)
    async def receive_events(request: Request) -> dict:
        """Verify, parse and route a batch of messaging events."""
        body = await request.body()

        try:
            verify_signature(app.settings.app_secret, body, request.headers)
        except SignatureError as e:
            logger.warning("Rejected webhook delivery: %s", e)
            raise HTTPException(status_code=403, detail=str(e))

        try:
            payload = WebhookPayload.model_validate_json(body)
        except ValidationError:
            raise HTTPException(status_code=400, detail="Malformed webhook payload")

        if payload.object != "page":
            raise HTTPException(status_code=404, detail="Unsupported subscription object")

        handled = 0
        failed = 0
        entries = [entry.model_dump() for entry in payload.entry]
        for event in iter_events(entries):
            try:
                await app.router.handle(event)
                handled += 1
            except Exception as e:
                # One bad event must not drop the rest of the batch.
                failed += 1
                logger.error(
                    "Failed to handle %s event from %s: %s",
                    event.kind.value,
                    event.sender_id,
                    e,
                    exc_info=True,
                )

        return {"status": "ok", "handled": handled, "failed": failed}

    return router
