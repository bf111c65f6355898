"""
AEM webhook router.

Endpoints:
  POST /aem-events   AEM asset event receiver (auth: x-adobe-signature)

The signature is checked against the raw request bytes before anything is
parsed. Outcomes of the sync itself (skipped / completed / failed / error)
are reported inside a 200 "processed" response so that AEM does not treat
a downstream MLE problem as a delivery failure.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from asset_sync.config import Settings, get_settings
from asset_sync.dependencies import get_event_processor
from asset_sync.errors import EventValidationError, SignatureError
from asset_sync.models.inbound_event import AemWebhookPayload
from asset_sync.models.sync import ProcessingStatus
from asset_sync.services.processor import EventProcessor
from asset_sync.services.signature import (
    SIGNATURE_HEADER,
    signature_required,
    verify_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Webhook authentication dependency
# ---------------------------------------------------------------------------

async def _verified_body(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> bytes:
    """
    Return the raw request body once its signature has been checked.

    When AEM_WEBHOOK_SECRET is unset, verification is skipped so that test
    environments can post unsigned events.

    Raises SignatureError (401) if the signature is missing or does not match.
    """
    raw_body = await request.body()

    if not signature_required(settings.aem_webhook_secret):
        logger.debug("AEM_WEBHOOK_SECRET not configured; skipping signature verification")
        return raw_body

    signature = request.headers.get(SIGNATURE_HEADER)
    if not verify_signature(raw_body, signature, settings.aem_webhook_secret):
        logger.error("Invalid webhook signature")
        raise SignatureError("Invalid signature")
    return raw_body


def _parse_payload(raw_body: bytes) -> AemWebhookPayload:
    try:
        return AemWebhookPayload.model_validate_json(raw_body)
    except ValidationError as exc:
        logger.error("Malformed AEM event payload: %s", exc.errors()[:3])
        raise EventValidationError("Malformed event payload") from exc


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/aem-events")
async def receive_aem_event(
    raw_body: bytes = Depends(_verified_body),
    processor: EventProcessor = Depends(get_event_processor),
) -> dict:
    """
    Receive an AEM asset event and synchronize it to MLE.

    Responses:
      200 {"status": "ignored", "reason"}                 event type not handled
      200 {"status": "processed", "timestamp", "result"}  sync attempted or skipped
      400 {"error", "timestamp"}                          body is not an AEM event
      401 {"error": "Invalid signature"}
    """
    payload = _parse_payload(raw_body)
    event = payload.to_event()
    logger.info("Received AEM event: event_type=%s", event.event_type)

    result = await processor.process(event)

    if result.status == ProcessingStatus.IGNORED:
        return {"status": "ignored", "reason": result.reason}

    return {
        "status": "processed",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "result": result.model_dump(mode="json", by_alias=True),
    }
