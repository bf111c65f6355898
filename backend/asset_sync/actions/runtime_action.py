"""
Serverless (Adobe I/O Runtime style) entry point.

The platform calls `main(params)` with the action's default parameters
(configuration, keyed by the same names as the service's environment
variables) merged with the event: `type` holds the event type and `data`
the event envelope. The return value is `{"statusCode", "body"}`.

This adapter shares the whole pipeline with the HTTP service; only the way
the event arrives and the response leaves differs. A fresh HTTP client and
TokenManager are built per invocation.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from asset_sync.config import Settings
from asset_sync.errors import ConfigurationError, EventValidationError
from asset_sync.models.inbound_event import AemEventData, build_event
from asset_sync.models.sync import ProcessingStatus
from asset_sync.services.processor import build_event_processor

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {
    ProcessingStatus.IGNORED: "Event type not supported for MLE synchronization",
    ProcessingStatus.SKIPPED: "Asset not approved for publication",
    ProcessingStatus.COMPLETED: "Metadata synchronized successfully",
    ProcessingStatus.FAILED: "Metadata synchronization failed",
    ProcessingStatus.ERROR: "Metadata synchronization failed with an unexpected error",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(status: str, message: str, data: Any = None) -> dict:
    return {
        "statusCode": 200,
        "body": {
            "status": status,
            "message": message,
            "timestamp": _now_iso(),
            "data": data,
        },
    }


def error_response(status_code: int, message: str) -> dict:
    return {
        "statusCode": status_code,
        "body": {"error": message, "timestamp": _now_iso()},
    }


def validate_params(params: dict) -> Settings:
    """
    Build Settings from the invocation parameters and check the payload.

    Raises:
        ConfigurationError: a required configuration parameter is missing.
        EventValidationError: the event payload is missing.
    """
    settings = Settings.from_params(params)
    missing = settings.missing_required()
    if missing:
        raise ConfigurationError(missing)

    data = params.get("data")
    if not isinstance(data, dict) or not data.get("payload"):
        raise EventValidationError("Missing event payload data")
    return settings


async def handle_event(params: dict, http_client: Optional[httpx.AsyncClient] = None) -> dict:
    """Run one invocation. `http_client` is injectable for tests."""
    event_type = params.get("type") or params.get("event_type") or ""
    logger.info("Processing AEM asset event: event_type=%s", event_type)

    try:
        settings = validate_params(params)
        event = build_event(event_type, AemEventData.model_validate(params["data"]))
        logging.getLogger("asset_sync").setLevel(settings.log_level_value)
    except EventValidationError as exc:
        logger.error("Invalid invocation: %s", exc)
        return error_response(400, str(exc))
    except ValidationError as exc:
        logger.error("Invalid invocation parameters: %s", exc.errors()[:3])
        return error_response(400, "Invalid event payload or parameters")

    try:
        if http_client is not None:
            result = await build_event_processor(settings, http_client).process(event)
        else:
            async with httpx.AsyncClient(timeout=settings.sync_timeout_seconds) as client:
                result = await build_event_processor(settings, client).process(event)
    except Exception as exc:
        logger.exception("Action execution failed")
        return error_response(500, str(exc))

    data = None
    if result.status not in (ProcessingStatus.IGNORED, ProcessingStatus.SKIPPED):
        data = result.model_dump(mode="json", by_alias=True)
    message = result.reason or _STATUS_MESSAGES[result.status]
    return success_response(result.status.value, message, data)


def main(params: dict) -> dict:
    return asyncio.run(handle_event(params))
