"""
Process-wide pipeline objects for the HTTP service.

The HTTP client, TokenManager and EventProcessor are built once, on first
use, so that every request shares the same cached OAuth token. Tests replace
get_event_processor / get_settings through app.dependency_overrides.
"""

import logging
from typing import Optional

import httpx

from asset_sync.config import get_settings
from asset_sync.services.processor import EventProcessor, build_event_processor

logger = logging.getLogger(__name__)

_http_client: Optional[httpx.AsyncClient] = None
_processor: Optional[EventProcessor] = None


def get_event_processor() -> EventProcessor:
    global _http_client, _processor
    if _processor is None:
        settings = get_settings()
        _http_client = httpx.AsyncClient(timeout=settings.sync_timeout_seconds)
        _processor = build_event_processor(settings, _http_client)
    return _processor


async def close_pipeline() -> None:
    """Close the shared HTTP client and drop the cached pipeline."""
    global _http_client, _processor
    if _http_client is not None:
        await _http_client.aclose()
        logger.info("Closed MLE HTTP client")
    _http_client = None
    _processor = None
