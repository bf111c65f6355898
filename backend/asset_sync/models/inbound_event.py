"""
Inbound AEM event models.

AemWebhookPayload mirrors the JSON body AEM (or Adobe I/O Events) posts to the
webhook. InboundEvent is the flattened, read-only view the rest of the
pipeline works with, so only this module knows the envelope layout.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AemEventPayload(BaseModel):
    """data.payload of an AEM event. `assetPath` / `properties` are legacy aliases."""

    model_config = {"extra": "ignore"}

    path: Optional[str] = None
    assetPath: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Any]] = None


class AemEventData(BaseModel):
    model_config = {"extra": "ignore"}

    timestamp: Optional[str] = None
    payload: AemEventPayload = Field(default_factory=AemEventPayload)


class AemWebhookPayload(BaseModel):
    """
    Subset of the AEM webhook JSON the service cares about.

    Unknown fields are ignored so that new envelope fields from AEM never
    break parsing.
    """

    model_config = {"extra": "ignore"}

    event_type: Optional[str] = None
    data: AemEventData = Field(default_factory=AemEventData)

    def to_event(self) -> "InboundEvent":
        return build_event(self.event_type or "", self.data)


class InboundEvent(BaseModel):
    """A single asset-change event, immutable for the lifetime of a request."""

    model_config = {"frozen": True}

    event_type: str
    timestamp: str
    asset_path: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


def build_event(event_type: str, data: AemEventData) -> InboundEvent:
    """
    Flatten an event envelope into an InboundEvent.

    Precedence:
      asset_path: payload.path, then payload.assetPath
      metadata:   payload.metadata, then payload.properties
      timestamp:  data.timestamp, then the current UTC time
    """
    payload = data.payload
    return InboundEvent(
        event_type=event_type,
        timestamp=data.timestamp or datetime.now(timezone.utc).isoformat(),
        asset_path=payload.path or payload.assetPath or "",
        metadata=payload.metadata or payload.properties or {},
    )
