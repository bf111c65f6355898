"""
Pydantic models for the MLE asset schema.

Attribute names are snake_case in Python; the MLE API expects camelCase, so
every model serializes with an alias generator. Use `to_payload()` to get the
JSON body sent to the API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class Dimensions(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    width: Any = None
    height: Any = None


class NormalizedMetadata(BaseModel):
    """
    Asset metadata in the MLE schema, built fresh for every event.

    Values copied from the source keep their original type (AEM sends sizes
    and dimensions as numbers or strings depending on the property).
    tags, categories and keywords are deduplicated lists in first-seen order.
    """

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    # Identification
    asset_id: str
    asset_path: str
    asset_url: str
    public_url: str

    # Media properties
    media_type: str
    mime_type: Optional[str] = None
    file_size: Any = None
    file_name: str = ""

    dimensions: Dimensions = Field(default_factory=Dimensions)

    # Content
    title: Any = None
    description: Any = None
    alt_text: Any = None

    # Classification
    tags: List[Any] = []
    categories: List[Any] = []
    keywords: List[Any] = []

    # Business
    brand: Any = None
    campaign: Any = None
    product_type: Any = None
    usage: Any = "web"

    # Status and workflow
    approval_status: str = "pending"
    publish_status: str = "published"
    workflow_status: Any = None

    # Timestamps
    created_date: Any = None
    modified_date: Any = None
    published_date: str

    # Technical
    color_space: Any = None
    resolution: Any = None
    orientation: Any = None

    # Rights and licensing
    copyright: Any = None
    license: Any = None
    creator: Any = None

    # Event context
    event_type: str
    source_system: str = "AEM"
    api_version: str = "v1"

    custom_metadata: Dict[str, Any] = {}

    def to_payload(self) -> dict:
        """JSON-ready dict with camelCase keys, as sent to the MLE API."""
        return self.model_dump(mode="json", by_alias=True)
