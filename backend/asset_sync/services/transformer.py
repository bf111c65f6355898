"""
Metadata transformation service.

Maps AEM asset metadata (JCR / Dublin Core / DAM / TIFF / EXIF properties)
onto the MLE asset schema. Pure functions only: everything needed is already
in memory, there is no network or disk access here.

Where several AEM properties can supply the same MLE field they are listed
in precedence order and the first one present wins.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from asset_sync.models.asset import Dimensions, NormalizedMetadata

logger = logging.getLogger(__name__)

SOURCE_SYSTEM = "AEM"
DEFAULT_MIME_TYPE = "application/octet-stream"

_MIME_TYPES_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "pdf": "application/pdf",
    "txt": "text/plain",
}

# Properties inspected for approval, in order
APPROVAL_FIELDS = (
    "dam:status",
    "dam:approvalStatus",
    "cq:workflowStatus",
)

_APPROVED_VALUES = {"approved", "published"}

# Source fields merged into each classification list
_TAG_FIELDS = ("cq:tags", "dam:tags")
_CATEGORY_FIELDS = ("dc:subject", "dam:category")
_KEYWORD_FIELDS = ("dc:keywords", "dam:keywords")

# Properties mapped onto fixed schema fields; everything else (outside the
# reserved namespaces) is carried over in customMetadata
_STANDARD_FIELDS = frozenset({
    "jcr:uuid", "jcr:created", "jcr:lastModified", "jcr:title",
    "dc:title", "dc:description", "dc:format", "dc:rights", "dc:creator",
    "dc:subject", "dc:keywords",
    "dam:size", "dam:status", "dam:brand", "dam:campaign", "dam:productType",
    "dam:usage", "dam:altText",
    "tiff:ImageWidth", "tiff:ImageLength", "tiff:ColorSpace", "tiff:XResolution",
    "tiff:Orientation",
    "exif:PixelXDimension", "exif:PixelYDimension",
    "cq:tags", "cq:workflowStatus",
    "xmpRights:UsageTerms",
})

_RESERVED_PREFIXES = ("jcr:", "rep:")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _first_present(metadata: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the value of the first key whose value is truthy."""
    for key in keys:
        value = metadata.get(key)
        if value:
            return value
    return default


def _as_list(value: Any) -> List[Any]:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def merge_unique(metadata: Mapping[str, Any], fields: Iterable[str]) -> List[Any]:
    """
    Union the values of several source fields, dropping duplicates.

    Each field may hold a scalar or a list; first-seen order is kept so the
    output is deterministic.
    """
    merged: List[Any] = []
    seen = set()
    for field in fields:
        for value in _as_list(metadata.get(field)):
            marker = repr(value) if isinstance(value, (list, dict)) else value
            if marker in seen:
                continue
            seen.add(marker)
            merged.append(value)
    return merged


def extract_file_name(asset_path: str) -> str:
    return asset_path.split("/")[-1]


def extract_asset_id_from_path(asset_path: str) -> str:
    """
    Last path segment without its extension.

    "/content/dam/products/shoe.front.jpg" -> "shoe.front"
    """
    file_name = extract_file_name(asset_path)
    stem, dot, _ = file_name.rpartition(".")
    return stem if dot and stem else file_name


def resolve_asset_id(metadata: Mapping[str, Any], asset_path: str) -> str:
    return str(metadata.get("jcr:uuid") or extract_asset_id_from_path(asset_path))


def mime_type_from_path(asset_path: str) -> str:
    extension = asset_path.rsplit(".", 1)[-1].lower()
    return _MIME_TYPES_BY_EXTENSION.get(extension, DEFAULT_MIME_TYPE)


def media_type_for(mime_type: Optional[str]) -> str:
    """
    Coarse media type derived from a MIME type.

    The checks run in order: "application/pdf" is a document, but a
    hypothetical "text/pdf" would also be a document, not text.
    """
    if not mime_type:
        return "unknown"
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    if "pdf" in mime_type:
        return "document"
    if mime_type.startswith("text/"):
        return "text"
    return "other"


def is_approved_value(value: Any) -> bool:
    return isinstance(value, str) and value.lower() in _APPROVED_VALUES


def approval_status(metadata: Mapping[str, Any], fields: Iterable[str] = APPROVAL_FIELDS) -> str:
    for field in fields:
        if is_approved_value(metadata.get(field)):
            return "approved"
    return "pending"


def extract_custom_metadata(metadata: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        key: value
        for key, value in metadata.items()
        if key not in _STANDARD_FIELDS and not key.startswith(_RESERVED_PREFIXES)
    }


def build_url(base_url: Optional[str], asset_path: str) -> str:
    return f"{base_url or ''}{asset_path}"


# ---------------------------------------------------------------------------
# Top-level transformation
# ---------------------------------------------------------------------------

def transform_metadata(
    metadata: Mapping[str, Any],
    asset_path: str,
    event_type: str,
    *,
    author_url: str = "",
    publish_url: str = "",
    api_version: str = "v1",
    now: Optional[datetime] = None,
) -> NormalizedMetadata:
    """
    Convert AEM asset metadata into a NormalizedMetadata record.

    Deterministic for a given input except for published_date, which is the
    transformation time (pass `now` to pin it).
    """
    mime_type = metadata.get("dc:format") or mime_type_from_path(asset_path)
    published = (now or datetime.now(timezone.utc)).isoformat()

    return NormalizedMetadata(
        asset_id=resolve_asset_id(metadata, asset_path),
        asset_path=asset_path,
        asset_url=build_url(author_url, asset_path),
        public_url=build_url(publish_url, asset_path),
        media_type=media_type_for(mime_type),
        mime_type=mime_type,
        file_size=metadata.get("dam:size"),
        file_name=extract_file_name(asset_path),
        dimensions=Dimensions(
            width=_first_present(metadata, "tiff:ImageWidth", "exif:PixelXDimension"),
            height=_first_present(metadata, "tiff:ImageLength", "exif:PixelYDimension"),
        ),
        title=_first_present(metadata, "dc:title", "jcr:title"),
        description=metadata.get("dc:description"),
        alt_text=_first_present(metadata, "dam:altText", "dc:title"),
        tags=merge_unique(metadata, _TAG_FIELDS),
        categories=merge_unique(metadata, _CATEGORY_FIELDS),
        keywords=merge_unique(metadata, _KEYWORD_FIELDS),
        brand=metadata.get("dam:brand"),
        campaign=metadata.get("dam:campaign"),
        product_type=metadata.get("dam:productType"),
        usage=metadata.get("dam:usage") or "web",
        approval_status=approval_status(metadata),
        publish_status="published",
        workflow_status=metadata.get("cq:workflowStatus"),
        created_date=_first_present(metadata, "jcr:created", "dam:created"),
        modified_date=_first_present(metadata, "jcr:lastModified", "dam:lastModified"),
        published_date=published,
        color_space=metadata.get("tiff:ColorSpace"),
        resolution=metadata.get("tiff:XResolution"),
        orientation=metadata.get("tiff:Orientation"),
        copyright=metadata.get("dc:rights"),
        license=metadata.get("xmpRights:UsageTerms"),
        creator=metadata.get("dc:creator"),
        event_type=event_type,
        source_system=SOURCE_SYSTEM,
        api_version=api_version,
        custom_metadata=extract_custom_metadata(metadata),
    )
