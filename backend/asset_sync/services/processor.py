"""
Event processing pipeline.

Each event runs through a fixed sequence of gates; the first gate that does
not pass decides the outcome:

  1. Event type filter   -> "ignored"   (nothing else is inspected)
  2. Approval gate       -> "skipped"   (no transform, no API call)
  3. Operation selection (create / update / remove)
  4. Transform + dispatch -> "completed" or "failed"
  5. Any exception in 3-4 -> "error"    (recorded as retryable)

Outcomes are returned as ProcessingResult; nothing is raised to the caller.
"""

import logging
from typing import Any, Mapping, Optional

import httpx

from asset_sync.config import Settings
from asset_sync.models.inbound_event import InboundEvent
from asset_sync.models.sync import (
    ProcessingResult,
    ProcessingStatus,
    SyncError,
    SyncOperation,
    SyncResult,
)
from asset_sync.services.retry import RetryPolicy
from asset_sync.services.sync_client import SyncClient
from asset_sync.services.token_manager import TokenManager
from asset_sync.services.transformer import (
    APPROVAL_FIELDS,
    is_approved_value,
    resolve_asset_id,
    transform_metadata,
)

logger = logging.getLogger(__name__)

TARGET_SYSTEM = "target"

# Event types that trigger synchronization. Matched as suffixes so that both
# fully-qualified ("com.adobe.aem.assets.updated") and shortened
# ("aem.assets.updated") names are accepted, while other resource types such
# as "com.adobe.aem.page.updated" are not.
PROCESSABLE_EVENT_SUFFIXES = (
    "assets.metadata.updated",
    "workflow.completed",
    "assets.created",
    "assets.updated",
    "assets.deleted",
    "assets.removed",
)

# The approval gate also understands the nested property path some AEM
# event payloads use.
APPROVAL_GATE_FIELDS = APPROVAL_FIELDS + ("jcr:content/metadata/dam:status",)

UNMATCHED_CREATE = "create"
UNMATCHED_IGNORE = "ignore"

_OPERATION_KEYWORDS = (
    (("created", "published"), SyncOperation.CREATE),
    (("updated", "modified"), SyncOperation.UPDATE),
    (("deleted", "removed"), SyncOperation.REMOVE),
)


def should_process_event(event_type: Optional[str]) -> bool:
    if not event_type:
        return False
    return event_type.endswith(PROCESSABLE_EVENT_SUFFIXES)


def is_asset_approved(metadata: Mapping[str, Any]) -> bool:
    return any(is_approved_value(metadata.get(field)) for field in APPROVAL_GATE_FIELDS)


def select_operation(event_type: str, unmatched: str = UNMATCHED_CREATE) -> Optional[SyncOperation]:
    """
    Pick the MLE operation from keywords in the event type.

    Event types naming none of the keywords (e.g. "workflow.completed")
    fall back to create, or to None when `unmatched` is "ignore".
    """
    for keywords, operation in _OPERATION_KEYWORDS:
        if any(keyword in event_type for keyword in keywords):
            return operation
    if unmatched == UNMATCHED_IGNORE:
        return None
    return SyncOperation.CREATE


class EventProcessor:
    def __init__(
        self,
        sync_client: SyncClient,
        *,
        author_url: str = "",
        publish_url: str = "",
        api_version: str = "v1",
        retry_policy: Optional[RetryPolicy] = None,
        unmatched_events: str = UNMATCHED_CREATE,
    ):
        self.sync_client = sync_client
        self.author_url = author_url
        self.publish_url = publish_url
        self.api_version = api_version
        self.retry_policy = retry_policy or RetryPolicy()
        self.unmatched_events = unmatched_events

    async def process(self, event: InboundEvent) -> ProcessingResult:
        event_type = event.event_type

        if not should_process_event(event_type):
            logger.info("Non-processable event, ignoring: event_type=%s", event_type)
            return ProcessingResult(
                status=ProcessingStatus.IGNORED,
                reason="Event type not supported for MLE synchronization",
            )

        logger.info(
            "Processing asset event: asset_path=%s event_type=%s",
            event.asset_path, event_type,
        )
        logger.debug("Asset metadata: %s", event.metadata)

        asset_id = resolve_asset_id(event.metadata, event.asset_path)

        if not is_asset_approved(event.metadata):
            logger.info(
                "Asset not approved, skipping MLE synchronization: asset_path=%s",
                event.asset_path,
            )
            return ProcessingResult(
                status=ProcessingStatus.SKIPPED,
                asset_id=asset_id,
                reason="Asset not approved for publication",
            )

        operation = select_operation(event_type, self.unmatched_events)
        if operation is None:
            logger.info("No MLE operation for event type %s, ignoring", event_type)
            return ProcessingResult(
                status=ProcessingStatus.IGNORED,
                asset_id=asset_id,
                reason="Event type does not map to an MLE operation",
            )

        result = ProcessingResult(
            status=ProcessingStatus.ERROR,
            asset_id=asset_id,
            operation=operation,
        )

        try:
            data = transform_metadata(
                event.metadata,
                event.asset_path,
                event_type,
                author_url=self.author_url,
                publish_url=self.publish_url,
                api_version=self.api_version,
            )
            sync_result = await self.retry_policy.run(
                lambda: self._dispatch(operation, data)
            )
        except Exception as exc:
            logger.exception("Unexpected error processing asset event %s", asset_id)
            result.errors.append(
                SyncError(system=TARGET_SYSTEM, error=str(exc), retryable=True)
            )
            return result

        result.target = sync_result
        if sync_result.success:
            result.status = ProcessingStatus.COMPLETED
            logger.info(
                "Asset synchronized to MLE: asset_id=%s target_id=%s",
                asset_id, sync_result.target_id,
            )
        else:
            result.status = ProcessingStatus.FAILED
            result.errors.append(
                SyncError(
                    system=TARGET_SYSTEM,
                    error=sync_result.error.model_dump(by_alias=True) if sync_result.error else None,
                    retryable=bool(sync_result.retryable),
                )
            )
            logger.error(
                "Asset synchronization failed: asset_id=%s retryable=%s",
                asset_id, result.retryable,
            )
        return result

    async def _dispatch(self, operation: SyncOperation, data) -> SyncResult:
        if operation is SyncOperation.UPDATE:
            return await self.sync_client.update(data.asset_id, data)
        if operation is SyncOperation.REMOVE:
            return await self.sync_client.remove(data.asset_id)
        return await self.sync_client.create(data)


def build_event_processor(settings: Settings, http_client: httpx.AsyncClient) -> EventProcessor:
    """Wire TokenManager, SyncClient and EventProcessor from settings."""
    token_manager = TokenManager(
        http_client,
        token_url=settings.oauth_token_url,
        client_id=settings.oauth_client_id,
        client_secret=settings.oauth_client_secret,
        scope=settings.oauth_scope,
        timeout=settings.sync_timeout_seconds,
    )
    sync_client = SyncClient(
        http_client,
        token_manager,
        base_url=settings.mle_api_url,
        api_version=settings.mle_api_version,
        timeout=settings.sync_timeout_seconds,
    )
    return EventProcessor(
        sync_client,
        author_url=settings.aem_author_url,
        publish_url=settings.aem_publish_url,
        api_version=settings.mle_api_version,
        retry_policy=RetryPolicy(
            max_retries=settings.sync_max_retries,
            backoff_seconds=settings.sync_retry_backoff_seconds,
        ),
        unmatched_events=settings.sync_unmatched_events,
    )
