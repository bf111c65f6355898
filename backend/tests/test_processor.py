"""
Unit tests for the event processing pipeline.

The SyncClient is an AsyncMock; these tests cover gate order, operation
selection and result aggregation.
"""

from unittest.mock import AsyncMock, patch

import pytest

from asset_sync.config import Settings
from asset_sync.errors import AuthenticationError
from asset_sync.models.inbound_event import InboundEvent
from asset_sync.models.sync import ErrorDetail, ProcessingStatus, SyncOperation, SyncResult
from asset_sync.services.processor import (
    EventProcessor,
    build_event_processor,
    is_asset_approved,
    select_operation,
    should_process_event,
)
from asset_sync.services.retry import RetryPolicy
from asset_sync.services.sync_client import SyncClient


def _make_event(
    event_type: str = "com.adobe.aem.assets.updated",
    status: str = "approved",
    asset_path: str = "/content/dam/p.jpg",
    **extra,
) -> InboundEvent:
    metadata = {"dam:status": status, "dc:title": "T", "jcr:uuid": "u1", **extra}
    return InboundEvent(
        event_type=event_type,
        timestamp="2025-01-01T00:00:00Z",
        asset_path=asset_path,
        metadata=metadata,
    )


def _make_processor(result: SyncResult | None = None, **kwargs) -> EventProcessor:
    sync_client = AsyncMock(spec=SyncClient)
    outcome = result or SyncResult(success=True, target_id="mle-1", status="ok")
    sync_client.create.return_value = outcome
    sync_client.update.return_value = outcome
    sync_client.remove.return_value = outcome
    return EventProcessor(sync_client, author_url="https://author", publish_url="https://publish", **kwargs)


# ---------------------------------------------------------------------------
# Event type filter
# ---------------------------------------------------------------------------

class TestShouldProcessEvent:

    @pytest.mark.parametrize("event_type", [
        "com.adobe.aem.assets.created",
        "com.adobe.aem.assets.updated",
        "com.adobe.aem.assets.deleted",
        "com.adobe.aem.assets.removed",
        "com.adobe.aem.assets.metadata.updated",
        "com.adobe.aem.workflow.completed",
        "aem.assets.updated",
    ])
    def test_processable(self, event_type):
        assert should_process_event(event_type) is True

    @pytest.mark.parametrize("event_type", [
        "com.adobe.aem.page.updated",
        "com.adobe.aem.assets.published",
        "com.adobe.aem.workflow.started",
        "",
        None,
    ])
    def test_not_processable(self, event_type):
        assert should_process_event(event_type) is False


class TestIsAssetApproved:

    @pytest.mark.parametrize("metadata", [
        {"dam:status": "approved"},
        {"dam:approvalStatus": "PUBLISHED"},
        {"cq:workflowStatus": "Approved"},
        {"jcr:content/metadata/dam:status": "approved"},
    ])
    def test_approved(self, metadata):
        assert is_asset_approved(metadata) is True

    @pytest.mark.parametrize("metadata", [
        {},
        {"dam:status": "draft"},
        {"dam:status": None},
        {"dam:status": ["approved"]},
    ])
    def test_not_approved(self, metadata):
        assert is_asset_approved(metadata) is False


class TestSelectOperation:

    @pytest.mark.parametrize("event_type,expected", [
        ("com.adobe.aem.assets.created", SyncOperation.CREATE),
        ("com.adobe.aem.assets.published", SyncOperation.CREATE),
        ("com.adobe.aem.assets.updated", SyncOperation.UPDATE),
        ("com.adobe.aem.assets.metadata.updated", SyncOperation.UPDATE),
        ("com.adobe.aem.assets.modified", SyncOperation.UPDATE),
        ("com.adobe.aem.assets.deleted", SyncOperation.REMOVE),
        ("com.adobe.aem.assets.removed", SyncOperation.REMOVE),
        ("com.adobe.aem.workflow.completed", SyncOperation.CREATE),
    ])
    def test_keyword_mapping(self, event_type, expected):
        assert select_operation(event_type) == expected

    def test_unmatched_can_be_ignored(self):
        assert select_operation("com.adobe.aem.workflow.completed", "ignore") is None


# ---------------------------------------------------------------------------
# process()
# ---------------------------------------------------------------------------

class TestProcess:

    @pytest.mark.asyncio
    async def test_update_event_completes(self):
        processor = _make_processor()

        result = await processor.process(_make_event())

        assert result.status == ProcessingStatus.COMPLETED
        assert result.asset_id == "u1"
        assert result.operation == SyncOperation.UPDATE
        assert result.errors == []
        assert result.target.target_id == "mle-1"
        processor.sync_client.update.assert_awaited_once()
        asset_id, data = processor.sync_client.update.await_args.args
        assert asset_id == "u1"
        assert data.title == "T"
        assert data.asset_url == "https://author/content/dam/p.jpg"

    @pytest.mark.asyncio
    async def test_created_event_dispatches_create(self):
        processor = _make_processor()

        await processor.process(_make_event("com.adobe.aem.assets.created"))

        processor.sync_client.create.assert_awaited_once()
        processor.sync_client.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleted_event_dispatches_remove_with_asset_id(self):
        processor = _make_processor()

        await processor.process(_make_event("com.adobe.aem.assets.deleted"))

        processor.sync_client.remove.assert_awaited_once_with("u1")

    @pytest.mark.asyncio
    async def test_asset_id_derived_from_path_without_uuid(self):
        processor = _make_processor()
        event = InboundEvent(
            event_type="com.adobe.aem.assets.deleted",
            timestamp="t",
            asset_path="/content/dam/folder/shoe.png",
            metadata={"dam:status": "approved"},
        )

        result = await processor.process(event)

        assert result.asset_id == "shoe"
        processor.sync_client.remove.assert_awaited_once_with("shoe")

    @pytest.mark.asyncio
    async def test_non_asset_event_ignored_before_any_other_step(self):
        processor = _make_processor()

        with patch("asset_sync.services.processor.is_asset_approved") as approved, \
             patch("asset_sync.services.processor.transform_metadata") as transform:
            result = await processor.process(_make_event("com.adobe.aem.page.updated"))

        assert result.status == ProcessingStatus.IGNORED
        approved.assert_not_called()
        transform.assert_not_called()
        processor.sync_client.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unapproved_asset_skipped_without_transform(self):
        processor = _make_processor()

        with patch("asset_sync.services.processor.transform_metadata") as transform:
            result = await processor.process(_make_event(status="draft"))

        assert result.status == ProcessingStatus.SKIPPED
        assert result.asset_id == "u1"
        assert result.reason == "Asset not approved for publication"
        transform.assert_not_called()
        processor.sync_client.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_sync_records_retryable_error(self):
        failure = SyncResult(
            success=False,
            error=ErrorDetail(asset_id="u1", error={"message": "down"}, status=500),
            retryable=True,
        )
        processor = _make_processor(failure)

        result = await processor.process(_make_event())

        assert result.status == ProcessingStatus.FAILED
        assert len(result.errors) == 1
        assert result.errors[0].system == "target"
        assert result.errors[0].retryable is True
        assert result.errors[0].error["status"] == 500
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_failed_sync_non_retryable(self):
        failure = SyncResult(success=False, error=ErrorDetail(status=404), retryable=False)
        processor = _make_processor(failure)

        result = await processor.process(_make_event())

        assert result.status == ProcessingStatus.FAILED
        assert result.errors[0].retryable is False
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_failure_logged_with_aggregate_retryable_flag(self, caplog):
        failure = SyncResult(
            success=False,
            error=ErrorDetail(asset_id="u1", status=503),
            retryable=True,
        )
        processor = _make_processor(failure)

        with caplog.at_level("ERROR", logger="asset_sync.services.processor"):
            result = await processor.process(_make_event())

        assert result.errors[0].error["assetId"] == "u1"
        assert "asset_id=u1 retryable=True" in caplog.text

    @pytest.mark.asyncio
    async def test_authentication_error_becomes_error_status(self):
        processor = _make_processor()
        processor.sync_client.update.side_effect = AuthenticationError("Authentication failed")

        result = await processor.process(_make_event())

        assert result.status == ProcessingStatus.ERROR
        assert result.errors[0].error == "Authentication failed"
        assert result.errors[0].retryable is True

    @pytest.mark.asyncio
    async def test_unexpected_transform_exception_becomes_error_status(self):
        processor = _make_processor()

        with patch(
            "asset_sync.services.processor.transform_metadata",
            side_effect=RuntimeError("boom"),
        ):
            result = await processor.process(_make_event())

        assert result.status == ProcessingStatus.ERROR
        assert result.errors[0].error == "boom"

    @pytest.mark.asyncio
    async def test_unmatched_event_ignored_when_configured(self):
        processor = _make_processor(unmatched_events="ignore")

        result = await processor.process(_make_event("com.adobe.aem.workflow.completed"))

        assert result.status == ProcessingStatus.IGNORED
        processor.sync_client.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_policy_applied_to_dispatch(self):
        processor = _make_processor(retry_policy=RetryPolicy(max_retries=1, sleep=AsyncMock()))
        processor.sync_client.update.side_effect = [
            SyncResult(success=False, retryable=True),
            SyncResult(success=True, target_id="u1"),
        ]

        result = await processor.process(_make_event())

        assert result.status == ProcessingStatus.COMPLETED
        assert processor.sync_client.update.await_count == 2


class TestBuildEventProcessor:

    def test_wires_settings(self):
        settings = Settings(
            mle_api_url="https://mle.example.com/api",
            mle_api_version="v2",
            aem_author_url="https://author",
            aem_publish_url="https://publish",
            sync_max_retries=2,
            sync_unmatched_events="ignore",
        )
        processor = build_event_processor(settings, AsyncMock())

        assert processor.api_version == "v2"
        assert processor.author_url == "https://author"
        assert processor.retry_policy.max_retries == 2
        assert processor.unmatched_events == "ignore"
        assert processor.sync_client.assets_endpoint("u1") == "https://mle.example.com/api/v2/assets/u1"
