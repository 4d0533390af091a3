"""
Tests for last sync timestamps stored as custom objects.
"""

from datetime import datetime, timezone

import pytest

from ..client import CustomObjectQuery, CustomObjectUpsertCommand
from ..error_tracker import BadGatewayError
from ..state_manager import (
    TIMESTAMP_BUFFER, LastSyncCustomObject, StateManager, format_timestamp, parse_timestamp,
)
from ..statistics import SyncStatistics
from .utils import executed_commands, mock_client


class TestTimestamps:

    def test_format_timestamp_uses_milliseconds_and_utc(self):
        value = datetime(2024, 3, 1, 12, 5, 7, 123456, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-03-01T12:05:07.123Z"

    def test_parse_timestamp(self):
        assert parse_timestamp("2024-03-01T12:05:07.123Z") == datetime(2024, 3, 1, 12, 5, 7, 123000, tzinfo=timezone.utc)

    def test_last_sync_custom_object_from_dict(self):
        last_sync = LastSyncCustomObject.from_dict({
            "lastSyncTimestamp": "2024-03-01T12:00:00.000Z",
            "lastSyncStatistics": {"processed": 3},
            "lastSyncDurationInMillis": 1500,
            "applicationVersion": "0.0.9",
        })
        assert last_sync.last_sync_timestamp == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
        assert last_sync.last_sync_statistics == {"processed": 3}
        assert last_sync.last_sync_duration_millis == 1500
        assert last_sync.to_dict()["lastSyncTimestamp"] == "2024-03-01T12:00:00.000Z"


class TestStateManager:
    """Tests for StateManager."""

    def test_container_name(self):
        state = StateManager(mock_client("bar"), "nightly", "foo")
        assert state.container_name("categories") == "commercetools-project-sync.nightly.categories"

    @pytest.mark.asyncio
    async def test_missing_custom_object_means_full_sync(self):
        target = mock_client("bar")
        state = StateManager(target, "runnerName", "foo")

        assert await state.read_last_sync("types") is None
        assert await state.get_modified_since("types") is None

        lookup = executed_commands(target, CustomObjectQuery)[0]
        assert lookup.path() == "/custom-objects/commercetools-project-sync.runnerName.types/foo"

    @pytest.mark.asyncio
    async def test_modified_since_subtracts_buffer(self):
        target = mock_client("bar", last_sync={"lastSyncTimestamp": "2024-03-01T12:00:00.000Z"})
        state = StateManager(target, "runnerName", "foo")

        modified_since = await state.get_modified_since("types")

        assert modified_since == datetime(2024, 3, 1, 12, tzinfo=timezone.utc) - TIMESTAMP_BUFFER
        assert format_timestamp(modified_since) == "2024-03-01T11:58:00.000Z"

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        target = mock_client("bar")
        target.execute.side_effect = BadGatewayError()
        state = StateManager(target, "runnerName", "foo")

        with pytest.raises(BadGatewayError):
            await state.get_modified_since("types")

    @pytest.mark.asyncio
    async def test_write_last_sync(self):
        target = mock_client("bar")
        state = StateManager(target, "runnerName", "foo")
        statistics = SyncStatistics(resource_name="types")
        statistics.increment_processed(2)
        statistics.freeze()

        await state.write_last_sync("types", datetime(2024, 3, 1, 12, tzinfo=timezone.utc), statistics)

        upsert = executed_commands(target, CustomObjectUpsertCommand)[0]
        assert upsert.container == "commercetools-project-sync.runnerName.types"
        assert upsert.key == "foo"
        assert upsert.value["lastSyncTimestamp"] == "2024-03-01T12:00:00.000Z"
        assert upsert.value["lastSyncStatistics"]["processed"] == 2
        assert upsert.value["lastSyncDurationInMillis"] == statistics.processing_time_millis
