"""
Last sync timestamps, stored as custom objects in the target project.

Every syncer records when its last successful run started, so the next run only
fetches source resources modified since then. Objects live in the container
``commercetools-project-sync.<runner name>.<sync module>`` under the source project key.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .. import __version__
from .client import CustomObjectQuery, CustomObjectUpsertCommand
from .error_tracker import NotFoundError
from .logging_manager import get_logger
from .statistics import SyncStatistics

logger = get_logger(__name__)

APPLICATION_NAME = "commercetools-project-sync"

# Source changes committed shortly before the last run started may not have been visible to it
TIMESTAMP_BUFFER = timedelta(minutes=2)


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime the way the platform expects it in predicates."""
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


@dataclass
class LastSyncCustomObject:
    last_sync_timestamp: datetime
    last_sync_statistics: Dict[str, Any]
    last_sync_duration_millis: int
    application_version: str = __version__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastSyncTimestamp": format_timestamp(self.last_sync_timestamp),
            "lastSyncStatistics": self.last_sync_statistics,
            "lastSyncDurationInMillis": self.last_sync_duration_millis,
            "applicationVersion": self.application_version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LastSyncCustomObject':
        return cls(
            last_sync_timestamp=parse_timestamp(data["lastSyncTimestamp"]),
            last_sync_statistics=data.get("lastSyncStatistics") or {},
            last_sync_duration_millis=int(data.get("lastSyncDurationInMillis") or 0),
            application_version=data.get("applicationVersion") or "",
        )


class StateManager:
    """Reads and writes the last sync timestamps of one runner."""

    def __init__(self, target_client, runner_name: str, source_project_key: str):
        self.target_client = target_client
        self.runner_name = runner_name
        self.source_project_key = source_project_key

    def container_name(self, sync_module: str) -> str:
        return f"{APPLICATION_NAME}.{self.runner_name}.{sync_module}"

    async def read_last_sync(self, sync_module: str) -> Optional[LastSyncCustomObject]:
        query = CustomObjectQuery(self.container_name(sync_module), self.source_project_key)
        try:
            custom_object = await self.target_client.execute(query)
        except NotFoundError:
            return None
        if not custom_object or not custom_object.get("value"):
            return None
        return LastSyncCustomObject.from_dict(custom_object["value"])

    async def get_modified_since(self, sync_module: str) -> Optional[datetime]:
        """Lower bound for ``lastModifiedAt`` of the next run, or None for a full sync."""
        last_sync = await self.read_last_sync(sync_module)
        if last_sync is None:
            logger.info(f"No last sync timestamp found for {sync_module}, running a full sync")
            return None
        return last_sync.last_sync_timestamp - TIMESTAMP_BUFFER

    async def write_last_sync(self, sync_module: str, started_at: datetime, statistics: SyncStatistics) -> None:
        value = LastSyncCustomObject(
            last_sync_timestamp=started_at,
            last_sync_statistics=statistics.to_dict(),
            last_sync_duration_millis=statistics.processing_time_millis or 0,
        )
        command = CustomObjectUpsertCommand(self.container_name(sync_module), self.source_project_key, value.to_dict())
        await self.target_client.execute(command)
