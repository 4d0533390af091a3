"""
Resource syncers, one per synced resource kind.

All syncers share ``Syncer.run``: page through the source project, hand each page to
the resource's sync engine and return the frozen statistics. The subclasses only
declare which resource kind they handle.
"""

from datetime import datetime
from typing import List, Optional

from .client import ResourceQuery
from .config import DEFAULT_PAGE_SIZE, DEFAULT_RUNNER_NAME
from .events import EventSink, LoggingEventSink
from .resources import (
    CategoryResource, InventoryEntryResource, ProductResource, ProductTypeResource,
    ResourceType, TypeResource,
)
from .state_manager import StateManager, format_timestamp
from .statistics import SyncStatistics
from .sync_engine import CategoryResourceSync, ResourceSync


class Syncer:
    """
    Syncs one resource kind from the source project to the target project.

    Emits exactly one "Starting <label>" event when a run begins and, only if the run
    succeeds, one event carrying the summary line of the run's statistics.
    """
    label: str = ''
    sync_module: str = ''
    resource_type: ResourceType
    engine_class = ResourceSync

    def __init__(self, events: Optional[EventSink] = None, page_size: int = DEFAULT_PAGE_SIZE,
                 full_sync: bool = False, runner_name: str = DEFAULT_RUNNER_NAME):
        self.events = events or LoggingEventSink()
        self.page_size = page_size
        self.full_sync = full_sync
        self.runner_name = runner_name

    def build_query(self, modified_since: Optional[datetime] = None) -> ResourceQuery:
        return ResourceQuery(
            endpoint=self.resource_type.endpoint,
            where=self._base_where(modified_since),
            sort=['id asc'],
            expand=list(self.resource_type.expand),
            limit=self.page_size,
        )

    @staticmethod
    def _base_where(modified_since: Optional[datetime]) -> List[str]:
        if modified_since is None:
            return []
        return [f'lastModifiedAt >= "{format_timestamp(modified_since)}"']

    async def run(self, source_client, target_client, clock) -> SyncStatistics:
        """
        Run the sync of this resource kind.

        Args:
            source_client: Client of the project to read from
            target_client: Client of the project to write to
            clock: Provides the start time recorded as last sync timestamp

        Returns:
            The frozen statistics of the run

        Raises:
            CtpApiError: Any error of either client, unmodified
        """
        self.events.info(f"Starting {self.label}", resource=self.label)

        started_at = clock.now()
        state = StateManager(target_client, self.runner_name, source_client.project_key)
        modified_since = None if self.full_sync else await state.get_modified_since(self.sync_module)

        statistics = self.resource_type.new_statistics()
        engine = self.engine_class(self.resource_type, target_client, statistics, self.events, self.label)

        query = self.build_query(modified_since)
        base_where = list(query.where)
        while True:
            page = await source_client.execute(query)
            if page.results:
                await engine.sync_page(page.results)
            if len(page.results) < self.page_size:
                break
            query = query.next_page(page.results[-1]['id'], base_where)

        statistics.freeze()
        await state.write_last_sync(self.sync_module, started_at, statistics)
        self.events.info(
            statistics.get_report_message(),
            resource=self.label,
            statistics=statistics.to_dict(),
        )
        return statistics


class ProductTypeSyncer(Syncer):
    label = 'ProductTypeSync'
    sync_module = 'productTypes'
    resource_type = ProductTypeResource()


class TypeSyncer(Syncer):
    label = 'TypeSync'
    sync_module = 'types'
    resource_type = TypeResource()


class CategorySyncer(Syncer):
    label = 'CategorySync'
    sync_module = 'categories'
    resource_type = CategoryResource()
    engine_class = CategoryResourceSync


class ProductSyncer(Syncer):
    label = 'ProductSync'
    sync_module = 'products'
    resource_type = ProductResource()


class InventoryEntrySyncer(Syncer):
    label = 'InventorySync'
    sync_module = 'inventoryEntries'
    resource_type = InventoryEntryResource()
