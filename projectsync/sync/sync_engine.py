"""
Key based upsert of one page of source resources into the target project.

For every page the engine looks up the target counterparts of the page's resources,
creates the missing ones and updates the ones whose draft differs. Problems with a
single resource (invalid draft, concurrent modification) count as failed for that
resource; any other error aborts the syncer run.
"""

from typing import Any, Dict, List, Optional, Set, Tuple

from .client import CreateCommand, ResourceQuery, UpdateCommand
from .error_tracker import BadRequestError, ConcurrentModificationError
from .events import EventSink
from .resources import ResourceType, reference_key
from .statistics import CategorySyncStatistics, SyncStatistics

# Errors that fail a single resource without aborting the run
RESOURCE_LEVEL_ERRORS = (BadRequestError, ConcurrentModificationError)


class ResourceSync:
    """Applies pages of one resource kind to the target project."""

    def __init__(self, resource_type: ResourceType, target_client, statistics: SyncStatistics,
                 events: EventSink, label: str):
        self.resource_type = resource_type
        self.target_client = target_client
        self.statistics = statistics
        self.events = events
        self.label = label

    async def sync_page(self, resources: List[Dict[str, Any]]) -> None:
        self.statistics.increment_processed(len(resources))

        keyed: List[Tuple[str, Dict[str, Any]]] = []
        for resource in resources:
            key = self.resource_type.match_key(resource)
            if not key:
                self.statistics.increment_failed()
                self.events.warning(
                    f"{self.label}: {self.resource_type.resource_name} with id '{resource.get('id')}' "
                    f"has no key and was skipped.",
                    resource=self.label,
                )
                continue
            keyed.append((key, resource))

        if not keyed:
            return

        existing = await self._fetch_existing([key for key, _ in keyed])
        for key, resource in keyed:
            await self._sync_resource(key, resource, existing.get(key))

    async def _fetch_existing(self, keys: List[str]) -> Dict[str, Dict[str, Any]]:
        """
        Target resources matching ``keys``, by match key.

        Kinds whose lookup can return more resources than keys are paged through.
        """
        limit = self.resource_type.lookup_limit(keys)
        query = ResourceQuery(
            endpoint=self.resource_type.endpoint,
            where=[self.resource_type.where_matching(keys)],
            sort=['id asc'],
            expand=list(self.resource_type.expand),
            limit=limit,
        )
        base_where = list(query.where)
        matches = {}
        while True:
            page = await self.target_client.execute(query)
            for resource in page.results:
                key = self.resource_type.match_key(resource)
                if key:
                    matches[key] = resource
            if self.resource_type.unique_lookup or len(page.results) < limit:
                return matches
            query = query.next_page(page.results[-1]['id'], base_where)

    def prepare_draft(self, key: str, resource: Dict[str, Any]) -> Dict[str, Any]:
        return self.resource_type.build_draft(resource)

    async def _sync_resource(self, key: str, resource: Dict[str, Any], existing: Optional[Dict[str, Any]]) -> None:
        draft = self.prepare_draft(key, resource)
        try:
            if existing is None:
                created = await self.target_client.execute(CreateCommand(self.resource_type.endpoint, draft))
                self.statistics.increment_created()
                await self.after_sync(key, created)
                return

            actions = self.resource_type.build_update_actions(existing, draft)
            if actions:
                existing = await self.target_client.execute(
                    UpdateCommand(self.resource_type.endpoint, existing['id'], existing['version'], actions)
                )
                self.statistics.increment_updated()
            await self.after_sync(key, existing)
        except RESOURCE_LEVEL_ERRORS as e:
            self.statistics.increment_failed()
            self.events.error(
                f"{self.label}: failed to sync {self.resource_type.resource_name} with key '{key}': {e}",
                resource=self.label,
                key=key,
                exception=type(e).__name__,
            )

    async def after_sync(self, key: str, synced: Dict[str, Any]) -> None:
        """Hook called with the target state of every created or checked resource."""
        pass


class CategoryResourceSync(ResourceSync):
    """
    Category upsert that tolerates parents which are not in the target project yet.

    A child whose parent is unknown is synced without parent and, once that succeeded,
    counted as a category with a missing parent. When the parent is synced later in the
    same run the child gets a ``changeParent`` update and stops being counted; if that
    update fails the child keeps counting as missing its parent.
    """

    statistics: CategorySyncStatistics

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.known_keys: Set[str] = set()
        self.synced: Dict[str, Dict[str, Any]] = {}
        # child key -> parent key dropped from the child's draft
        self.dropped_parents: Dict[str, str] = {}

    async def sync_page(self, resources):
        parent_keys = {reference_key(r.get('parent')) for r in resources} - {None}
        unknown = sorted(k for k in parent_keys if k not in self.known_keys)
        if unknown:
            self.known_keys.update(await self._fetch_existing(unknown))
        await super().sync_page(resources)

    def prepare_draft(self, key, resource):
        draft = super().prepare_draft(key, resource)
        parent = draft.get('parent')
        self.dropped_parents.pop(key, None)
        if parent and parent['key'] not in self.known_keys:
            del draft['parent']
            self.dropped_parents[key] = parent['key']
        return draft

    async def after_sync(self, key, synced):
        self.known_keys.add(key)
        self.synced[key] = synced
        parent_key = self.dropped_parents.pop(key, None)
        if parent_key:
            self.statistics.add_missing_parent(parent_key, key)
        for child_key in sorted(self.statistics.remove_missing_parent(key)):
            child = self.synced.get(child_key)
            if child is None:
                continue
            action = {'action': 'changeParent', 'parent': {'typeId': 'category', 'key': key}}
            try:
                self.synced[child_key] = await self.target_client.execute(
                    UpdateCommand(self.resource_type.endpoint, child['id'], child['version'], [action])
                )
            except RESOURCE_LEVEL_ERRORS as e:
                self.statistics.add_missing_parent(key, child_key)
                self.events.error(
                    f"{self.label}: failed to set parent '{key}' of category with key '{child_key}': {e}",
                    resource=self.label,
                    key=child_key,
                    exception=type(e).__name__,
                )

