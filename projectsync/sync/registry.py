"""
Maps values of the sync module option to the syncers that handle them.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type

from .error_tracker import InvalidSelectorError
from .events import EventSink
from .syncers import (
    CategorySyncer, InventoryEntrySyncer, ProductSyncer, ProductTypeSyncer, Syncer, TypeSyncer,
)

SYNC_OPTION_NAME = '"-s" or "--sync"'
SYNC_ALL = 'all'

SYNCER_CLASSES: Dict[str, Type[Syncer]] = {
    'productTypes': ProductTypeSyncer,
    'types': TypeSyncer,
    'categories': CategorySyncer,
    'products': ProductSyncer,
    'inventoryEntries': InventoryEntrySyncer,
}

# Referenced resources first: products reference product types, types and categories
SYNC_ALL_ORDER: Tuple[str, ...] = ('productTypes', 'types', 'categories', 'products', 'inventoryEntries')

SYNC_MODULE_OPTION_DESCRIPTION = (
    'Choose one of the following modules to run: "types", "productTypes", "categories", '
    '"products", "inventoryEntries" or "all" (will run all the modules).'
)


@dataclass(frozen=True)
class ResourceSyncerDescriptor:
    """A sync module value together with the syncer running it."""
    sync_module: str
    syncer: Syncer
    label: str


class SyncerRegistry:
    """
    Resolves sync module values to syncer descriptors.

    Syncers are built once per registry with the registry's event sink and settings.
    """

    def __init__(self, events: Optional[EventSink] = None, **syncer_options):
        self._descriptors: Dict[str, ResourceSyncerDescriptor] = {}
        for sync_module, syncer_class in SYNCER_CLASSES.items():
            syncer = syncer_class(events=events, **syncer_options)
            self._descriptors[sync_module] = ResourceSyncerDescriptor(sync_module, syncer, syncer.label)

    @staticmethod
    def normalize(selector: Optional[str]) -> str:
        """
        Trim the selector and reject blank values.

        Raises:
            InvalidSelectorError: If the selector is None, empty or whitespace only
        """
        if selector is None or not selector.strip():
            raise InvalidSelectorError(
                f"Blank argument supplied to {SYNC_OPTION_NAME} option! {SYNC_MODULE_OPTION_DESCRIPTION}"
            )
        return selector.strip()

    def is_wildcard(self, selector: Optional[str]) -> bool:
        return self.normalize(selector) == SYNC_ALL

    def resolve(self, selector: Optional[str]) -> ResourceSyncerDescriptor:
        """
        Find the descriptor of a single resource kind.

        Raises:
            InvalidSelectorError: If the selector is blank or names no known kind
        """
        value = self.normalize(selector)
        descriptor = self._descriptors.get(value)
        if descriptor is None:
            raise InvalidSelectorError(
                f'Unknown argument "{value}" supplied to {SYNC_OPTION_NAME} option! {SYNC_MODULE_OPTION_DESCRIPTION}'
            )
        return descriptor

    def resolve_all(self) -> Tuple[ResourceSyncerDescriptor, ...]:
        return tuple(self._descriptors[sync_module] for sync_module in SYNC_ALL_ORDER)
