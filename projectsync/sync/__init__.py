"""
Sync module replicating master data from a source commercetools project to a target project.

This module provides the orchestration of per-resource syncers (product types, types,
categories, products, inventory entries), the HTTP client used to reach both projects,
sync statistics and the last sync timestamps enabling delta syncs.
"""

from .client import (
    CtpClient, Clock, PagedQueryResult, ResourceQuery, CreateCommand, UpdateCommand
)

from .error_tracker import (
    ErrorTracker, ErrorSeverity, SyncException, ConfigurationError, InvalidSelectorError,
    CtpApiError, BadGatewayError
)

from .events import (
    EventSink, SyncEvent, LoggingEventSink, RecordingEventSink
)

from .statistics import SyncStatistics, CategorySyncStatistics

from .registry import (
    SyncerRegistry, ResourceSyncerDescriptor, SYNC_MODULE_OPTION_DESCRIPTION
)

from .orchestrator import SyncOrchestrator, OrchestrationRun, RunState

__all__ = [
    # Client
    'CtpClient',
    'Clock',
    'PagedQueryResult',
    'ResourceQuery',
    'CreateCommand',
    'UpdateCommand',

    # Errors
    'ErrorTracker',
    'ErrorSeverity',
    'SyncException',
    'ConfigurationError',
    'InvalidSelectorError',
    'CtpApiError',
    'BadGatewayError',

    # Events
    'EventSink',
    'SyncEvent',
    'LoggingEventSink',
    'RecordingEventSink',

    # Statistics
    'SyncStatistics',
    'CategorySyncStatistics',

    # Orchestration
    'SyncerRegistry',
    'ResourceSyncerDescriptor',
    'SYNC_MODULE_OPTION_DESCRIPTION',
    'SyncOrchestrator',
    'OrchestrationRun',
    'RunState',
]
