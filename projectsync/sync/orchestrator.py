"""
Orchestration of sync runs.

A run resolves the requested sync module, opens the source and target clients, runs
the matching syncer(s) and always closes the clients again:

    Idle -> ClientsAcquired -> Running(i) -> Succeeded | Failed -> ClientsReleased

"all" runs every syncer one after another in a fixed order (product types, types,
categories, products, inventory entries) and stops at the first failure. Kinds synced
before a failure keep their changes in the target project.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .client import Clock
from .client_factory import ClientFactory, RunClients
from .error_tracker import ErrorSeverity, ErrorTracker
from .events import EventSink, LoggingEventSink
from .logging_manager import get_logger
from .registry import ResourceSyncerDescriptor, SyncerRegistry
from .statistics import SyncStatistics

logger = get_logger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    CLIENTS_ACQUIRED = "clients_acquired"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLIENTS_RELEASED = "clients_released"


@dataclass
class OrchestrationRun:
    """State of one ``sync``/``sync_all`` invocation."""
    descriptors: Sequence[ResourceSyncerDescriptor]
    state: RunState = RunState.IDLE
    current_index: Optional[int] = None
    statistics: Dict[str, SyncStatistics] = field(default_factory=dict)
    error: Optional[BaseException] = None
    clients: Optional[RunClients] = None
    started_at: float = field(default_factory=time.time)

    @property
    def labels(self) -> List[str]:
        return [d.label for d in self.descriptors]


class SyncOrchestrator:
    """
    Runs syncers against freshly opened clients.

    The orchestrator holds no per-run state: every ``sync``/``sync_all`` call builds its
    own ``OrchestrationRun`` and client pair, so concurrent calls do not interfere.
    """

    def __init__(self, source_client_supplier: Callable, target_client_supplier: Callable,
                 clock: Optional[Clock] = None, events: Optional[EventSink] = None,
                 error_tracker: Optional[ErrorTracker] = None, **syncer_options):
        """
        Args:
            source_client_supplier: Zero-argument callable returning the source project client
            target_client_supplier: Zero-argument callable returning the target project client
            clock: Time source passed to the syncers
            events: Sink receiving syncer events; logs them when omitted
            error_tracker: Collects the failures of runs
            **syncer_options: page_size, full_sync and runner_name for the syncers
        """
        self.client_factory = ClientFactory(source_client_supplier, target_client_supplier, clock or Clock())
        self.events = events or LoggingEventSink()
        self.error_tracker = error_tracker or ErrorTracker()
        self.registry = SyncerRegistry(events=self.events, **syncer_options)

    @classmethod
    def of(cls, source_client_supplier: Callable, target_client_supplier: Callable,
           clock: Optional[Clock] = None, **kwargs) -> 'SyncOrchestrator':
        return cls(source_client_supplier, target_client_supplier, clock, **kwargs)

    async def sync(self, selector: Optional[str]) -> None:
        """
        Sync the resource kind named by ``selector``, or all kinds for "all".

        Raises:
            InvalidSelectorError: For blank or unknown selectors, before any client is opened
            Exception: The error of the failed syncer, unmodified
        """
        if self.registry.is_wildcard(selector):
            await self.sync_all()
            return
        descriptor = self.registry.resolve(selector)
        await self._execute(OrchestrationRun(descriptors=(descriptor,)))

    async def sync_all(self) -> None:
        """
        Sync every resource kind sequentially, stopping at the first failure.
        """
        await self._execute(OrchestrationRun(descriptors=self.registry.resolve_all()))

    async def _execute(self, run: OrchestrationRun) -> None:
        logger.info(f"Starting sync run for {', '.join(run.labels)}")
        try:
            async with self.client_factory.open() as clients:
                run.clients = clients
                run.state = RunState.CLIENTS_ACQUIRED
                try:
                    await self._run_sequentially(run)
                    run.state = RunState.SUCCEEDED
                except Exception as e:
                    run.state = RunState.FAILED
                    run.error = e
                    raise
        except Exception as e:
            self._report_failure(run, e)
            raise
        finally:
            run.clients = None
            if run.state != RunState.IDLE:
                run.state = RunState.CLIENTS_RELEASED

        logger.info(
            f"Sync run for {', '.join(run.labels)} completed in {time.time() - run.started_at:.2f}s",
            extra={'details': {'statistics': {k: s.to_dict() for k, s in run.statistics.items()}}}
        )

    async def _run_sequentially(self, run: OrchestrationRun) -> None:
        for index, descriptor in enumerate(run.descriptors):
            run.current_index = index
            run.state = RunState.RUNNING
            statistics = await descriptor.syncer.run(run.clients.source, run.clients.target, run.clients.clock)
            run.statistics[descriptor.sync_module] = statistics

    def _report_failure(self, run: OrchestrationRun, error: BaseException) -> None:
        failed = None
        if run.current_index is not None:
            failed = run.descriptors[run.current_index].label
        skipped = run.labels[run.current_index + 1:] if run.current_index is not None else []
        self.error_tracker.report_exception(error, source_id=failed, severity=ErrorSeverity.CRITICAL)
        logger.error(
            f"Sync run failed{f' in {failed}' if failed else ''}: {error!r}",
            extra={'details': {'exception': type(error).__name__, 'skipped': skipped}}
        )


def run_sync(orchestrator: SyncOrchestrator, selector: Optional[str]) -> None:
    """
    Synchronous entry point for scripts and the CLI.
    """
    asyncio.run(orchestrator.sync(selector))
