"""
Lifecycle of the clients used by one orchestration run.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable

from .logging_manager import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RunClients:
    source: Any
    target: Any
    clock: Any


class ClientFactory:
    """
    Builds the source and target clients of a run from zero-argument suppliers.

    Suppliers are only called when a run opens its clients, and every opened client is
    closed exactly once when the run leaves ``open()``.
    """

    def __init__(self, source_client_supplier: Callable[[], Any], target_client_supplier: Callable[[], Any], clock):
        self.source_client_supplier = source_client_supplier
        self.target_client_supplier = target_client_supplier
        self.clock = clock

    @asynccontextmanager
    async def open(self) -> AsyncIterator[RunClients]:
        source = self.source_client_supplier()
        try:
            target = self.target_client_supplier()
        except BaseException:
            await source.close()
            raise

        try:
            yield RunClients(source, target, self.clock)
        except BaseException:
            await self._close_all(source, target, raise_errors=False)
            raise
        await self._close_all(source, target)

    @staticmethod
    async def _close_all(*clients, raise_errors: bool = True) -> None:
        first_error = None
        for client in clients:
            try:
                await client.close()
            except Exception as e:
                logger.error(f"Failed to close client: {e}", extra={'details': {'exception': type(e).__name__}})
                if first_error is None:
                    first_error = e
        if raise_errors and first_error is not None:
            raise first_error
