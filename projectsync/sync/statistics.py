"""
Per-resource-kind sync statistics.

A statistics value is created empty when a syncer starts, updated page by page and
frozen once the syncer finishes. ``get_report_message`` renders the summary line that
log scrapers rely on, so its wording must not change.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set


class FrozenStatisticsError(RuntimeError):
    """Raised when a finished run's statistics are modified."""
    pass


@dataclass
class SyncStatistics:
    """Counters of a single syncer run."""
    resource_name: str
    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    started_at: float = field(default_factory=time.monotonic)
    processing_time_millis: Optional[int] = None
    _frozen: bool = field(default=False, repr=False, compare=False)

    def _check_mutable(self):
        if self._frozen:
            raise FrozenStatisticsError(f"Statistics of {self.resource_name} are frozen")

    def increment_processed(self, count: int = 1):
        self._check_mutable()
        self.processed += count

    def increment_created(self, count: int = 1):
        self._check_mutable()
        self.created += count

    def increment_updated(self, count: int = 1):
        self._check_mutable()
        self.updated += count

    def increment_failed(self, count: int = 1):
        self._check_mutable()
        self.failed += count

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> 'SyncStatistics':
        """Stop accepting updates and record the processing time."""
        if not self._frozen:
            self.processing_time_millis = int((time.monotonic() - self.started_at) * 1000)
            self._frozen = True
        return self

    def get_report_message(self) -> str:
        return (
            f"Summary: {self.processed} {self.resource_name} were processed in total "
            f"({self.created} created, {self.updated} updated and {self.failed} failed to sync)."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "processingTimeInMillis": self.processing_time_millis,
            "reportMessage": self.get_report_message(),
        }


@dataclass
class CategorySyncStatistics(SyncStatistics):
    """Category counters, tracking children whose parent is not in the target yet."""
    missing_parents: Dict[str, Set[str]] = field(default_factory=dict)

    def add_missing_parent(self, parent_key: str, child_key: str):
        self._check_mutable()
        self.missing_parents.setdefault(parent_key, set()).add(child_key)

    def remove_missing_parent(self, parent_key: str) -> Set[str]:
        """Forget the children waiting for ``parent_key`` and return them."""
        self._check_mutable()
        return self.missing_parents.pop(parent_key, set())

    @property
    def categories_with_missing_parent(self) -> int:
        return sum(len(children) for children in self.missing_parents.values())

    def get_report_message(self) -> str:
        return (
            f"Summary: {self.processed} categories were processed in total "
            f"({self.created} created, {self.updated} updated, {self.failed} failed to sync "
            f"and {self.categories_with_missing_parent} categories with a missing parent)."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["numberOfCategoriesWithMissingParents"] = self.categories_with_missing_parent
        return data
