"""
Structured events emitted by syncers and the orchestrator.

Components receive an ``EventSink`` instead of logging to a process-wide logger, so
callers decide where run events go (JSON logs by default, memory in tests).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .logging_manager import get_logger


@dataclass(frozen=True)
class SyncEvent:
    """A single observable event of a sync run."""
    level: int
    message: str
    resource: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


class EventSink:
    """
    Receives the events of a sync run.
    """
    def emit(self, event: SyncEvent) -> None:
        raise NotImplementedError

    def info(self, message: str, resource: Optional[str] = None, **details) -> None:
        self.emit(SyncEvent(logging.INFO, message, resource, details))

    def warning(self, message: str, resource: Optional[str] = None, **details) -> None:
        self.emit(SyncEvent(logging.WARNING, message, resource, details))

    def error(self, message: str, resource: Optional[str] = None, **details) -> None:
        self.emit(SyncEvent(logging.ERROR, message, resource, details))


class LoggingEventSink(EventSink):
    """
    Forwards events to a logger, attaching the resource and details as structured data.
    """
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("projectsync.sync.events")

    def emit(self, event: SyncEvent) -> None:
        details = dict(event.details)
        if event.resource:
            details['resource'] = event.resource
        self.logger.log(event.level, event.message, extra={'details': details})


class RecordingEventSink(EventSink):
    """
    Keeps every event in memory, optionally forwarding to another sink.
    """
    def __init__(self, forward_to: Optional[EventSink] = None):
        self.events: List[SyncEvent] = []
        self.forward_to = forward_to

    def emit(self, event: SyncEvent) -> None:
        self.events.append(event)
        if self.forward_to:
            self.forward_to.emit(event)

    def messages(self, level: Optional[int] = None) -> List[str]:
        return [e.message for e in self.events if level is None or e.level == level]

    def clear(self) -> None:
        self.events.clear()
