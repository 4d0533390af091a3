"""
Tests for event sinks and the JSON log format.
"""

import json
import logging

from unittest.mock import Mock

from ...cli import logger as cli_logger
from ..events import LoggingEventSink, RecordingEventSink, SyncEvent
from ..logging_manager import ROOT_LOGGER_NAME, JsonFormatter, LoggingManager


class TestEventSinks:

    def test_recording_sink_keeps_events_in_order(self):
        sink = RecordingEventSink()
        sink.info("Starting TypeSync", resource="TypeSync")
        sink.warning("no key")
        sink.error("failed", key="k")

        assert sink.messages() == ["Starting TypeSync", "no key", "failed"]
        assert sink.messages(logging.ERROR) == ["failed"]
        assert sink.events[0].resource == "TypeSync"
        assert sink.events[2].details == {"key": "k"}
        assert sink.events[1].level_name == "WARNING"

        sink.clear()
        assert sink.events == []

    def test_recording_sink_forwards(self):
        downstream = RecordingEventSink()
        sink = RecordingEventSink(forward_to=downstream)
        sink.info("hello")
        assert downstream.messages() == ["hello"]

    def test_logging_sink_attaches_details(self):
        logger = Mock()
        LoggingEventSink(logger).emit(SyncEvent(logging.INFO, "Summary: ...", "ProductSync", {"statistics": {"processed": 1}}))

        logger.log.assert_called_once_with(
            logging.INFO,
            "Summary: ...",
            extra={'details': {"statistics": {"processed": 1}, "resource": "ProductSync"}},
        )


class TestJsonFormatter:

    def test_record_with_details(self):
        record = logging.LogRecord("projectsync.sync", logging.INFO, __file__, 1, "Starting %s", ("TypeSync",), None)
        record.details = {"resource": "TypeSync"}

        data = json.loads(JsonFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["name"] == "projectsync.sync"
        assert data["message"] == "Starting TypeSync"
        assert data["details"] == {"resource": "TypeSync"}


class TestLoggingManager:

    def test_configured_level_reaches_cli_logger(self):
        LoggingManager.reset()
        try:
            LoggingManager(log_level="DEBUG")
            assert cli_logger.level == logging.NOTSET
            assert cli_logger.getEffectiveLevel() == logging.DEBUG
            assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG
        finally:
            LoggingManager.reset()

    def test_later_instantiation_keeps_setup(self):
        LoggingManager.reset()
        try:
            first = LoggingManager(log_level="WARNING")
            assert LoggingManager(log_level="DEBUG") is first
            assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.WARNING
        finally:
            LoggingManager.reset()
