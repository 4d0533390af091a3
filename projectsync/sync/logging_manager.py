"""
JSON logging for projectsync.

Every module logs below the ``projectsync`` logger. Each record is one JSON object per
line, so scheduled runs can be scraped for summary lines and run outcomes. Structured
data passed as ``extra={'details': {...}}`` is written under ``details``.
"""

import logging
import sys
import json
from typing import Optional

ROOT_LOGGER_NAME = "projectsync"


class JsonFormatter(logging.Formatter):
    """Renders a record as a single JSON line."""
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)
        if hasattr(record, 'details'):
            log_record['details'] = record.details
        return json.dumps(log_record, default=str)


class LoggingManager:
    """
    Configures the ``projectsync`` logger once per process.

    Later instantiations reuse the existing setup. Modules fetch their loggers at import
    time, which installs the defaults; the CLI calls ``reset`` before applying the level
    and log file of the run settings.
    """
    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(LoggingManager, cls).__new__(cls)
        return cls._instance

    def __init__(self, log_level: str = "INFO", log_file: Optional[str] = None):
        if getattr(self, '_initialized', False):
            return

        self.log_level = log_level.upper()
        self.log_file = log_file
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.logger.setLevel(self.log_level)
        # Records stop here; the root logger may have its own handlers
        self.logger.propagate = False
        self.logger.handlers.clear()

        handlers = [logging.StreamHandler(sys.stdout)]
        if self.log_file:
            handlers.append(logging.FileHandler(self.log_file))
        for handler in handlers:
            handler.setLevel(self.log_level)
            handler.setFormatter(JsonFormatter())
            self.logger.addHandler(handler)

        self._initialized = True

    @classmethod
    def reset(cls):
        """Forget the current setup so the next instantiation applies new settings."""
        if cls._instance is not None:
            logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()
            cls._instance._initialized = False
        cls._instance = None

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        if not LoggingManager._instance:
            LoggingManager()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    return LoggingManager.get_logger(name)
