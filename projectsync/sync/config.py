"""
Tunables of a sync run.

Credentials come from the environment (see ``projectsync.config``); everything else can
be set in an optional YAML file:

    page_size: 250
    max_retries: 5
    runner_name: nightly
    log_level: INFO
"""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .error_tracker import ConfigurationError
from .resilience import RetryPolicy

DEFAULT_PAGE_SIZE = 500
MAX_PAGE_SIZE = 500
DEFAULT_RUNNER_NAME = "runnerName"


class ProjectSyncConfig(BaseModel):
    """Settings shared by all syncers of a run."""
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Resources fetched per source page")
    max_retries: int = Field(default=5, ge=1, description="Attempts per request on gateway errors")
    retry_base_delay_seconds: float = Field(default=0.2, ge=0, description="First retry delay")
    retry_max_delay_seconds: float = Field(default=10.0, ge=0, description="Upper bound of a retry delay")
    timeout_seconds: int = Field(default=30, ge=1, description="HTTP request timeout")
    runner_name: str = Field(default=DEFAULT_RUNNER_NAME, description="Name separating last sync timestamps of different runners")
    full_sync: bool = Field(default=False, description="Ignore last sync timestamps and sync everything")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(None, description="Log file path")

    @field_validator('runner_name')
    @classmethod
    def validate_runner_name(cls, v):
        if not v or not v.strip():
            raise ValueError('runner_name must not be blank')
        return v.strip()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Invalid log level: {v}')
        return level

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'ProjectSyncConfig':
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping of settings")
        return cls(**data)

    def retry_policy(self, retry_on_exceptions) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_retries,
            base_delay_seconds=self.retry_base_delay_seconds,
            max_delay_seconds=self.retry_max_delay_seconds,
            retry_on_exceptions=retry_on_exceptions,
        )
