"""
Settings schema (``workflow_config.schema``).

Frozen, validated runtime settings.  Construction fails with
``ConfigurationError`` on any out-of-range value, so a WorkflowSettings
instance is always usable as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass


class ConfigurationError(ValueError):
    """Settings could not be loaded or failed validation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid setting '{key}': {reason}")


_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


@dataclass(frozen=True)
class WorkflowSettings:
    database_url: str = "sqlite:///workflow.db"
    echo_sql: bool = False
    pool_size: int = 10
    notify_timeout_seconds: float = 5.0
    notify_max_workers: int = 4
    audit_page_size: int = 25
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ConfigurationError("database_url", "must be non-empty")
        if self.pool_size < 1:
            raise ConfigurationError("pool_size", "must be at least 1")
        if self.notify_timeout_seconds <= 0:
            raise ConfigurationError("notify_timeout_seconds", "must be positive")
        if self.notify_max_workers < 1:
            raise ConfigurationError("notify_max_workers", "must be at least 1")
        if self.audit_page_size < 1:
            raise ConfigurationError("audit_page_size", "must be at least 1")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError("log_level", f"unknown level {self.log_level!r}")
