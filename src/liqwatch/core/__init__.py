"""Core data models, configuration, errors and collaborator interfaces.

This package provides:
- Data models (EventLog, LogFilter, BlockWindow, DecodedEvent variants)
- Configuration classes (WatcherConfig, WatchTarget)
- Error kinds raised along the pipeline
"""

from liqwatch.core.config import WatcherConfig, WatchTarget, load_config
from liqwatch.core.errors import (
    BlockNotFound,
    ConfigError,
    DecodeError,
    InvalidSignature,
    LiqwatchError,
    MalformedLog,
    SinkError,
    SourceUnavailable,
)
from liqwatch.core.models import BlockWindow, DecodedEvent, EventKind, EventLog, LogFilter

__all__ = [
    "WatcherConfig",
    "WatchTarget",
    "load_config",
    "BlockNotFound",
    "ConfigError",
    "DecodeError",
    "InvalidSignature",
    "LiqwatchError",
    "MalformedLog",
    "SinkError",
    "SourceUnavailable",
    "BlockWindow",
    "DecodedEvent",
    "EventKind",
    "EventLog",
    "LogFilter",
]
