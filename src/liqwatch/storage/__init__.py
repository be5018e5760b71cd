"""Sinks for decoded events.

This package provides:
- LoggingSink: one log line per event
- JsonlSink: append-only JSON lines file
- ParquetSink: per-event Parquet shards with dynamic columns
"""

from liqwatch.storage.sinks import JsonlSink, LoggingSink, ParquetSink

__all__ = [
    "JsonlSink",
    "LoggingSink",
    "ParquetSink",
]
