"""Error kinds raised by the fetch/decode pipeline.

Per-log errors (`MalformedLog`, `DecodeError`, `BlockNotFound`, `SinkError`)
are isolated by the dispatcher. `SourceUnavailable` aborts one event kind for
the current cycle. `InvalidSignature` and `ConfigError` are fatal at startup.
"""

from __future__ import annotations


class LiqwatchError(Exception):
    """Base class for all pipeline errors."""


class InvalidSignature(LiqwatchError, ValueError):
    """Event signature string is empty or malformed."""


class ConfigError(LiqwatchError, ValueError):
    """Configuration could not be loaded or validated."""


class MalformedLog(LiqwatchError):
    """Raw log lacks the indexed topics its event kind requires."""


class DecodeError(LiqwatchError):
    """ABI data payload does not match the declared type widths."""


class SourceUnavailable(LiqwatchError):
    """Transport or RPC failure talking to the log source."""


class BlockNotFound(LiqwatchError):
    """Block is unknown to the node (pruned or not yet final)."""

    def __init__(self, block_number: int) -> None:
        super().__init__(f"block {block_number} not found")
        self.block_number = block_number


class SinkError(LiqwatchError):
    """Sink failed to record one event."""
