from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from liqwatch.core.models import DecodedEvent, EventLog, LogFilter


# ---------------------------------------------------------------------------
# ILogSource
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogSource(Protocol):
    """
    Abstract provider of EVM logs and block metadata.

    Domain expectations:
    - It returns EventLog objects already mapped into internal domain models,
      in ascending (block_number, log_index) order.
    - It hides the underlying RPC technology.
    - Transport failures surface as `SourceUnavailable`.
    """

    async def get_logs(self, log_filter: LogFilter) -> List[EventLog]:
        """
        Return all logs matching `log_filter` over its inclusive block range.

        Implementations:
        - RPC-based (`liqwatch.clients.rpc.RPC`)
        - In-memory provider for testing
        """
        ...

    async def block_timestamp(self, block_number: int) -> int:
        """
        Return the unix timestamp (seconds) at which the block was produced.

        Raises `BlockNotFound` if the node does not know the block.
        """
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...


# ---------------------------------------------------------------------------
# IEventSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventSink(Protocol):
    """
    Abstract sink for decoded events.

    Domain expectations:
    - `append` records one event; failures surface as `SinkError`.
    - Delivery is at-least-once: overlapping windows may append the same
      event twice; consumers deduplicate on `DecodedEvent.dedup_key`.
    """

    async def append(self, event: DecodedEvent) -> None:
        """
        Record one decoded event.

        Implementations:
        - LoggingSink (log line per event)
        - JsonlSink (JSON lines file)
        - ParquetSink (columnar shards)
        """
        ...

    async def aclose(self) -> None:
        """Flush buffered events and release resources."""
        ...
