"""Sinks for decoded events.

- `LoggingSink`: one INFO log line per event.
- `JsonlSink`: append-only JSON lines file (flush + fsync per record).
- `ParquetSink`: per-event columnar buffers written as zstd Parquet shards.

All sinks implement `IEventSink`; any I/O failure is re-raised as `SinkError`
so the dispatcher can log it and move on to the next record.
"""

from __future__ import annotations

import asyncio
import glob
import json
import logging
import os
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from liqwatch.core.errors import SinkError
from liqwatch.core.models import Column, DecodedEvent
from liqwatch.core.units import DEFAULT_DECIMALS, iso_timestamp

logger = logging.getLogger(__name__)


class LoggingSink:
    """Log each event, e.g. ``Swap 0xabc…:3 @2024-01-01T00:00:00.000Z amount0=-0.5 …``."""

    def __init__(self, *, decimals: int = DEFAULT_DECIMALS, level: int = logging.INFO) -> None:
        self.decimals = decimals
        self.level = level

    async def append(self, event: DecodedEvent) -> None:
        fields = " ".join(f"{k}={v}" for k, v in event.display(self.decimals).items())
        source = f" [{event.label}]" if event.label else ""
        logger.log(
            self.level,
            "%s%s %s:%d @%s %s",
            event.event,
            source,
            event.tx_hash,
            event.log_index,
            iso_timestamp(event.timestamp) or "unknown-time",
            fields,
        )

    async def aclose(self) -> None:
        return None


class JsonlSink:
    """Append-only JSON lines writer; one `DecodedEvent.to_record()` per line."""

    def __init__(self, path: str | Path, *, decimals: int = DEFAULT_DECIMALS) -> None:
        self.path = Path(path)
        self.decimals = decimals
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise SinkError(f"cannot open {self.path}: {e}") from e
        self._lock = asyncio.Lock()

    async def append(self, event: DecodedEvent) -> None:
        line = json.dumps(event.to_record(self.decimals), separators=(",", ":")) + "\n"
        async with self._lock:
            try:
                await asyncio.to_thread(self._write_line, self.path, line)
            except OSError as e:
                raise SinkError(f"writing {self.path} failed: {e}") from e

    @staticmethod
    def _write_line(path: Path, line: str) -> None:
        """Write a line to file with immediate flush and sync."""
        with open(path, "a", buffering=1) as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())

    async def aclose(self) -> None:
        return None


class ParquetSink:
    """
    Buffer events per event name and write Parquet shards:

        <root>/Swap/shard_00000.parquet
        <root>/Mint/shard_00000.parquet

    A shard is written whenever a buffer reaches `rows_per_shard`, and the
    remaining rows are written as a final short shard on `aclose()`.
    Shard numbering resumes after the highest existing shard.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        rows_per_shard: int = 10_000,
        codec: str = "zstd",
        decimals: int = DEFAULT_DECIMALS,
    ) -> None:
        if rows_per_shard < 1:
            raise ValueError("rows_per_shard must be >= 1")
        self.root = Path(root)
        self.rows_per_shard = rows_per_shard
        self.codec = codec
        self.decimals = decimals
        self._bufs: dict[str, Column] = {}
        self._next_idx: dict[str, int] = {}
        self._lock = asyncio.Lock()
        self.written: list[Path] = []

    def _shards_dir(self, event: str) -> Path:
        return self.root / event

    def _init_idx(self, event: str) -> int:
        existing = sorted(glob.glob((self._shards_dir(event) / "shard_*.parquet").as_posix()))
        if not existing:
            return 0
        last = os.path.basename(existing[-1])
        return int(last.split("_")[1].split(".")[0]) + 1

    def _atomic_write(self, out_path: Path, table: pa.Table) -> Path:
        """Write Parquet atomically (tmp + replace)."""
        out_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = out_path.with_suffix(".tmp")
        pq.write_table(table, tmp, compression=self.codec)
        os.replace(tmp, out_path)
        logger.info("wrote %s (rows=%d, cols=%d)", out_path, len(table), len(table.schema))
        return out_path

    async def _flush(self, event: str, n: int) -> None:
        """Write the first `n` buffered rows of `event`; rows stay buffered if the write fails."""
        buf = self._bufs[event]
        if n == 0:
            return
        if event not in self._next_idx:
            self._next_idx[event] = self._init_idx(event)
        idx = self._next_idx[event]
        out_path = self._shards_dir(event) / f"shard_{idx:05d}.parquet"
        try:
            table = buf.peek_first(n).to_arrow_table()
            await asyncio.to_thread(self._atomic_write, out_path, table)
        except (OSError, pa.ArrowException) as e:
            raise SinkError(f"writing {out_path} failed ({buf.size()} rows kept): {e}") from e
        buf.drop_first(n)
        self._next_idx[event] = idx + 1
        self.written.append(out_path)

    async def append(self, event: DecodedEvent) -> None:
        async with self._lock:
            buf = self._bufs.setdefault(event.event, Column())
            buf.append_event(event, decimals=self.decimals)
            if buf.size() >= self.rows_per_shard:
                await self._flush(event.event, self.rows_per_shard)

    def buffered(self) -> int:
        return sum(b.size() for b in self._bufs.values())

    async def aclose(self) -> None:
        """Write every remaining buffered row as a final shard per event.

        Every event buffer is attempted; failures are reported together as
        one `SinkError` and the failed rows stay buffered.
        """
        failures: list[str] = []
        async with self._lock:
            for event, buf in self._bufs.items():
                try:
                    await self._flush(event, buf.size())
                except SinkError as e:
                    logger.error("%s", e)
                    failures.append(str(e))
        if failures:
            raise SinkError("; ".join(failures))
