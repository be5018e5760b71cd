"""Watcher wiring: config → RPC + sink → dispatcher → scheduler.

This module provides two layers:

1) `Watcher(...)`:
   - Depends ONLY on interfaces (ILogSource, IEventSink).
   - Runs single cycles (`run_once`) or the periodic loop (`run_forever`).

2) `Watcher.from_config(...)`:
   - Wires concrete implementations (RPC, LoggingSink/JsonlSink/ParquetSink)
     for CLI / script usage; lets tests inject doubles instead.
"""

from __future__ import annotations

import logging

from liqwatch.clients.rpc import RPC
from liqwatch.core.config import WatcherConfig
from liqwatch.core.errors import ConfigError
from liqwatch.core.interfaces import IEventSink, ILogSource
from liqwatch.core.models import BlockWindow
from liqwatch.core.use_cases.dispatch import DispatchStats, EventDispatcher
from liqwatch.core.use_cases.scheduler import WindowScheduler, compute_window
from liqwatch.storage.sinks import JsonlSink, LoggingSink, ParquetSink

logger = logging.getLogger(__name__)


def build_sink(config: WatcherConfig) -> IEventSink:
    """Instantiate the sink named by `config.sink`."""
    if config.sink == "log":
        return LoggingSink(decimals=config.decimals)
    if config.out_path is None:
        raise ConfigError(f"sink {config.sink!r} needs an output path")
    match config.sink:
        case "jsonl":
            return JsonlSink(config.out_path, decimals=config.decimals)
        case "parquet":
            return ParquetSink(config.out_path, rows_per_shard=config.rows_per_shard, decimals=config.decimals)
    raise ConfigError(f"unknown sink: {config.sink}")


class Watcher:
    """Owns the collaborators of one polling process and their lifecycle."""

    def __init__(
        self,
        config: WatcherConfig,
        *,
        source: ILogSource,
        sink: IEventSink,
        scheduler_kwargs: dict | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.sink = sink
        self.dispatcher = EventDispatcher(
            source,
            sink,
            config.targets,
            decimals=config.decimals,
            concurrency=config.concurrency,
        )
        self.scheduler = WindowScheduler(
            source,
            self.dispatcher,
            period_s=config.period_s,
            lookback=config.lookback,
            **(scheduler_kwargs or {}),
        )

    @classmethod
    def from_config(
        cls,
        config: WatcherConfig,
        *,
        source: ILogSource | None = None,
        sink: IEventSink | None = None,
    ) -> Watcher:
        if source is None:
            source = RPC(
                config.rpc_url,
                timeout_s=config.timeout_s,
                max_connections=max(32, 2 * config.concurrency),
            )
        if sink is None:
            sink = build_sink(config)
        return cls(config, source=source, sink=sink)

    async def run_once(self, window: BlockWindow | None = None) -> DispatchStats:
        """Dispatch one window (default: lookback window ending at the head)."""
        if window is None:
            head = await self.source.latest_block()
            window = compute_window(head, self.config.lookback)
        return await self.dispatcher.run(window)

    async def run_forever(self, max_ticks: int | None = None) -> None:
        logger.info(
            "watching %d targets every %.0fs (lookback %d blocks)",
            len(self.config.targets),
            self.config.period_s,
            self.config.lookback,
        )
        await self.scheduler.run(max_ticks=max_ticks)

    def stop(self) -> None:
        self.scheduler.stop()

    async def aclose(self) -> None:
        """Flush the sink, then close the source if it owns a connection pool."""
        try:
            await self.sink.aclose()
        finally:
            aclose = getattr(self.source, "aclose", None)
            if aclose is not None:
                await aclose()

    async def __aenter__(self) -> Watcher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
