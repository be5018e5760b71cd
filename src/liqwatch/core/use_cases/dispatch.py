from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Sequence

from liqwatch.core.config import WatchTarget
from liqwatch.core.errors import (
    BlockNotFound,
    DecodeError,
    MalformedLog,
    SinkError,
    SourceUnavailable,
)
from liqwatch.core.filters import build_filter
from liqwatch.core.interfaces import IEventSink, ILogSource
from liqwatch.core.models import BlockWindow, DecodedEvent, EventLog
from liqwatch.core.units import block_time
from liqwatch.decoding.decoder import decode_log
from liqwatch.decoding.layouts import layout_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class DispatchStats:
    """
    Aggregated counters for one dispatch cycle.

    Mutated by the per-target pipelines to track:
    - how many logs were fetched / decoded / handed to the sink
    - how many logs were skipped (malformed topics, bad data payload)
    - how many events went out without a resolved timestamp
    - how many logs failed with an unexpected error
    - which targets could not be fetched this cycle
    """

    logs: int = 0
    decoded: int = 0
    emitted: int = 0
    malformed: int = 0
    decode_errors: int = 0
    unresolved_timestamps: int = 0
    sink_errors: int = 0
    log_errors: int = 0
    failed_targets: list[str] = field(default_factory=list)

    def merge(self, other: DispatchStats) -> None:
        self.logs += other.logs
        self.decoded += other.decoded
        self.emitted += other.emitted
        self.malformed += other.malformed
        self.decode_errors += other.decode_errors
        self.unresolved_timestamps += other.unresolved_timestamps
        self.sink_errors += other.sink_errors
        self.log_errors += other.log_errors
        self.failed_targets.extend(other.failed_targets)


def target_name(target: WatchTarget) -> str:
    return f"{target.kind.value}@{target.label or target.address}"


# ---------------------------------------------------------------------------
# Per-target pipeline
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class TargetContext:
    """
    State for one target's pipeline within one cycle (never shared).

    `timestamps` memoises block timestamps for logs of the same block.
    """

    target: WatchTarget
    window: BlockWindow
    stats: DispatchStats = field(default_factory=DispatchStats)
    timestamps: dict[int, int | None] = field(default_factory=dict)


class EventDispatcher:
    """
    Run fetch → decode → enrich → emit for every configured target.

    Depends only on the `ILogSource` and `IEventSink` interfaces, injected
    at construction. Targets run concurrently; the semaphore bounds how many
    of them talk to the log source at the same time.
    """

    def __init__(
        self,
        source: ILogSource,
        sink: IEventSink,
        targets: Sequence[WatchTarget],
        *,
        decimals: int = 18,
        concurrency: int = 8,
    ) -> None:
        self._source = source
        self._sink = sink
        self._targets = tuple(targets)
        self._decimals = decimals
        self._sem = asyncio.Semaphore(concurrency)
        # Fail fast on a broken layout before the first cycle.
        for t in self._targets:
            layout_for(t.kind)

    @property
    def targets(self) -> tuple[WatchTarget, ...]:
        return self._targets

    async def run(self, window: BlockWindow) -> DispatchStats:
        """Dispatch every target over `window` and return merged stats."""
        ctxs = [TargetContext(target=t, window=window) for t in self._targets]
        results = await asyncio.gather(
            *(self._run_target(ctx) for ctx in ctxs),
            return_exceptions=True,
        )

        stats = DispatchStats()
        for ctx, res in zip(ctxs, results):
            if isinstance(res, asyncio.CancelledError):
                raise res
            if isinstance(res, BaseException):
                logger.error(
                    "target %s crashed", target_name(ctx.target), exc_info=(type(res), res, res.__traceback__)
                )
                ctx.stats.failed_targets.append(target_name(ctx.target))
            stats.merge(ctx.stats)

        logger.info(
            "window [%d, %d]: %d logs, %d emitted, %d skipped, %d failed targets",
            window.from_block,
            window.to_block,
            stats.logs,
            stats.emitted,
            stats.malformed + stats.decode_errors + stats.log_errors,
            len(stats.failed_targets),
        )
        return stats

    async def _run_target(self, ctx: TargetContext) -> None:
        target = ctx.target
        layout = layout_for(target.kind)
        log_filter = build_filter(target.address, layout.signature, ctx.window)

        try:
            async with self._sem:
                logs = await self._source.get_logs(log_filter)
        except SourceUnavailable as e:
            logger.error("fetching %s failed: %s", target_name(target), e)
            ctx.stats.failed_targets.append(target_name(target))
            return

        ctx.stats.logs += len(logs)
        logger.debug("found %d %s logs", len(logs), target_name(target))

        for log in logs:
            try:
                await self._process_log(ctx, log)
            except Exception:
                ctx.stats.log_errors += 1
                logger.exception(
                    "unexpected error on %s log %s:%d", target_name(target), log.tx_hash, log.log_index
                )

    async def _process_log(self, ctx: TargetContext, log: EventLog) -> None:
        event = self._decode(ctx, log)
        if event is None:
            return
        event = await self._enrich(ctx, event, log)
        await self._emit(ctx, event)

    def _decode(self, ctx: TargetContext, log: EventLog) -> DecodedEvent | None:
        try:
            event = decode_log(ctx.target.kind, log, label=ctx.target.label)
        except MalformedLog as e:
            ctx.stats.malformed += 1
            logger.warning("skipping malformed %s log %s:%d: %s", ctx.target.kind.value, log.tx_hash, log.log_index, e)
            return None
        except DecodeError as e:
            ctx.stats.decode_errors += 1
            logger.warning("skipping undecodable %s log %s:%d: %s", ctx.target.kind.value, log.tx_hash, log.log_index, e)
            return None
        ctx.stats.decoded += 1
        return event

    async def _enrich(self, ctx: TargetContext, event: DecodedEvent, log: EventLog) -> DecodedEvent:
        """Attach the block timestamp; unresolved blocks leave `timestamp=None`."""
        ts = log.block_timestamp
        if ts is None:
            ts = await self._resolve_timestamp(ctx, log.block_number)
        if ts is None:
            ctx.stats.unresolved_timestamps += 1
            return event
        return dataclasses.replace(event, timestamp=block_time(ts))

    async def _resolve_timestamp(self, ctx: TargetContext, block_number: int) -> int | None:
        if block_number in ctx.timestamps:
            return ctx.timestamps[block_number]
        ts: int | None
        try:
            async with self._sem:
                ts = await self._source.block_timestamp(block_number)
        except BlockNotFound as e:
            logger.warning("%s; emitting without timestamp", e)
            ts = None
        except SourceUnavailable as e:
            logger.warning("timestamp lookup for block %d failed: %s", block_number, e)
            # Not cached: the next log of this block retries.
            return None
        ctx.timestamps[block_number] = ts
        return ts

    async def _emit(self, ctx: TargetContext, event: DecodedEvent) -> None:
        try:
            await self._sink.append(event)
        except SinkError as e:
            ctx.stats.sink_errors += 1
            logger.error("sink rejected %s %s:%d: %s", event.event, event.tx_hash, event.log_index, e)
            return
        ctx.stats.emitted += 1
