import asyncio
import dataclasses
import logging
from datetime import datetime, timezone

import pytest

from liqwatch.core.config import WatchTarget
from liqwatch.core.models import BlockWindow, EventKind, IncreaseLiquidity, Swap
from liqwatch.core.use_cases.dispatch import DispatchStats, EventDispatcher, target_name
from liqwatch.decoding.layouts import layout_for

from fakes import FakeSink, FakeSource
from logs_factory import (
    ALICE,
    NFPM,
    POOL,
    TOKEN,
    addr_topic,
    increase_liquidity_log,
    make_log,
    mint_log,
    swap_log,
    token_transfer_log,
)

WINDOW = BlockWindow(1_000, 1_500)
SWAP_TARGET = WatchTarget(EventKind.SWAP, POOL, "pool")
MINT_TARGET = WatchTarget(EventKind.MINT, POOL, "pool")
NFPM_TARGET = WatchTarget(EventKind.INCREASE_LIQUIDITY, NFPM, "position-manager")
TOKEN_TARGET = WatchTarget(EventKind.TOKEN_TRANSFER, TOKEN, "USDC")


@pytest.mark.asyncio
async def test_swap_in_window_is_enriched_and_emitted(source: FakeSource, sink: FakeSink) -> None:
    source.add(swap_log(-5 * 10**17, 25 * 10**16, block_number=1_200))
    source.timestamps[1_200] = 1_700_000_000

    stats = await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    (f,) = source.filters
    assert (f.address, f.from_block, f.to_block) == (POOL.lower(), 1_000, 1_500)
    assert f.topic0 == layout_for(EventKind.SWAP).topic0

    (ev,) = sink.events
    assert isinstance(ev, Swap)
    assert ev.amount0 == -500000000000000000
    assert ev.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert ev.to_record()["timestamp"] == "2023-11-14T22:13:20.000Z"
    assert ev.display()["amount0"] == "-0.5"
    assert (stats.logs, stats.decoded, stats.emitted) == (1, 1, 1)


@pytest.mark.asyncio
async def test_empty_window_emits_nothing(source: FakeSource, sink: FakeSink) -> None:
    stats = await EventDispatcher(source, sink, [SWAP_TARGET, MINT_TARGET]).run(WINDOW)
    assert sink.events == []
    assert stats == DispatchStats()
    assert len(source.filters) == 2


@pytest.mark.asyncio
async def test_logs_outside_window_are_not_seen(source: FakeSource, sink: FakeSink) -> None:
    source.add(swap_log(1, 1, block_number=999))
    source.add(swap_log(1, 1, block_number=1_501))
    await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)
    assert sink.events == []


@pytest.mark.asyncio
async def test_malformed_log_does_not_abort_batch(source: FakeSource, sink: FakeSink, caplog) -> None:
    source.add(swap_log(1, 1, log_index=0))
    bad = make_log(EventKind.SWAP, topics=[addr_topic(ALICE)], log_index=1)
    source.add(bad)
    source.add(swap_log(2, 2, log_index=2))
    short = dataclasses.replace(swap_log(3, 3, log_index=3), data_hex=swap_log(3, 3).data_hex[:-2])
    source.add(short)
    source.timestamps[1_200] = 1_700_000_000

    with caplog.at_level(logging.WARNING, logger="liqwatch"):
        stats = await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    assert [e.log_index for e in sink.events] == [0, 2]
    assert stats.malformed == 1
    assert stats.decode_errors == 1
    assert stats.emitted == 2
    assert "skipping malformed" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_error_on_one_log_does_not_abort_batch(source: FakeSource, sink: FakeSink, caplog) -> None:
    # a bad emitter address makes checksumming raise a plain ValueError
    bad = dataclasses.replace(swap_log(2, 2, log_index=1), address="0xpool")
    source.logs[(POOL.lower(), layout_for(EventKind.SWAP).topic0)] = [
        swap_log(1, 1, log_index=0),
        bad,
        swap_log(3, 3, log_index=2),
    ]
    source.timestamps[1_200] = 1_700_000_000

    with caplog.at_level(logging.ERROR, logger="liqwatch"):
        stats = await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    assert [e.log_index for e in sink.events] == [0, 2]
    assert stats.log_errors == 1
    assert stats.emitted == 2
    assert stats.failed_targets == []
    assert "unexpected error on swap@pool log" in caplog.text
    assert "crashed" not in caplog.text


@pytest.mark.asyncio
async def test_unexpected_sink_error_does_not_abort_batch(source: FakeSource) -> None:
    class BrokenSink(FakeSink):
        async def append(self, event) -> None:
            if event.log_index == 0:
                raise RuntimeError("encoder blew up")
            await super().append(event)

    sink = BrokenSink()
    for i in range(3):
        source.add(swap_log(i, i, log_index=i))
    source.timestamps[1_200] = 1_700_000_000

    stats = await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    assert [e.log_index for e in sink.events] == [1, 2]
    assert stats.log_errors == 1
    assert stats.failed_targets == []


@pytest.mark.asyncio
async def test_unavailable_target_does_not_block_others(source: FakeSource, sink: FakeSink) -> None:
    source.add(swap_log(1, 1))
    source.add(increase_liquidity_log(7))
    source.timestamps[1_200] = 1_700_000_000
    source.unavailable.add(NFPM.lower())

    stats = await EventDispatcher(source, sink, [NFPM_TARGET, SWAP_TARGET]).run(WINDOW)

    assert [type(e) for e in sink.events] == [Swap]
    assert stats.failed_targets == [target_name(NFPM_TARGET)]
    assert stats.failed_targets == ["increase_liquidity@position-manager"]


@pytest.mark.asyncio
async def test_missing_block_emits_without_timestamp(source: FakeSource, sink: FakeSink) -> None:
    source.add(swap_log(1, 1, block_number=1_300))

    stats = await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    (ev,) = sink.events
    assert ev.timestamp is None
    assert ev.to_record()["timestamp"] is None
    assert stats.unresolved_timestamps == 1


@pytest.mark.asyncio
async def test_log_carried_timestamp_skips_lookup(source: FakeSource, sink: FakeSink) -> None:
    source.add(swap_log(1, 1, block_timestamp=1_600_000_000))

    await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    assert source.timestamp_calls == []
    assert sink.events[0].timestamp == datetime.fromtimestamp(1_600_000_000, tz=timezone.utc)


@pytest.mark.asyncio
async def test_timestamps_memoised_per_block(source: FakeSource, sink: FakeSink) -> None:
    for i in range(3):
        source.add(swap_log(i, i, log_index=i, block_number=1_200))
    source.add(swap_log(9, 9, log_index=0, block_number=1_201))
    source.timestamps.update({1_200: 1_700_000_000, 1_201: 1_700_000_012})

    await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    assert sorted(source.timestamp_calls) == [1_200, 1_201]
    assert len(sink.events) == 4


@pytest.mark.asyncio
async def test_sink_error_is_counted_and_cycle_continues(source: FakeSource) -> None:
    sink = FakeSink(fail_when=lambda e: e.log_index == 1)
    for i in range(3):
        source.add(swap_log(i, i, log_index=i))
    source.timestamps[1_200] = 1_700_000_000

    stats = await EventDispatcher(source, sink, [SWAP_TARGET]).run(WINDOW)

    assert [e.log_index for e in sink.events] == [0, 2]
    assert stats.sink_errors == 1
    assert stats.emitted == 2


@pytest.mark.asyncio
async def test_source_order_is_preserved_per_target(source: FakeSource, sink: FakeSink) -> None:
    order = [(1_100, 4), (1_100, 5), (1_250, 0), (1_400, 2)]
    for bn, li in order:
        source.add(mint_log(block_number=bn, log_index=li))
        source.timestamps[bn] = 1_700_000_000 + bn

    await EventDispatcher(source, sink, [MINT_TARGET]).run(WINDOW)

    assert [(e.block_number, e.log_index) for e in sink.events] == order


@pytest.mark.asyncio
async def test_rerunning_a_window_yields_identical_events(source: FakeSource) -> None:
    source.add(swap_log(1, 2))
    source.add(token_transfer_log(10**18))
    source.timestamps[1_200] = 1_700_000_000
    targets = [SWAP_TARGET, TOKEN_TARGET]

    first, second = FakeSink(), FakeSink()
    await EventDispatcher(source, first, targets).run(WINDOW)
    await EventDispatcher(source, second, targets).run(WINDOW)

    assert first.events == second.events
    assert {e.dedup_key for e in first.events} == {e.dedup_key for e in second.events}
    assert len({e.dedup_key for e in first.events}) == 2


@pytest.mark.asyncio
async def test_unexpected_error_in_one_target_is_isolated(source: FakeSource, sink: FakeSink, caplog) -> None:
    source.add(swap_log(1, 1))
    source.add(increase_liquidity_log(3))
    source.timestamps[1_200] = 1_700_000_000

    original = source.get_logs

    async def get_logs(log_filter):
        if log_filter.address == NFPM.lower():
            raise RuntimeError("boom")
        return await original(log_filter)

    source.get_logs = get_logs  # type: ignore[method-assign]

    with caplog.at_level(logging.ERROR, logger="liqwatch"):
        stats = await EventDispatcher(source, sink, [SWAP_TARGET, NFPM_TARGET]).run(WINDOW)

    assert [type(e) for e in sink.events] == [Swap]
    assert stats.failed_targets == ["increase_liquidity@position-manager"]
    assert "crashed" in caplog.text


@pytest.mark.asyncio
async def test_targets_are_fetched_concurrently(source: FakeSource, sink: FakeSink) -> None:
    started = 0
    both_started = asyncio.Event()

    async def get_logs(log_filter):
        nonlocal started
        started += 1
        if started == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1)
        return []

    source.get_logs = get_logs  # type: ignore[method-assign]
    stats = await EventDispatcher(source, sink, [SWAP_TARGET, NFPM_TARGET]).run(WINDOW)
    assert stats.failed_targets == []


@pytest.mark.asyncio
async def test_with_mocked_source(mock_rpc, sink: FakeSink) -> None:
    mock_rpc.get_logs.return_value = [increase_liquidity_log(11)]

    stats = await EventDispatcher(mock_rpc, sink, [NFPM_TARGET]).run(WINDOW)

    mock_rpc.get_logs.assert_awaited_once()
    mock_rpc.block_timestamp.assert_awaited_once_with(1_200)
    (ev,) = sink.events
    assert isinstance(ev, IncreaseLiquidity)
    assert ev.token_id == 11
    assert ev.label == "position-manager"
    assert stats.emitted == 1
