"""Builders for raw ABI-encoded logs used across the test suite."""

from __future__ import annotations

from liqwatch.core.models import EventKind, EventLog
from liqwatch.decoding.layouts import layout_for

# Digit-only addresses are their own EIP-55 checksum.
POOL = "0x1111111111111111111111111111111111111111"
NFPM = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
ALICE = "0x4444444444444444444444444444444444444444"
BOB = "0x5555555555555555555555555555555555555555"


def word(value: int) -> str:
    """64 hex chars of the two's complement 256-bit encoding."""
    return (value % (1 << 256)).to_bytes(32, "big").hex()


def addr_word(address: str, pad: str = "00" * 12) -> str:
    return pad + address[2:].lower()


def topic(value: int) -> str:
    return "0x" + word(value)


def addr_topic(address: str, pad: str = "00" * 12) -> str:
    return "0x" + addr_word(address, pad)


def make_log(
    kind: EventKind,
    *,
    topics: list[str],
    data_words: list[str] = (),  # type: ignore[assignment]
    address: str = POOL,
    block_number: int = 1_200,
    tx_hash: str = "0x" + "ab" * 32,
    log_index: int = 0,
    block_timestamp: int | None = None,
) -> EventLog:
    return EventLog(
        address=address.lower(),
        topics=(layout_for(kind).topic0, *topics),
        data_hex="0x" + "".join(data_words),
        block_number=block_number,
        tx_hash=tx_hash,
        log_index=log_index,
        block_timestamp=block_timestamp,
    )


def swap_log(amount0: int, amount1: int, **kw) -> EventLog:
    return make_log(
        EventKind.SWAP,
        topics=[addr_topic(ALICE), addr_topic(BOB)],
        data_words=[word(amount0), word(amount1), word(2**96), word(10**18), word(-5)],
        **kw,
    )


def mint_log(tick_lower: int = -100, tick_upper: int = 200, **kw) -> EventLog:
    return make_log(
        EventKind.MINT,
        topics=[addr_topic(ALICE), topic(tick_lower), topic(tick_upper)],
        data_words=[addr_word(BOB), word(123), word(10**18), word(2 * 10**18)],
        **kw,
    )


def increase_liquidity_log(token_id: int = 7, **kw) -> EventLog:
    kw.setdefault("address", NFPM)
    return make_log(
        EventKind.INCREASE_LIQUIDITY,
        topics=[topic(token_id)],
        data_words=[word(5 * 10**17), word(10**18), word(3 * 10**18)],
        **kw,
    )


def token_transfer_log(value: int, **kw) -> EventLog:
    kw.setdefault("address", TOKEN)
    return make_log(
        EventKind.TOKEN_TRANSFER,
        topics=[addr_topic(ALICE), addr_topic(BOB)],
        data_words=[word(value)],
        **kw,
    )
