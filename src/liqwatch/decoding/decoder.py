"""Layout-driven decoder: raw log (topics + data) → typed event variant.

Decoding happens in two steps:
1) the kind's `EventLayout` turns indexed topics and data words into a
   name → value mapping (`decode_fields`);
2) a closed `match` over `EventKind` builds the frozen dataclass for that kind.

Both steps are pure. Errors:
- `MalformedLog` when topic0 does not match the kind or indexed topics are missing;
- `DecodeError` when the data payload does not have the declared width.
"""

from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address  # type: ignore[attr-defined]

from liqwatch.core.errors import MalformedLog
from liqwatch.core.models import (
    Burn,
    DecodedEvent,
    DecreaseLiquidity,
    EventKind,
    EventLog,
    IncreaseLiquidity,
    Mint,
    Swap,
    TokenTransfer,
    Transfer,
)
from liqwatch.decoding.abi import decode_data, hex_to_bytes, parse_word, topic_word
from liqwatch.decoding.layouts import layout_for
from liqwatch.decoding.specs import EventLayout


def _check_topics(log: EventLog, layout: EventLayout) -> None:
    need = 1 + layout.indexed_count
    if len(log.topics) < need:
        raise MalformedLog(
            f"{layout.name} needs {layout.indexed_count} indexed topics, "
            f"log {log.tx_hash}:{log.log_index} has {max(len(log.topics) - 1, 0)}"
        )
    if log.topics[0].lower() != layout.topic0:
        raise MalformedLog(f"topic0 {log.topics[0]} is not {layout.signature} ({layout.topic0})")


def decode_fields(log: EventLog, layout: EventLayout) -> dict[str, Any]:
    """Decode every topic and data field declared by `layout`."""
    _check_topics(log, layout)

    values: dict[str, Any] = {}
    for tf in layout.topic_fields:
        values[tf.name] = parse_word(topic_word(log.topics[tf.index]), tf.type)

    data = hex_to_bytes(log.data_hex)
    for df, v in zip(layout.data_fields, decode_data(layout.data_types, data)):
        values[df.name] = v
    return values


def decode_log(kind: EventKind, log: EventLog, *, label: str | None = None) -> DecodedEvent:
    """Decode one raw log as the given event kind (timestamp left unresolved)."""
    v = decode_fields(log, layout_for(kind))
    common: dict[str, Any] = {
        "contract": to_checksum_address(log.address),
        "tx_hash": log.tx_hash,
        "block_number": log.block_number,
        "log_index": log.log_index,
        "label": label,
    }

    match kind:
        case EventKind.TRANSFER:
            return Transfer(from_address=v["from"], to_address=v["to"], token_id=v["tokenId"], **common)
        case EventKind.TOKEN_TRANSFER:
            return TokenTransfer(from_address=v["from"], to_address=v["to"], value=v["value"], **common)
        case EventKind.MINT:
            return Mint(
                sender=v["sender"],
                owner=v["owner"],
                tick_lower=v["tickLower"],
                tick_upper=v["tickUpper"],
                amount=v["amount"],
                amount0=v["amount0"],
                amount1=v["amount1"],
                **common,
            )
        case EventKind.BURN:
            return Burn(
                owner=v["owner"],
                tick_lower=v["tickLower"],
                tick_upper=v["tickUpper"],
                amount=v["amount"],
                amount0=v["amount0"],
                amount1=v["amount1"],
                **common,
            )
        case EventKind.SWAP:
            return Swap(
                sender=v["sender"],
                recipient=v["recipient"],
                amount0=v["amount0"],
                amount1=v["amount1"],
                sqrt_price_x96=v["sqrtPriceX96"],
                liquidity=v["liquidity"],
                tick=v["tick"],
                **common,
            )
        case EventKind.INCREASE_LIQUIDITY:
            return IncreaseLiquidity(
                token_id=v["tokenId"],
                liquidity=v["liquidity"],
                amount0=v["amount0"],
                amount1=v["amount1"],
                **common,
            )
        case EventKind.DECREASE_LIQUIDITY:
            return DecreaseLiquidity(
                token_id=v["tokenId"],
                liquidity=v["liquidity"],
                amount0=v["amount0"],
                amount1=v["amount1"],
                **common,
            )
    raise RuntimeError(f"Unsupported event kind: {kind!r}")
