"""Core data models: raw logs, filters, windows, decoded events, row buffer.

This module defines:
- `EventLog`: raw RPC log record handed to the decoder.
- `LogFilter` / `BlockWindow`: per-cycle query descriptors.
- `EventKind` and one frozen dataclass per decoded event kind
  (`DecodedEvent` is their union).
- `Column`: dynamic, append-only columnar buffer used by the Parquet sink.

Design notes
------------
- Decoded numeric fields are Python ints (exact, arbitrary precision).
  They only become strings in `to_record()` / `display()`.
- Dynamic columns are stored as strings for Arrow safety (big ints).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, Union

import pyarrow as pa

from liqwatch.core.units import DEFAULT_DECIMALS, format_units, iso_timestamp

# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int
    block_timestamp: int | None = None


@dataclass(slots=True, frozen=True)
class BlockWindow:
    """Inclusive [from_block, to_block] range polled in one cycle."""

    from_block: int
    to_block: int

    def __post_init__(self) -> None:
        if self.from_block < 0:
            raise ValueError("from_block must be >= 0")
        if self.to_block < self.from_block:
            raise ValueError("to_block must be >= from_block")

    def span(self) -> int:
        return self.to_block - self.from_block + 1


@dataclass(slots=True, frozen=True)
class LogFilter:
    """eth_getLogs query for one contract and one event topic."""

    address: str
    from_block: int
    to_block: int
    topic0: str


# === Decoded events ===


class EventKind(str, enum.Enum):
    TRANSFER = "transfer"
    TOKEN_TRANSFER = "token_transfer"
    MINT = "mint"
    BURN = "burn"
    SWAP = "swap"
    INCREASE_LIQUIDITY = "increase_liquidity"
    DECREASE_LIQUIDITY = "decrease_liquidity"


@dataclass(frozen=True, slots=True, kw_only=True)
class _DecodedEventBase:
    """Fields shared by every decoded event kind."""

    KIND: ClassVar[EventKind]
    # Fields rendered with fixed-decimal scaling for display.
    SCALED: ClassVar[tuple[str, ...]] = ()

    contract: str
    tx_hash: str
    block_number: int
    log_index: int
    label: str | None = None
    timestamp: datetime | None = None

    @property
    def event(self) -> str:
        return type(self).__name__

    @property
    def dedup_key(self) -> tuple[str, str, int]:
        """Key that identifies the same log across overlapping windows."""
        return (self.tx_hash, self.KIND.value, self.log_index)

    def values(self) -> dict[str, Any]:
        """Kind-specific fields in declaration order (ints untouched)."""
        base = {f.name for f in fields(_DecodedEventBase)}
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in base}

    def scaled(self, decimals: int = DEFAULT_DECIMALS) -> dict[str, str]:
        return {name: format_units(getattr(self, name), decimals) for name in self.SCALED}

    def display(self, decimals: int = DEFAULT_DECIMALS) -> dict[str, str]:
        """All kind-specific fields as human strings."""
        out = {k: str(v) for k, v in self.values().items()}
        out.update(self.scaled(decimals))
        return out

    def to_record(self, decimals: int = DEFAULT_DECIMALS) -> dict[str, Any]:
        """JSON-safe record: exact values as strings plus display strings."""
        return {
            "event": self.event,
            "contract": self.contract,
            "label": self.label,
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "log_index": self.log_index,
            "timestamp": iso_timestamp(self.timestamp),
            "values": {k: str(v) if isinstance(v, int) else v for k, v in self.values().items()},
            "display": self.display(decimals),
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class Transfer(_DecodedEventBase):
    """Position NFT transfer (NonFungiblePositionManager)."""

    KIND: ClassVar[EventKind] = EventKind.TRANSFER

    from_address: str
    to_address: str
    token_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenTransfer(_DecodedEventBase):
    """ERC20 transfer of one of the pool tokens."""

    KIND: ClassVar[EventKind] = EventKind.TOKEN_TRANSFER
    SCALED: ClassVar[tuple[str, ...]] = ("value",)

    from_address: str
    to_address: str
    value: int


@dataclass(frozen=True, slots=True, kw_only=True)
class Mint(_DecodedEventBase):
    KIND: ClassVar[EventKind] = EventKind.MINT
    SCALED: ClassVar[tuple[str, ...]] = ("amount", "amount0", "amount1")

    sender: str
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int
    amount0: int
    amount1: int


@dataclass(frozen=True, slots=True, kw_only=True)
class Burn(_DecodedEventBase):
    KIND: ClassVar[EventKind] = EventKind.BURN
    SCALED: ClassVar[tuple[str, ...]] = ("amount", "amount0", "amount1")

    owner: str
    tick_lower: int
    tick_upper: int
    amount: int
    amount0: int
    amount1: int


@dataclass(frozen=True, slots=True, kw_only=True)
class Swap(_DecodedEventBase):
    """Pool swap; amount0/amount1 are signed (negative = out of the pool)."""

    KIND: ClassVar[EventKind] = EventKind.SWAP
    SCALED: ClassVar[tuple[str, ...]] = ("amount0", "amount1", "liquidity")

    sender: str
    recipient: str
    amount0: int
    amount1: int
    sqrt_price_x96: int
    liquidity: int
    tick: int


@dataclass(frozen=True, slots=True, kw_only=True)
class IncreaseLiquidity(_DecodedEventBase):
    KIND: ClassVar[EventKind] = EventKind.INCREASE_LIQUIDITY
    SCALED: ClassVar[tuple[str, ...]] = ("liquidity", "amount0", "amount1")

    token_id: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True, slots=True, kw_only=True)
class DecreaseLiquidity(_DecodedEventBase):
    KIND: ClassVar[EventKind] = EventKind.DECREASE_LIQUIDITY
    SCALED: ClassVar[tuple[str, ...]] = ("liquidity", "amount0", "amount1")

    token_id: int
    liquidity: int
    amount0: int
    amount1: int


DecodedEvent = Union[
    Transfer,
    TokenTransfer,
    Mint,
    Burn,
    Swap,
    IncreaseLiquidity,
    DecreaseLiquidity,
]


# === Dynamic column buffer ===

_BASE_FIELDS: list[tuple[str, pa.DataType]] = [
    ("block_number", pa.uint64()),
    ("timestamp", pa.timestamp("ms", tz="UTC")),
    ("tx_hash", pa.string()),
    ("log_index", pa.uint64()),
    ("contract", pa.string()),
    ("event", pa.string()),
    ("label", pa.string()),
]


@dataclass(slots=True)
class Column:
    """Dynamic columnar buffer of decoded events.

    - Base columns are always present and strongly typed.
    - Dynamic columns are created lazily upon first key appearance.
    - All dynamic values are stored as *strings* (or None) to avoid Arrow
      overflow and preserve exactness (e.g., uint256, int256).
    """

    block_number: list[int] = field(default_factory=list)
    timestamp: list[datetime | None] = field(default_factory=list)
    tx_hash: list[str] = field(default_factory=list)
    log_index: list[int] = field(default_factory=list)
    contract: list[str] = field(default_factory=list)
    event: list[str] = field(default_factory=list)
    label: list[str | None] = field(default_factory=list)

    dyn: dict[str, list[str | None]] = field(default_factory=dict)
    _rows: int = 0

    def size(self) -> int:
        """Number of rows currently stored."""
        return self._rows

    def _ensure_dyn_col(self, name: str) -> list[str | None]:
        """Ensure a dynamic column exists and is aligned to current row count."""
        col = self.dyn.get(name)
        if col is None:
            col = [None] * self._rows
            self.dyn[name] = col
        return col

    def append_event(self, ev: DecodedEvent, *, decimals: int = DEFAULT_DECIMALS) -> None:
        """Append one decoded event; every value and scaled display becomes a column."""
        self.block_number.append(ev.block_number)
        self.timestamp.append(ev.timestamp)
        self.tx_hash.append(ev.tx_hash)
        self.log_index.append(ev.log_index)
        self.contract.append(ev.contract)
        self.event.append(ev.event)
        self.label.append(ev.label)
        self._rows += 1
        for col in self.dyn.values():
            col.append(None)

        for k, v in ev.values().items():
            self._ensure_dyn_col(k)[-1] = None if v is None else str(v)
        for k, v in ev.scaled(decimals).items():
            self._ensure_dyn_col(f"{k}_display")[-1] = v

    def peek_first(self, n: int) -> Column:
        """Copy the first `n` rows into a new buffer; this buffer is unchanged."""
        out = Column()
        out.block_number = self.block_number[:n]
        out.timestamp = self.timestamp[:n]
        out.tx_hash = self.tx_hash[:n]
        out.log_index = self.log_index[:n]
        out.contract = self.contract[:n]
        out.event = self.event[:n]
        out.label = self.label[:n]
        for k, col in self.dyn.items():
            out.dyn[k] = col[:n]
        out._rows = min(n, self._rows)
        return out

    def drop_first(self, n: int) -> None:
        """Discard the first `n` rows (after they were written)."""
        self.block_number = self.block_number[n:]
        self.timestamp = self.timestamp[n:]
        self.tx_hash = self.tx_hash[n:]
        self.log_index = self.log_index[n:]
        self.contract = self.contract[n:]
        self.event = self.event[n:]
        self.label = self.label[n:]
        for k, col in self.dyn.items():
            self.dyn[k] = col[n:]
        self._rows -= min(n, self._rows)

    def to_arrow_table(self) -> pa.Table:
        """Convert the buffer to a sorted Arrow table with deterministic schema."""
        fields_ = [pa.field(n, t) for n, t in _BASE_FIELDS]
        arrays: dict[str, pa.Array] = {
            "block_number": pa.array(self.block_number, type=pa.uint64()),
            "timestamp": pa.array(self.timestamp, type=pa.timestamp("ms", tz="UTC")),
            "tx_hash": pa.array(self.tx_hash, type=pa.string()),
            "log_index": pa.array(self.log_index, type=pa.uint64()),
            "contract": pa.array(self.contract, type=pa.string()),
            "event": pa.array(self.event, type=pa.string()),
            "label": pa.array(self.label, type=pa.string()),
        }
        for name in sorted(self.dyn.keys()):
            fields_.append(pa.field(name, pa.string()))
            arrays[name] = pa.array(self.dyn[name], type=pa.string())
        schema = pa.schema(fields_)
        return pa.Table.from_pydict(arrays, schema=schema).sort_by(
            [("block_number", "ascending"), ("log_index", "ascending")]
        )
