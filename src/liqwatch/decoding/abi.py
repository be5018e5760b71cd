"""ABI word primitives: topic/word access, typed parsers, strict data decoding."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_utils import to_checksum_address  # type: ignore[attr-defined]

from liqwatch.core.errors import DecodeError, MalformedLog

WORD = 32


def hex_to_bytes(data_hex: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex payload."""
    h = data_hex[2:] if data_hex[:2].lower() == "0x" else data_hex
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise DecodeError(f"data payload is not valid hex: {e}") from e


def topic_word(topic_hex: str) -> bytes:
    """Return the 32 raw bytes of one topic."""
    h = topic_hex[2:] if topic_hex[:2].lower() == "0x" else topic_hex
    if len(h) != 2 * WORD:
        raise MalformedLog(f"topic is not a 32-byte word: {topic_hex!r}")
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise MalformedLog(f"topic is not valid hex: {topic_hex!r}") from e


def word_at(data: bytes, i: int) -> bytes:
    """Return the i-th 32-byte ABI word. Caller guarantees the length."""
    start = WORD * i
    return data[start : start + WORD]


def _bits(typ: str, prefix: str) -> int:
    rest = typ[len(prefix) :]
    bits = int(rest) if rest else 256
    if bits <= 0 or bits > 256 or bits % 8:
        raise ValueError(f"unsupported ABI type: {typ}")
    return bits


def to_address(word: bytes) -> str:
    """Rightmost 20 bytes of a word as a checksummed address (padding ignored)."""
    return to_checksum_address("0x" + word[-20:].hex())


def to_uint(word: bytes, bits: int = 256) -> int:
    return int.from_bytes(word, "big", signed=False) & ((1 << bits) - 1)


def to_int(word: bytes, bits: int = 256) -> int:
    """Two's complement of the low `bits` bits, sign-extended from bit `bits - 1`."""
    v = to_uint(word, bits)
    if v >= 1 << (bits - 1):
        v -= 1 << bits
    return v


def parse_word(word: bytes, typ: str) -> Any:
    """Parse one 32-byte word (topic or data) according to its ABI type."""
    if typ == "address":
        return to_address(word)
    if typ.startswith("uint"):
        return to_uint(word, _bits(typ, "uint"))
    if typ.startswith("int"):
        return to_int(word, _bits(typ, "int"))
    if typ == "bool":
        return to_uint(word) != 0
    return "0x" + word.hex()


def decode_data(types: Sequence[str], data: bytes) -> list[Any]:
    """Decode a static ABI payload, consuming exactly one word per type."""
    need = WORD * len(types)
    if len(data) != need:
        raise DecodeError(f"data payload is {len(data)} bytes, expected {need} for ({','.join(types)})")
    return [parse_word(word_at(data, i), t) for i, t in enumerate(types)]
