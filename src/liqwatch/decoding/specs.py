"""Event layout primitives and signature parsing.

Defines lightweight dataclasses to describe how to decode one event:
- `TopicFieldSpec` / `DataFieldSpec`: typed sources for indexed topics / data words
- `EventLayout`: one event's name, canonical signature, topic0 and fields

`parse_signature` builds an `EventLayout` from either spelling of a Solidity
event signature:

    "Swap(address,address,int256,int256,uint160,uint128,int24)"
    "Swap(address indexed sender, address indexed recipient, int256 amount0, ...)"

The canonical spelling carries no `indexed` markers, so every parameter of it
is treated as a data field; layouts that need topics use the named spelling.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from eth_utils import keccak

from liqwatch.core.errors import InvalidSignature

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TYPE_RE = re.compile(r"^(address|bool|string|bytes[0-9]*|u?int[0-9]*|\(.*\)|tuple\(.*\))(\[[0-9]*\])*$")


@dataclass(frozen=True)
class TopicFieldSpec:
    """Describe one indexed topic field (by 0-based topic index and ABI type)."""

    name: str
    index: int
    type: str  # e.g., "address", "uint256", "int24"


@dataclass(frozen=True)
class DataFieldSpec:
    """Describe one 32-byte ABI word in the data section (0-based word index)."""

    name: str
    word_index: int
    type: str


@dataclass(frozen=True)
class EventLayout:
    """Fixed field layout of one event."""

    name: str
    signature: str  # canonical, e.g. "Transfer(address,address,uint256)"
    topic0: str  # lowercased 0x-hex keccak of `signature`
    topic_fields: tuple[TopicFieldSpec, ...]
    data_fields: tuple[DataFieldSpec, ...]

    @property
    def indexed_count(self) -> int:
        return len(self.topic_fields)

    @property
    def data_types(self) -> tuple[str, ...]:
        return tuple(df.type for df in self.data_fields)


# ---- Helpers: parse event signature ----


def _split_params(params_str: str) -> list[str]:
    """Split the parameter list by commas while respecting nested tuple types."""
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise InvalidSignature(f"unbalanced parentheses in {params_str!r}")
        elif ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)
    if depth != 0:
        raise InvalidSignature(f"unbalanced parentheses in {params_str!r}")
    items.append("".join(buf).strip())
    if items == [""]:
        return []
    if any(not i for i in items):
        raise InvalidSignature(f"empty parameter in {params_str!r}")
    return items


def _parse_param(p: str, fallback_name: str) -> tuple[str, str, bool]:
    """Parse one parameter fragment into (name, abi_type, indexed)."""
    tokens = p.split()
    indexed = "indexed" in tokens[1:]
    tokens = [tokens[0]] + [t for t in tokens[1:] if t != "indexed"]
    if len(tokens) == 1:
        name, abi_type = fallback_name, tokens[0]
    elif len(tokens) == 2:
        abi_type, name = tokens
    else:
        raise InvalidSignature(f"cannot parse parameter {p!r}")
    if not _TYPE_RE.match(abi_type):
        raise InvalidSignature(f"unknown ABI type {abi_type!r} in parameter {p!r}")
    if not _NAME_RE.match(name):
        raise InvalidSignature(f"invalid parameter name {name!r}")
    return name, abi_type, indexed


def _split_signature(signature: str) -> tuple[str, list[tuple[str, str, bool]]]:
    if not isinstance(signature, str) or not signature.strip():
        raise InvalidSignature("event signature is empty")
    sig = signature.strip()
    open_paren = sig.find("(")
    if open_paren == -1 or not sig.endswith(")"):
        raise InvalidSignature(f"invalid event signature: {signature!r}")
    name = sig[:open_paren].strip()
    if not _NAME_RE.match(name):
        raise InvalidSignature(f"invalid event name in signature: {signature!r}")
    params = [
        _parse_param(part, fallback_name=f"arg{i}")
        for i, part in enumerate(_split_params(sig[open_paren + 1 : -1]))
    ]
    return name, params


def canonical_signature(signature: str) -> str:
    """Strip names and `indexed` markers: the text that is hashed into topic0."""
    name, params = _split_signature(signature)
    return f"{name}({','.join(t for _, t, _ in params)})"


def topic_hash(signature: str) -> str:
    """keccak256 of the canonical signature as lowercased 0x-hex."""
    return "0x" + keccak(text=canonical_signature(signature)).hex()


def parse_signature(signature: str) -> EventLayout:
    """Build an `EventLayout` from a Solidity event signature string."""
    name, params = _split_signature(signature)
    indexed = [(n, t) for n, t, is_indexed in params if is_indexed]
    data = [(n, t) for n, t, is_indexed in params if not is_indexed]
    if len(indexed) > 3:
        raise InvalidSignature(f"at most 3 indexed parameters are allowed: {signature!r}")

    canonical = f"{name}({','.join(t for _, t, _ in params)})"
    return EventLayout(
        name=name,
        signature=canonical,
        topic0="0x" + keccak(text=canonical).hex(),
        topic_fields=tuple(TopicFieldSpec(n, idx + 1, t) for idx, (n, t) in enumerate(indexed)),
        data_fields=tuple(DataFieldSpec(n, idx, t) for idx, (n, t) in enumerate(data)),
    )
