"""Build per-event `LogFilter` descriptors for one polling window."""

from __future__ import annotations

from liqwatch.core.models import BlockWindow, LogFilter
from liqwatch.decoding.specs import topic_hash


def build_filter(address: str, signature: str, window: BlockWindow) -> LogFilter:
    """Return the eth_getLogs filter for (`address`, `signature`) over `window`.

    No network access; raises `InvalidSignature` for empty/malformed signatures.
    """
    if not address:
        raise ValueError("contract address is required")
    topic0 = topic_hash(signature)
    return LogFilter(
        address=address.lower(),
        from_block=window.from_block,
        to_block=window.to_block,
        topic0=topic0,
    )
