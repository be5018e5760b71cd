"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers and filters

It implements `ILogSource`: returns `EventLog` records ready for decoding,
resolves block timestamps, and maps every transport problem to
`SourceUnavailable` (or `BlockNotFound` for unknown blocks).
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any

import httpx

from liqwatch.core.errors import BlockNotFound, SourceUnavailable
from liqwatch.core.models import EventLog, LogFilter

logger = logging.getLogger(__name__)

MAX_RATE_LIMIT_RETRIES = 3


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def filter_params(log_filter: LogFilter) -> dict[str, Any]:
    """Format a `LogFilter` as the eth_getLogs filter object."""
    return {
        "address": log_filter.address.lower(),
        "fromBlock": to_hex_block(log_filter.from_block),
        "toBlock": to_hex_block(log_filter.to_block),
        "topics": [log_filter.topic0.lower()],
    }


def _parse_int(v: Any) -> int | None:
    if isinstance(v, str):
        return int(v, 16) if v.startswith("0x") else int(v)
    if isinstance(v, int):
        return v
    return None


def parse_log(rl: dict[str, Any]) -> EventLog:
    """Map one eth_getLogs result entry to an `EventLog`."""
    topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
    return EventLog(
        address=rl["address"].lower(),
        topics=topics,
        data_hex=str(rl.get("data") or "0x"),
        block_number=int(rl["blockNumber"], 16),
        tx_hash=(rl.get("transactionHash") or rl.get("transaction_hash") or "").lower(),
        log_index=int(rl["logIndex"], 16),
        block_timestamp=_parse_int(rl.get("blockTimestamp")),
    )


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    block_cache_size : int
        Number of block timestamps remembered across cycles.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 32,
        block_cache_size: int = 4096,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=transport is None,
            transport=transport,
        )
        self._block_cache: OrderedDict[int, int] = OrderedDict()
        self._block_cache_size = block_cache_size
        self._ids = 0

    async def _call(self, method: str, params: list[Any]) -> Any:
        """POST one JSON-RPC request; return `result` or raise `SourceUnavailable`."""
        self._ids += 1
        payload = {"jsonrpc": "2.0", "id": self._ids, "method": method, "params": params}
        for attempt in range(MAX_RATE_LIMIT_RETRIES + 1):
            try:
                r = await self.client.post(self.url, json=payload)
                if r.status_code == 429:
                    if attempt == MAX_RATE_LIMIT_RETRIES:
                        raise SourceUnavailable(f"{method}: rate limit retries exhausted")
                    ra = r.headers.get("Retry-After")
                    delay = max(1.0, float(ra)) if ra and ra.isdigit() else 1.0 * (2**attempt)
                    logger.warning("%s rate limited, retrying in %.1fs", method, delay)
                    await asyncio.sleep(delay)
                    continue
                r.raise_for_status()
                data = r.json()
            except httpx.HTTPError as e:
                raise SourceUnavailable(f"{method} failed: {type(e).__name__}: {e}") from e
            except ValueError as e:
                raise SourceUnavailable(f"{method} returned invalid JSON") from e

            if not isinstance(data, dict):
                raise SourceUnavailable(f"{method} returned an unexpected payload")
            if "error" in data:
                e = data["error"]
                if isinstance(e, dict):
                    raise SourceUnavailable(f"RPC error: {e.get('code')} {e.get('message')}")
                raise SourceUnavailable(f"RPC error: {e}")
            return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        result = await self._call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise SourceUnavailable(f"eth_blockNumber returned {result!r}") from e

    async def get_logs(self, log_filter: LogFilter) -> list[EventLog]:
        """Fetch logs for one filter, sorted by (block_number, log_index)."""
        result = await self._call("eth_getLogs", [filter_params(log_filter)])
        try:
            out = [parse_log(rl) for rl in (result or [])]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SourceUnavailable(f"eth_getLogs returned a malformed log: {e}") from e
        out.sort(key=lambda ev: (ev.block_number, ev.log_index))
        return out

    async def block_timestamp(self, block_number: int) -> int:
        """Return the block's unix timestamp; raise `BlockNotFound` if unknown."""
        cached = self._block_cache.get(block_number)
        if cached is not None:
            self._block_cache.move_to_end(block_number)
            return cached

        block = await self._call("eth_getBlockByNumber", [to_hex_block(block_number), False])
        if block is None:
            raise BlockNotFound(block_number)
        ts = _parse_int(block.get("timestamp")) if isinstance(block, dict) else None
        if ts is None:
            raise SourceUnavailable(f"block {block_number} has no timestamp")

        self._block_cache[block_number] = ts
        if len(self._block_cache) > self._block_cache_size:
            self._block_cache.popitem(last=False)
        return ts

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
