from __future__ import annotations

from .core.config import WatcherConfig, WatchTarget, load_config
from .core.filters import build_filter
from .core.models import (
    BlockWindow,
    Burn,
    DecodedEvent,
    DecreaseLiquidity,
    EventKind,
    EventLog,
    IncreaseLiquidity,
    LogFilter,
    Mint,
    Swap,
    TokenTransfer,
    Transfer,
)
from .core.use_cases.dispatch import DispatchStats, EventDispatcher
from .core.use_cases.scheduler import WindowScheduler, compute_window
from .decoding.decoder import decode_log

__all__ = [
    "WatcherConfig",
    "WatchTarget",
    "load_config",
    "build_filter",
    "BlockWindow",
    "Burn",
    "DecodedEvent",
    "DecreaseLiquidity",
    "EventKind",
    "EventLog",
    "IncreaseLiquidity",
    "LogFilter",
    "Mint",
    "Swap",
    "TokenTransfer",
    "Transfer",
    "DispatchStats",
    "EventDispatcher",
    "WindowScheduler",
    "compute_window",
    "decode_log",
]
