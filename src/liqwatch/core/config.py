from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from eth_utils import is_address
from pydantic import BaseModel, ValidationError, field_validator

from liqwatch.constants import (
    DEFAULT_LOOKBACK,
    DEFAULT_PERIOD_S,
    POOL_ADDRESS,
    POSITION_MANAGER_ADDRESS,
    USDC_ADDRESS,
    USDT_ADDRESS,
)
from liqwatch.core.errors import ConfigError
from liqwatch.core.models import EventKind

SinkName = Literal["log", "jsonl", "parquet"]
SINKS: tuple[str, ...] = ("log", "jsonl", "parquet")

ENV_PREFIX = "LIQWATCH_"


@dataclass(frozen=True)
class WatchTarget:
    """One (event kind, emitting contract) pair polled every cycle."""

    kind: EventKind
    address: str
    label: str | None = None


def default_targets() -> tuple[WatchTarget, ...]:
    """Pool, position manager and the two pool tokens of the default deployment."""
    return (
        WatchTarget(EventKind.TRANSFER, POSITION_MANAGER_ADDRESS, "position-manager"),
        WatchTarget(EventKind.TOKEN_TRANSFER, USDC_ADDRESS, "USDC"),
        WatchTarget(EventKind.TOKEN_TRANSFER, USDT_ADDRESS, "USDT"),
        WatchTarget(EventKind.MINT, POOL_ADDRESS, "pool"),
        WatchTarget(EventKind.SWAP, POOL_ADDRESS, "pool"),
        WatchTarget(EventKind.INCREASE_LIQUIDITY, POSITION_MANAGER_ADDRESS, "position-manager"),
    )


@dataclass(frozen=True)
class WatcherConfig:
    """Configuration for the polling watcher."""

    rpc_url: str
    targets: tuple[WatchTarget, ...] = field(default_factory=default_targets)
    period_s: float = DEFAULT_PERIOD_S
    lookback: int = DEFAULT_LOOKBACK
    decimals: int = 18
    concurrency: int = 8
    timeout_s: int = 20
    sink: SinkName = "log"
    out_path: Path | None = None
    rows_per_shard: int = 10_000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ConfigError("rpc_url is required (set LIQWATCH_RPC_URL)")
        if not self.targets:
            raise ConfigError("at least one watch target is required")
        if self.period_s <= 0:
            raise ConfigError("period_s must be > 0")
        if self.lookback < 0:
            raise ConfigError("lookback must be >= 0")
        if self.decimals < 0:
            raise ConfigError("decimals must be >= 0")
        if self.rows_per_shard < 1:
            raise ConfigError("rows_per_shard must be >= 1")
        if self.timeout_s <= 0:
            raise ConfigError("timeout_s must be > 0")
        if self.concurrency < 1:
            raise ConfigError("concurrency must be >= 1")
        if self.sink not in SINKS:
            raise ConfigError(f"sink must be one of {', '.join(SINKS)}")
        if self.sink != "log" and self.out_path is None:
            raise ConfigError(f"sink {self.sink!r} needs an output path (set LIQWATCH_OUT)")


# ---------------------------------------------------------------------------
# Contracts file (JSON)
# ---------------------------------------------------------------------------


class TargetEntry(BaseModel):
    kind: EventKind
    address: str
    label: str | None = None

    @field_validator("address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        if not is_address(v):
            raise ValueError(f"not an address: {v}")
        return v


class ContractsFile(BaseModel):
    targets: list[TargetEntry]


def load_targets(path: Path) -> tuple[WatchTarget, ...]:
    """Read watch targets from a JSON file: {"targets": [{"kind", "address", "label"}]}."""
    try:
        parsed = ContractsFile.model_validate_json(Path(path).read_text())
    except OSError as e:
        raise ConfigError(f"cannot read contracts file {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"invalid contracts file {path}: {e}") from e
    return tuple(WatchTarget(t.kind, t.address, t.label) for t in parsed.targets)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "RPC_URL": ("rpc_url", str),
    "PERIOD_S": ("period_s", float),
    "LOOKBACK": ("lookback", int),
    "DECIMALS": ("decimals", int),
    "CONCURRENCY": ("concurrency", int),
    "TIMEOUT_S": ("timeout_s", int),
    "SINK": ("sink", str),
    "OUT": ("out_path", Path),
    "ROWS_PER_SHARD": ("rows_per_shard", int),
    "LOG_LEVEL": ("log_level", str),
}


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for suffix, (name, cast) in _ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        try:
            values[name] = cast(raw)
        except ValueError as e:
            raise ConfigError(f"{ENV_PREFIX}{suffix}={raw!r}: {e}") from e
    return values


def load_config(
    *,
    env_file: str | Path | None = None,
    contracts_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> WatcherConfig:
    """Build a `WatcherConfig` from `.env`, the environment and explicit overrides.

    Precedence: overrides (non-None) > environment > `.env` > defaults.
    Targets come from `contracts_file` (or `LIQWATCH_CONTRACTS`), else the
    default deployment.
    """
    if environ is None:
        load_dotenv(dotenv_path=env_file, override=False)
        environ = os.environ

    values = _from_env(environ)
    values.update({k: v for k, v in overrides.items() if v is not None})

    contracts = contracts_file or environ.get(ENV_PREFIX + "CONTRACTS")
    if contracts:
        values["targets"] = load_targets(Path(contracts))

    if "rpc_url" not in values:
        raise ConfigError("rpc_url is required (set LIQWATCH_RPC_URL)")
    try:
        return WatcherConfig(**values)
    except TypeError as e:
        raise ConfigError(str(e)) from e
