"""Human-display helpers for integer token amounts and block timestamps."""

from __future__ import annotations

from datetime import datetime, timezone

DEFAULT_DECIMALS = 18


def format_units(value: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render an integer amount scaled by `10**decimals` without float rounding.

    Trailing zeros are trimmed but at least one fractional digit is kept:
    ``format_units(10**18) == "1.0"``, ``format_units(-5 * 10**17) == "-0.5"``.
    """
    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    whole, frac = divmod(abs(value), 10**decimals)
    frac_digits = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    text = f"{whole}.{frac_digits or '0'}"
    return f"-{text}" if value < 0 else text


def block_time(unix_seconds: int) -> datetime:
    """Convert a block's unix timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(unix_seconds, tz=timezone.utc)


def iso_timestamp(ts: datetime | None) -> str | None:
    """ISO-8601 UTC with millisecond precision and a `Z` suffix, or None."""
    if ts is None:
        return None
    ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"
