"""Shared utilities for market data providers."""
import json
from datetime import datetime, timezone
from typing import Any

DECIMALS = 2


def round2(x: float | None) -> float | None:
    """Round a value to 2 decimal places; preserve None."""
    if x is None:
        return None
    return round(float(x), DECIMALS)


def parse_json_list(raw: str | list | None, *, allow_comma_split: bool = False) -> list:
    """Normalize a Gamma list field to a list.

    Gamma sends outcomes, outcomePrices and clobTokenIds as JSON array
    strings, occasionally as comma-separated text; returns [] when unparseable.
    """
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    s = raw.strip()
    if allow_comma_split and not s.startswith("["):
        return [x.strip() for x in s.split(",") if x.strip()]
    try:
        parsed = json.loads(s)
    except json.JSONDecodeError:
        return []
    return parsed if isinstance(parsed, list) else []


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a numeric-ish upstream value (str, int, None) to float."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (with trailing Z) to an aware datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    return as_utc(parsed)


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC (SQLite hands stored timestamps back naive)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_from_millis(value: Any) -> datetime:
    """CLOB epoch-millisecond timestamp to an aware datetime; now when missing or malformed."""
    if value is not None:
        try:
            return datetime.fromtimestamp(int(value) / 1000, timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            pass
    return datetime.now(timezone.utc)
