"""Shared utilities: order-form input validation."""
import re
from decimal import Decimal
from typing import Literal

_DECIMAL_RE = re.compile(r"\d*\.?\d*")

MIN_ORDER_SIZE = 5.0
DEFAULT_TICK_SIZE = 0.01


def is_valid_price_input(value: str, max_decimals: int) -> bool:
    """Accept partial limit-price text as typed: below 1, at most max_decimals places.

    "", "0" and "0." are accepted so the user can keep typing.
    """
    if value in ("", "0", "0."):
        return True
    return re.fullmatch(rf"(0?\.[0-9]{{0,{max_decimals}}}|0)", value) is not None


def is_valid_decimal_input(value: str) -> bool:
    """Digits with at most one decimal point; empty is allowed."""
    return _DECIMAL_RE.fullmatch(value) is not None


def get_decimal_places(tick_size: float) -> int:
    if tick_size >= 1:
        return 0
    exponent = Decimal(repr(tick_size)).normalize().as_tuple().exponent
    return max(0, -int(exponent))


def is_valid_tick_price(price: float, tick_size: float) -> bool:
    """price is a whole multiple of tick_size (within float tolerance)."""
    if tick_size <= 0:
        return False
    return abs(price - round(price / tick_size) * tick_size) < 1e-10


def _parse_number(value: str) -> float:
    if value in ("", ".") or not is_valid_decimal_input(value):
        return 0.0
    return float(value)


def validate_order(
    size: str,
    limit_price: str | None = None,
    tick_size: float = DEFAULT_TICK_SIZE,
    order_type: Literal["market", "limit"] = "market",
) -> str | None:
    """First problem with an order as entered, or None when it can be placed."""
    if _parse_number(size) < MIN_ORDER_SIZE:
        return f"Size must be at least {MIN_ORDER_SIZE:g}"
    if order_type != "limit":
        return None

    price = _parse_number(limit_price or "")
    if price <= 0:
        return "Limit price is required"
    places = get_decimal_places(tick_size)
    if price < tick_size or price > 1 - tick_size:
        return f"Price must be between ${tick_size:.{places}f} and ${1 - tick_size:.{places}f}"
    if not is_valid_tick_price(price, tick_size):
        return f"Price must be a multiple of tick size (${tick_size:g})"
    return None
