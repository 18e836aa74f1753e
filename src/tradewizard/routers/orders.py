"""Order-form validation for limit and market orders."""
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tradewizard.utils import (DEFAULT_TICK_SIZE, get_decimal_places,
                               is_valid_decimal_input, is_valid_price_input,
                               validate_order)

router = APIRouter(prefix="/api/orders", tags=["orders"])


class OrderInput(BaseModel):
    size: str = ""
    limit_price: str | None = None
    order_type: Literal["market", "limit"] = "market"
    tick_size: float = Field(default=DEFAULT_TICK_SIZE, gt=0, lt=1)


class OrderValidation(BaseModel):
    valid: bool
    error: str | None = None
    size_input_valid: bool
    price_input_valid: bool
    decimal_places: int


@router.post("/validate", response_model=OrderValidation)
def validate(order: OrderInput) -> OrderValidation:
    """Check order-form text as typed and whether the order could be placed."""
    places = get_decimal_places(order.tick_size)
    error = validate_order(order.size, order.limit_price, order.tick_size, order.order_type)
    return OrderValidation(
        valid=error is None,
        error=error,
        size_input_valid=is_valid_decimal_input(order.size),
        price_input_valid=is_valid_price_input(order.limit_price or "", places),
        decimal_places=places,
    )
