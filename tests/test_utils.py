import pytest

from tradewizard.utils import (get_decimal_places, is_valid_decimal_input,
                               is_valid_price_input, is_valid_tick_price,
                               validate_order)


@pytest.mark.parametrize("value", ["", "0", "0.", ".5", "0.55", "0.1"])
def test_price_input_accepts_partial_prices(value):
    assert is_valid_price_input(value, 2)


@pytest.mark.parametrize("value", ["1", "1.0", "0.555", "abc", "0.5.5", "-0.1"])
def test_price_input_rejects(value):
    assert not is_valid_price_input(value, 2)


def test_price_input_respects_decimals():
    assert is_valid_price_input("0.555", 3)


@pytest.mark.parametrize(("value", "valid"), [("", True), ("12", True), ("12.5", True),
                                              (".", True), ("1.2.3", False), ("1e3", False),
                                              ("nan", False)])
def test_decimal_input(value, valid):
    assert is_valid_decimal_input(value) is valid


@pytest.mark.parametrize(("tick", "places"), [(0.1, 1), (0.01, 2), (0.001, 3), (0.0001, 4), (1, 0)])
def test_decimal_places(tick, places):
    assert get_decimal_places(tick) == places


def test_tick_price():
    assert is_valid_tick_price(0.55, 0.01)
    assert is_valid_tick_price(0.3, 0.1)
    assert not is_valid_tick_price(0.555, 0.01)
    assert not is_valid_tick_price(0.5, 0)


class TestValidateOrder:
    def test_market_order_needs_minimum_size(self):
        assert validate_order("4.99") == "Size must be at least 5"
        assert validate_order("abc") == "Size must be at least 5"
        assert validate_order("5") is None

    def test_limit_order_needs_price(self):
        assert validate_order("10", None, order_type="limit") == "Limit price is required"
        assert validate_order("10", "0", order_type="limit") == "Limit price is required"

    def test_limit_price_range(self):
        assert (
            validate_order("10", "0.995", order_type="limit")
            == "Price must be between $0.01 and $0.99"
        )
        assert (
            validate_order("10", "0.05", tick_size=0.1, order_type="limit")
            == "Price must be between $0.1 and $0.9"
        )

    def test_limit_price_tick(self):
        assert (
            validate_order("10", "0.555", tick_size=0.01, order_type="limit")
            == "Price must be a multiple of tick size ($0.01)"
        )
        assert validate_order("10", "0.55", order_type="limit") is None
