"""
Tests for numeric utilities, quantity parsing and the Order contract.

============================================================
PURPOSE
============================================================
Verify the pure helpers every command builds on.

TEST CATEGORIES:
1. Rounding helpers
2. Quantity / percentage / time parsing
3. Symbol splitting and argument resolution
4. Canonical Order invariants
5. Error classification and credential masking

============================================================
"""

import pytest
from decimal import Decimal

from exchange_engine.errors import (
    TerminalVenueError,
    TransientVenueError,
    classify_http_status,
    venue_error_for_status,
)
from exchange_engine.logging_utils import mask_headers, mask_params
from exchange_engine.sizing import (
    Quantity,
    assign_params,
    parse_absolute_price,
    parse_bool,
    parse_percentage,
    parse_quantity,
    parse_side,
    split_symbol,
    time_to_seconds,
)
from exchange_engine.types import CommandArg, Order, command_args
from exchange_engine.utils import (
    round_down,
    round_significant_figures,
    round_up,
    round_value,
    to_decimal,
)


# ============================================================
# ROUNDING
# ============================================================

class TestRounding:
    """Tests for Decimal rounding helpers."""

    def test_round_value_half_up(self):
        """Test half-up rounding to decimal places."""
        assert round_value(Decimal("1.23456"), 4) == Decimal("1.2346")
        assert round_value(Decimal("0.5"), 0) == Decimal("1")

    def test_round_value_negative_places(self):
        """Test negative places round to tens and hundreds."""
        assert round_value(Decimal("1234"), -2) == Decimal("1200")
        assert round_value(Decimal("1250"), -2) == Decimal("1300")

    def test_round_down(self):
        """Test rounding towards zero."""
        assert round_down(Decimal("2900.999"), 2) == Decimal("2900.99")
        assert round_down(Decimal("3.9"), 0) == Decimal("3")

    def test_round_up(self):
        """Test rounding away from zero."""
        assert round_up(Decimal("2900.001"), 2) == Decimal("2900.01")

    def test_significant_figures(self):
        """Test significant figure rounding."""
        assert round_significant_figures(Decimal("12345"), 3) == Decimal("12300")
        assert round_significant_figures(Decimal("0.012345"), 2) == Decimal("0.012")
        assert round_significant_figures(0, 3) == Decimal("0")

    def test_to_decimal_from_float(self):
        """Test floats keep their printed value."""
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("junk") == Decimal("0")
        assert to_decimal(None, Decimal("5")) == Decimal("5")


# ============================================================
# PARSING
# ============================================================

class TestQuantityParsing:
    """Tests for the quantity grammar."""

    def test_plain_number(self):
        """Test an absolute amount has no units."""
        assert parse_quantity("12") == Quantity(Decimal("12"), "")
        assert parse_quantity("0.5") == Quantity(Decimal("0.5"), "")

    def test_units(self):
        """Test currency, asset and percentage units."""
        assert parse_quantity("12usd") == Quantity(Decimal("12"), "usd")
        assert parse_quantity("12btc").units == "btc"
        assert parse_quantity("12%") == Quantity(Decimal("12"), "%")
        assert parse_quantity("12%%") == Quantity(Decimal("12"), "%%")

    def test_invalid_is_zero(self):
        """Test anything unparseable becomes zero."""
        assert parse_quantity("abc").value == Decimal("0")
        assert parse_quantity("").value == Decimal("0")
        assert parse_quantity("-5").value == Decimal("0")

    def test_percentage(self):
        """Test '1%' and '0.01' mean the same thing."""
        assert parse_percentage("1%") == Decimal("0.01")
        assert parse_percentage("0.01") == Decimal("0.01")
        assert parse_percentage("bad") == Decimal("0")

    def test_absolute_price(self):
        """Test @price offsets."""
        assert parse_absolute_price("@6250.23") == Decimal("6250.23")
        assert parse_absolute_price("100") is None

    def test_time_to_seconds(self):
        """Test duration units."""
        assert time_to_seconds("12") == 12
        assert time_to_seconds("12s") == 12
        assert time_to_seconds("2m") == 120
        assert time_to_seconds("1h") == 3600
        assert time_to_seconds("1d") == 86400
        assert time_to_seconds("soon") == 10

    def test_bool_and_side(self):
        """Test boolean and side parsing."""
        assert parse_bool("true") is True
        assert parse_bool("False") is False
        assert parse_side(" BUY ") == "buy"
        assert parse_side("hold") == ""


class TestSymbols:
    """Tests for symbol splitting."""

    def test_concatenated(self):
        """Test six and seven character pairs."""
        assert split_symbol("BTCUSD") == ("btc", "usd")
        assert split_symbol("ethusd") == ("eth", "usd")

    def test_separated(self):
        """Test dash separated pairs."""
        assert split_symbol("BTC-USD") == ("btc", "usd")
        assert split_symbol("BTC-PERPETUAL") == ("btc", "perpetual")

    def test_fallback(self):
        """Test unsplittable symbols fall back to btc/usd."""
        assert split_symbol("x") == ("btc", "usd")


class TestAssignParams:
    """Tests for named and positional argument resolution."""

    EXPECTED = {"side": "buy", "offset": "0", "amount": "0"}

    def test_defaults(self):
        """Test missing arguments take their defaults."""
        assert assign_params(self.EXPECTED, []) == {"side": "buy", "offset": "0", "amount": "0"}

    def test_positional(self):
        """Test unnamed arguments match by index."""
        p = assign_params(self.EXPECTED, command_args("sell", "10"))
        assert p == {"side": "sell", "offset": "10", "amount": "0"}

    def test_named_case_insensitive(self):
        """Test named arguments ignore case."""
        p = assign_params(self.EXPECTED, command_args(Amount="5"))
        assert p["amount"] == "5"

    def test_last_match_wins(self):
        """Test a later argument overrides an earlier one."""
        args = [
            CommandArg(name="", value="sell", index=0),
            CommandArg(name="side", value="buy", index=1),
        ]
        assert assign_params(self.EXPECTED, args)["side"] == "buy"


# ============================================================
# ORDER CONTRACT
# ============================================================

class TestOrder:
    """Tests for the canonical Order invariants."""

    def test_unfilled(self):
        """Test remaining equals amount minus executed."""
        order = Order.build("1", "BUY", "2", "0.5", is_open=True)
        assert order.side == "buy"
        assert order.remaining == Decimal("1.5")
        assert not order.is_filled

    def test_filled(self):
        """Test a filled order has nothing remaining."""
        order = Order.build("1", "sell", "2", "2", is_open=False)
        assert order.is_filled
        assert order.remaining == Decimal("0")

    def test_extra_and_price(self):
        """Test venue fields ride along in extra."""
        order = Order.build(7, "buy", 1, 0, True, type="limit", price="2900")
        assert order.id == "7"
        assert order.price == Decimal("2900")
        assert order.extra["type"] == "limit"


# ============================================================
# ERRORS AND MASKING
# ============================================================

class TestErrors:
    """Tests for HTTP status classification."""

    @pytest.mark.parametrize("status", [429, 502, 503])
    def test_transient(self, status):
        """Test overload statuses are retryable."""
        assert classify_http_status(status) is TransientVenueError

    @pytest.mark.parametrize("status", [400, 401, 404, 500])
    def test_terminal(self, status):
        """Test everything else is terminal."""
        assert classify_http_status(status) is TerminalVenueError

    def test_error_carries_status(self):
        """Test built errors keep the status and body."""
        error = venue_error_for_status(503, "busy")
        assert error.retryable
        assert error.status == 503
        assert error.body == "busy"


class TestMasking:
    """Tests for credential masking."""

    def test_headers(self):
        """Test signature headers are masked."""
        masked = mask_headers({"x-deribit-sig": "key.123.abcdef", "Accept": "application/json"})
        assert masked["x-deribit-sig"] == "key....***"
        assert masked["Accept"] == "application/json"

    def test_params(self):
        """Test secret parameters are masked."""
        masked = mask_params({"_acsec": "supersecret", "instrument": "BTC-PERPETUAL"})
        assert "supersecret" not in str(masked)
        assert masked["instrument"] == "BTC-PERPETUAL"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
