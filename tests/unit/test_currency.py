"""Unit tests for CurrencyRegistry and the deterministic clock."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from gst_kernel.domain.clock import DeterministicClock, SystemClock
from gst_kernel.domain.currency import CurrencyRegistry


class TestCurrencyRegistry:
    """Tests for currency lookup."""

    def test_inr_registered(self):
        assert CurrencyRegistry.is_valid("INR")
        assert CurrencyRegistry.get_decimal_places("INR") == 2

    def test_lookup_is_case_insensitive(self):
        assert CurrencyRegistry.is_valid("inr")
        assert CurrencyRegistry.get_info(" usd ").code == "USD"

    def test_unknown_currency(self):
        assert not CurrencyRegistry.is_valid("XYZ")
        assert CurrencyRegistry.get_info("XYZ") is None

    def test_empty_and_non_string(self):
        assert not CurrencyRegistry.is_valid("")
        assert not CurrencyRegistry.is_valid(None)

    def test_unknown_currency_defaults(self):
        assert CurrencyRegistry.get_decimal_places("XYZ") == CurrencyRegistry.DEFAULT_DECIMAL_PLACES
        assert CurrencyRegistry.get_rounding_tolerance("XYZ") == Decimal("0.01")

    def test_all_codes(self):
        codes = CurrencyRegistry.all_codes()
        assert "INR" in codes
        assert "JPY" in codes


class TestClock:
    """Tests for the injectable clocks."""

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc

    def test_deterministic_clock_is_stable(self):
        fixed = datetime(2026, 3, 15, 10, 30, tzinfo=timezone.utc)
        clock = DeterministicClock(fixed)
        assert clock.now() == clock.now() == fixed

    def test_advance(self):
        fixed = datetime(2026, 3, 15, 10, 30, tzinfo=timezone.utc)
        clock = DeterministicClock(fixed)
        clock.advance(90)
        assert clock.now() == fixed + timedelta(seconds=90)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(10)
        later = datetime(2027, 1, 1, tzinfo=timezone.utc)
        clock.set_time(later)
        assert clock.now() == later
