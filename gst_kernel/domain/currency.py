"""Currency -- settlement currency registry and precision-derived rounding."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def rounding_tolerance(self) -> Decimal:
        """Smallest representable unit, derived from decimal places."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (self.decimal_places - 1) + "1")


class CurrencyRegistry:
    """Currencies a GST invoice or purchase order may be denominated in.

    GST returns are filed in INR; the other entries cover export invoices
    and foreign-currency purchase orders that still pass through
    reconciliation.
    """

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_rounding_tolerance(cls, code: str) -> Decimal:
        info = cls.get_info(code)
        if info:
            return info.rounding_tolerance
        return Decimal("0.01")

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all registered currency codes."""
        return frozenset(cls._CURRENCIES.keys())
