"""
GST Engine - Calculate Goods and Services Tax for invoice line items.

Classifies the supply from the seller and buyer GSTINs, computes each
line's base, discount, taxable amount and tax, splits the tax into
CGST+SGST (intra-state and unregistered buyers) or IGST (inter-state),
and builds document totals.

Pure functions with no I/O - permitted rates provided as parameters.

Rounding:
    Line items are carried at full Decimal precision.  Totals are rounded
    exactly once, each aggregate independently, to the currency's decimal
    places (ROUND_HALF_UP).  Summing already-rounded line values would
    drift by up to half a paisa per line.

Usage:
    from gst_engines.gst import GstCalculator, GstLineItem
    from gst_kernel.domain.values import Money
    from decimal import Decimal

    calculator = GstCalculator()
    breakdown = calculator.calculate_breakdown(
        items=[
            GstLineItem(
                description="Steel rods",
                quantity=Decimal("1"),
                unit_rate=Money.of("1000.00", "INR"),
                tax_rate_percent=Decimal("18"),
            ),
        ],
        seller_gstin="27AABCU9603R1Z5",
        buyer_gstin="27AAACR5055K1Z7",
    )
    print(breakdown.totals.cgst)  # Money: 90.00 INR
    print(breakdown.totals.total_tax)  # Money: 180.00 INR
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from gst_engines.classification import TaxSplit, TransactionContext, classify_transaction
from gst_engines.tracer import traced_engine
from gst_kernel.domain.currency import CurrencyRegistry
from gst_kernel.domain.values import Money
from gst_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidCurrencyError,
    InvalidLineItemError,
    UnsupportedTaxRateError,
)
from gst_kernel.logging_config import get_logger

logger = get_logger("engines.gst")

DEFAULT_CURRENCY = "INR"

# GST slabs notified for goods and services, in percent
DEFAULT_PERMITTED_RATES: frozenset[Decimal] = frozenset(
    Decimal(rate) for rate in ("0", "0.1", "0.25", "1.5", "3", "5", "12", "18", "28")
)

_HUNDRED = Decimal("100")
_TWO = Decimal("2")


class DiscountType(str, Enum):
    """How a line item's discount_value is interpreted."""

    PERCENTAGE = "PERCENTAGE"  # Percent of the base amount
    FIXED = "FIXED"  # Absolute amount in the line's currency


def _to_decimal(value: Any, field_name: str, description: str | None) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidLineItemError(f"{field_name} must be numeric", description)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidLineItemError(f"{field_name} must be numeric, got {value!r}", description) from exc
    if not result.is_finite():
        raise InvalidLineItemError(f"{field_name} must be finite", description)
    return result


@dataclass(frozen=True)
class GstLineItem:
    """
    Raw invoice line as supplied by the caller.

    Numeric fields given as int or str are converted to Decimal on
    construction.  Range checks happen in GstCalculator before any
    amount is computed.
    """

    description: str
    quantity: Decimal
    unit_rate: Money
    tax_rate_percent: Decimal
    classification_code: str = ""  # HSN (goods) or SAC (services) code
    unit: str = "NOS"
    discount_type: DiscountType | None = None
    discount_value: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in ("quantity", "tax_rate_percent", "discount_value"):
            object.__setattr__(
                self, name, _to_decimal(getattr(self, name), name, self.description)
            )
        if not isinstance(self.unit_rate, Money):
            raise InvalidLineItemError("unit_rate must be Money", self.description)
        if isinstance(self.discount_type, str) and not isinstance(self.discount_type, DiscountType):
            try:
                object.__setattr__(self, "discount_type", DiscountType(self.discount_type.upper()))
            except ValueError as exc:
                raise InvalidLineItemError(
                    f"unknown discount type {self.discount_type!r}", self.description
                ) from exc

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], currency: str = DEFAULT_CURRENCY) -> GstLineItem:
        """
        Build a line item from a raw mapping.

        Expected keys: description, quantity, unit_rate, tax_rate_percent,
        and optionally classification_code, unit, discount_type,
        discount_value.

        Raises:
            InvalidLineItemError: If a required key is missing or a value
                cannot be converted.
        """
        description = data.get("description")
        missing = [
            key for key in ("description", "quantity", "unit_rate", "tax_rate_percent")
            if data.get(key) is None
        ]
        if missing:
            raise InvalidLineItemError(f"missing fields: {', '.join(missing)}", description)

        unit_rate = data["unit_rate"]
        if not isinstance(unit_rate, Money):
            unit_rate = Money.of(
                _to_decimal(unit_rate, "unit_rate", description), currency
            )

        return cls(
            description=description,
            quantity=data["quantity"],
            unit_rate=unit_rate,
            tax_rate_percent=data["tax_rate_percent"],
            classification_code=data.get("classification_code") or "",
            unit=data.get("unit") or "NOS",
            discount_type=data.get("discount_type") or None,
            discount_value=data.get("discount_value") or Decimal("0"),
        )


@dataclass(frozen=True)
class ComputedLineItem:
    """
    A line item with its GST computed at full precision.

    Exactly one channel is populated: cgst/sgst for a DUAL split, igst
    for a SINGLE split.  The others are zero.
    """

    item: GstLineItem
    base_amount: Money
    discount_amount: Money
    taxable_amount: Money
    tax_amount: Money
    cgst_amount: Money
    sgst_amount: Money
    igst_amount: Money
    total_amount: Money

    @property
    def description(self) -> str:
        return self.item.description

    @property
    def tax_rate_percent(self) -> Decimal:
        return self.item.tax_rate_percent


@dataclass(frozen=True)
class GstTotals:
    """Document totals, each rounded once from full-precision sums."""

    taxable_amount: Money
    cgst: Money
    sgst: Money
    igst: Money
    total_tax: Money
    total_amount: Money


@dataclass(frozen=True)
class GstBreakdown:
    """
    Complete GST computation for one document.

    Created fresh per invoice creation or recalculation; never mutated.
    """

    items: tuple[ComputedLineItem, ...]
    totals: GstTotals
    context: TransactionContext

    @property
    def is_interstate(self) -> bool:
        return self.context.is_interstate

    @property
    def item_count(self) -> int:
        return len(self.items)

    def tax_by_rate(self) -> dict[Decimal, Money]:
        """Rounded tax per GST slab, for rate-wise summaries on the invoice."""
        sums: dict[Decimal, Money] = {}
        for line in self.items:
            rate = line.tax_rate_percent
            current = sums.get(rate)
            sums[rate] = line.tax_amount if current is None else current + line.tax_amount
        return {rate: amount.round() for rate, amount in sorted(sums.items())}


class GstCalculator:
    """
    Calculate GST for invoice, quotation and credit/debit-note lines.

    Pure functions - no I/O, no database access.
    Permitted rates and document currency provided at construction.

    Handles:
        - Percentage and fixed item discounts (clamped to the base amount)
        - CGST+SGST vs IGST split from the transaction context
        - Single-point rounding of document totals
    """

    def __init__(
        self,
        permitted_rates: Iterable[Decimal | str] | None = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        if not CurrencyRegistry.is_valid(currency):
            raise InvalidCurrencyError(currency)
        if permitted_rates is None:
            self._permitted_rates = DEFAULT_PERMITTED_RATES
        else:
            self._permitted_rates = frozenset(Decimal(str(r)) for r in permitted_rates)
        self._currency = currency.upper().strip()

    @property
    def permitted_rates(self) -> frozenset[Decimal]:
        return self._permitted_rates

    @property
    def currency(self) -> str:
        return self._currency

    def validate_item(self, item: GstLineItem) -> None:
        """
        Reject a line item before any amount is computed.

        Raises:
            InvalidLineItemError: Negative quantity, rate or discount value.
            UnsupportedTaxRateError: Rate not in the permitted set.
            CurrencyMismatchError: Unit rate not in the calculator currency.
        """
        if item.quantity < 0:
            raise InvalidLineItemError("quantity cannot be negative", item.description)
        if item.unit_rate.is_negative:
            raise InvalidLineItemError("unit rate cannot be negative", item.description)
        if item.discount_value < 0:
            raise InvalidLineItemError("discount value cannot be negative", item.description)
        if item.unit_rate.currency.code != self._currency:
            raise CurrencyMismatchError(self._currency, item.unit_rate.currency.code)
        if item.tax_rate_percent not in self._permitted_rates:
            raise UnsupportedTaxRateError(
                str(item.tax_rate_percent),
                [str(r) for r in sorted(self._permitted_rates)],
                item.description,
            )

    def compute_item(self, item: GstLineItem, context: TransactionContext) -> ComputedLineItem:
        """
        Compute one line item's amounts at full precision.

        Args:
            item: Raw line item
            context: Classification of the owning document

        Returns:
            ComputedLineItem (unrounded)

        Raises:
            InvalidLineItemError, UnsupportedTaxRateError,
            CurrencyMismatchError: see validate_item.
        """
        self.validate_item(item)

        currency = item.unit_rate.currency
        base_amount = item.unit_rate * item.quantity

        if item.discount_type is DiscountType.PERCENTAGE:
            discount_amount = base_amount * item.discount_value / _HUNDRED
        elif item.discount_type is DiscountType.FIXED:
            discount_amount = Money.of(item.discount_value, currency)
        else:
            discount_amount = Money.zero(currency)

        if discount_amount > base_amount:
            logger.debug("line_discount_clamped", extra={
                "description": item.description,
                "base_amount": str(base_amount.amount),
                "discount_amount": str(discount_amount.amount),
            })
            discount_amount = base_amount

        taxable_amount = base_amount - discount_amount
        tax_amount = taxable_amount * item.tax_rate_percent / _HUNDRED

        zero = Money.zero(currency)
        if context.split is TaxSplit.DUAL:
            half = tax_amount / _TWO
            cgst, sgst, igst = half, half, zero
        else:
            cgst, sgst, igst = zero, zero, tax_amount

        return ComputedLineItem(
            item=item,
            base_amount=base_amount,
            discount_amount=discount_amount,
            taxable_amount=taxable_amount,
            tax_amount=tax_amount,
            cgst_amount=cgst,
            sgst_amount=sgst,
            igst_amount=igst,
            total_amount=taxable_amount + tax_amount,
        )

    def aggregate(
        self,
        items: Sequence[ComputedLineItem],
        context: TransactionContext,
    ) -> GstBreakdown:
        """
        Sum computed items into document totals.

        Each total is summed at full precision and rounded once.

        Raises:
            CurrencyMismatchError: If an item is not in the calculator currency.
        """
        currency = self._currency
        for line in items:
            if line.taxable_amount.currency.code != currency:
                raise CurrencyMismatchError(currency, line.taxable_amount.currency.code)

        taxable = Money.total((line.taxable_amount for line in items), currency)
        tax = Money.total((line.tax_amount for line in items), currency)

        totals = GstTotals(
            taxable_amount=taxable.round(),
            cgst=Money.total((line.cgst_amount for line in items), currency).round(),
            sgst=Money.total((line.sgst_amount for line in items), currency).round(),
            igst=Money.total((line.igst_amount for line in items), currency).round(),
            total_tax=tax.round(),
            total_amount=(taxable + tax).round(),
        )

        return GstBreakdown(items=tuple(items), totals=totals, context=context)

    @traced_engine("gst", "1.0", fingerprint_fields=("items", "seller_gstin", "buyer_gstin"))
    def calculate_breakdown(
        self,
        items: Sequence[GstLineItem],
        seller_gstin: str | None,
        buyer_gstin: str | None = None,
    ) -> GstBreakdown:
        """
        Classify the transaction and compute GST for every line.

        Args:
            items: Raw line items (at least one)
            seller_gstin: Issuing organization's GSTIN
            buyer_gstin: Client GSTIN, None for unregistered consumers

        Returns:
            GstBreakdown with per-line amounts, rounded totals and context

        Raises:
            InvalidSellerGstinError, InvalidBuyerGstinError: classification
            InvalidLineItemError: empty item list or invalid line
            UnsupportedTaxRateError: rate outside the permitted set
        """
        t0 = time.monotonic()
        logger.info("gst_calculation_started", extra={
            "item_count": len(items),
            "has_buyer_gstin": isinstance(buyer_gstin, str) and bool(buyer_gstin.strip()),
            "currency": self._currency,
        })

        context = classify_transaction(seller_gstin, buyer_gstin)

        if not items:
            logger.error("gst_calculation_no_items", extra={})
            raise InvalidLineItemError("at least one item is required for GST calculation")

        computed = [self.compute_item(item, context) for item in items]
        result = self.aggregate(computed, context)

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("gst_calculation_completed", extra={
            "transaction_kind": context.kind.value,
            "split": context.split.value,
            "seller_state": context.seller_state,
            "buyer_state": context.buyer_state,
            "taxable_amount": str(result.totals.taxable_amount.amount),
            "total_tax": str(result.totals.total_tax.amount),
            "item_count": len(computed),
            "duration_ms": duration_ms,
        })

        return result


@dataclass(frozen=True)
class ReverseChargeResult:
    """GST payable by the recipient under the reverse charge mechanism."""

    taxable_amount: Money
    cgst: Money
    sgst: Money
    igst: Money
    total_tax: Money
    reverse_charge: bool = True


def calculate_reverse_charge(
    amount: Money,
    tax_rate_percent: Decimal | str | int,
    is_interstate: bool,
) -> ReverseChargeResult:
    """
    Reverse charge GST on an inward supply.

    The recipient pays the tax, split the same way as a forward supply.

    Args:
        amount: Taxable value of the supply
        tax_rate_percent: GST rate as percentage (e.g., 18)
        is_interstate: True for IGST, False for CGST+SGST

    Returns:
        ReverseChargeResult with rounded components
    """
    rate = _to_decimal(tax_rate_percent, "tax_rate_percent", None)
    if rate < 0:
        raise InvalidLineItemError("tax rate cannot be negative")
    if amount.is_negative:
        raise InvalidLineItemError("reverse charge amount cannot be negative")

    tax = amount * rate / _HUNDRED
    zero = Money.zero(amount.currency)

    logger.info("reverse_charge_calculated", extra={
        "taxable_amount": str(amount.amount),
        "tax_rate_percent": str(rate),
        "is_interstate": is_interstate,
    })

    if is_interstate:
        return ReverseChargeResult(
            taxable_amount=amount,
            cgst=zero,
            sgst=zero,
            igst=tax.round(),
            total_tax=tax.round(),
        )
    half = (tax / _TWO).round()
    return ReverseChargeResult(
        taxable_amount=amount,
        cgst=half,
        sgst=half,
        igst=zero,
        total_tax=tax.round(),
    )


def calculate_gst(
    items: Sequence[GstLineItem],
    seller_gstin: str | None,
    buyer_gstin: str | None = None,
    permitted_rates: Iterable[Decimal | str] | None = None,
) -> GstBreakdown:
    """
    Convenience wrapper around GstCalculator.calculate_breakdown.

    Returns:
        GstBreakdown
    """
    calculator = GstCalculator(permitted_rates=permitted_rates)
    return calculator.calculate_breakdown(
        items=items,
        seller_gstin=seller_gstin,
        buyer_gstin=buyer_gstin,
    )
