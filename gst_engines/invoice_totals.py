"""
gst_engines.invoice_totals -- Document-level adjustments and grand total.

Responsibility:
    Turn a GstBreakdown into the figures printed at the foot of an
    invoice: an invoice-level discount, tax collected at source (TCS),
    tax deducted at source (TDS), the round-off and the grand total
    payable.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - taxable_amount + total_tax + tcs_amount - tds_amount + round_off
      == grand_total, exactly.
    - grand_total is a whole number of currency units (ROUND_HALF_UP).
    - GST is not recomputed after the invoice-level discount; line tax
      from the breakdown is carried as is.

Failure modes:
    - InvalidAdjustmentError: negative discount, TCS rate or TDS amount.
    - CurrencyMismatchError: TDS amount in a different currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from gst_engines.gst import DiscountType, GstBreakdown
from gst_engines.tracer import traced_engine
from gst_kernel.domain.values import Money
from gst_kernel.exceptions import CurrencyMismatchError, InvalidAdjustmentError
from gst_kernel.logging_config import get_logger

logger = get_logger("engines.invoice_totals")

_HUNDRED = Decimal("100")
_WHOLE_UNITS = Decimal("1")


def _adjustment_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAdjustmentError(field_name, "must be numeric")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAdjustmentError(field_name, f"must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidAdjustmentError(field_name, "must be finite")
    if result < 0:
        raise InvalidAdjustmentError(field_name, "cannot be negative")
    return result


@dataclass(frozen=True)
class DocumentAdjustments:
    """
    Invoice-level adjustments applied after line GST.

    A PERCENTAGE discount is a percent of the subtotal; FIXED is an
    absolute amount.  Without a discount_type the value is read as an
    absolute amount.  TCS applies only when tcs_rate_percent is set.
    """

    discount_type: DiscountType | None = None
    discount_value: Decimal = Decimal("0")
    tcs_rate_percent: Decimal | None = None
    tds_amount: Money | None = None
    tds_section: str = ""  # e.g. "194C", informational only

    def __post_init__(self) -> None:
        if isinstance(self.discount_type, str) and not isinstance(self.discount_type, DiscountType):
            try:
                object.__setattr__(self, "discount_type", DiscountType(self.discount_type))
            except ValueError as exc:
                raise InvalidAdjustmentError(
                    "discount_type", f"unknown value {self.discount_type!r}"
                ) from exc
        object.__setattr__(
            self, "discount_value", _adjustment_decimal(self.discount_value, "discount_value")
        )
        if self.tcs_rate_percent is not None:
            object.__setattr__(
                self,
                "tcs_rate_percent",
                _adjustment_decimal(self.tcs_rate_percent, "tcs_rate_percent"),
            )
        if self.tds_amount is not None:
            if not isinstance(self.tds_amount, Money):
                raise InvalidAdjustmentError("tds_amount", "must be Money")
            if self.tds_amount.is_negative:
                raise InvalidAdjustmentError("tds_amount", "cannot be negative")


@dataclass(frozen=True)
class InvoiceTotals:
    """Footer figures of one invoice. All amounts are rounded."""

    subtotal: Money
    discount_amount: Money
    taxable_amount: Money
    cgst: Money
    sgst: Money
    igst: Money
    total_tax: Money
    tcs_amount: Money
    tds_amount: Money
    round_off: Money
    grand_total: Money

    @property
    def net_before_round_off(self) -> Money:
        return self.taxable_amount + self.total_tax + self.tcs_amount - self.tds_amount


@traced_engine("invoice_totals", "1.0", fingerprint_fields=("breakdown", "adjustments"))
def compute_invoice_totals(
    breakdown: GstBreakdown,
    adjustments: DocumentAdjustments | None = None,
) -> InvoiceTotals:
    """
    Apply invoice-level adjustments and round to the grand total.

    The subtotal is the breakdown's taxable amount (after line
    discounts).  The invoice discount is clamped to the subtotal so the
    taxable amount never goes negative.  TCS is levied on the taxable
    amount after the discount; TDS is deducted from the payable total.

    Args:
        breakdown: Result of GstCalculator.calculate_breakdown
        adjustments: Invoice-level discount, TCS and TDS; none by default

    Returns:
        InvoiceTotals whose grand_total is rounded to whole units
    """
    adjustments = adjustments or DocumentAdjustments()
    totals = breakdown.totals
    currency = totals.taxable_amount.currency
    zero = Money.zero(currency)

    subtotal = totals.taxable_amount.round()

    if adjustments.discount_type is DiscountType.PERCENTAGE:
        discount = (subtotal * adjustments.discount_value / _HUNDRED).round()
    else:
        discount = Money(adjustments.discount_value, currency).round()
    if discount > subtotal:
        logger.debug("invoice_discount_clamped", extra={
            "requested": discount,
            "subtotal": subtotal,
        })
        discount = subtotal

    taxable = subtotal - discount

    tcs = zero
    if adjustments.tcs_rate_percent:
        tcs = (taxable * adjustments.tcs_rate_percent / _HUNDRED).round()

    tds = zero
    if adjustments.tds_amount is not None:
        if adjustments.tds_amount.currency != currency:
            logger.error("invoice_totals_currency_mismatch", extra={
                "expected": currency.code,
                "tds_currency": adjustments.tds_amount.currency.code,
            })
            raise CurrencyMismatchError(currency.code, adjustments.tds_amount.currency.code)
        tds = adjustments.tds_amount.round()

    total_tax = totals.total_tax.round()
    net = taxable + total_tax + tcs - tds
    grand_total = Money(net.amount.quantize(_WHOLE_UNITS, rounding=ROUND_HALF_UP), currency).round()

    result = InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount,
        taxable_amount=taxable,
        cgst=totals.cgst.round(),
        sgst=totals.sgst.round(),
        igst=totals.igst.round(),
        total_tax=total_tax,
        tcs_amount=tcs,
        tds_amount=tds,
        round_off=grand_total - net,
        grand_total=grand_total,
    )

    logger.info("invoice_totals_computed", extra={
        "subtotal": result.subtotal,
        "discount_amount": result.discount_amount,
        "tcs_amount": result.tcs_amount,
        "tds_amount": result.tds_amount,
        "round_off": result.round_off,
        "grand_total": result.grand_total,
    })
    return result
