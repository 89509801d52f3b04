"""
Tests for invoice-level totals.

Covers:
- Grand total rounding and round-off sign
- Percentage and fixed invoice discounts, including clamping
- TCS on the discounted amount, TDS deduction
- Adjustment validation and currency checks
- Tracing
"""

from decimal import Decimal

import pytest

from gst_engines.gst import DiscountType, GstCalculator, GstLineItem
from gst_engines.invoice_totals import DocumentAdjustments, compute_invoice_totals
from gst_kernel.domain.values import Money
from gst_kernel.exceptions import CurrencyMismatchError, InvalidAdjustmentError

SELLER_MH = "27AABCU9603R1Z5"
BUYER_MH = "27AAACR5055K1Z7"


def inr(amount: str) -> Money:
    return Money.of(amount, "INR")


def breakdown_for(rate: str = "1000", qty: str = "1", tax: str = "18"):
    item = GstLineItem(
        description="Steel rods",
        quantity=Decimal(qty),
        unit_rate=inr(rate),
        tax_rate_percent=Decimal(tax),
    )
    return GstCalculator().calculate_breakdown([item], SELLER_MH, BUYER_MH)


class TestGrandTotal:
    """Rounding to whole units."""

    def test_no_adjustments(self):
        totals = compute_invoice_totals(breakdown_for())

        assert totals.subtotal == inr("1000.00")
        assert totals.discount_amount.is_zero
        assert totals.taxable_amount == inr("1000.00")
        assert totals.cgst == inr("90.00")
        assert totals.sgst == inr("90.00")
        assert totals.total_tax == inr("180.00")
        assert totals.round_off.is_zero
        assert totals.grand_total == inr("1180.00")

    def test_rounds_up_with_positive_round_off(self):
        # 99.99 + 18% = 117.99
        totals = compute_invoice_totals(breakdown_for(rate="33.33", qty="3"))

        assert totals.total_tax == inr("18.00")
        assert totals.round_off == inr("0.01")
        assert totals.grand_total == inr("118.00")

    def test_rounds_down_with_negative_round_off(self):
        totals = compute_invoice_totals(breakdown_for(rate="100.40", tax="0"))

        assert totals.round_off == inr("-0.40")
        assert totals.grand_total == inr("100.00")

    def test_half_rounds_up(self):
        totals = compute_invoice_totals(breakdown_for(rate="100.50", tax="0"))

        assert totals.round_off == inr("0.50")
        assert totals.grand_total == inr("101.00")

    def test_components_reconcile_exactly(self):
        totals = compute_invoice_totals(
            breakdown_for(rate="333.33", qty="7"),
            DocumentAdjustments(
                discount_type=DiscountType.PERCENTAGE,
                discount_value=Decimal("2.5"),
                tcs_rate_percent=Decimal("0.1"),
                tds_amount=inr("41.17"),
            ),
        )

        assert totals.net_before_round_off + totals.round_off == totals.grand_total
        assert (
            totals.taxable_amount + totals.total_tax + totals.tcs_amount
            - totals.tds_amount + totals.round_off
        ) == totals.grand_total


class TestInvoiceDiscount:
    def test_percentage_of_subtotal(self):
        totals = compute_invoice_totals(
            breakdown_for(),
            DocumentAdjustments(discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("10")),
        )

        assert totals.discount_amount == inr("100.00")
        assert totals.taxable_amount == inr("900.00")
        # Line GST is carried as computed, not recomputed on the discounted amount
        assert totals.total_tax == inr("180.00")
        assert totals.grand_total == inr("1080.00")

    def test_fixed_amount(self):
        totals = compute_invoice_totals(
            breakdown_for(),
            DocumentAdjustments(discount_type=DiscountType.FIXED, discount_value=Decimal("250")),
        )

        assert totals.taxable_amount == inr("750.00")
        assert totals.grand_total == inr("930.00")

    def test_value_without_type_is_absolute(self):
        totals = compute_invoice_totals(breakdown_for(), DocumentAdjustments(discount_value="50"))

        assert totals.discount_amount == inr("50.00")

    def test_clamped_to_subtotal(self):
        totals = compute_invoice_totals(
            breakdown_for(),
            DocumentAdjustments(discount_type=DiscountType.FIXED, discount_value=Decimal("5000")),
        )

        assert totals.discount_amount == inr("1000.00")
        assert totals.taxable_amount.is_zero
        assert totals.grand_total == inr("180.00")

    def test_discount_type_given_as_string(self):
        adjustments = DocumentAdjustments(discount_type="PERCENTAGE", discount_value="10")

        assert adjustments.discount_type is DiscountType.PERCENTAGE
        assert adjustments.discount_value == Decimal("10")


class TestSourceTaxes:
    """TCS is added on the discounted amount, TDS is deducted."""

    def test_tcs_on_discounted_taxable(self):
        totals = compute_invoice_totals(
            breakdown_for(),
            DocumentAdjustments(
                discount_type=DiscountType.PERCENTAGE,
                discount_value=Decimal("10"),
                tcs_rate_percent=Decimal("0.1"),
            ),
        )

        assert totals.tcs_amount == inr("0.90")
        assert totals.round_off == inr("0.10")
        assert totals.grand_total == inr("1081.00")

    def test_zero_tcs_rate_adds_nothing(self):
        totals = compute_invoice_totals(breakdown_for(), DocumentAdjustments(tcs_rate_percent="0"))

        assert totals.tcs_amount.is_zero
        assert totals.grand_total == inr("1180.00")

    def test_tds_deducted(self):
        totals = compute_invoice_totals(
            breakdown_for(), DocumentAdjustments(tds_amount=inr("20.40"), tds_section="194C"),
        )

        assert totals.tds_amount == inr("20.40")
        assert totals.round_off == inr("0.40")
        assert totals.grand_total == inr("1160.00")


class TestAdjustmentValidation:
    @pytest.mark.parametrize("kwargs, field", [
        ({"discount_value": "-1"}, "discount_value"),
        ({"tcs_rate_percent": "-0.1"}, "tcs_rate_percent"),
        ({"tds_amount": Money.of("-5", "INR")}, "tds_amount"),
        ({"discount_value": "ten"}, "discount_value"),
        ({"discount_value": True}, "discount_value"),
        ({"tds_amount": "20"}, "tds_amount"),
        ({"discount_type": "BOGUS"}, "discount_type"),
    ])
    def test_rejected(self, kwargs, field):
        with pytest.raises(InvalidAdjustmentError) as exc_info:
            DocumentAdjustments(**kwargs)
        assert exc_info.value.code == "INVALID_ADJUSTMENT"
        assert exc_info.value.field == field

    def test_tds_currency_mismatch(self, captured_logs):
        with pytest.raises(CurrencyMismatchError):
            compute_invoice_totals(
                breakdown_for(), DocumentAdjustments(tds_amount=Money.of("10", "USD")),
            )

        errors = [r for r in captured_logs() if r["message"] == "invoice_totals_currency_mismatch"]
        assert errors[0]["tds_currency"] == "USD"


class TestTracing:
    def test_engine_trace_emitted(self, captured_logs):
        compute_invoice_totals(breakdown_for())

        traces = [r for r in captured_logs() if r["message"] == "GST_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "invoice_totals"
        assert len(traces[-1]["input_fingerprint"]) == 16

    def test_computed_record_carries_totals(self, captured_logs):
        compute_invoice_totals(breakdown_for(rate="100.40", tax="0"))

        computed = [r for r in captured_logs() if r["message"] == "invoice_totals_computed"]
        assert computed[0]["grand_total"] == {"amount": "100.00", "currency": "INR"}
        assert computed[0]["round_off"] == {"amount": "-0.40", "currency": "INR"}
