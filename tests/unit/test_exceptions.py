"""Tests for the typed exception hierarchy and its error codes."""

import pytest

from gst_kernel.exceptions import (
    CurrencyError,
    CurrencyMismatchError,
    DiscrepancyNotFoundError,
    GstKernelError,
    InvalidAdjustmentError,
    InvalidBuyerGstinError,
    InvalidCurrencyError,
    InvalidGstinFormatError,
    InvalidLineItemError,
    InvalidSellerGstinError,
    LineItemError,
    MissingDocumentError,
    ReconciliationError,
    TaxIdentifierError,
    UnknownJurisdictionError,
    UnsupportedTaxRateError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc, family, code",
        [
            (InvalidGstinFormatError("27XX"), TaxIdentifierError, "INVALID_FORMAT"),
            (UnknownJurisdictionError("99AABCU9603R1Z5", "99"), TaxIdentifierError, "UNKNOWN_JURISDICTION"),
            (InvalidSellerGstinError(None, "INVALID_FORMAT"), TaxIdentifierError, "INVALID_SELLER_IDENTIFIER"),
            (InvalidBuyerGstinError("bad", "INVALID_FORMAT"), TaxIdentifierError, "INVALID_BUYER_IDENTIFIER"),
            (InvalidLineItemError("quantity cannot be negative"), LineItemError, "INVALID_LINE_ITEM"),
            (UnsupportedTaxRateError("7", ["5", "18"]), LineItemError, "UNSUPPORTED_TAX_RATE"),
            (InvalidAdjustmentError("tds_amount", "cannot be negative"), GstKernelError, "INVALID_ADJUSTMENT"),
            (MissingDocumentError("goods receipt"), ReconciliationError, "MISSING_DOCUMENT"),
            (DiscrepancyNotFoundError(3, 1), ReconciliationError, "DISCREPANCY_NOT_FOUND"),
            (InvalidCurrencyError("XYZ"), CurrencyError, "INVALID_CURRENCY"),
            (CurrencyMismatchError("INR", "USD"), CurrencyError, "CURRENCY_MISMATCH"),
        ],
    )
    def test_family_and_code(self, exc, family, code):
        assert isinstance(exc, family)
        assert isinstance(exc, GstKernelError)
        assert exc.code == code

    def test_catch_by_family(self):
        with pytest.raises(ReconciliationError):
            raise MissingDocumentError("purchase order")


class TestMessages:
    def test_line_item_with_description(self):
        exc = InvalidLineItemError("unit rate cannot be negative", "Cement")
        assert str(exc) == "Invalid line item 'Cement': unit rate cannot be negative"
        assert exc.description == "Cement"

    def test_unsupported_rate_lists_permitted(self):
        exc = UnsupportedTaxRateError("7", ["5", "18"])
        assert "7%" in str(exc)
        assert "5, 18" in str(exc)

    def test_missing_document(self):
        assert str(MissingDocumentError("invoice")) == "Three-way match is missing the invoice"

    def test_invalid_adjustment_names_field(self):
        exc = InvalidAdjustmentError("tcs_rate_percent", "cannot be negative")
        assert str(exc) == "Invalid invoice adjustment tcs_rate_percent: cannot be negative"
        assert exc.field == "tcs_rate_percent"
