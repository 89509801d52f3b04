"""
Typed Exception Hierarchy for the GST Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the tax and reconciliation engines must tell a malformed GSTIN
apart from an unsupported tax rate without parsing message strings. Every
error here:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example:
    try:
        breakdown = calculator.calculate_breakdown(items, seller, buyer)
    except InvalidSellerGstinError as e:
        api_response(code=e.code, gstin=e.gstin, reason=e.reason)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    GstKernelError (base)
    |
    +-- TaxIdentifierError
    |   +-- InvalidGstinFormatError
    |   +-- UnknownJurisdictionError
    |   +-- InvalidSellerGstinError
    |   +-- InvalidBuyerGstinError
    |
    +-- LineItemError
    |   +-- InvalidLineItemError
    |   +-- UnsupportedTaxRateError
    |
    +-- InvalidAdjustmentError
    |
    +-- ReconciliationError
    |   +-- MissingDocumentError
    |   +-- DiscrepancyNotFoundError
    |
    +-- CurrencyError
        +-- InvalidCurrencyError
        +-- CurrencyMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Tax identifier  | INVALID_FORMAT              | GSTIN does not match the 15-char pattern
                | UNKNOWN_JURISDICTION        | State code not in the state table
                | INVALID_SELLER_IDENTIFIER   | Seller GSTIN missing or unparseable
                | INVALID_BUYER_IDENTIFIER    | Buyer GSTIN given but unparseable
----------------|-----------------------------|-----------------------------------------
Line item       | INVALID_LINE_ITEM           | Negative qty/rate/discount, bad discount type
                | UNSUPPORTED_TAX_RATE        | Rate not in the permitted GST slabs
----------------|-----------------------------|-----------------------------------------
Adjustment      | INVALID_ADJUSTMENT          | Negative invoice discount, TCS rate or TDS
----------------|-----------------------------|-----------------------------------------
Reconciliation  | MISSING_DOCUMENT            | PO, GRN or invoice absent
                | DISCREPANCY_NOT_FOUND       | Resolving a discrepancy index that is absent
----------------|-----------------------------|-----------------------------------------
Currency        | INVALID_CURRENCY            | Code not in CurrencyRegistry
                | CURRENCY_MISMATCH           | Mixed currencies in one computation

Discrepancies found by three-way matching are NOT exceptions. They are
returned as data inside MatchResult.
"""


class GstKernelError(Exception):
    """
    Base exception for all GST kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "GST_KERNEL_ERROR"


# Tax identifier exceptions


class TaxIdentifierError(GstKernelError):
    """Base exception for GSTIN-related errors."""

    code: str = "TAX_IDENTIFIER_ERROR"


class InvalidGstinFormatError(TaxIdentifierError):
    """GSTIN does not match the structural pattern."""

    code: str = "INVALID_FORMAT"

    def __init__(self, gstin: str | None):
        self.gstin = gstin
        super().__init__(f"Invalid GSTIN format: {gstin!r}")


class UnknownJurisdictionError(TaxIdentifierError):
    """GSTIN state code has no entry in the state table."""

    code: str = "UNKNOWN_JURISDICTION"

    def __init__(self, gstin: str, state_code: str):
        self.gstin = gstin
        self.state_code = state_code
        super().__init__(f"Unknown GST state code {state_code!r} in GSTIN {gstin!r}")


class InvalidSellerGstinError(TaxIdentifierError):
    """
    Seller (organization) GSTIN is missing or invalid.

    A document cannot be taxed without a valid seller registration.
    `reason` carries the code of the underlying parse failure.
    """

    code: str = "INVALID_SELLER_IDENTIFIER"

    def __init__(self, gstin: str | None, reason: str):
        self.gstin = gstin
        self.reason = reason
        super().__init__(f"Invalid seller GSTIN {gstin!r}: {reason}")


class InvalidBuyerGstinError(TaxIdentifierError):
    """Buyer (client) GSTIN was supplied but is invalid."""

    code: str = "INVALID_BUYER_IDENTIFIER"

    def __init__(self, gstin: str, reason: str):
        self.gstin = gstin
        self.reason = reason
        super().__init__(f"Invalid buyer GSTIN {gstin!r}: {reason}")


# Line item exceptions


class LineItemError(GstKernelError):
    """Base exception for invoice line item errors."""

    code: str = "LINE_ITEM_ERROR"


class InvalidLineItemError(LineItemError):
    """Line item fails validation before any tax is computed."""

    code: str = "INVALID_LINE_ITEM"

    def __init__(self, reason: str, description: str | None = None):
        self.reason = reason
        self.description = description
        if description is None:
            super().__init__(f"Invalid line item: {reason}")
        else:
            super().__init__(f"Invalid line item {description!r}: {reason}")


class UnsupportedTaxRateError(LineItemError):
    """Tax rate is not one of the permitted GST slabs."""

    code: str = "UNSUPPORTED_TAX_RATE"

    def __init__(self, tax_rate_percent: str, permitted: list[str], description: str | None = None):
        self.tax_rate_percent = tax_rate_percent
        self.permitted = permitted
        self.description = description
        super().__init__(
            f"Unsupported GST rate {tax_rate_percent}% "
            f"(permitted: {', '.join(permitted)})"
        )


# Invoice-level adjustment exceptions


class InvalidAdjustmentError(GstKernelError):
    """Invoice-level discount, TCS or TDS fails validation."""

    code: str = "INVALID_ADJUSTMENT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid invoice adjustment {field}: {reason}")


# Reconciliation exceptions


class ReconciliationError(GstKernelError):
    """Base exception for three-way matching errors."""

    code: str = "RECONCILIATION_ERROR"


class MissingDocumentError(ReconciliationError):
    """
    One of the three documents is absent.

    Three-way matching is undefined with fewer than three documents.
    """

    code: str = "MISSING_DOCUMENT"

    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(f"Three-way match is missing the {document_type}")


class DiscrepancyNotFoundError(ReconciliationError):
    """Attempted to resolve a discrepancy that is not on the match result."""

    code: str = "DISCREPANCY_NOT_FOUND"

    def __init__(self, index: int, discrepancy_count: int):
        self.index = index
        self.discrepancy_count = discrepancy_count
        super().__init__(
            f"Discrepancy {index} not found ({discrepancy_count} recorded)"
        )


# Currency exceptions


class CurrencyError(GstKernelError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not registered."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class CurrencyMismatchError(CurrencyError):
    """Attempted operation on mismatched currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str):
        self.currency1 = currency1
        self.currency2 = currency2
        super().__init__(f"Currency mismatch: {currency1} vs {currency2}")
