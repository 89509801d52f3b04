"""
Module: gst_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    higher layers (gst_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import gst_kernel (and sibling engine modules).
    MUST NOT import gst_config or gst_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Timestamps are passed in as explicit parameters.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - Typed ``GstKernelError`` subclasses propagated from individual
      engines on invalid input.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``gst_engines.tracer``), emitting GST_ENGINE_TRACE log records
    that include engine name, version, input fingerprint, and duration.

Usage:
    from gst_engines.gst import GstCalculator, GstLineItem
    from gst_engines.matching import ThreeWayMatcher, MatchTolerance
    from gst_engines.gstin import parse_gstin
"""

from gst_kernel.logging_config import get_logger

logger = get_logger("engines")

from gst_engines.classification import (
    UNREGISTERED_STATE,
    TaxSplit,
    TransactionContext,
    TransactionKind,
    classify_transaction,
)
from gst_engines.gst import (
    DEFAULT_CURRENCY,
    DEFAULT_PERMITTED_RATES,
    ComputedLineItem,
    DiscountType,
    GstBreakdown,
    GstCalculator,
    GstLineItem,
    GstTotals,
    ReverseChargeResult,
    calculate_gst,
    calculate_reverse_charge,
)
from gst_engines.gst_validation import (
    GstValidationResult,
    StoredGstLine,
    validate_stored_gst,
)
from gst_engines.gstin import (
    GSTIN,
    GSTIN_PATTERN,
    STATE_CODES,
    is_valid_gstin,
    parse_gstin,
    resolve_state,
)
from gst_engines.invoice_totals import (
    DocumentAdjustments,
    InvoiceTotals,
    compute_invoice_totals,
)
from gst_engines.item_keys import ItemIndex, normalize_description
from gst_engines.matching import (
    Discrepancy,
    DiscrepancySeverity,
    DiscrepancyType,
    InvoiceLine,
    InvoiceView,
    MatchResult,
    MatchStatus,
    MatchSummary,
    MatchTolerance,
    PurchaseOrderLine,
    PurchaseOrderView,
    ReceiptLine,
    ReceiptView,
    ThreeWayMatcher,
    match_three_way,
    resolve_discrepancy,
)
from gst_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Classification
    "UNREGISTERED_STATE",
    "TaxSplit",
    "TransactionContext",
    "TransactionKind",
    "classify_transaction",
    # GST
    "DEFAULT_CURRENCY",
    "DEFAULT_PERMITTED_RATES",
    "ComputedLineItem",
    "DiscountType",
    "GstBreakdown",
    "GstCalculator",
    "GstLineItem",
    "GstTotals",
    "ReverseChargeResult",
    "calculate_gst",
    "calculate_reverse_charge",
    # Stored GST validation
    "GstValidationResult",
    "StoredGstLine",
    "validate_stored_gst",
    # Invoice totals
    "DocumentAdjustments",
    "InvoiceTotals",
    "compute_invoice_totals",
    # GSTIN
    "GSTIN",
    "GSTIN_PATTERN",
    "STATE_CODES",
    "is_valid_gstin",
    "parse_gstin",
    "resolve_state",
    # Item keys
    "ItemIndex",
    "normalize_description",
    # Matching
    "Discrepancy",
    "DiscrepancySeverity",
    "DiscrepancyType",
    "InvoiceLine",
    "InvoiceView",
    "MatchResult",
    "MatchStatus",
    "MatchSummary",
    "MatchTolerance",
    "PurchaseOrderLine",
    "PurchaseOrderView",
    "ReceiptLine",
    "ReceiptView",
    "ThreeWayMatcher",
    "match_three_way",
    "resolve_discrepancy",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]
