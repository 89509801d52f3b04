"""
gst_engines.gst_validation -- Consistency checks for stored invoice GST.

Responsibility:
    Verify that GST figures already persisted on an invoice are internally
    consistent: line-level CGST/SGST/IGST sum to the header totals, the
    split matches the inter-state flag, and every line carries an HSN/SAC
    code.  Used when an invoice is re-opened or imported rather than
    freshly computed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Failure modes:
    - None.  Inconsistencies are reported as errors and warnings in the
      returned GstValidationResult, never raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from gst_kernel.domain.values import Money
from gst_kernel.logging_config import get_logger

logger = get_logger("engines.gst_validation")


@dataclass(frozen=True)
class StoredGstLine:
    """GST fields of one persisted invoice line."""

    description: str
    classification_code: str | None
    cgst: Money
    sgst: Money
    igst: Money

    @property
    def tax_total(self) -> Money:
        return self.cgst + self.sgst + self.igst


@dataclass(frozen=True)
class GstValidationResult:
    """Outcome of validate_stored_gst."""

    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    items_gst_sum: Money
    invoice_gst_sum: Money

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_stored_gst(
    lines: Sequence[StoredGstLine],
    cgst: Money,
    sgst: Money,
    igst: Money,
    is_interstate: bool,
) -> GstValidationResult:
    """
    Check stored line and header GST for consistency.

    Args:
        lines: Persisted line-level GST
        cgst: Header CGST total
        sgst: Header SGST total
        igst: Header IGST total
        is_interstate: Stored inter-state flag

    Returns:
        GstValidationResult; ``valid`` is False when any error is found.
    """
    currency = cgst.currency
    tolerance = currency.rounding_tolerance
    errors: list[str] = []
    warnings: list[str] = []

    items_sum = Money.total((line.tax_total for line in lines), currency)
    header_sum = cgst + sgst + igst

    if abs((items_sum - header_sum).amount) > tolerance:
        errors.append(
            f"GST mismatch: Items sum ({items_sum.round()}) != "
            f"Invoice total ({header_sum.round()})"
        )

    if is_interstate:
        if cgst.is_positive or sgst.is_positive:
            errors.append("Interstate transaction should not have CGST/SGST")
    else:
        if igst.is_positive:
            errors.append("Intra-state transaction should not have IGST")
        if abs((cgst - sgst).amount) > tolerance:
            warnings.append("CGST and SGST should be equal in intra-state transactions")

    for index, line in enumerate(lines, start=1):
        if not line.classification_code:
            warnings.append(
                f"Item {index} ({line.description}) is missing HSN/SAC code"
            )

    result = GstValidationResult(
        errors=tuple(errors),
        warnings=tuple(warnings),
        items_gst_sum=items_sum.round(),
        invoice_gst_sum=header_sum.round(),
    )

    logger.info("stored_gst_validated", extra={
        "valid": result.valid,
        "error_count": len(errors),
        "warning_count": len(warnings),
        "items_gst_sum": str(result.items_gst_sum.amount),
        "invoice_gst_sum": str(result.invoice_gst_sum.amount),
    })
    return result
