"""
gst_engines.matching -- Three-way matching of PO, goods receipt and invoice.

Responsibility:
    Reconcile a purchase order, the goods-receipt note (GRN) recorded
    against it, and the vendor invoice.  Compares document references,
    counter-party, every PO line (quantity accepted vs invoiced, agreed
    rate vs invoiced rate, expected vs invoiced amount) and the document
    totals, and returns a status plus a typed discrepancy list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Line joining is delegated to ``gst_engines.item_keys.ItemIndex``.

Invariants enforced:
    - Replay safety: identical inputs produce identical outputs; no clock
      access, no randomness, no internal state between calls.
    - Decimal-only tolerance arithmetic; no float intermediates.
    - Inputs are immutable snapshots; the matcher never re-reads or
      mutates documents.

Failure modes:
    - MissingDocumentError if any of the three documents is None.
    - CurrencyMismatchError if the documents mix currencies.
    - Business disagreements are NEVER raised; they are Discrepancy
      records in the MatchResult.

Usage:
    from gst_engines.matching import ThreeWayMatcher, MatchTolerance

    matcher = ThreeWayMatcher(tolerance=MatchTolerance())
    result = matcher.match(po=po_view, receipt=grn_view, invoice=invoice_view)
    if result.overall_status is MatchStatus.MATCHED:
        ...
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from gst_engines.item_keys import ItemIndex, KeyFunction, normalize_description
from gst_engines.tracer import traced_engine
from gst_kernel.domain.values import Money
from gst_kernel.exceptions import (
    CurrencyMismatchError,
    DiscrepancyNotFoundError,
    MissingDocumentError,
)
from gst_kernel.logging_config import get_logger

logger = get_logger("engines.matching")

_HUNDRED = Decimal("100")


class DiscrepancyType(str, Enum):
    """Kind of disagreement between the three documents."""

    ITEM_MISMATCH = "ITEM_MISMATCH"  # Missing line, wrong reference or party
    QUANTITY_MISMATCH = "QUANTITY_MISMATCH"
    RATE_MISMATCH = "RATE_MISMATCH"  # Line rate or document total


class DiscrepancySeverity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MatchStatus(str, Enum):
    """Overall outcome, persisted by the caller onto the GRN."""

    MATCHED = "MATCHED"
    PARTIALLY_MATCHED = "PARTIALLY_MATCHED"
    MISMATCHED = "MISMATCHED"


def _as_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {name}: {value!r}") from e


@dataclass(frozen=True)
class MatchTolerance:
    """
    Tolerance and severity policy for three-way matching.

    Immutable configuration.  Percentages are expressed as percent
    (``Decimal("0.1")`` is 0.1%), quantities in document units.
    """

    quantity_tolerance: Decimal = Decimal("0.01")
    rate_tolerance_percent: Decimal = Decimal("0.1")
    amount_tolerance_percent: Decimal = Decimal("1")
    total_tolerance_percent: Decimal = Decimal("5")

    # Above these, a mismatch is HIGH severity instead of MEDIUM
    quantity_high_severity_percent: Decimal = Decimal("10")
    rate_high_severity_percent: Decimal = Decimal("5")
    total_high_severity_percent: Decimal = Decimal("10")

    # Minimum share of PO lines matched for PARTIALLY_MATCHED
    partial_match_percent: Decimal = Decimal("50")

    def __post_init__(self) -> None:
        for name in (
            "quantity_tolerance",
            "rate_tolerance_percent",
            "amount_tolerance_percent",
            "total_tolerance_percent",
            "quantity_high_severity_percent",
            "rate_high_severity_percent",
            "total_high_severity_percent",
            "partial_match_percent",
        ):
            value = _as_decimal(getattr(self, name), name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative")
            object.__setattr__(self, name, value)
        if self.partial_match_percent > _HUNDRED:
            raise ValueError("partial_match_percent cannot exceed 100%")


# ---------------------------------------------------------------------------
# Document snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PurchaseOrderLine:
    """An ordered line. ``line_ref`` identifies it across GRN and invoice."""

    description: str
    quantity: Decimal
    rate: Money
    line_ref: str | None = None
    classification_code: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", _as_decimal(self.quantity, "quantity"))

    @property
    def normalized_key(self) -> str:
        return normalize_description(self.description)

    @property
    def amount(self) -> Money:
        return self.rate * self.quantity


@dataclass(frozen=True)
class PurchaseOrderView:
    po_number: str
    vendor_id: str
    lines: tuple[PurchaseOrderLine, ...]
    total_value: Money

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class ReceiptLine:
    """A GRN line. Matching uses the accepted quantity."""

    description: str
    accepted_quantity: Decimal
    rate: Money
    amount: Money
    po_line_ref: str | None = None
    received_quantity: Decimal | None = None
    rejected_quantity: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "accepted_quantity", _as_decimal(self.accepted_quantity, "accepted_quantity")
        )
        object.__setattr__(
            self, "rejected_quantity", _as_decimal(self.rejected_quantity, "rejected_quantity")
        )
        if self.received_quantity is not None:
            object.__setattr__(
                self, "received_quantity", _as_decimal(self.received_quantity, "received_quantity")
            )

    @property
    def normalized_key(self) -> str:
        return normalize_description(self.description)


@dataclass(frozen=True)
class ReceiptView:
    grn_number: str
    po_number: str
    lines: tuple[ReceiptLine, ...]
    total_amount: Money

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class InvoiceLine:
    description: str
    quantity: Decimal
    rate: Money
    amount: Money
    po_line_ref: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", _as_decimal(self.quantity, "quantity"))

    @property
    def normalized_key(self) -> str:
        return normalize_description(self.description)


@dataclass(frozen=True)
class InvoiceView:
    """
    Invoice snapshot.

    ``client_id`` is the invoice's counter-party, which must be the PO's
    vendor.  ``po_number`` is optional; when present it must match the PO.
    """

    invoice_number: str
    client_id: str
    lines: tuple[InvoiceLine, ...]
    total_amount: Money
    po_number: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Discrepancy:
    """
    One recorded disagreement.

    Resolution fields are empty when produced by ``match`` and filled in by
    ``resolve_discrepancy``.
    """

    type: DiscrepancyType
    description: str
    severity: DiscrepancySeverity
    resolution: str | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass(frozen=True)
class MatchSummary:
    po_number: str
    grn_number: str
    invoice_number: str
    po_amount: Money
    grn_amount: Money
    invoice_amount: Money
    discrepancy_count: int


@dataclass(frozen=True)
class MatchResult:
    """
    Result of one reconciliation run.

    Discrepancies are produced fresh on every run; they are not a history.
    """

    overall_status: MatchStatus
    matched_items: int
    total_items: int
    discrepancies: tuple[Discrepancy, ...]
    summary: MatchSummary

    @property
    def has_discrepancies(self) -> bool:
        """True while any discrepancy is unresolved."""
        return any(not d.is_resolved for d in self.discrepancies)

    @property
    def match_percentage(self) -> Decimal:
        if self.total_items == 0:
            return Decimal("0")
        pct = Decimal(self.matched_items) / Decimal(self.total_items) * _HUNDRED
        return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def by_severity(self, severity: DiscrepancySeverity) -> tuple[Discrepancy, ...]:
        return tuple(d for d in self.discrepancies if d.severity is severity)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _percent_difference(expected: Decimal, actual: Decimal) -> Decimal:
    """|expected - actual| as a percentage of expected; 0 when expected <= 0."""
    if expected <= 0:
        return Decimal("0")
    return abs(expected - actual) / expected * _HUNDRED


class ThreeWayMatcher:
    """
    PO / GRN / invoice reconciliation engine.

    Contract:
        Pure functions -- no I/O, no database access.
        Tolerances passed at construction.
    Guarantees:
        - Discrepancies appear in a fixed order: structural checks, then
          PO lines in PO order, then invoice-only lines in invoice order,
          then the document total.
        - A PO line counts as matched only if its quantity, rate and
          amount checks are all within tolerance.
    Non-goals:
        - Does not persist results or link documents; the caller updates
          the GRN and PO records.
        - Does not decide who may accept a mismatched invoice.
    """

    def __init__(
        self,
        tolerance: MatchTolerance | None = None,
        key_func: KeyFunction = normalize_description,
    ) -> None:
        self._tolerance = tolerance or MatchTolerance()
        self._key_func = key_func

    @property
    def tolerance(self) -> MatchTolerance:
        return self._tolerance

    @traced_engine("three_way_match", "1.0", fingerprint_fields=("po", "receipt", "invoice"))
    def match(
        self,
        po: PurchaseOrderView | None,
        receipt: ReceiptView | None,
        invoice: InvoiceView | None,
    ) -> MatchResult:
        """
        Reconcile the three documents.

        Args:
            po: Purchase order snapshot
            receipt: GRN snapshot recorded against the PO
            invoice: Invoice snapshot

        Returns:
            MatchResult with status, matched count and discrepancies

        Raises:
            MissingDocumentError: If any document is None
            CurrencyMismatchError: If the documents mix currencies
        """
        t0 = time.monotonic()

        for document_type, document in (
            ("purchase order", po),
            ("goods receipt", receipt),
            ("invoice", invoice),
        ):
            if document is None:
                logger.error("match_missing_document", extra={
                    "document_type": document_type,
                })
                raise MissingDocumentError(document_type)

        logger.info("three_way_match_started", extra={
            "po_number": po.po_number,
            "grn_number": receipt.grn_number,
            "invoice_number": invoice.invoice_number,
            "po_line_count": len(po.lines),
            "grn_line_count": len(receipt.lines),
            "invoice_line_count": len(invoice.lines),
        })

        self._check_currency(po, receipt, invoice)

        discrepancies: list[Discrepancy] = []
        discrepancies.extend(self._structural_checks(po, receipt, invoice))

        po_refs = tuple(line.line_ref for line in po.lines)
        grn_index = ItemIndex(
            receipt.lines, lambda line: line.po_line_ref, self._key_func, claimed_references=po_refs,
        )
        invoice_index = ItemIndex(
            invoice.lines, lambda line: line.po_line_ref, self._key_func, claimed_references=po_refs,
        )

        matched_items = 0
        for po_line in po.lines:
            if self._check_po_line(po_line, grn_index, invoice_index, discrepancies):
                matched_items += 1

        discrepancies.extend(self._invoice_only_lines(po, invoice))

        total_discrepancy = self._check_totals(po, invoice)
        if total_discrepancy is not None:
            discrepancies.append(total_discrepancy)

        total_items = len(po.lines)
        status = self._decide_status(matched_items, total_items, discrepancies)

        result = MatchResult(
            overall_status=status,
            matched_items=matched_items,
            total_items=total_items,
            discrepancies=tuple(discrepancies),
            summary=MatchSummary(
                po_number=po.po_number,
                grn_number=receipt.grn_number,
                invoice_number=invoice.invoice_number,
                po_amount=po.total_value,
                grn_amount=receipt.total_amount,
                invoice_amount=invoice.total_amount,
                discrepancy_count=len(discrepancies),
            ),
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("three_way_match_completed", extra={
            "po_number": po.po_number,
            "status": status.value,
            "matched_items": matched_items,
            "total_items": total_items,
            "discrepancy_count": len(discrepancies),
            "high_severity_count": len(result.by_severity(DiscrepancySeverity.HIGH)),
            "duration_ms": duration_ms,
        })

        return result

    def _check_currency(
        self,
        po: PurchaseOrderView,
        receipt: ReceiptView,
        invoice: InvoiceView,
    ) -> None:
        expected = po.total_value.currency
        amounts: list[Money] = [receipt.total_amount, invoice.total_amount]
        amounts.extend(line.rate for line in po.lines)
        for line in receipt.lines:
            amounts.extend((line.rate, line.amount))
        for line in invoice.lines:
            amounts.extend((line.rate, line.amount))
        for amount in amounts:
            if amount.currency != expected:
                logger.error("match_currency_mismatch", extra={
                    "expected": expected.code,
                    "found": amount.currency.code,
                })
                raise CurrencyMismatchError(expected.code, amount.currency.code)

    def _structural_checks(
        self,
        po: PurchaseOrderView,
        receipt: ReceiptView,
        invoice: InvoiceView,
    ) -> list[Discrepancy]:
        found: list[Discrepancy] = []

        if po.po_number != receipt.po_number:
            found.append(Discrepancy(
                type=DiscrepancyType.ITEM_MISMATCH,
                description=f"PO number mismatch: PO ({po.po_number}) vs GRN ({receipt.po_number})",
                severity=DiscrepancySeverity.HIGH,
            ))

        if invoice.po_number and invoice.po_number != po.po_number:
            found.append(Discrepancy(
                type=DiscrepancyType.ITEM_MISMATCH,
                description=f"PO number mismatch: PO ({po.po_number}) vs Invoice ({invoice.po_number})",
                severity=DiscrepancySeverity.HIGH,
            ))

        if str(po.vendor_id) != str(invoice.client_id):
            found.append(Discrepancy(
                type=DiscrepancyType.ITEM_MISMATCH,
                description="Vendor mismatch between PO and Invoice",
                severity=DiscrepancySeverity.HIGH,
            ))

        return found

    def _check_po_line(
        self,
        po_line: PurchaseOrderLine,
        grn_index: ItemIndex[ReceiptLine],
        invoice_index: ItemIndex[InvoiceLine],
        discrepancies: list[Discrepancy],
    ) -> bool:
        """Compare one PO line; append its discrepancies. True if fully matched."""
        tol = self._tolerance
        grn_line = grn_index.find(po_line.line_ref, po_line.description)
        invoice_line = invoice_index.find(po_line.line_ref, po_line.description)

        if grn_line is None:
            discrepancies.append(Discrepancy(
                type=DiscrepancyType.ITEM_MISMATCH,
                description=f'Item "{po_line.description}" in PO but not in GRN',
                severity=DiscrepancySeverity.HIGH,
            ))
            return False

        if invoice_line is None:
            discrepancies.append(Discrepancy(
                type=DiscrepancyType.ITEM_MISMATCH,
                description=f'Item "{po_line.description}" in PO but not in Invoice',
                severity=DiscrepancySeverity.MEDIUM,
            ))
            return False

        grn_qty = grn_line.accepted_quantity
        invoice_qty = invoice_line.quantity
        qty_diff = abs(grn_qty - invoice_qty)
        qty_ok = qty_diff <= tol.quantity_tolerance
        if not qty_ok:
            high = qty_diff > grn_qty * tol.quantity_high_severity_percent / _HUNDRED
            discrepancies.append(Discrepancy(
                type=DiscrepancyType.QUANTITY_MISMATCH,
                description=(
                    f'Quantity mismatch for "{po_line.description}": '
                    f"GRN accepted {grn_qty}, Invoice {invoice_qty}"
                ),
                severity=DiscrepancySeverity.HIGH if high else DiscrepancySeverity.MEDIUM,
            ))

        po_rate = po_line.rate.amount
        invoice_rate = invoice_line.rate.amount
        rate_diff_pct = _percent_difference(po_rate, invoice_rate)
        rate_ok = rate_diff_pct <= tol.rate_tolerance_percent
        if not rate_ok:
            high = rate_diff_pct > tol.rate_high_severity_percent
            discrepancies.append(Discrepancy(
                type=DiscrepancyType.RATE_MISMATCH,
                description=(
                    f'Rate mismatch for "{po_line.description}": '
                    f"PO rate {po_line.rate.round()}, Invoice rate {invoice_line.rate.round()}"
                ),
                severity=DiscrepancySeverity.HIGH if high else DiscrepancySeverity.MEDIUM,
            ))

        # Informational: feeds the matched count only
        expected_amount = grn_qty * po_rate
        amount_diff_pct = _percent_difference(expected_amount, invoice_line.amount.amount)
        amount_ok = amount_diff_pct <= tol.amount_tolerance_percent

        logger.debug("match_line_compared", extra={
            "description": po_line.description,
            "line_ref": po_line.line_ref,
            "grn_quantity": str(grn_qty),
            "invoice_quantity": str(invoice_qty),
            "rate_diff_percent": str(rate_diff_pct),
            "amount_diff_percent": str(amount_diff_pct),
            "quantity_ok": qty_ok,
            "rate_ok": rate_ok,
            "amount_ok": amount_ok,
        })

        return qty_ok and rate_ok and amount_ok

    def _invoice_only_lines(
        self,
        po: PurchaseOrderView,
        invoice: InvoiceView,
    ) -> list[Discrepancy]:
        po_index = ItemIndex(
            po.lines,
            lambda line: line.line_ref,
            self._key_func,
            claimed_references=tuple(line.po_line_ref for line in invoice.lines),
        )
        found: list[Discrepancy] = []
        for line in invoice.lines:
            if po_index.find(line.po_line_ref, line.description) is None:
                found.append(Discrepancy(
                    type=DiscrepancyType.ITEM_MISMATCH,
                    description=f'Item "{line.description}" in Invoice but not in PO',
                    severity=DiscrepancySeverity.MEDIUM,
                ))
        return found

    def _check_totals(
        self,
        po: PurchaseOrderView,
        invoice: InvoiceView,
    ) -> Discrepancy | None:
        tol = self._tolerance
        po_total = po.total_value.amount
        invoice_total = invoice.total_amount.amount
        diff_pct = _percent_difference(po_total, invoice_total)

        if diff_pct <= tol.total_tolerance_percent:
            return None

        high = diff_pct > tol.total_high_severity_percent
        return Discrepancy(
            type=DiscrepancyType.RATE_MISMATCH,
            description=(
                f"Total amount mismatch: PO {po.total_value.round()}, "
                f"Invoice {invoice.total_amount.round()} "
                f"({diff_pct.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}% difference)"
            ),
            severity=DiscrepancySeverity.HIGH if high else DiscrepancySeverity.MEDIUM,
        )

    def _decide_status(
        self,
        matched_items: int,
        total_items: int,
        discrepancies: Sequence[Discrepancy],
    ) -> MatchStatus:
        if not discrepancies and matched_items == total_items:
            return MatchStatus.MATCHED
        threshold = Decimal(total_items) * self._tolerance.partial_match_percent / _HUNDRED
        if matched_items > 0 and Decimal(matched_items) >= threshold:
            return MatchStatus.PARTIALLY_MATCHED
        return MatchStatus.MISMATCHED


def resolve_discrepancy(
    result: MatchResult,
    index: int,
    resolution: str,
    resolved_by: str,
    resolved_at: datetime,
) -> MatchResult:
    """
    Mark one discrepancy resolved and return the updated result.

    Once every discrepancy is resolved the overall status becomes MATCHED.

    Args:
        result: Result to update (unchanged)
        index: Position of the discrepancy in ``result.discrepancies``
        resolution: Free-text resolution note
        resolved_by: Identifier of the resolving user
        resolved_at: Resolution time (engines must not read the clock)

    Raises:
        DiscrepancyNotFoundError: If index is out of range
    """
    count = len(result.discrepancies)
    if index < 0 or index >= count:
        raise DiscrepancyNotFoundError(index, count)

    updated = list(result.discrepancies)
    updated[index] = replace(
        updated[index],
        resolution=resolution,
        resolved_by=resolved_by,
        resolved_at=resolved_at,
    )

    status = result.overall_status
    if all(d.is_resolved for d in updated):
        status = MatchStatus.MATCHED

    logger.info("discrepancy_resolved", extra={
        "po_number": result.summary.po_number,
        "grn_number": result.summary.grn_number,
        "index": index,
        "resolved_by": resolved_by,
        "status": status.value,
    })

    return replace(result, discrepancies=tuple(updated), overall_status=status)


def match_three_way(
    po: PurchaseOrderView | None,
    receipt: ReceiptView | None,
    invoice: InvoiceView | None,
    tolerance: MatchTolerance | None = None,
) -> MatchResult:
    """
    Convenience function for three-way matching.

    Args:
        po: Purchase order snapshot
        receipt: Goods receipt snapshot
        invoice: Invoice snapshot
        tolerance: Match tolerance rules

    Returns:
        MatchResult
    """
    matcher = ThreeWayMatcher(tolerance=tolerance)
    return matcher.match(po=po, receipt=receipt, invoice=invoice)
