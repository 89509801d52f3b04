"""
InvoiceTaxService -- Tax computation and three-way reconciliation for invoices.

Composes GstCalculator and ThreeWayMatcher (pure engines) with clock
injection and configuration.

Architecture: gst_services -- imperative shell.
    The service receives already-loaded document snapshots.  Loading the
    purchase order and the latest GRN, and persisting the returned
    ReceiptMatchUpdate atomically, are the caller's responsibility.

Failure modes:
    - Tax errors (invalid GSTIN, invalid line item, unsupported rate)
      propagate: an invoice cannot be issued without valid tax figures.
    - A missing PO or GRN is not an error for invoice creation: matching
      is skipped, logged, and ``reconcile`` returns None.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from gst_config.bridges import build_gst_calculator, build_match_tolerance
from gst_config.schema import GstEngineConfig
from gst_engines.gst import GstBreakdown, GstCalculator, GstLineItem
from gst_engines.invoice_totals import DocumentAdjustments, InvoiceTotals, compute_invoice_totals
from gst_engines.matching import (
    Discrepancy,
    InvoiceLine,
    InvoiceView,
    MatchResult,
    MatchStatus,
    PurchaseOrderView,
    ReceiptView,
    ThreeWayMatcher,
    resolve_discrepancy,
)
from gst_kernel.domain.clock import Clock, SystemClock
from gst_kernel.exceptions import MissingDocumentError
from gst_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.invoice_tax")


@dataclass(frozen=True)
class InvoiceDraft:
    """
    Invoice as submitted for creation, before taxes are computed.

    ``po_line_refs`` is parallel to ``items``: the PO line reference each
    item was raised against, or None.  Missing trailing entries count as
    None.  ``adjustments`` carries the invoice-level discount, TCS and
    TDS.
    """

    invoice_number: str
    client_id: str
    seller_gstin: str
    items: tuple[GstLineItem, ...]
    buyer_gstin: str | None = None
    po_number: str | None = None
    po_line_refs: tuple[str | None, ...] = ()
    adjustments: DocumentAdjustments | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "po_line_refs", tuple(self.po_line_refs))
        if len(self.po_line_refs) > len(self.items):
            raise ValueError("po_line_refs cannot outnumber items")

    def po_line_ref(self, index: int) -> str | None:
        if index < len(self.po_line_refs):
            return self.po_line_refs[index]
        return None


@dataclass(frozen=True)
class ReceiptMatchUpdate:
    """Fields the caller writes onto the GRN (and the PO link) after matching."""

    grn_number: str
    po_number: str
    linked_invoice_number: str
    status: MatchStatus
    has_discrepancies: bool
    discrepancies: tuple[Discrepancy, ...]
    matched_at: datetime
    result: MatchResult


@dataclass(frozen=True)
class InvoicePreparation:
    """Output of ``prepare_invoice``."""

    breakdown: GstBreakdown
    totals: InvoiceTotals
    invoice: InvoiceView
    receipt_update: ReceiptMatchUpdate | None = None


class InvoiceTaxService:
    """Service that computes invoice GST and reconciles against PO and GRN.

    Contract:
        - ``compute_invoice_taxes()`` classifies and computes GST.
        - ``compute_invoice_totals()`` applies invoice-level adjustments.
        - ``reconcile()`` runs the three-way match for one invoice.
        - ``prepare_invoice()`` composes both for invoice creation.

    Non-goals:
        - Does NOT load or persist documents (caller provides snapshots
          and applies the returned update).
        - Does NOT assign invoice numbers.
    """

    def __init__(
        self,
        calculator: GstCalculator | None = None,
        matcher: ThreeWayMatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._calculator = calculator or GstCalculator()
        self._matcher = matcher or ThreeWayMatcher()
        self._clock = clock or SystemClock()

    @classmethod
    def from_config(
        cls,
        config: GstEngineConfig,
        clock: Clock | None = None,
    ) -> InvoiceTaxService:
        """Build the service with rates and tolerances from configuration."""
        return cls(
            calculator=build_gst_calculator(config),
            matcher=ThreeWayMatcher(tolerance=build_match_tolerance(config)),
            clock=clock,
        )

    def compute_invoice_taxes(
        self,
        items: Sequence[GstLineItem],
        seller_gstin: str,
        buyer_gstin: str | None = None,
    ) -> GstBreakdown:
        """Classify the supply and compute GST. All errors propagate."""
        return self._calculator.calculate_breakdown(
            items=items,
            seller_gstin=seller_gstin,
            buyer_gstin=buyer_gstin,
        )

    def compute_invoice_totals(
        self,
        breakdown: GstBreakdown,
        adjustments: DocumentAdjustments | None = None,
    ) -> InvoiceTotals:
        """Discount, TCS, TDS and round-off on top of the GST breakdown."""
        return compute_invoice_totals(breakdown, adjustments)

    def build_invoice_view(
        self,
        draft: InvoiceDraft,
        breakdown: GstBreakdown,
        totals: InvoiceTotals | None = None,
    ) -> InvoiceView:
        """
        Invoice snapshot for matching; line amounts are pre-tax.

        The total is the grand total payable when ``totals`` is given,
        else the breakdown total before invoice-level adjustments.
        """
        total = totals.grand_total if totals is not None else breakdown.totals.total_amount
        lines = tuple(
            InvoiceLine(
                description=computed.description,
                quantity=computed.item.quantity,
                rate=computed.item.unit_rate,
                amount=computed.taxable_amount.round(),
                po_line_ref=draft.po_line_ref(index),
            )
            for index, computed in enumerate(breakdown.items)
        )
        return InvoiceView(
            invoice_number=draft.invoice_number,
            client_id=draft.client_id,
            lines=lines,
            total_amount=total,
            po_number=draft.po_number,
        )

    def reconcile(
        self,
        po: PurchaseOrderView | None,
        receipt: ReceiptView | None,
        invoice: InvoiceView,
    ) -> ReceiptMatchUpdate | None:
        """
        Three-way match one invoice.

        Returns:
            ReceiptMatchUpdate for the caller to persist, or None when the
            PO or GRN is missing.

        Raises:
            CurrencyMismatchError: If the documents mix currencies.
        """
        try:
            result = self._matcher.match(po=po, receipt=receipt, invoice=invoice)
        except MissingDocumentError as exc:
            logger.warning("three_way_match_skipped", extra={
                "invoice_number": invoice.invoice_number,
                "po_number": invoice.po_number,
                "missing_document": exc.document_type,
            })
            return None

        update = ReceiptMatchUpdate(
            grn_number=result.summary.grn_number,
            po_number=result.summary.po_number,
            linked_invoice_number=invoice.invoice_number,
            status=result.overall_status,
            has_discrepancies=result.has_discrepancies,
            discrepancies=result.discrepancies,
            matched_at=self._clock.now(),
            result=result,
        )

        logger.info("receipt_match_update_prepared", extra={
            "grn_number": update.grn_number,
            "invoice_number": update.linked_invoice_number,
            "status": update.status.value,
            "discrepancy_count": len(update.discrepancies),
        })
        return update

    def resolve(
        self,
        result: MatchResult,
        index: int,
        resolution: str,
        resolved_by: str,
    ) -> MatchResult:
        """Resolve one discrepancy, stamped with the service clock."""
        return resolve_discrepancy(
            result,
            index=index,
            resolution=resolution,
            resolved_by=resolved_by,
            resolved_at=self._clock.now(),
        )

    def prepare_invoice(
        self,
        draft: InvoiceDraft,
        po: PurchaseOrderView | None = None,
        receipt: ReceiptView | None = None,
    ) -> InvoicePreparation:
        """
        Compute taxes and, when the draft references a PO, reconcile.

        Args:
            draft: Invoice to create
            po: Purchase order named by ``draft.po_number``, if found
            receipt: Latest GRN recorded against that PO, if found

        Returns:
            InvoicePreparation with the breakdown, the footer totals, the
            invoice snapshot and the GRN update (None when no match was run)
        """
        with LogContext.bind(
            document_number=draft.invoice_number,
            seller_gstin=draft.seller_gstin,
        ):
            breakdown = self.compute_invoice_taxes(
                draft.items, draft.seller_gstin, draft.buyer_gstin,
            )
            totals = self.compute_invoice_totals(breakdown, draft.adjustments)
            invoice = self.build_invoice_view(draft, breakdown, totals)

            receipt_update = None
            if draft.po_number:
                receipt_update = self.reconcile(po, receipt, invoice)

            logger.info("invoice_prepared", extra={
                "invoice_number": draft.invoice_number,
                "transaction_kind": breakdown.context.kind.value,
                "grand_total": str(totals.grand_total.amount),
                "matched": receipt_update is not None,
            })

        return InvoicePreparation(
            breakdown=breakdown,
            totals=totals,
            invoice=invoice,
            receipt_update=receipt_update,
        )
