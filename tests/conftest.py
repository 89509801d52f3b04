"""
Pytest fixtures for the GST core test suite.

Provides:
- Structured logging configuration and log capture
- Deterministic clock
- Document builders for three-way matching
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from gst_engines.matching import (
    InvoiceLine,
    InvoiceView,
    PurchaseOrderLine,
    PurchaseOrderView,
    ReceiptLine,
    ReceiptView,
)
from gst_kernel.domain.clock import DeterministicClock
from gst_kernel.domain.values import Money
from gst_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture gst_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculator.calculate_breakdown(...)
            logs = captured_logs()
            assert any(r["message"] == "gst_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("gst_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2026, 3, 15, 10, 30, 0, tzinfo=timezone.utc))


# =============================================================================
# Document builders
# =============================================================================


def _inr(amount) -> Money:
    return Money.of(str(amount), "INR")


@pytest.fixture
def make_documents():
    """
    Build a PO, GRN and invoice for a single line of goods.

    Keyword overrides set the per-document quantity and rate; totals are
    derived from them unless given explicitly.
    """

    def _make(
        po_qty="10",
        po_rate="100",
        accepted_qty=None,
        invoice_qty=None,
        invoice_rate=None,
        description="Steel Rods 12mm",
        line_ref="PO-1001/1",
        invoice_total=None,
    ):
        accepted_qty = Decimal(accepted_qty if accepted_qty is not None else po_qty)
        invoice_qty = Decimal(invoice_qty if invoice_qty is not None else po_qty)
        invoice_rate = Decimal(invoice_rate if invoice_rate is not None else po_rate)
        po_rate_d = Decimal(po_rate)
        po_qty_d = Decimal(po_qty)

        po = PurchaseOrderView(
            po_number="PO-1001",
            vendor_id="VEND-7",
            lines=(
                PurchaseOrderLine(
                    description=description,
                    quantity=po_qty_d,
                    rate=_inr(po_rate_d),
                    line_ref=line_ref,
                ),
            ),
            total_value=_inr(po_qty_d * po_rate_d),
        )
        receipt = ReceiptView(
            grn_number="GRN-501",
            po_number="PO-1001",
            lines=(
                ReceiptLine(
                    description=description,
                    accepted_quantity=accepted_qty,
                    rate=_inr(po_rate_d),
                    amount=_inr(accepted_qty * po_rate_d),
                    po_line_ref=line_ref,
                    received_quantity=po_qty_d,
                    rejected_quantity=po_qty_d - accepted_qty,
                ),
            ),
            total_amount=_inr(accepted_qty * po_rate_d),
        )
        invoice_amount = invoice_qty * invoice_rate
        invoice = InvoiceView(
            invoice_number="INV-2026-001",
            client_id="VEND-7",
            lines=(
                InvoiceLine(
                    description=description,
                    quantity=invoice_qty,
                    rate=_inr(invoice_rate),
                    amount=_inr(invoice_amount),
                    po_line_ref=line_ref,
                ),
            ),
            total_amount=_inr(invoice_total if invoice_total is not None else invoice_amount),
            po_number="PO-1001",
        )
        return po, receipt, invoice

    return _make
