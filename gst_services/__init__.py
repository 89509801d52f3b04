"""
gst_services -- Package init and public API.

Responsibility:
    Orchestration services that compose the pure calculation engines
    (gst_engines/) with configuration and wall-clock time.  This is the
    **only** layer that may read the clock or bridge gst_config into
    engine parameters.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction:
        gst_services/ -> gst_engines/  (allowed)
        gst_services/ -> gst_config/   (allowed)
        gst_engines/  -> gst_services/ (FORBIDDEN)
        gst_kernel/   -> gst_services/ (FORBIDDEN)
"""

from gst_kernel.logging_config import get_logger

logger = get_logger("services")

from gst_services.invoice_tax_service import (
    InvoiceDraft,
    InvoicePreparation,
    InvoiceTaxService,
    ReceiptMatchUpdate,
)

__all__ = [
    "InvoiceDraft",
    "InvoicePreparation",
    "InvoiceTaxService",
    "ReceiptMatchUpdate",
]
