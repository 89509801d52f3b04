"""
gst_engines.classification -- Transaction classification for GST.

Responsibility:
    Decide, from the seller GSTIN and the optional buyer GSTIN, whether a
    supply is to an unregistered consumer, a same-state registered
    business, or a registered business in another state, and therefore
    whether tax is split CGST+SGST (dual) or charged as IGST (single).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends only on gst_engines.gstin and gst_kernel.

Invariants enforced:
    - Classification rules are applied in a fixed order: seller first,
      then buyer absence, then buyer validity, then state comparison.
    - The returned TransactionContext is frozen and derived once per
      document.

Failure modes:
    - InvalidSellerGstinError if the seller GSTIN is absent or unparseable.
    - InvalidBuyerGstinError if a buyer GSTIN is supplied but unparseable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gst_engines.gstin import parse_gstin
from gst_kernel.exceptions import (
    InvalidBuyerGstinError,
    InvalidSellerGstinError,
    TaxIdentifierError,
)
from gst_kernel.logging_config import get_logger

logger = get_logger("engines.classification")

UNREGISTERED_STATE = "Unregistered"


class TransactionKind(str, Enum):
    """GST supply classification."""

    UNREGISTERED_CONSUMER = "b2c"  # Buyer has no GSTIN
    SAME_REGION_B2B = "b2b_intrastate"
    CROSS_REGION_B2B = "b2b_interstate"


class TaxSplit(str, Enum):
    """How the tax amount is allocated between authorities."""

    DUAL = "CGST+SGST"  # Two equal halves, central and state
    SINGLE = "IGST"  # One integrated share


@dataclass(frozen=True)
class TransactionContext:
    """Classification of a single document. Immutable once derived."""

    kind: TransactionKind
    is_interstate: bool
    split: TaxSplit
    seller_state: str
    buyer_state: str
    seller_state_code: str
    buyer_state_code: str | None = None

    @property
    def description(self) -> str:
        return {
            TransactionKind.UNREGISTERED_CONSUMER: "Business to Consumer (Unregistered)",
            TransactionKind.SAME_REGION_B2B: "Business to Business (Same State)",
            TransactionKind.CROSS_REGION_B2B: "Business to Business (Different State)",
        }[self.kind]


def classify_transaction(
    seller_gstin: str | None,
    buyer_gstin: str | None = None,
) -> TransactionContext:
    """
    Classify a supply from the two registration numbers.

    Args:
        seller_gstin: The issuing organization's GSTIN. Required.
        buyer_gstin: The client's GSTIN. None or blank for an
            unregistered consumer.

    Returns:
        TransactionContext for the document.

    Raises:
        InvalidSellerGstinError: Seller GSTIN missing or invalid.
        InvalidBuyerGstinError: Buyer GSTIN present but invalid.
    """
    try:
        seller = parse_gstin(seller_gstin)
    except TaxIdentifierError as exc:
        logger.error("seller_gstin_invalid", extra={
            "gstin": seller_gstin,
            "reason": exc.code,
        })
        raise InvalidSellerGstinError(seller_gstin, exc.code) from exc

    if buyer_gstin is None or (isinstance(buyer_gstin, str) and not buyer_gstin.strip()):
        context = TransactionContext(
            kind=TransactionKind.UNREGISTERED_CONSUMER,
            is_interstate=False,
            split=TaxSplit.DUAL,
            seller_state=seller.state_name,
            buyer_state=UNREGISTERED_STATE,
            seller_state_code=seller.state_code,
        )
    else:
        try:
            buyer = parse_gstin(buyer_gstin)
        except TaxIdentifierError as exc:
            logger.error("buyer_gstin_invalid", extra={
                "gstin": buyer_gstin,
                "reason": exc.code,
            })
            raise InvalidBuyerGstinError(buyer_gstin, exc.code) from exc

        if buyer.same_state_as(seller):
            kind, split = TransactionKind.SAME_REGION_B2B, TaxSplit.DUAL
        else:
            kind, split = TransactionKind.CROSS_REGION_B2B, TaxSplit.SINGLE

        context = TransactionContext(
            kind=kind,
            is_interstate=split is TaxSplit.SINGLE,
            split=split,
            seller_state=seller.state_name,
            buyer_state=buyer.state_name,
            seller_state_code=seller.state_code,
            buyer_state_code=buyer.state_code,
        )

    logger.debug("transaction_classified", extra={
        "kind": context.kind.value,
        "split": context.split.value,
        "seller_state": context.seller_state,
        "buyer_state": context.buyer_state,
    })
    return context
