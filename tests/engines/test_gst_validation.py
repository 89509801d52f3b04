"""Tests for consistency checks on stored invoice GST."""

from gst_engines.gst_validation import StoredGstLine, validate_stored_gst
from gst_kernel.domain.values import Money


def inr(amount: str) -> Money:
    return Money.of(amount, "INR")


def line(cgst="0", sgst="0", igst="0", code="7214", description="Steel rods") -> StoredGstLine:
    return StoredGstLine(
        description=description,
        classification_code=code,
        cgst=inr(cgst),
        sgst=inr(sgst),
        igst=inr(igst),
    )


class TestValidateStoredGst:
    """Tests for validate_stored_gst."""

    def test_consistent_intra_state(self):
        result = validate_stored_gst(
            [line(cgst="45", sgst="45"), line(cgst="45", sgst="45")],
            cgst=inr("90"), sgst=inr("90"), igst=inr("0"),
            is_interstate=False,
        )

        assert result.valid
        assert result.errors == ()
        assert result.warnings == ()
        assert result.items_gst_sum == inr("180.00")
        assert result.invoice_gst_sum == inr("180.00")

    def test_consistent_inter_state(self):
        result = validate_stored_gst(
            [line(igst="180")],
            cgst=inr("0"), sgst=inr("0"), igst=inr("180"),
            is_interstate=True,
        )
        assert result.valid

    def test_items_and_header_disagree(self):
        result = validate_stored_gst(
            [line(igst="180")],
            cgst=inr("0"), sgst=inr("0"), igst=inr("181"),
            is_interstate=True,
        )

        assert not result.valid
        assert any("GST mismatch" in e for e in result.errors)

    def test_one_paisa_difference_tolerated(self):
        result = validate_stored_gst(
            [line(igst="180.00")],
            cgst=inr("0"), sgst=inr("0"), igst=inr("180.01"),
            is_interstate=True,
        )
        assert result.valid

    def test_cgst_on_interstate(self):
        result = validate_stored_gst(
            [line(cgst="90", sgst="90")],
            cgst=inr("90"), sgst=inr("90"), igst=inr("0"),
            is_interstate=True,
        )
        assert "Interstate transaction should not have CGST/SGST" in result.errors

    def test_igst_on_intra_state(self):
        result = validate_stored_gst(
            [line(igst="180")],
            cgst=inr("0"), sgst=inr("0"), igst=inr("180"),
            is_interstate=False,
        )
        assert "Intra-state transaction should not have IGST" in result.errors

    def test_unequal_halves_warn(self):
        result = validate_stored_gst(
            [line(cgst="90", sgst="80")],
            cgst=inr("90"), sgst=inr("80"), igst=inr("0"),
            is_interstate=False,
        )

        assert result.valid
        assert result.warnings == ("CGST and SGST should be equal in intra-state transactions",)

    def test_missing_classification_code_warns(self):
        result = validate_stored_gst(
            [line(igst="18", code=None, description="Labour")],
            cgst=inr("0"), sgst=inr("0"), igst=inr("18"),
            is_interstate=True,
        )

        assert result.valid
        assert result.warnings == ("Item 1 (Labour) is missing HSN/SAC code",)
