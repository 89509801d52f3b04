"""Tests for line identity: description keys and the reference-first index."""

from dataclasses import dataclass

import pytest

from gst_engines.item_keys import ItemIndex, normalize_description


@dataclass(frozen=True)
class _Line:
    description: str
    ref: str | None = None


class TestNormalizeDescription:
    """Tests for normalize_description."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Steel Rods", "steel rods"),
            ("  Steel   Rods  ", "steel rods"),
            ("Steel-Rods (12mm)", "steelrods 12mm"),
            ("CEMENT, OPC 53", "cement opc 53"),
            ("tab\tand\nnewline", "tab and newline"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalization(self, raw, expected):
        assert normalize_description(raw) == expected

    def test_idempotent(self):
        once = normalize_description(" Bolts & Nuts, M8 ")
        assert normalize_description(once) == once

    def test_unicode_letters_kept(self):
        assert normalize_description("Café Crème") == "café crème"


class TestItemIndex:
    """Tests for ItemIndex lookup order."""

    def test_reference_first(self):
        lines = [_Line("Steel rods", ref="L1"), _Line("Steel rods", ref="L2")]
        index = ItemIndex(lines, lambda line: line.ref)

        assert index.find("L1", "Steel rods") is lines[0]
        assert index.find("L2", "Steel rods") is lines[1]

    def test_falls_back_to_description_without_reference(self):
        lines = [_Line("Steel Rods")]
        index = ItemIndex(lines, lambda line: line.ref)

        assert index.find(None, "steel rods") is lines[0]

    def test_falls_back_when_reference_unknown(self):
        lines = [_Line("Steel Rods", ref="L1")]
        index = ItemIndex(lines, lambda line: line.ref)

        assert index.find("L9", "STEEL RODS") is lines[0]

    def test_not_found(self):
        index = ItemIndex([_Line("Steel Rods")], lambda line: line.ref)
        assert index.find(None, "Copper wire") is None

    def test_duplicate_description_last_wins(self):
        lines = [_Line("Bolts"), _Line("bolts")]
        index = ItemIndex(lines, lambda line: line.ref)
        assert index.find(None, "Bolts") is lines[1]

    def test_custom_key_function(self):
        lines = [_Line("Rods 12mm")]
        index = ItemIndex(lines, lambda line: line.ref, key_func=lambda text: text.split()[0].lower())
        assert index.find(None, "rods 16mm") is lines[0]

    def test_claimed_line_not_reachable_by_description(self):
        lines = [_Line("Cement", ref="L2")]
        index = ItemIndex(lines, lambda line: line.ref, claimed_references=("L1", "L2"))

        assert index.find("L2", "Cement") is lines[0]
        assert index.find("L1", "Cement") is None
        assert index.find(None, "Cement") is None

    def test_dangling_reference_still_reachable_by_description(self):
        lines = [_Line("Cement", ref="L7")]
        index = ItemIndex(lines, lambda line: line.ref, claimed_references=("L1",))

        assert index.find("L1", "cement") is lines[0]

    def test_unreferenced_line_reachable_despite_claims(self):
        lines = [_Line("Cement"), _Line("Cement", ref="L2")]
        index = ItemIndex(lines, lambda line: line.ref, claimed_references=("L1", "L2"))

        assert index.find("L1", "Cement") is lines[0]
