"""
gst_engines.item_keys -- Line identity for three-way matching.

Responsibility:
    Join purchase-order, receipt and invoice lines.  The primary key is an
    explicit line reference assigned when the PO line was created and
    carried through the GRN and the invoice.  When a line has no reference,
    or its reference is not found, the lookup falls back to a normalized
    form of the description text.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - normalize_description is idempotent.
    - For duplicate keys the last line wins, matching document order.
    - A line claimed by a reference is never returned for another one.

Notes:
    Description matching is fragile (typos, word order, translations).
    The key function is injectable so deployments can swap it out.
    Punctuation stripping uses Python's Unicode-aware word class, not an
    ASCII-only one: accented and non-Latin letters survive normalization
    ("Café" keys as "café", not "caf").
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Generic, Protocol, TypeVar

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

KeyFunction = Callable[[str], str]


def normalize_description(description: str | None) -> str:
    """
    Build a comparison key from free-text line descriptions.

    Lower-cases, trims, strips punctuation and collapses internal
    whitespace to single spaces.

    >>> normalize_description("  Steel Rods (12mm),  Grade-A ")
    'steel rods 12mm gradea'
    """
    if not description:
        return ""
    text = description.lower().strip()
    text = _PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


class DescribedLine(Protocol):
    @property
    def description(self) -> str: ...


L = TypeVar("L", bound=DescribedLine)


class ItemIndex(Generic[L]):
    """
    Lookup of document lines by reference, then by description key.

    A line whose reference is claimed (known on the other document) is
    reachable only through that reference.  The description fallback
    sees unreferenced lines and lines with dangling references, so one
    received line can never satisfy two PO lines.

    Args:
        lines: Lines of one document, in document order
        reference_of: Extracts a line's reference (None when absent)
        key_func: Description key function, normalize_description by default
        claimed_references: References known on the other document
    """

    def __init__(
        self,
        lines: Iterable[L],
        reference_of: Callable[[L], str | None],
        key_func: KeyFunction = normalize_description,
        claimed_references: Iterable[str | None] = (),
    ) -> None:
        claimed = {ref for ref in claimed_references if ref}
        self._key_func = key_func
        self._by_ref: dict[str, L] = {}
        self._by_key: dict[str, L] = {}
        for line in lines:
            ref = reference_of(line)
            if ref:
                self._by_ref[ref] = line
            if not ref or ref not in claimed:
                self._by_key[key_func(line.description)] = line

    def find(self, reference: str | None, description: str) -> L | None:
        """Line with this reference, else an unclaimed line with the same description key."""
        if reference and reference in self._by_ref:
            return self._by_ref[reference]
        return self._by_key.get(self._key_func(description))
