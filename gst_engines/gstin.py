"""
gst_engines.gstin -- GSTIN parsing and state (jurisdiction) resolution.

Responsibility:
    Validate a 15-character GST Identification Number and split it into
    its structural parts: state code, PAN, entity number, the fixed "Z"
    and the checksum character.  Resolve a two-digit state code to its
    canonical state or union-territory name.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The state table is a static constant; no registry lookups.

Invariants enforced:
    - A parsed GSTIN always matches GSTIN_PATTERN and its state code is
      present in STATE_CODES.
    - Parsing is a pure function of the input string.

Failure modes:
    - InvalidGstinFormatError if the string does not match the pattern.
    - UnknownJurisdictionError if the state code is not in STATE_CODES.

Usage:
    from gst_engines.gstin import parse_gstin

    gstin = parse_gstin("27AABCU9603R1Z5")
    gstin.state_code   # "27"
    gstin.state_name   # "Maharashtra"
    gstin.pan          # "AABCU9603R"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from gst_kernel.exceptions import InvalidGstinFormatError, UnknownJurisdictionError

# [state (2 digits)][PAN: 5 letters, 4 digits, 1 letter][entity][Z][checksum]
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

STATE_CODES: MappingProxyType[str, str] = MappingProxyType({
    "01": "Jammu and Kashmir",
    "02": "Himachal Pradesh",
    "03": "Punjab",
    "04": "Chandigarh",
    "05": "Uttarakhand",
    "06": "Haryana",
    "07": "Delhi",
    "08": "Rajasthan",
    "09": "Uttar Pradesh",
    "10": "Bihar",
    "11": "Sikkim",
    "12": "Arunachal Pradesh",
    "13": "Nagaland",
    "14": "Manipur",
    "15": "Mizoram",
    "16": "Tripura",
    "17": "Meghalaya",
    "18": "Assam",
    "19": "West Bengal",
    "20": "Jharkhand",
    "21": "Odisha",
    "22": "Chhattisgarh",
    "23": "Madhya Pradesh",
    "24": "Gujarat",
    "26": "Dadra and Nagar Haveli and Daman and Diu",
    "27": "Maharashtra",
    "29": "Karnataka",
    "30": "Goa",
    "31": "Lakshadweep",
    "32": "Kerala",
    "33": "Tamil Nadu",
    "34": "Puducherry",
    "35": "Andaman and Nicobar Islands",
    "36": "Telangana",
    "37": "Andhra Pradesh",
    "38": "Ladakh",
    "97": "Other Territory",
    "99": "Centre Jurisdiction",
})


@dataclass(frozen=True)
class GSTIN:
    """
    A validated GST Identification Number.

    Construct through ``parse_gstin``; the constructor does not validate.
    """

    value: str
    state_code: str
    state_name: str
    pan: str
    entity_number: str
    z_char: str
    checksum: str

    def __str__(self) -> str:
        return self.value

    def same_state_as(self, other: GSTIN) -> bool:
        return self.state_code == other.state_code


def resolve_state(state_code: str) -> str | None:
    """Map a two-digit state code to its name, or None if unknown."""
    return STATE_CODES.get(state_code)


def parse_gstin(value: str | None) -> GSTIN:
    """
    Validate a GSTIN and extract its components.

    Leading and trailing whitespace is ignored.  Letters must already be
    upper case.

    Raises:
        InvalidGstinFormatError: If the pattern does not match.
        UnknownJurisdictionError: If the state code is not known.
    """
    if not isinstance(value, str):
        raise InvalidGstinFormatError(value)

    candidate = value.strip()
    if not GSTIN_PATTERN.match(candidate):
        raise InvalidGstinFormatError(value)

    state_code = candidate[0:2]
    state_name = resolve_state(state_code)
    if state_name is None:
        raise UnknownJurisdictionError(candidate, state_code)

    return GSTIN(
        value=candidate,
        state_code=state_code,
        state_name=state_name,
        pan=candidate[2:12],
        entity_number=candidate[12:13],
        z_char=candidate[13:14],
        checksum=candidate[14:15],
    )


def is_valid_gstin(value: str | None) -> bool:
    """True if ``value`` parses as a GSTIN with a known state code."""
    try:
        parse_gstin(value)
    except (InvalidGstinFormatError, UnknownJurisdictionError):
        return False
    return True
