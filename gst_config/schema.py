"""
GST engine configuration schema.

Defines the human-authored, reviewable configuration for the GST engines.
YAML sets are parsed into these types by the loader, validated by the
validator, and translated into engine parameters by the bridges.

Numeric policy values are kept as strings so the parsed artifact never
holds a float; the bridges convert them to Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class ConfigScope:
    """Scope of applicability for a configuration set."""

    jurisdiction: str  # e.g., "IN"
    currency: str
    effective_from: date
    effective_to: date | None = None


@dataclass(frozen=True)
class TaxPolicyDef:
    """Permitted GST slabs, in percent."""

    permitted_rates: tuple[str, ...]


@dataclass(frozen=True)
class MatchPolicyDef:
    """Three-way match tolerances and severity thresholds."""

    quantity_tolerance: str = "0.01"
    rate_tolerance_percent: str = "0.1"
    amount_tolerance_percent: str = "1"
    total_tolerance_percent: str = "5"
    quantity_high_severity_percent: str = "10"
    rate_high_severity_percent: str = "5"
    total_high_severity_percent: str = "10"
    partial_match_percent: str = "50"


@dataclass(frozen=True)
class GstEngineConfig:
    """
    Parsed configuration set.

    Attributes:
        config_id: Unique identifier (e.g., "IN-GST-2026-v1")
        version: Configuration version number
        checksum: SHA-256 of the canonical serialization of the source
        scope: Applicability scope
        tax_policy: Permitted GST rates
        match_policy: Three-way match tolerances
    """

    config_id: str
    version: int
    checksum: str
    scope: ConfigScope
    tax_policy: TaxPolicyDef
    match_policy: MatchPolicyDef
