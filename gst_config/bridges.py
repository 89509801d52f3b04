"""
Config → Engine Bridges.

Functions that convert a GstEngineConfig into engine inputs.  These live
in gst_config (the producer) because the engines must NEVER import
gst_config.

Usage:
    from gst_config.bridges import build_gst_calculator, build_match_tolerance

    config = get_active_config()
    calculator = build_gst_calculator(config)
    matcher = ThreeWayMatcher(tolerance=build_match_tolerance(config))
"""

from __future__ import annotations

from decimal import Decimal

from gst_config.schema import GstEngineConfig
from gst_engines.gst import GstCalculator
from gst_engines.matching import MatchTolerance


def build_gst_calculator(config: GstEngineConfig) -> GstCalculator:
    """Calculator restricted to the configured slabs and currency."""
    return GstCalculator(
        permitted_rates=config.tax_policy.permitted_rates,
        currency=config.scope.currency,
    )


def build_match_tolerance(config: GstEngineConfig) -> MatchTolerance:
    """Match tolerance value object from the configured policy."""
    policy = config.match_policy
    return MatchTolerance(
        quantity_tolerance=Decimal(policy.quantity_tolerance),
        rate_tolerance_percent=Decimal(policy.rate_tolerance_percent),
        amount_tolerance_percent=Decimal(policy.amount_tolerance_percent),
        total_tolerance_percent=Decimal(policy.total_tolerance_percent),
        quantity_high_severity_percent=Decimal(policy.quantity_high_severity_percent),
        rate_high_severity_percent=Decimal(policy.rate_high_severity_percent),
        total_high_severity_percent=Decimal(policy.total_high_severity_percent),
        partial_match_percent=Decimal(policy.partial_match_percent),
    )
