"""
Configuration Validator (``gst_config.validator``).

Responsibility
--------------
Validates a parsed ``GstEngineConfig`` before it is handed to the
engines: the currency is known, the permitted rate set is usable, and
every tolerance is a non-negative decimal.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be used.
* Validation warnings (``ConfigValidationResult.warnings``)  ->
  configuration may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from gst_config.schema import GstEngineConfig, MatchPolicyDef
from gst_kernel.domain.currency import CurrencyRegistry


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def _decimal_or_none(value: str) -> Decimal | None:
    try:
        result = Decimal(value)
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def validate_configuration(config: GstEngineConfig) -> ConfigValidationResult:
    """
    Validate a configuration set.

    Postconditions:
        - Returns a ``ConfigValidationResult`` with errors and warnings.
        - A configuration with errors MUST NOT be used.
    """
    result = ConfigValidationResult()

    _validate_scope(config, result)
    _validate_tax_policy(config, result)
    _validate_match_policy(config.match_policy, result)

    return result


def _validate_scope(config: GstEngineConfig, result: ConfigValidationResult) -> None:
    scope = config.scope
    if not CurrencyRegistry.is_valid(scope.currency):
        result.add_error(f"Unknown currency: {scope.currency}")
    if scope.effective_to is not None and scope.effective_to < scope.effective_from:
        result.add_error(
            f"effective_to ({scope.effective_to}) precedes effective_from ({scope.effective_from})"
        )


def _validate_tax_policy(config: GstEngineConfig, result: ConfigValidationResult) -> None:
    rates = config.tax_policy.permitted_rates
    if not rates:
        result.add_error("tax_policy.permitted_rates must not be empty")
        return

    seen: set[Decimal] = set()
    for raw in rates:
        rate = _decimal_or_none(raw)
        if rate is None:
            result.add_error(f"Permitted rate is not a number: {raw!r}")
            continue
        if rate < 0 or rate > 100:
            result.add_error(f"Permitted rate out of range 0-100: {raw}")
        if rate in seen:
            result.add_warning(f"Permitted rate listed more than once: {raw}")
        seen.add(rate)


def _validate_match_policy(policy: MatchPolicyDef, result: ConfigValidationResult) -> None:
    for name in MatchPolicyDef.__dataclass_fields__:
        raw = getattr(policy, name)
        value = _decimal_or_none(raw)
        if value is None:
            result.add_error(f"match_policy.{name} is not a number: {raw!r}")
        elif value < 0:
            result.add_error(f"match_policy.{name} cannot be negative: {raw}")

    partial = _decimal_or_none(policy.partial_match_percent)
    if partial is not None and partial > 100:
        result.add_error("match_policy.partial_match_percent cannot exceed 100")
