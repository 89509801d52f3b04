"""
Tests for GST engine configuration.

Covers:
- The shipped default set
- Parsing, defaults and checksums
- Validation failures
- Bridges into engine parameters
- GST_CONFIG_TRACE emission
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from gst_config import get_active_config
from gst_config.bridges import build_gst_calculator, build_match_tolerance
from gst_config.loader import compute_checksum, parse_config, parse_match_policy
from gst_config.schema import MatchPolicyDef
from gst_config.validator import validate_configuration
from gst_engines.gst import DEFAULT_PERMITTED_RATES


def _raw_config(**overrides) -> dict:
    data = {
        "config_id": "TEST-GST",
        "version": 3,
        "scope": {
            "jurisdiction": "IN",
            "currency": "INR",
            "effective_from": "2024-04-01",
        },
        "tax_policy": {"permitted_rates": ["0", "5", "18"]},
        "match_policy": {"rate_tolerance_percent": "0.5"},
    }
    data.update(overrides)
    return data


def _write(directory: Path, name: str, data: dict) -> None:
    (directory / f"{name}.yaml").write_text(yaml.safe_dump(data))


class TestDefaultConfig:
    """The configuration shipped in gst_config/sets."""

    def setup_method(self):
        self.config = get_active_config()

    def test_identity(self):
        assert self.config.config_id == "IN-GST-DEFAULT"
        assert self.config.version == 1
        assert self.config.scope.currency == "INR"
        assert self.config.scope.effective_from == date(2017, 7, 1)

    def test_rates_match_engine_defaults(self):
        rates = {Decimal(r) for r in self.config.tax_policy.permitted_rates}
        assert rates == set(DEFAULT_PERMITTED_RATES)

    def test_match_policy_matches_engine_defaults(self):
        from gst_engines.matching import MatchTolerance

        assert build_match_tolerance(self.config) == MatchTolerance()


class TestParsing:
    """Tests for loader parsing."""

    def test_parse_config(self):
        config = parse_config(_raw_config())

        assert config.config_id == "TEST-GST"
        assert config.version == 3
        assert config.tax_policy.permitted_rates == ("0", "5", "18")
        assert config.match_policy.rate_tolerance_percent == "0.5"
        # Unspecified tolerances keep defaults
        assert config.match_policy.total_tolerance_percent == "5"
        assert config.scope.effective_to is None

    def test_numeric_yaml_values_become_strings(self):
        config = parse_config(_raw_config(tax_policy={"permitted_rates": [0, 0.25, 18]}))
        assert config.tax_policy.permitted_rates == ("0", "0.25", "18")

    def test_missing_match_policy_uses_defaults(self):
        assert parse_match_policy(None) == MatchPolicyDef()

    def test_missing_required_key(self):
        data = _raw_config()
        del data["tax_policy"]
        with pytest.raises(KeyError):
            parse_config(data)

    def test_checksum_deterministic(self):
        assert compute_checksum(_raw_config()) == compute_checksum(_raw_config())
        assert parse_config(_raw_config()).checksum == compute_checksum(_raw_config())

    def test_checksum_changes_with_content(self):
        changed = _raw_config(version=4)
        assert compute_checksum(changed) != compute_checksum(_raw_config())


class TestValidation:
    """Tests for validate_configuration."""

    def test_valid(self):
        assert validate_configuration(parse_config(_raw_config())).is_valid

    def test_unknown_currency(self):
        data = _raw_config()
        data["scope"] = dict(data["scope"], currency="XYZ")
        result = validate_configuration(parse_config(data))
        assert "Unknown currency: XYZ" in result.errors

    def test_empty_rates(self):
        result = validate_configuration(parse_config(_raw_config(tax_policy={"permitted_rates": []})))
        assert not result.is_valid

    def test_bad_rate(self):
        result = validate_configuration(
            parse_config(_raw_config(tax_policy={"permitted_rates": ["18", "abc", "150"]}))
        )
        assert len(result.errors) == 2

    def test_duplicate_rate_warns(self):
        result = validate_configuration(
            parse_config(_raw_config(tax_policy={"permitted_rates": ["18", "18.0"]}))
        )
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_negative_tolerance(self):
        result = validate_configuration(
            parse_config(_raw_config(match_policy={"quantity_tolerance": "-0.5"}))
        )
        assert "match_policy.quantity_tolerance cannot be negative: -0.5" in result.errors

    def test_partial_threshold_over_hundred(self):
        result = validate_configuration(
            parse_config(_raw_config(match_policy={"partial_match_percent": "120"}))
        )
        assert not result.is_valid

    def test_effective_range_reversed(self):
        data = _raw_config()
        data["scope"] = dict(data["scope"], effective_to="2020-01-01")
        assert not validate_configuration(parse_config(data)).is_valid


class TestGetActiveConfig:
    """Tests for the single configuration entrypoint."""

    def test_loads_named_set(self, tmp_path):
        _write(tmp_path, "karnataka", _raw_config(config_id="KA-GST"))
        config = get_active_config(config_dir=tmp_path, name="karnataka")
        assert config.config_id == "KA-GST"

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(config_dir=tmp_path, name="absent")

    def test_invalid_set_rejected(self, tmp_path):
        _write(tmp_path, "default", _raw_config(tax_policy={"permitted_rates": []}))
        with pytest.raises(ValueError, match="Configuration validation failed"):
            get_active_config(config_dir=tmp_path)

    def test_trace_emitted(self, tmp_path, captured_logs):
        _write(tmp_path, "default", _raw_config())
        config = get_active_config(config_dir=tmp_path)

        traces = [r for r in captured_logs() if r["message"] == "GST_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_set_id"] == "TEST-GST"
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["permitted_rate_count"] == 3


class TestBridges:
    """Config to engine translation."""

    def setup_method(self):
        self.config = parse_config(_raw_config())

    def test_calculator(self):
        calculator = build_gst_calculator(self.config)
        assert calculator.permitted_rates == frozenset({Decimal("0"), Decimal("5"), Decimal("18")})
        assert calculator.currency == "INR"

    def test_tolerance(self):
        tolerance = build_match_tolerance(self.config)
        assert tolerance.rate_tolerance_percent == Decimal("0.5")
        assert tolerance.quantity_tolerance == Decimal("0.01")
