"""
Configuration Loader (``gst_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into typed
``gst_config.schema`` dataclass instances.  Runtime callers go through
``gst_config.get_active_config()`` instead of calling this directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Has no dependency on
kernel, services, or engines.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; no silent defaults for
  required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Invalid date format  -> ``ValueError`` from ``date.fromisoformat``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from gst_config.schema import (
    ConfigScope,
    GstEngineConfig,
    MatchPolicyDef,
    TaxPolicyDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_scope(data: dict[str, Any]) -> ConfigScope:
    """Parse a ConfigScope from a dict."""
    return ConfigScope(
        jurisdiction=data["jurisdiction"],
        currency=data["currency"],
        effective_from=parse_date(data["effective_from"]),
        effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
    )


def parse_tax_policy(data: dict[str, Any]) -> TaxPolicyDef:
    """Parse a TaxPolicyDef from a dict."""
    return TaxPolicyDef(
        permitted_rates=tuple(str(rate) for rate in data["permitted_rates"]),
    )


def parse_match_policy(data: dict[str, Any] | None) -> MatchPolicyDef:
    """
    Parse a MatchPolicyDef from a dict.

    Keys that are absent keep their default; an absent section yields
    the default policy.
    """
    if not data:
        return MatchPolicyDef()
    defaults = MatchPolicyDef()
    values = {
        name: str(data.get(name, getattr(defaults, name)))
        for name in MatchPolicyDef.__dataclass_fields__
    }
    return MatchPolicyDef(**values)


def parse_config(data: dict[str, Any]) -> GstEngineConfig:
    """
    Parse a complete configuration set.

    The checksum is computed over the raw source mapping, so any edit to
    the YAML changes it.
    """
    return GstEngineConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        checksum=compute_checksum(data),
        scope=parse_scope(data["scope"]),
        tax_policy=parse_tax_policy(data["tax_policy"]),
        match_policy=parse_match_policy(data.get("match_policy")),
    )


def load_config_file(path: Path) -> GstEngineConfig:
    """Load and parse one configuration set file."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums
          (deterministic).
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
