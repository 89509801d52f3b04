"""
gst_config -- single public entrypoint for GST engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.  Returns a frozen ``GstEngineConfig``; the bridges in
    ``gst_config.bridges`` turn it into engine parameters.

Architecture position:
    Configuration -- YAML-driven policy, validated on load.
    This package sits above ``gst_kernel`` / ``gst_engines`` and below
    ``gst_services``.  Engines MUST NEVER import from ``gst_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation: the configuration must pass ``validate_configuration``
      before it is returned.
    - Deterministic checksum: the same YAML always produces the same
      ``GstEngineConfig.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` -- schema or validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``GST_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum, scope and rate count.  This trace ties every computed
    invoice back to the configuration version that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from gst_config.loader import load_config_file
from gst_config.schema import GstEngineConfig
from gst_config.validator import validate_configuration

_logger = logging.getLogger("gst_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    config_dir: Path | None = None,
    name: str = "default",
) -> GstEngineConfig:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned ``GstEngineConfig`` has passed validation.
        - A ``GST_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - This function does NOT cache configuration across calls;
          callers hold the returned config for as long as they need it.

    Args:
        config_dir: Override path to configuration sets directory.
            Defaults to gst_config/sets/.
        name: Configuration set name; the file ``<name>.yaml`` is loaded.

    Returns:
        GstEngineConfig

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If configuration validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_config_file(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={
            "config_set_id": config.config_id,
            "warning": warning,
        })

    _logger.info(
        "GST_CONFIG_TRACE",
        extra={
            "trace_type": "GST_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "scope_jurisdiction": config.scope.jurisdiction,
            "scope_currency": config.scope.currency,
            "permitted_rate_count": len(config.tax_policy.permitted_rates),
        },
    )

    return config


__all__ = ["GstEngineConfig", "get_active_config"]
