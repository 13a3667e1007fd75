"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``. No other component may read configuration
    files directly. Returns a ``LedgerConfigurationSet`` whose ``registry``
    is handed to ``ledger_kernel.domain.create_ledger``.

Architecture position:
    Configuration -- YAML-driven, validated before use. This package sits
    above ``ledger_kernel`` and below ``ledger_services``. The kernel MUST
    NEVER import from ``ledger_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation: a set with errors is never returned.
    - Deterministic checksum: the same YAML always produces the same checksum.

Failure modes:
    - ``ConfigError`` -- no configuration set with the requested name, or
      the set failed validation.
    - ``yaml.YAMLError`` -- the set is not valid YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and registry sizes.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_configuration_set
from ledger_config.schema import LedgerConfigurationSet
from ledger_config.validator import validate_configuration
from ledger_kernel.exceptions import ConfigError

_logger = logging.getLogger("ledger_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> LedgerConfigurationSet:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned set has passed validation.
        - A ``LEDGER_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - No caching across calls; callers hold the returned set for the
          lifetime of their ledger.

    Args:
        name: Configuration set name, i.e. ``<config_dir>/<name>.yaml``.
        config_dir: Override path to configuration sets directory.
            Defaults to ledger_config/sets/.

    Raises:
        ConfigError: If the set does not exist or fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = Path(sets_dir) / f"{name}.yaml"
    if not path.is_file():
        raise ConfigError(name, [f"Configuration set not found: {path}"])

    config = load_configuration_set(path)

    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"detail": warning})
    if not validation.is_valid:
        raise ConfigError(config.config_id, validation.errors)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "agent_count": len(config.registry.agents),
            "relationship_count": len(config.registry.debt_pairs),
            "complex_link_count": len(config.registry.complex_links),
        },
    )
    return config


__all__ = [
    "LedgerConfigurationSet",
    "get_active_config",
]
