"""
LedgerConfigurationSet schema.

Defines the human-authored, reviewable configuration artifact. YAML files
are parsed into these types by the loader; the registry itself is the
kernel's frozen ``LedgerRegistry``, so nothing needs translating before a
ledger can be built from it.

Key distinction:
  LedgerConfigurationSet = identity (id, version, checksum) + registry
  LedgerRegistry         = what the kernel actually consumes
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_kernel.domain.registry import LedgerRegistry


@dataclass(frozen=True)
class LedgerConfigurationSet:
    """Versioned configuration for one ledger.

    Attributes:
        config_id: Unique identifier (e.g., "default")
        version: Configuration version number
        checksum: SHA-256 of the canonical serialization of the source YAML
        registry: Agents, classification, relationships, links and routes
        description: Free text
    """

    config_id: str
    version: int
    checksum: str
    registry: LedgerRegistry
    description: str = ""

    @property
    def agent_names(self) -> tuple[str, ...]:
        return tuple(self.registry.agents)
