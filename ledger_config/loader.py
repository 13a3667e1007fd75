"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the kernel's frozen
registry dataclasses. This is **build/test tooling only** -- the single
public entry point for runtime config is ``ledger_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import LedgerConfigurationSet
from ledger_kernel.domain.registry import (
    ClearingArrangement,
    ClearingMember,
    ComplexLink,
    DebtRelationshipPair,
    HouseAccount,
    LedgerRegistry,
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


def parse_debt_pair(data: dict[str, Any]) -> DebtRelationshipPair:
    """Parse a DebtRelationshipPair. ``name`` defaults to "claim ↔ liability"."""
    return DebtRelationshipPair(
        claim_account=data["claim"],
        liability_account=data["liability"],
        creditor=data.get("creditor"),
        debtor=data.get("debtor"),
        name=data.get("name", ""),
    )


def parse_complex_link(data: dict[str, Any]) -> ComplexLink:
    return ComplexLink(
        mechanism=data["mechanism"],
        required_accounts=tuple(data["accounts"]),
        emergent_property=data["emergent_property"],
    )


def parse_clearing(data: dict[str, Any] | None) -> ClearingArrangement | None:
    if not data:
        return None
    return ClearingArrangement(
        agent=data["agent"],
        reserve_account=data["reserve_account"],
        borrowing_account=data["borrowing_account"],
        members=tuple(
            ClearingMember(
                agent=m["agent"],
                reserve_liability=m["reserve_liability"],
                loan_claim=m["loan_claim"],
            )
            for m in data.get("members", [])
        ),
    )


def parse_house_account(data: dict[str, Any]) -> HouseAccount:
    return HouseAccount(
        agent=data["agent"],
        bank=data["bank"],
        asset_account=data["asset_account"],
        liability_account=data["liability_account"],
    )


def parse_registry(data: dict[str, Any]) -> LedgerRegistry:
    """
    Parse the registry sections of a configuration set.

    Preconditions:
        - ``data`` contains ``agents`` and ``classification``.
    Raises:
        KeyError: if required keys are missing.
    """
    agents_raw = data["agents"]
    classification = data["classification"]
    return LedgerRegistry(
        agents={
            name: tuple(entry.get("accounts", []))
            for name, entry in agents_raw.items()
        },
        asset_accounts=frozenset(classification.get("assets", [])),
        liability_accounts=frozenset(classification.get("liabilities", [])),
        debt_pairs=tuple(
            parse_debt_pair(p) for p in data.get("debt_relationships", [])
        ),
        complex_links=tuple(
            parse_complex_link(link) for link in data.get("complex_links", [])
        ),
        clearing=parse_clearing(data.get("clearing")),
        house_accounts=tuple(
            parse_house_account(h) for h in data.get("house_accounts", [])
        ),
        agent_titles={
            name: entry.get("title", "") for name, entry in agents_raw.items()
        },
    )


def load_configuration_set(path: Path) -> LedgerConfigurationSet:
    """
    Load a configuration set from one YAML file.

    Postconditions:
        - The checksum is computed over the raw YAML content, so it changes
          whenever any declared value changes.
    """
    data = load_yaml_file(path)
    return LedgerConfigurationSet(
        config_id=data.get("config_id", path.stem),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        registry=parse_registry(data),
        description=data.get("description", ""),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
