"""
Configuration Validator (``ledger_config.validator``).

Responsibility
--------------
Validates a ``LedgerConfigurationSet`` before a ledger is built from it,
ensuring every name the registry refers to actually exists.

Invariants enforced
-------------------
* Every chart account is classified exactly once (asset XOR liability).
* Debt relationship legs exist, are classified on the right side, and any
  scoped agent holds its leg. Relationship names are unique.
* Complex links name at least two existing accounts.
* The clearing agent, its members and house accounts hold the accounts
  the settlement routes book to.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> the set MUST NOT
  be used.
* Validation warnings (``ConfigValidationResult.warnings``)  -> usable but
  should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ledger_config.schema import LedgerConfigurationSet
from ledger_kernel.domain.registry import LedgerRegistry


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings do not block use but should be reviewed.
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


def validate_configuration(config: LedgerConfigurationSet) -> ConfigValidationResult:
    """
    Validate a configuration set.

    Postconditions:
        - Returns a ``ConfigValidationResult`` with errors and warnings.
        - A configuration with errors MUST NOT be used to build a ledger.
    """
    result = ConfigValidationResult()
    registry = config.registry

    _validate_classification(registry, result)
    _validate_debt_relationships(registry, result)
    _validate_complex_links(registry, result)
    _validate_clearing(registry, result)
    _validate_house_accounts(registry, result)

    return result


def _chart_accounts(registry: LedgerRegistry) -> set[str]:
    return {name for accounts in registry.agents.values() for name in accounts}


def _holds(registry: LedgerRegistry, agent: str, account: str) -> bool:
    return account in registry.agents.get(agent, ())


def _validate_classification(
    registry: LedgerRegistry, result: ConfigValidationResult
) -> None:
    """Check every chart account is an asset or a liability, never both."""
    for name in sorted(registry.asset_accounts & registry.liability_accounts):
        result.add_error(f"Account '{name}' is classified as both asset and liability")

    classified = registry.asset_accounts | registry.liability_accounts
    chart = _chart_accounts(registry)
    for name in sorted(chart - classified):
        result.add_error(f"Account '{name}' is not classified as asset or liability")
    for name in sorted(classified - chart):
        result.add_warning(f"Classified account '{name}' is not held by any agent")

    for agent, accounts in registry.agents.items():
        if len(set(accounts)) != len(accounts):
            result.add_error(f"Agent '{agent}' declares an account more than once")


def _validate_debt_relationships(
    registry: LedgerRegistry, result: ConfigValidationResult
) -> None:
    chart = _chart_accounts(registry)
    seen: set[str] = set()
    for pair in registry.debt_pairs:
        if pair.name in seen:
            result.add_error(f"Duplicate debt relationship: {pair.name}")
        seen.add(pair.name)

        for leg, expected in (
            (pair.claim_account, registry.asset_accounts),
            (pair.liability_account, registry.liability_accounts),
        ):
            if leg not in chart:
                result.add_error(
                    f"Relationship '{pair.name}': account '{leg}' is not held by any agent"
                )
            elif leg not in expected:
                side = "an asset" if expected is registry.asset_accounts else "a liability"
                result.add_error(
                    f"Relationship '{pair.name}': account '{leg}' must be {side}"
                )

        for scope, leg in ((pair.creditor, pair.claim_account), (pair.debtor, pair.liability_account)):
            if scope is None:
                continue
            if scope not in registry.agents:
                result.add_error(f"Relationship '{pair.name}': unknown agent '{scope}'")
            elif not _holds(registry, scope, leg):
                result.add_error(
                    f"Relationship '{pair.name}': agent '{scope}' does not hold '{leg}'"
                )


def _validate_complex_links(
    registry: LedgerRegistry, result: ConfigValidationResult
) -> None:
    chart = _chart_accounts(registry)
    for link in registry.complex_links:
        if len(link.required_accounts) < 2:
            result.add_error(
                f"Complex link '{link.mechanism}' needs at least 2 accounts"
            )
        for name in link.required_accounts:
            if name not in chart:
                result.add_error(
                    f"Complex link '{link.mechanism}': account '{name}' is not held by any agent"
                )


def _validate_clearing(registry: LedgerRegistry, result: ConfigValidationResult) -> None:
    clearing = registry.clearing
    if clearing is None:
        result.add_warning("No clearing arrangement: interbank settlement is unavailable")
        return
    if clearing.agent not in registry.agents:
        result.add_error(f"Clearing agent '{clearing.agent}' is not a known agent")
        return
    for member in clearing.members:
        if member.agent not in registry.agents:
            result.add_error(f"Clearing member '{member.agent}' is not a known agent")
            continue
        for account in (clearing.reserve_account, clearing.borrowing_account):
            if not _holds(registry, member.agent, account):
                result.add_error(
                    f"Clearing member '{member.agent}' does not hold '{account}'"
                )
        for account in (member.reserve_liability, member.loan_claim):
            if not _holds(registry, clearing.agent, account):
                result.add_error(
                    f"Clearing agent '{clearing.agent}' does not hold '{account}'"
                )


def _validate_house_accounts(
    registry: LedgerRegistry, result: ConfigValidationResult
) -> None:
    for house in registry.house_accounts:
        if not _holds(registry, house.agent, house.asset_account):
            result.add_error(
                f"House account: agent '{house.agent}' does not hold '{house.asset_account}'"
            )
        if not _holds(registry, house.bank, house.liability_account):
            result.add_error(
                f"House account: bank '{house.bank}' does not hold '{house.liability_account}'"
            )
