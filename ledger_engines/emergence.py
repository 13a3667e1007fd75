"""
ledger_engines.emergence -- Money emergence from linked accounts.

Responsibility:
    Recognizes registered combinations of linked accounts held by two agents
    (a ComplexLink) as monetary instruments, verifies that each recognized
    pattern is backed (its accounts net to zero) and aggregates the money
    supply per emergent property.

Architecture position:
    Engines -- pure, read-only over a settled ledger.

Matching rules:
    - An account-name index (name -> holders) is built once per scan, so a
      link is resolved by direct lookup instead of scanning agent pairs.
    - A pattern spans exactly two agents and every matched account carries
      an open position. Settled instruments therefore disappear.
    - When a two-account link matches a registered debt relationship, each
      leg is restricted to that relationship's creditor / debtor scope.
    - Accounts keep the link's declared order; the "first account" of a
      pattern holds the link's first required name.

Failure modes:
    None raised. Unbacked patterns become EmergenceInconsistency findings,
    are logged and are left out of the supply.
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.ledger import Ledger
from ledger_kernel.domain.registry import ComplexLink, LedgerRegistry
from ledger_kernel.domain.values import ZERO
from ledger_kernel.exceptions import EmergenceInconsistency
from ledger_kernel.invariants import is_zero
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.emergence")

AccountIndex = dict[str, tuple[tuple[str, Account], ...]]


@dataclass(frozen=True)
class MoneyPattern:
    """Linked accounts that together constitute a monetary instrument."""

    accounts: tuple[Account, ...]
    holders: tuple[str, ...]
    emergent_property: str
    mechanism: str

    @property
    def net_position(self) -> Decimal:
        return sum((a.net for a in self.accounts), ZERO)

    @property
    def first_account(self) -> Account:
        return self.accounts[0]


@dataclass(frozen=True)
class MoneySupplyReport:
    supply: dict[str, Decimal]
    inconsistencies: tuple[EmergenceInconsistency, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum(self.supply.values(), ZERO)


def build_account_index(ledger: Ledger) -> AccountIndex:
    """account name -> ((agent, account), ...) in agent order."""
    index: dict[str, list[tuple[str, Account]]] = defaultdict(list)
    for agent in ledger.agents.values():
        for name, account in agent.accounts.items():
            index[name].append((agent.name, account))
    return {name: tuple(holders) for name, holders in index.items()}


def _leg_scopes(registry: LedgerRegistry, link: ComplexLink) -> dict[str, str | None]:
    if len(link.required_accounts) != 2:
        return {}
    names = set(link.required_accounts)
    for pair in registry.debt_pairs:
        if {pair.claim_account, pair.liability_account} == names:
            return {pair.claim_account: pair.creditor, pair.liability_account: pair.debtor}
    return {}


def _candidates(
    index: AccountIndex, name: str, scope: str | None
) -> tuple[tuple[str, Account], ...]:
    return tuple(
        (agent, account)
        for agent, account in index.get(name, ())
        if (scope is None or agent == scope) and account.is_open
    )


def _match_link(
    link: ComplexLink, index: AccountIndex, registry: LedgerRegistry
) -> list[MoneyPattern]:
    scopes = _leg_scopes(registry, link)
    per_name = [
        _candidates(index, name, scopes.get(name)) for name in link.required_accounts
    ]
    patterns = []
    for combo in itertools.product(*per_name):
        holders = tuple(agent for agent, _ in combo)
        if len(set(holders)) != 2:
            continue
        patterns.append(
            MoneyPattern(
                accounts=tuple(account for _, account in combo),
                holders=holders,
                emergent_property=link.emergent_property,
                mechanism=link.mechanism,
            )
        )
    return patterns


@traced_engine("money_emergence", "1.0")
def detect_money_emergence(ledger: Ledger) -> dict[str, list[MoneyPattern]]:
    """Every emergent property mapped to its recognized patterns (possibly none)."""
    index = build_account_index(ledger)
    emergent: dict[str, list[MoneyPattern]] = {}
    for link in ledger.registry.complex_links:
        emergent.setdefault(link.emergent_property, []).extend(
            _match_link(link, index, ledger.registry)
        )
    return emergent


def verify_money_emergence(pattern: MoneyPattern) -> bool:
    """A pattern is backed when its accounts net to zero."""
    return is_zero(pattern.net_position)


def money_supply_report(ledger: Ledger) -> MoneySupplyReport:
    """
    Money supply per emergent property, with the unbacked patterns excluded.

    Each valid pattern contributes the absolute net position of its first
    account.
    """
    supply: dict[str, Decimal] = {}
    findings: list[EmergenceInconsistency] = []
    for prop, patterns in detect_money_emergence(ledger).items():
        total = ZERO
        for pattern in patterns:
            if verify_money_emergence(pattern):
                total += abs(pattern.first_account.net)
                continue
            finding = EmergenceInconsistency(prop, pattern.holders, pattern.net_position)
            logger.warning(
                "emergence_inconsistency",
                extra={
                    "emergent_property": prop,
                    "holders": list(pattern.holders),
                    "net_position": pattern.net_position,
                },
            )
            findings.append(finding)
        supply[prop] = total
    return MoneySupplyReport(supply=supply, inconsistencies=tuple(findings))


def get_money_supply(ledger: Ledger) -> dict[str, Decimal]:
    return money_supply_report(ledger).supply
