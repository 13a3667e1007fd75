"""
LedgerRegistry -- The closed external configuration of a ledger.

Responsibility:
    Declares which agents exist and which accounts they hold, how account
    names classify (asset / liability), which claim/liability pairs form a
    debt relationship that must net to zero, which account combinations
    constitute a monetary instrument, and how payments are routed (clearing
    agent reserves, house accounts).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Populated by ledger_config from YAML; never derived at runtime.

Invariants enforced:
    - Frozen dataclasses -- a registry cannot change under a running ledger.
    - Relationship names are unique (checked by ledger_config.validator).

Failure modes:
    - AccountNotFoundError from ``kind_of`` for unclassified account names.
    - SettlementRouteError from the clearing / house lookups.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ledger_kernel.domain.values import AccountKind
from ledger_kernel.exceptions import AccountNotFoundError, SettlementRouteError

RELATIONSHIP_SEPARATOR = " ↔ "


@dataclass(frozen=True)
class DebtRelationshipPair:
    """
    A named claim/liability pair that must net to zero system-wide.

    Contract:
        Summing (debit - credit) of ``claim_account`` over every creditor-side
        holder and of ``liability_account`` over every debtor-side holder
        yields zero at rest.

    ``creditor`` / ``debtor`` optionally scope a leg to one agent. They are
    needed when the same account name belongs to more than one relationship
    (e.g. "Loans from CB" held by two borrowing banks). ``None`` means every
    agent holding the account.
    """

    claim_account: str
    liability_account: str
    creditor: str | None = None
    debtor: str | None = None
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(
                self,
                "name",
                f"{self.claim_account}{RELATIONSHIP_SEPARATOR}{self.liability_account}",
            )

    def claim_counts_for(self, agent: str) -> bool:
        return self.creditor is None or self.creditor == agent

    def liability_counts_for(self, agent: str) -> bool:
        return self.debtor is None or self.debtor == agent


@dataclass(frozen=True)
class ComplexLink:
    """A binding mechanism under which linked accounts constitute money."""

    mechanism: str
    required_accounts: tuple[str, ...]
    emergent_property: str


@dataclass(frozen=True)
class ClearingMember:
    """A bank holding reserves at (and borrowing from) the clearing agent."""

    agent: str
    reserve_liability: str  # clearing agent's liability for this member's reserves
    loan_claim: str  # clearing agent's claim for loans to this member


@dataclass(frozen=True)
class ClearingArrangement:
    """
    Central clearing: one agent keeps every member's reserve account.

    Members book their reserves under ``reserve_account`` and their
    borrowing under ``borrowing_account``; the clearing agent books the
    per-member liability and claim named in ``members``.
    """

    agent: str
    reserve_account: str
    borrowing_account: str
    members: tuple[ClearingMember, ...] = ()

    def member(self, agent: str) -> ClearingMember | None:
        for m in self.members:
            if m.agent == agent:
                return m
        return None

    def is_member(self, agent: str) -> bool:
        return self.member(agent) is not None

    def require_member(self, agent: str, counterparty: str, route: str) -> ClearingMember:
        m = self.member(agent)
        if m is None:
            raise SettlementRouteError(agent, counterparty, route)
        return m


@dataclass(frozen=True)
class HouseAccount:
    """A non-bank agent's payment account at its bank."""

    agent: str
    bank: str
    asset_account: str  # held by ``agent``
    liability_account: str  # held by ``bank``


@dataclass(frozen=True)
class LedgerRegistry:
    """
    Everything a ledger needs to know that is not a booking.

    Contract:
        ``agents`` maps agent name -> account names created at zero when the
        ledger is built. ``asset_accounts`` and ``liability_accounts`` are the
        fixed classification registry.
    """

    agents: Mapping[str, tuple[str, ...]]
    asset_accounts: frozenset[str]
    liability_accounts: frozenset[str]
    debt_pairs: tuple[DebtRelationshipPair, ...] = ()
    complex_links: tuple[ComplexLink, ...] = ()
    clearing: ClearingArrangement | None = None
    house_accounts: tuple[HouseAccount, ...] = ()
    agent_titles: Mapping[str, str] = field(default_factory=dict)

    def kind_of(self, account: str) -> AccountKind:
        """Classify an account name against the asset/liability registry."""
        if account in self.asset_accounts:
            return AccountKind.ASSET
        if account in self.liability_accounts:
            return AccountKind.LIABILITY
        raise AccountNotFoundError("<registry>", account)

    def pair(self, name: str) -> DebtRelationshipPair:
        for p in self.debt_pairs:
            if p.name == name:
                return p
        raise KeyError(f"Unknown debt relationship: {name}")

    def house_account(self, agent: str) -> HouseAccount | None:
        for h in self.house_accounts:
            if h.agent == agent:
                return h
        return None
