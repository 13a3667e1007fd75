"""
InvarianceChecker -- Micro (per-agent) and macro (per-relationship) balance.

Responsibility:
    Verifies that every agent's books balance and that every registered
    debt relationship nets to zero across the agents holding its legs.

Architecture position:
    Kernel > Services -- read-only over a settled ledger. Called by the event
    processor after each event and by reporting before a balance sheet is
    produced.

Invariants enforced:
    - Micro: sum(debit) == sum(credit) for an agent, within BALANCE_TOLERANCE.
    - Macro: for each DebtRelationshipPair, the net of the claim leg over its
      creditor-side holders plus the net of the liability leg over its
      debtor-side holders is zero, within BALANCE_TOLERANCE.

Failure modes:
    - MicroInvarianceViolation from ``require_micro_invariance``.
    - MacroInvarianceViolation from ``check_macro_invariance`` (first
      offending relationship in registry order).
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from ledger_kernel.domain.accounts import Agent
from ledger_kernel.domain.ledger import Ledger
from ledger_kernel.domain.registry import DebtRelationshipPair
from ledger_kernel.domain.values import ZERO
from ledger_kernel.exceptions import MacroInvarianceViolation, MicroInvarianceViolation
from ledger_kernel.invariants import is_zero
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.invariance")

BOE_CLAIM_ACCOUNT = "Receivable from BOE"


# =============================================================================
# Micro
# =============================================================================


def check_micro_invariance(agent: Agent) -> bool:
    """True when the agent's total debits equal its total credits."""
    return is_zero(agent.total_debits - agent.total_credits)


def require_micro_invariance(agent: Agent, event_type: str | None = None) -> None:
    """Raise MicroInvarianceViolation when the agent's books do not balance."""
    if not check_micro_invariance(agent):
        logger.error(
            "micro_invariance_violated",
            extra={
                "agent": agent.name,
                "total_debits": agent.total_debits,
                "total_credits": agent.total_credits,
            },
        )
        raise MicroInvarianceViolation(
            agent.name, agent.total_debits, agent.total_credits, event_type
        )


# =============================================================================
# Macro
# =============================================================================


def relationship_net(ledger: Ledger, pair: DebtRelationshipPair) -> Decimal:
    """Combined (debit - credit) of both legs of ``pair`` across the ledger."""
    total = ZERO
    for agent, account in ledger.holders_of(pair.claim_account):
        if pair.claim_counts_for(agent.name):
            total += account.net
    for agent, account in ledger.holders_of(pair.liability_account):
        if pair.liability_counts_for(agent.name):
            total += account.net
    return total


def relationship_imbalances(ledger: Ledger) -> dict[str, Decimal]:
    """Every registered relationship whose net is not zero, by name."""
    imbalances: dict[str, Decimal] = {}
    for pair in ledger.registry.debt_pairs:
        net = relationship_net(ledger, pair)
        if not is_zero(net):
            imbalances[pair.name] = net
    return imbalances


def check_relationship_invariance(ledger: Ledger, name: str) -> bool:
    """True when the named relationship nets to zero."""
    return is_zero(relationship_net(ledger, ledger.registry.pair(name)))


def check_macro_invariance(
    ledger: Ledger,
    tolerated: Iterable[str] = (),
    event_type: str | None = None,
) -> None:
    """
    Raise on the first registered relationship that does not net to zero.

    Args:
        tolerated: Relationship names allowed to stay fractured, e.g. the
            ones a repair pass has not reached yet.
        event_type: Included in the error for context.

    Raises:
        MacroInvarianceViolation: Naming the relationship and its imbalance.
    """
    skip = frozenset(tolerated)
    for pair in ledger.registry.debt_pairs:
        if pair.name in skip:
            continue
        net = relationship_net(ledger, pair)
        if not is_zero(net):
            logger.error(
                "macro_invariance_violated",
                extra={"relationship": pair.name, "imbalance": net},
            )
            raise MacroInvarianceViolation(pair.name, net, event_type)


def check_boe_macro_invariance(ledger: Ledger) -> bool:
    """True when every bill-of-exchange relationship nets to zero."""
    return all(
        is_zero(relationship_net(ledger, pair))
        for pair in ledger.registry.debt_pairs
        if pair.claim_account == BOE_CLAIM_ACCOUNT
    )
