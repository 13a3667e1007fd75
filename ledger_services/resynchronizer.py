"""
Resynchronizer -- Repairs fractured debt relationships with settlement events.

Responsibility:
    For every fracture, finds the agent whose own books carry the broken
    relationship's imbalance, synthesizes a corrective settlement event of
    the imbalance's magnitude and routes it through the event processor.
    Also demonstrates that a fracture resolves the same way through either
    repair route, and that a one-sided claim debit admits more than one
    credit resolution.

Architecture position:
    Services -- invoked explicitly. The engine never self-heals; a run that
    raised a MacroInvarianceViolation stays halted until a caller repairs it.

Invariants enforced:
    - Repairs are ordinary events: the same structural and micro checks
      apply, and every relationship not yet repaired is tolerated only for
      the duration of the pass.
    - A repair is tried on a copy before it touches the ledger. The ledger
      never carries a half-applied repair.
    - Exactly one repair pass. Fractures introduced by a repair itself are
      not chased; ``resynchronize`` reports them by returning False.

Failure modes:
    - A fracture whose legs have no holder in scope, or whose repair fails
      on the copy, is skipped and logged as ``fracture_unrepairable``;
      ``resynchronize`` then returns False.
    - ``verify_resolution_paths`` and ``claim_debit_resolutions`` work on
      copies only and report failures as invalid outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_engines.emergence import detect_money_emergence
from ledger_engines.fractures import Fracture, detect_fractures
from ledger_kernel.domain.accounts import Account, update_account
from ledger_kernel.domain.events import BookingLine, Event
from ledger_kernel.domain.ledger import Ledger
from ledger_kernel.domain.registry import DebtRelationshipPair
from ledger_kernel.domain.values import EventType, SettlementRoute, to_amount
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.invariants import BALANCE_TOLERANCE
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.invariance_checker import relationship_imbalances
from ledger_services.event_processor import process_event

logger = get_logger("services.resynchronizer")

REPAIR_ROUTES: tuple[SettlementRoute, ...] = (
    SettlementRoute.DIRECT,
    SettlementRoute.CLEARING,
)


def _holders(
    ledger: Ledger, account: str, counts_for
) -> list[tuple[str, Account]]:
    return [
        (agent.name, held)
        for agent, held in ledger.holders_of(account)
        if counts_for(agent.name)
    ]


def _pick(holders: list[tuple[str, Account]]) -> str:
    """The holder with the largest position; agent order breaks ties."""
    agent, _ = max(holders, key=lambda h: abs(h[1].net))
    return agent


def _carrier(
    ledger: Ledger, holders: list[tuple[str, Account]], imbalance: Decimal
) -> str | None:
    """
    The holder whose own books carry ``imbalance``.

    A one-sided booking on either leg moves its holder's (debits - credits)
    by exactly what it moves the relationship net. The closest match wins;
    a holder carrying more than ``imbalance`` in the same direction (several
    one-sided bookings on one agent) still qualifies.
    """
    best: tuple[Decimal, str] | None = None
    for name, _ in holders:
        agent = ledger.agent(name)
        own = agent.total_debits - agent.total_credits
        if (own > 0) != (imbalance > 0) or abs(own) < abs(imbalance) - BALANCE_TOLERANCE:
            continue
        gap = abs(own - imbalance)
        if best is None or gap < best[0]:
            best = (gap, name)
    return best[1] if best else None


def repair_event(
    ledger: Ledger,
    pair: DebtRelationshipPair,
    imbalance: Decimal,
    route: SettlementRoute = SettlementRoute.DIRECT,
    as_of: date | None = None,
) -> Event | None:
    """
    Build the settlement event that removes ``imbalance`` from ``pair``.

    A positive imbalance means the claim leg is overstated, a negative one
    the liability leg. ``accounts`` is always (overstated leg, missing leg).

    The event's agent is the holder whose own books carry the imbalance,
    looked up on the overstated leg first. A direct repair may also name a
    holder of the missing leg, which then books that leg. A clearing repair
    always starts from the overstated leg. With no such holder the largest
    positions on each leg are used.

    Returns None when either leg has no holder in scope.
    """
    claims = _holders(ledger, pair.claim_account, pair.claim_counts_for)
    liabilities = _holders(ledger, pair.liability_account, pair.liability_counts_for)
    if not claims or not liabilities:
        return None
    if imbalance > 0:
        overstated, missing = pair.claim_account, pair.liability_account
        over_holders, missing_holders = claims, liabilities
    else:
        overstated, missing = pair.liability_account, pair.claim_account
        over_holders, missing_holders = liabilities, claims

    agent = _carrier(ledger, over_holders, imbalance)
    if agent is not None:
        counter = _pick(missing_holders)
    else:
        agent = (
            _carrier(ledger, missing_holders, imbalance)
            if route is SettlementRoute.DIRECT
            else None
        )
        if agent is not None:
            counter = _pick(over_holders)
        else:
            agent, counter = _pick(over_holders), _pick(missing_holders)

    return Event(
        type=EventType.SETTLEMENT,
        date=as_of or _repair_date(ledger),
        agent=agent,
        accounts=(overstated, missing),
        amount=abs(imbalance),
        counterparties=(counter,),
        route=route,
    )


def _repair_date(ledger: Ledger) -> date:
    return ledger.history[-1].date if ledger.history else date.today()


def _try_on_copy(
    ledger: Ledger, event: Event, tolerated: set[str]
) -> tuple[Ledger, LedgerKernelError | None]:
    """Process ``event`` on a copy of ``ledger``; return the copy and any error."""
    trial = ledger.copy()
    try:
        process_event(trial, event, tolerated=tolerated)
    except LedgerKernelError as e:
        return trial, e
    return trial, None


def resynchronize(
    ledger: Ledger,
    route: SettlementRoute = SettlementRoute.DIRECT,
    as_of: date | None = None,
) -> bool:
    """
    One repair pass over every detected fracture.

    Returns:
        True iff ``detect_fractures`` is empty after the pass.
    """
    with ledger.lock:
        fractures = detect_fractures(ledger)
        if not fractures:
            logger.info("resynchronization_not_needed")
            return True

        logger.info(
            "resynchronization_started",
            extra={"fracture_count": len(fractures), "route": route.value},
        )
        remaining = set(fractures)
        for name, imbalance in fractures.items():
            with LogContext.bind(relationship=name):
                event = repair_event(ledger, ledger.registry.pair(name), imbalance, route, as_of)
                if event is None:
                    logger.warning(
                        "fracture_unrepairable",
                        extra={"imbalance": imbalance, "reason": "no holder in scope"},
                    )
                    continue
                _, error = _try_on_copy(ledger, event, remaining - {name})
                if error is not None:
                    logger.warning(
                        "fracture_unrepairable",
                        extra={"imbalance": imbalance, "error_code": error.code},
                    )
                    continue
                remaining.discard(name)
                process_event(ledger, event, tolerated=remaining)
                logger.info(
                    "fracture_repaired",
                    extra={
                        "imbalance": imbalance,
                        "repaired_by": event.agent,
                        "counterparty": event.counterparty,
                    },
                )

        left = detect_fractures(ledger)
    logger.info(
        "resynchronization_completed",
        extra={"resolved": not left, "remaining": sorted(left)},
    )
    return not left


def resolution_outcomes(
    ledger: Ledger,
    fracture: Fracture | str,
    as_of: date | None = None,
) -> dict[SettlementRoute, bool]:
    """
    Repair ``fracture`` on a copy of the ledger once per repair route.

    A route succeeds when the relationship is no longer fractured and no
    relationship that was sound before became fractured. ``ledger`` itself
    is never modified.
    """
    name = fracture.relationship if isinstance(fracture, Fracture) else fracture
    before = detect_fractures(ledger)
    if name not in before:
        return {route: True for route in REPAIR_ROUTES}

    outcomes: dict[SettlementRoute, bool] = {}
    for route in REPAIR_ROUTES:
        with LogContext.bind(relationship=name):
            event = repair_event(ledger, ledger.registry.pair(name), before[name], route, as_of)
            if event is None:
                outcomes[route] = False
                continue
            trial, error = _try_on_copy(ledger, event, set(before) - {name})
            if error is not None:
                logger.warning(
                    "resolution_path_failed",
                    extra={"route": route.value, "error_code": error.code},
                )
                outcomes[route] = False
                continue
        after = detect_fractures(trial)
        outcomes[route] = name not in after and set(after) <= set(before)
    return outcomes


def verify_resolution_paths(
    ledger: Ledger,
    fracture: Fracture | str,
    as_of: date | None = None,
) -> bool:
    """True when the direct and the clearing route both resolve ``fracture``."""
    outcomes = resolution_outcomes(ledger, fracture, as_of)
    logger.info(
        "resolution_paths_verified",
        extra={"outcomes": {route.value: ok for route, ok in outcomes.items()}},
    )
    return all(outcomes.values())


# =============================================================================
# Credit resolutions of a one-sided claim debit
# =============================================================================


@dataclass(frozen=True)
class DebitResolutions:
    """
    Candidate credits answering one booked claim debit.

    ``candidates`` maps a resolution kind to the credit lines it books;
    ``valid`` keeps the kinds that leave every relationship that was sound
    before the debit still sound.
    """

    relationship: str
    debit: BookingLine
    candidates: dict[str, tuple[BookingLine, ...]]
    valid: dict[str, tuple[BookingLine, ...]]


def _apply_lines(ledger: Ledger, lines: tuple[BookingLine, ...], on: date) -> None:
    for line in lines:
        update_account(ledger.account(line.agent, line.account), line.amount, line.side, on)


def _credit_candidates(
    ledger: Ledger,
    pair: DebtRelationshipPair,
    creditor: str,
    debtor: str,
    amount: Decimal,
) -> dict[str, tuple[BookingLine, ...]]:
    candidates = {
        "direct": (BookingLine.credit(debtor, pair.liability_account, amount),),
    }
    for name, _ in _holders(ledger, pair.liability_account, pair.liability_counts_for):
        if name != debtor:
            candidates[f"indirect:{name}"] = (
                BookingLine.credit(name, pair.liability_account, amount),
            )
    candidates["reversal"] = (BookingLine.credit(creditor, pair.claim_account, amount),)
    clearing = ledger.registry.clearing
    if clearing is not None and clearing.is_member(creditor):
        candidates["settlement"] = (
            BookingLine.credit(creditor, clearing.reserve_account, amount),
        )
    return candidates


def claim_debit_resolutions(
    ledger: Ledger,
    relationship: str,
    creditor: str,
    debtor: str,
    amount: Decimal | int | str,
    on: date | None = None,
) -> DebitResolutions:
    """
    Book a one-sided debit on ``creditor``'s claim leg and test its credits.

    Candidates: the debtor credits the liability leg ("direct"); every
    other in-scope holder of the liability leg does ("indirect:<agent>");
    the creditor credits the claim back ("reversal"); the creditor credits
    its clearing reserves ("settlement"). Each candidate is applied on its
    own copy after the debit. ``ledger`` itself is never modified.

    Raises:
        AgentNotFoundError / AccountNotFoundError: ``creditor`` does not hold
            the claim leg or ``debtor`` the liability leg.
    """
    pair = ledger.registry.pair(relationship)
    value = to_amount(amount)
    on = on or _repair_date(ledger)
    debit = BookingLine.debit(creditor, pair.claim_account, value)

    with ledger.lock:
        before = set(relationship_imbalances(ledger))
        ledger.account(creditor, pair.claim_account)
        ledger.account(debtor, pair.liability_account)
        debited = ledger.copy()
    _apply_lines(debited, (debit,), on)

    candidates = _credit_candidates(debited, pair, creditor, debtor, value)
    valid: dict[str, tuple[BookingLine, ...]] = {}
    for kind, credits in candidates.items():
        trial = debited.copy()
        _apply_lines(trial, credits, on)
        if set(relationship_imbalances(trial)) <= before:
            valid[kind] = credits

    with LogContext.bind(relationship=relationship, agent=creditor):
        logger.info(
            "claim_debit_resolved",
            extra={
                "amount": value,
                "candidates": list(candidates),
                "valid": list(valid),
            },
        )
    return DebitResolutions(
        relationship=relationship,
        debit=debit,
        candidates=candidates,
        valid=valid,
    )


def verify_possibility_principle(
    ledger: Ledger,
    relationship: str,
    creditor: str,
    debtor: str,
    amount: Decimal | int | str,
    on: date | None = None,
) -> bool:
    """
    True when more than one credit resolves the same claim debit.

    A resolution counts when it keeps every relationship sound and money
    still emerges from the resulting ledger.
    """
    resolutions = claim_debit_resolutions(ledger, relationship, creditor, debtor, amount, on)
    on = on or _repair_date(ledger)

    counted = []
    for kind, credits in resolutions.valid.items():
        trial = ledger.copy()
        _apply_lines(trial, (resolutions.debit,) + credits, on)
        if any(detect_money_emergence(trial).values()):
            counted.append(kind)

    with LogContext.bind(relationship=relationship, agent=creditor):
        logger.info("possibility_principle_verified", extra={"resolutions": counted})
    return len(counted) > 1
