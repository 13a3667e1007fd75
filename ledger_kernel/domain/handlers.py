"""
Posting handlers -- Event type to booking-line dispatch.

Responsibility:
    One pure function per EventType turning an Event into the complete set
    of BookingLines that event produces. Handlers never touch accounts;
    the event processor applies their output as a unit.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every EventType has exactly one handler (checked at import time).
    - Each handler's lines balance per agent (debits == credits) and net
      every debt relationship they touch. The event processor re-verifies
      both after applying them.

Failure modes:
    - EventValidationError: missing counterparty or too few accounts.
    - SettlementRouteError: no payment route between creditor and debtor.
    - HandlerNotFoundError: lookup of an unregistered type.
"""

from __future__ import annotations

from collections.abc import Callable

from ledger_kernel.domain.events import BookingLine, Event
from ledger_kernel.domain.registry import ClearingArrangement, LedgerRegistry
from ledger_kernel.domain.values import AccountKind, EventType, SettlementRoute, Side
from ledger_kernel.exceptions import (
    EventValidationError,
    HandlerNotFoundError,
    SettlementRouteError,
)

PostingHandler = Callable[[Event, LedgerRegistry], tuple[BookingLine, ...]]

_HANDLERS: dict[EventType, PostingHandler] = {}


def posting_handler(event_type: EventType):
    """Decorator registering the handler for ``event_type``."""

    def decorator(fn: PostingHandler) -> PostingHandler:
        if event_type in _HANDLERS:
            raise ValueError(f"Handler already registered for {event_type.value}")
        _HANDLERS[event_type] = fn
        return fn

    return decorator


def get_handler(event_type: EventType | str) -> PostingHandler:
    try:
        return _HANDLERS[EventType.parse(event_type)]
    except (KeyError, ValueError):
        raise HandlerNotFoundError(str(event_type)) from None


def registered_event_types() -> frozenset[EventType]:
    return frozenset(_HANDLERS)


def lines_for(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """Compute the booking lines for ``event`` without applying them."""
    return get_handler(event.type)(event, registry)


# =============================================================================
# Helpers
# =============================================================================


def _require_accounts(event: Event, count: int) -> None:
    if len(event.accounts) < count:
        raise EventValidationError(
            event.type.value,
            f"needs {count} accounts, got {len(event.accounts)}",
        )


def _require_clearing(registry: LedgerRegistry, event: Event) -> ClearingArrangement:
    if registry.clearing is None:
        raise SettlementRouteError(
            event.agent, event.counterparty, event.route.value
        )
    return registry.clearing


def _reserve_transfer(
    clearing: ClearingArrangement,
    payer: str,
    payee: str,
    amount,
    route: str,
) -> tuple[BookingLine, ...]:
    """Move ``amount`` of reserves from ``payer`` to ``payee`` through the clearing agent."""
    payer_member = clearing.require_member(payer, payee, route)
    payee_member = clearing.require_member(payee, payer, route)
    return (
        BookingLine.credit(payer, clearing.reserve_account, amount),
        BookingLine.debit(clearing.agent, payer_member.reserve_liability, amount),
        BookingLine.credit(clearing.agent, payee_member.reserve_liability, amount),
        BookingLine.debit(payee, clearing.reserve_account, amount),
    )


# =============================================================================
# Handlers
# =============================================================================


@posting_handler(EventType.MONEY_CREATION)
def money_creation(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """Issuer books the new money as an asset against its circulation liability."""
    asset, liability = event.accounts[0], event.accounts[1]
    return (
        BookingLine.debit(event.agent, asset, event.amount),
        BookingLine.credit(event.agent, liability, event.amount),
    )


@posting_handler(EventType.INTERBANK_LOAN)
def interbank_loan(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """
    Clearing agent lends reserves to each borrowing member.

    The lender books a loan claim against the member's reserve liability;
    the member books the reserve asset against its borrowing.
    """
    clearing = registry.clearing
    if clearing is None or clearing.agent != event.agent:
        raise EventValidationError(
            event.type.value, f"lender {event.agent} is not the clearing agent"
        )
    borrowers = event.counterparties or tuple(m.agent for m in clearing.members)
    lines: list[BookingLine] = []
    for borrower in borrowers:
        member = clearing.member(borrower)
        if member is None:
            raise EventValidationError(
                event.type.value, f"borrower {borrower} is not a clearing member"
            )
        lines.extend((
            BookingLine.debit(event.agent, member.loan_claim, event.amount),
            BookingLine.credit(event.agent, member.reserve_liability, event.amount),
            BookingLine.debit(borrower, clearing.reserve_account, event.amount),
            BookingLine.credit(borrower, clearing.borrowing_account, event.amount),
        ))
    return tuple(lines)


@posting_handler(EventType.PURCHASE)
def purchase(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """Goods on credit: buyer takes the goods and a payable, seller a receivable."""
    _require_accounts(event, 3)
    goods, payable, receivable = event.accounts[:3]
    seller = event.counterparty
    return (
        BookingLine.debit(event.agent, goods, event.amount),
        BookingLine.credit(event.agent, payable, event.amount),
        BookingLine.debit(seller, receivable, event.amount),
        BookingLine.credit(seller, goods, event.amount),
    )


@posting_handler(EventType.BOE_CREATION)
def boe_creation(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """The trade debt is replaced by a bill of exchange drawn on the drawee."""
    _require_accounts(event, 4)
    bill_claim, bill_liability, trade_receivable, trade_payable = event.accounts[:4]
    drawee = event.counterparty
    return (
        BookingLine.debit(event.agent, bill_claim, event.amount),
        BookingLine.credit(event.agent, trade_receivable, event.amount),
        BookingLine.debit(drawee, trade_payable, event.amount),
        BookingLine.credit(drawee, bill_liability, event.amount),
    )


@posting_handler(EventType.BOE_TRANSFER)
def boe_transfer(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """A bank discounts the bill, paying the holder with a deposit."""
    _require_accounts(event, 3)
    bill_claim, deposit_liability, deposit_asset = event.accounts[:3]
    holder = event.counterparty
    return (
        BookingLine.debit(event.agent, bill_claim, event.amount),
        BookingLine.credit(event.agent, deposit_liability, event.amount),
        BookingLine.debit(holder, deposit_asset, event.amount),
        BookingLine.credit(holder, bill_claim, event.amount),
    )


@posting_handler(EventType.SETTLEMENT)
def settlement(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """Dispatch on the settlement route."""
    if event.route is SettlementRoute.DIRECT:
        return _direct_repair(event, registry)
    if event.route is SettlementRoute.CLEARING:
        return _clearing_repair(event, registry)
    return _payment(event, registry)


def _payment(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """
    Extinguish both legs of a live relationship and pay the creditor.

    Members of the clearing arrangement pay through their reserves at the
    clearing agent (the three-hop chain); otherwise the debtor pays from its
    house account when its bank is the creditor.
    """
    claim, liability = event.accounts[0], event.accounts[1]
    creditor, debtor = event.agent, event.counterparty
    extinguish = (
        BookingLine.credit(creditor, claim, event.amount),
        BookingLine.debit(debtor, liability, event.amount),
    )

    clearing = registry.clearing
    if clearing is not None and clearing.is_member(creditor) and clearing.is_member(debtor):
        return extinguish + _reserve_transfer(
            clearing, debtor, creditor, event.amount, event.route.value
        )

    house = registry.house_account(debtor)
    if house is not None and house.bank == creditor:
        return extinguish + (
            BookingLine.credit(debtor, house.asset_account, event.amount),
            BookingLine.debit(creditor, house.liability_account, event.amount),
        )

    raise SettlementRouteError(debtor, creditor, event.route.value)


def _direct_repair(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """
    The agent corrects its own leg of the fractured relationship.

    ``accounts`` is (overstated leg, missing leg). An agent holding the
    overstated leg writes it back; otherwise it books the missing leg.
    """
    overstated, missing = event.accounts[0], event.accounts[1]
    if overstated in registry.agents.get(event.agent, ()):
        side = Side.CREDIT if registry.kind_of(overstated) is AccountKind.ASSET else Side.DEBIT
        return (BookingLine(event.agent, overstated, side, event.amount),)
    side = Side.DEBIT if registry.kind_of(missing) is AccountKind.ASSET else Side.CREDIT
    return (BookingLine(event.agent, missing, side, event.amount),)


def _clearing_repair(event: Event, registry: LedgerRegistry) -> tuple[BookingLine, ...]:
    """
    The counter-leg holder books the missing leg; value moves through reserves.

    A missing liability is booked against new reserves for its holder, taken
    from the overstated-leg holder. A missing claim works the other way round.
    """
    clearing = _require_clearing(registry, event)
    missing = event.accounts[1]
    holder, counter = event.agent, event.counterparty
    side = Side.CREDIT if registry.kind_of(missing) is AccountKind.LIABILITY else Side.DEBIT
    if side is Side.CREDIT:
        reserve_lines = _reserve_transfer(
            clearing, holder, counter, event.amount, event.route.value
        )
    else:
        reserve_lines = _reserve_transfer(
            clearing, counter, holder, event.amount, event.route.value
        )
    return (BookingLine(counter, missing, side, event.amount),) + reserve_lines


def _check_exhaustive() -> None:
    missing = set(EventType) - set(_HANDLERS)
    if missing:
        names = ", ".join(sorted(t.value for t in missing))
        raise RuntimeError(f"No posting handler registered for: {names}")


_check_exhaustive()
