"""
Events -- Immutable event records and the booking lines they produce.

Responsibility:
    Defines ``Event`` (the input record supplied by an external scenario
    generator) and ``BookingLine`` (one side of one paired mutation, the
    output of a posting handler).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Event amounts are non-negative Decimals.
    - Every event names at least two accounts.

Failure modes:
    - EventValidationError for malformed records.
    - NegativeAmountError for negative amounts.

Data flow:
    Event -> PostingHandler -> tuple[BookingLine] -> update_account
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from ledger_kernel.domain.values import EventType, SettlementRoute, Side, to_amount
from ledger_kernel.exceptions import EventValidationError


@dataclass(frozen=True)
class Event:
    """
    A financial event.

    Contract:
        ``agent`` is the primary agent (issuer, lender, buyer, drawer,
        acquiring bank or creditor depending on ``type``);
        ``counterparties`` names the other agents involved. The meaning of
        each position in ``accounts`` is fixed per event type (see
        ledger_kernel.domain.handlers).
    """

    type: EventType
    date: date
    agent: str
    accounts: tuple[str, ...]
    amount: Decimal
    counterparties: tuple[str, ...] = ()
    route: SettlementRoute = SettlementRoute.PAYMENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", EventType.parse(self.type))
        object.__setattr__(self, "route", SettlementRoute(self.route))
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "counterparties", tuple(self.counterparties))
        object.__setattr__(self, "amount", to_amount(self.amount))
        if len(self.accounts) < 2:
            raise EventValidationError(
                self.type.value, f"needs at least 2 accounts, got {len(self.accounts)}"
            )
        if not self.agent:
            raise EventValidationError(self.type.value, "agent is required")

    @property
    def counterparty(self) -> str:
        """The single counterparty of a bilateral event."""
        if not self.counterparties:
            raise EventValidationError(self.type.value, "counterparty is required")
        return self.counterparties[0]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Event:
        """
        Build an event from a plain mapping as emitted by a scenario generator.

        Accepts ``counterparty`` (single) or ``counterparties`` (sequence), and
        ISO date strings.
        """
        counterparties = data.get("counterparties")
        if counterparties is None:
            single = data.get("counterparty")
            counterparties = (single,) if single else ()
        raw_date = data["date"]
        event_date = raw_date if isinstance(raw_date, date) else date.fromisoformat(raw_date)
        return cls(
            type=EventType.parse(data["type"]),
            date=event_date,
            agent=data["agent"],
            accounts=tuple(data["accounts"]),
            amount=data["amount"],
            counterparties=tuple(counterparties),
            route=SettlementRoute(data.get("route", SettlementRoute.PAYMENT)),
        )


@dataclass(frozen=True)
class BookingLine:
    """
    One side of a paired mutation.

    Contract:
        Handler output. Lines are only ever applied as a whole set by the
        event processor; a single line on its own means nothing.
    """

    agent: str
    account: str
    side: Side
    amount: Decimal

    @classmethod
    def debit(cls, agent: str, account: str, amount: Decimal) -> BookingLine:
        return cls(agent=agent, account=account, side=Side.DEBIT, amount=amount)

    @classmethod
    def credit(cls, agent: str, account: str, amount: Decimal) -> BookingLine:
        return cls(agent=agent, account=account, side=Side.CREDIT, amount=amount)


@dataclass(frozen=True)
class LedgerRow:
    """One row of the append-only transaction log, written per booking."""

    date: date
    agent: str
    account: str
    debit_balance: Decimal
    credit_balance: Decimal
    net: Decimal = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "net", self.debit_balance - self.credit_balance)
