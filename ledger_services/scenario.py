"""
Reference scenario -- the bicycle / bill-of-exchange cycle.

A central bank issues paper money and lends reserves to two commercial
banks. A buyer purchases a bicycle on credit, the seller draws a bill of
exchange on the buyer, the seller's bank discounts the bill and passes it
on to the buyer's bank, and the banks settle the resulting deposit through
their reserves at the central bank.

Amounts come from an external numeric model, so they arrive as plain
numbers and are converted by the Event record.
"""

from __future__ import annotations

from datetime import date

from ledger_kernel.domain.events import Event
from ledger_kernel.domain.values import EventType

REFERENCE_START = date(2025, 1, 15)


def _months_after(start: date, months: int) -> date:
    year, month = divmod(start.month - 1 + months, 12)
    return start.replace(year=start.year + year, month=month + 1)


def reference_events(
    initial_money=1000,
    loan_amount=200,
    bicycle_price=100,
    start_date: date = REFERENCE_START,
) -> list[Event]:
    """The seven-event reference cycle, one step per month after the loans."""

    def on(months: int) -> date:
        return _months_after(start_date, months)

    return [
        Event(
            type=EventType.MONEY_CREATION,
            date=on(0),
            agent="CB",
            accounts=("Paper Money", "Paper Money in Circulation"),
            amount=initial_money,
        ),
        Event(
            type=EventType.INTERBANK_LOAN,
            date=on(0),
            agent="CB",
            accounts=("Loans to Banks", "Loans to Bankb", "Deposits from Banks", "Deposits from Bankb"),
            amount=loan_amount,
            counterparties=("Banks", "Bankb"),
        ),
        Event(
            type=EventType.PURCHASE,
            date=on(1),
            agent="B",
            accounts=("Bicycle", "Liability General", "Receivable General"),
            amount=bicycle_price,
            counterparties=("S",),
        ),
        Event(
            type=EventType.BOE_CREATION,
            date=on(2),
            agent="S",
            accounts=("Receivable from BOE", "Liability from BOE", "Receivable General", "Liability General"),
            amount=bicycle_price,
            counterparties=("B",),
        ),
        Event(
            type=EventType.BOE_TRANSFER,
            date=on(3),
            agent="Banks",
            accounts=("Receivable from BOE", "Deposits from S", "Deposits at Banks"),
            amount=bicycle_price,
            counterparties=("S",),
        ),
        Event(
            type=EventType.BOE_TRANSFER,
            date=on(4),
            agent="Bankb",
            accounts=("Receivable from BOE", "Deposits from Banks", "Deposits at Bankb"),
            amount=bicycle_price,
            counterparties=("Banks",),
        ),
        Event(
            type=EventType.SETTLEMENT,
            date=on(5),
            agent="Banks",
            accounts=("Deposits at Bankb", "Deposits from Banks"),
            amount=bicycle_price,
            counterparties=("Bankb",),
        ),
    ]
