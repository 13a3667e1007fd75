"""
Values -- Closed enumerations and amount coercion.

Responsibility:
    Provides the tagged variants every other module dispatches on:
    AccountKind, Side, EventType and SettlementRoute, plus ``to_amount``,
    the single place where external numbers become ``Decimal``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies.

Invariants enforced:
    - Amounts are Decimal, never float, once inside the kernel.
    - Booking amounts are non-negative.

Failure modes:
    - NegativeAmountError for amounts < 0
    - ValueError for values that do not parse as a number
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from ledger_kernel.exceptions import NegativeAmountError

ZERO = Decimal("0")


class AccountKind(str, Enum):
    """Balance-sheet side of an account. Exhaustive."""

    ASSET = "asset"
    LIABILITY = "liability"


class Side(str, Enum):
    """
    Which accumulator of a T-account a booking increases.

    Guarantees:
        - Exhaustive enumeration -- no other sides exist in double-entry.
    """

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> Side:
        return Side.CREDIT if self is Side.DEBIT else Side.DEBIT


class EventType(str, Enum):
    """Closed set of financial event types the processor understands."""

    MONEY_CREATION = "money_creation"
    INTERBANK_LOAN = "interbank_loan"
    PURCHASE = "purchase"
    BOE_CREATION = "boe_creation"
    BOE_TRANSFER = "boe_transfer"
    SETTLEMENT = "settlement"

    @classmethod
    def parse(cls, value: str | EventType) -> EventType:
        """Parse an event type, accepting the legacy scenario spellings."""
        if isinstance(value, EventType):
            return value
        normalized = value.strip().lower()
        return cls(_EVENT_TYPE_ALIASES.get(normalized, normalized))


_EVENT_TYPE_ALIASES: dict[str, str] = {
    "loans": "interbank_loan",
    "bicycle_purchase": "purchase",
    "boe_bank_transfer": "boe_transfer",
}


class SettlementRoute(str, Enum):
    """
    How a settlement event moves value.

    PAYMENT  -- ordinary settlement: both legs of a live relationship are
                extinguished and the debtor pays the creditor.
    DIRECT   -- repair: the agent whose one-sided booking broke the
                relationship corrects its own leg (writes the overstated
                leg back, or books the missing one).
    CLEARING -- repair: the counter-leg holder books the missing leg and the
                offsetting value moves between reserve accounts at the
                clearing agent.
    """

    PAYMENT = "payment"
    DIRECT = "direct"
    CLEARING = "clearing"


def to_amount(value: Decimal | int | str | float, account: str | None = None) -> Decimal:
    """
    Coerce an external amount to a non-negative Decimal.

    Floats (as emitted by an external numeric model) go through ``str`` so the
    Decimal carries the printed value, not the binary expansion.

    Raises:
        NegativeAmountError: If the amount is below zero.
        ValueError: If the value is not numeric.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    if amount < ZERO:
        raise NegativeAmountError(amount, account)
    return amount
