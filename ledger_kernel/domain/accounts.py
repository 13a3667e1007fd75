"""
Accounts -- T-accounts and the agents that hold them.

Responsibility:
    Defines the mutable T-account (debit / credit accumulators plus an
    ordered entry log) and the Agent that groups accounts by name, together
    with ``update_account``, the only primitive that mutates an account.

Architecture position:
    Kernel > Domain -- pure, in-memory, zero I/O.

Invariants enforced:
    - Accumulators only ever increase (amounts are non-negative).
    - Every mutation appends exactly one AccountEntry (full audit trail).
    - Accounts are created with the agent and never deleted.

Non-goals:
    ``update_account`` does NOT check micro or macro invariance. That is the
    event processor's job; the primitive stays cheap and side-effect only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ledger_kernel.domain.values import ZERO, Side, to_amount
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.invariants import is_zero


@dataclass(frozen=True)
class AccountEntry:
    """One line of an account's transaction log."""

    timestamp: date
    amount: Decimal
    side: Side


@dataclass
class Account:
    """
    A T-account.

    ``debit`` is the left side, ``credit`` the right side. ``net`` is the
    position from the holder's perspective (debit - credit).
    """

    name: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    entries: list[AccountEntry] = field(default_factory=list)

    @property
    def net(self) -> Decimal:
        return self.debit - self.credit

    @property
    def is_open(self) -> bool:
        """True when the account carries a non-zero position."""
        return not is_zero(self.net)


@dataclass
class Agent:
    """A named economic participant and its accounts."""

    name: str
    accounts: dict[str, Account] = field(default_factory=dict)
    title: str = ""

    @classmethod
    def with_accounts(cls, name: str, account_names: tuple[str, ...], title: str = "") -> Agent:
        return cls(
            name=name,
            accounts={n: Account(n) for n in account_names},
            title=title,
        )

    def account(self, name: str) -> Account:
        try:
            return self.accounts[name]
        except KeyError:
            raise AccountNotFoundError(self.name, name) from None

    def holds(self, name: str) -> bool:
        return name in self.accounts

    @property
    def total_debits(self) -> Decimal:
        return sum((a.debit for a in self.accounts.values()), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((a.credit for a in self.accounts.values()), ZERO)


def update_account(
    account: Account,
    amount: Decimal | int | str | float,
    side: Side | str,
    timestamp: date,
) -> None:
    """
    Add ``amount`` to one accumulator of ``account`` and log the entry.

    Preconditions:
        - amount >= 0

    Raises:
        NegativeAmountError: If amount < 0.
    """
    value = to_amount(amount, account.name)
    side = Side(side)
    if side is Side.DEBIT:
        account.debit += value
    else:
        account.credit += value
    account.entries.append(AccountEntry(timestamp=timestamp, amount=value, side=side))
