"""
Reporting -- Balance sheets and the transaction log.

Responsibility:
    Derives a per-agent balance sheet by classifying each account against
    the registry's asset / liability sets, and exposes the append-only
    transaction log.

Architecture position:
    Services -- read-only consumers of a settled ledger.

Invariants enforced:
    - A balance sheet is only produced for an agent whose books balance.
    - Balances are signed from the holder's perspective: assets are
      debit-normal (debit - credit), liabilities credit-normal
      (credit - debit).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.domain.events import LedgerRow
from ledger_kernel.domain.ledger import Ledger
from ledger_kernel.domain.values import ZERO, AccountKind
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.invariance_checker import require_micro_invariance

logger = get_logger("services.reporting")


@dataclass(frozen=True)
class BalanceSheet:
    """One agent's balance sheet."""

    agent: str
    assets: tuple[tuple[str, Decimal], ...]
    liabilities: tuple[tuple[str, Decimal], ...]
    total_assets: Decimal
    total_liabilities: Decimal

    @property
    def net_worth(self) -> Decimal:
        return self.total_assets - self.total_liabilities

    def balance_of(self, account: str) -> Decimal:
        for name, balance in self.assets + self.liabilities:
            if name == account:
                return balance
        raise KeyError(account)


def balance_sheet(ledger: Ledger, agent: str) -> BalanceSheet:
    """
    Build ``agent``'s balance sheet.

    Raises:
        AgentNotFoundError: Unknown agent.
        AccountNotFoundError: An account is missing from the classification.
        MicroInvarianceViolation: The agent's books do not balance.
    """
    holder = ledger.agent(agent)
    require_micro_invariance(holder)

    assets: list[tuple[str, Decimal]] = []
    liabilities: list[tuple[str, Decimal]] = []
    for name, account in holder.accounts.items():
        if ledger.registry.kind_of(name) is AccountKind.ASSET:
            assets.append((name, account.debit - account.credit))
        else:
            liabilities.append((name, account.credit - account.debit))

    sheet = BalanceSheet(
        agent=agent,
        assets=tuple(assets),
        liabilities=tuple(liabilities),
        total_assets=sum((b for _, b in assets), ZERO),
        total_liabilities=sum((b for _, b in liabilities), ZERO),
    )
    logger.debug(
        "balance_sheet_built",
        extra={
            "total_assets": sheet.total_assets,
            "total_liabilities": sheet.total_liabilities,
        },
    )
    return sheet


def transaction_log(ledger: Ledger) -> tuple[LedgerRow, ...]:
    """Every booking row so far, oldest first."""
    return tuple(ledger.rows)
