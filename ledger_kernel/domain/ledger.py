"""
Ledger -- The explicit, owned context threaded through every operation.

Responsibility:
    Holds the agents, the registry they were built from, the append-only
    transaction log and the history of processed events. Owns the lock that
    serializes mutation per event.

Architecture position:
    Kernel > Domain -- in-memory state container, zero I/O.

Invariants enforced:
    - Every agent is created with its whole account chart at zero.
    - The transaction log is append-only.
    - ``copy()`` is fully independent of the original (what-if analysis).
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

from ledger_kernel.domain.accounts import Account, Agent
from ledger_kernel.domain.events import Event, LedgerRow
from ledger_kernel.domain.registry import LedgerRegistry
from ledger_kernel.exceptions import AgentNotFoundError


@dataclass
class Ledger:
    """
    Multi-agent double-entry ledger.

    Mutation goes through ``ledger_services.event_processor.process_event``,
    which takes ``lock`` for the whole event. Read-only scans can run on a
    settled snapshot without it.
    """

    registry: LedgerRegistry
    agents: dict[str, Agent] = field(default_factory=dict)
    rows: list[LedgerRow] = field(default_factory=list)
    history: list[Event] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def agent(self, name: str) -> Agent:
        try:
            return self.agents[name]
        except KeyError:
            raise AgentNotFoundError(name) from None

    def account(self, agent: str, account: str) -> Account:
        return self.agent(agent).account(account)

    def holders_of(self, account: str) -> Iterator[tuple[Agent, Account]]:
        """Yield (agent, account) for every agent holding ``account``."""
        for agent in self.agents.values():
            held = agent.accounts.get(account)
            if held is not None:
                yield agent, held

    def copy(self) -> Ledger:
        """Return an independent deep copy with a fresh lock."""
        with self.lock:
            return Ledger(
                registry=self.registry,
                agents=copy.deepcopy(self.agents),
                rows=list(self.rows),
                history=list(self.history),
            )


def create_ledger(registry: LedgerRegistry) -> Ledger:
    """Build a ledger with every configured agent and account at zero."""
    agents = {
        name: Agent.with_accounts(
            name, tuple(accounts), title=registry.agent_titles.get(name, "")
        )
        for name, accounts in registry.agents.items()
    }
    return Ledger(registry=registry, agents=agents)
