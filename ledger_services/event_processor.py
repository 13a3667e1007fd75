"""
EventProcessor -- Applies financial events to a ledger under invariant enforcement.

Responsibility:
    Turns each Event into its diagram (structural check), its booking lines
    (posting handler) and finally the account mutations, then verifies the
    micro invariant for every touched agent and the macro invariant for the
    whole ledger. ``run`` applies an event sequence in date order.

Architecture position:
    Services -- the only layer that mutates a ledger.
    Calls ledger_engines.diagram and the kernel's handlers and checker.

Invariants enforced:
    - Paired mutation: accounts change only through a handler's complete
      line set, applied under the ledger lock.
    - Micro balance for every touched agent after each event.
    - Macro netting for every relationship after each event (minus an
      explicit ``tolerated`` set during repair).
    - Events are applied in non-decreasing date order: ``run`` sorts its
      batch and ``process_event`` refuses an event dated before the last
      one applied.

Failure modes:
    - EventValidationError: the event is dated before the last applied
      event. Raised before any account changes.
    - StructuralError: the event's diagram does not commute or its colimit
      fails the universal property. Raised before any account changes.
    - AgentNotFoundError / AccountNotFoundError: a line names an unknown
      target. Raised before any account changes.
    - MicroInvarianceViolation / MacroInvarianceViolation: raised after the
      lines are applied. There is no rollback; the ledger must be treated
      as untrustworthy until repaired and re-verified.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from ledger_config import get_active_config
from ledger_engines.diagram import (
    build_colimit,
    build_diagram,
    require_commutative,
    require_universal_property,
)
from ledger_kernel.domain.accounts import update_account
from ledger_kernel.domain.events import BookingLine, Event, LedgerRow
from ledger_kernel.domain.handlers import lines_for
from ledger_kernel.domain.ledger import Ledger, create_ledger
from ledger_kernel.domain.registry import LedgerRegistry
from ledger_kernel.exceptions import EventValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.invariance_checker import (
    check_macro_invariance,
    require_micro_invariance,
)

logger = get_logger("services.event_processor")


@dataclass(frozen=True)
class EventResult:
    """What one processed event did to the ledger."""

    event: Event
    lines: tuple[BookingLine, ...]
    rows: tuple[LedgerRow, ...]
    touched_agents: tuple[str, ...]


def _touched(lines: tuple[BookingLine, ...]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(line.agent for line in lines))


def _require_in_date_order(ledger: Ledger, event: Event) -> None:
    if ledger.history and event.date < ledger.history[-1].date:
        raise EventValidationError(
            event.type.value,
            f"dated {event.date.isoformat()}, before the last applied event "
            f"({ledger.history[-1].date.isoformat()})",
        )


def process_event(
    ledger: Ledger,
    event: Event,
    tolerated: Iterable[str] = (),
) -> EventResult:
    """
    Apply one event to ``ledger``.

    Args:
        tolerated: Relationship names allowed to stay fractured after this
            event. Only the resynchronizer passes anything here.

    Raises:
        StructuralError, LedgerError, InvarianceViolation (see module doc).
    """
    with LogContext.bind(
        correlation_id=str(uuid4()),
        event_type=event.type.value,
        event_date=event.date.isoformat(),
        agent=event.agent,
    ):
        t0 = time.monotonic()

        diagram = build_diagram(event.type, event.amount, event.date)
        require_commutative(diagram)
        require_universal_property(build_colimit(diagram))

        lines = lines_for(event, ledger.registry)
        touched = _touched(lines)

        with ledger.lock:
            _require_in_date_order(ledger, event)
            # Resolve every target before the first mutation.
            targets = [(line, ledger.account(line.agent, line.account)) for line in lines]
            rows = []
            for line, account in targets:
                update_account(account, line.amount, line.side, event.date)
                row = LedgerRow(
                    date=event.date,
                    agent=line.agent,
                    account=line.account,
                    debit_balance=account.debit,
                    credit_balance=account.credit,
                )
                ledger.rows.append(row)
                rows.append(row)
            ledger.history.append(event)

            for name in touched:
                require_micro_invariance(ledger.agent(name), event.type.value)
            check_macro_invariance(ledger, tolerated, event.type.value)

        logger.info(
            "event_processed",
            extra={
                "amount": event.amount,
                "route": event.route.value,
                "line_count": len(lines),
                "touched_agents": list(touched),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return EventResult(
            event=event,
            lines=lines,
            rows=tuple(rows),
            touched_agents=touched,
        )


def _as_event(item: Event | Mapping[str, Any]) -> Event:
    return item if isinstance(item, Event) else Event.from_mapping(item)


def run(
    events: Iterable[Event | Mapping[str, Any]],
    registry: LedgerRegistry | None = None,
    ledger: Ledger | None = None,
) -> Ledger:
    """
    Apply ``events`` in date order and return the ledger.

    Events sharing a date keep their given order. Without an explicit
    ``ledger`` a fresh one is built from ``registry``, which defaults to the
    active configuration.

    Raises:
        The first error raised by ``process_event``; processing halts there.
    """
    if ledger is None:
        if registry is None:
            registry = get_active_config().registry
        ledger = create_ledger(registry)

    ordered = sorted((_as_event(e) for e in events), key=lambda e: e.date)
    logger.info("run_started", extra={"event_count": len(ordered)})
    for event in ordered:
        process_event(ledger, event)
    logger.info(
        "run_completed",
        extra={"event_count": len(ordered), "row_count": len(ledger.rows)},
    )
    return ledger
