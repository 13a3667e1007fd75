"""
ledger_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the pure engines and the kernel: applying
    events, repairing fractures, reporting. This is the only layer that
    mutates a ledger.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        ledger_services/ -> ledger_engines/  (allowed)
        ledger_services/ -> ledger_kernel/   (allowed)
        ledger_engines/  -> ledger_services/ (FORBIDDEN)
        ledger_kernel/   -> ledger_services/ (FORBIDDEN)

Collaborator operations:
    run(events) -> Ledger
    balance_sheet(ledger, agent) -> BalanceSheet
    money_supply(ledger) -> {emergent property: total}
    fractures(ledger) -> {relationship: imbalance}
    resynchronize(ledger) -> bool
"""

from ledger_engines.emergence import get_money_supply as money_supply
from ledger_engines.fractures import detect_fractures as fractures
from ledger_services.event_processor import EventResult, process_event, run
from ledger_services.reporting import BalanceSheet, balance_sheet, transaction_log
from ledger_services.resynchronizer import (
    DebitResolutions,
    claim_debit_resolutions,
    repair_event,
    resolution_outcomes,
    resynchronize,
    verify_possibility_principle,
    verify_resolution_paths,
)
from ledger_services.scenario import reference_events

__all__ = [
    "BalanceSheet",
    "DebitResolutions",
    "EventResult",
    "balance_sheet",
    "claim_debit_resolutions",
    "fractures",
    "money_supply",
    "process_event",
    "reference_events",
    "repair_event",
    "resolution_outcomes",
    "resynchronize",
    "run",
    "transaction_log",
    "verify_possibility_principle",
    "verify_resolution_paths",
]
