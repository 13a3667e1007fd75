"""
Pure domain layer.

This module contains the ledger's data model and posting logic with NO
dependencies on:
- Configuration files
- Clock/time
- I/O

Everything except the ledger context and its accounts is immutable.
"""

from ledger_kernel.domain.accounts import Account, AccountEntry, Agent, update_account
from ledger_kernel.domain.events import BookingLine, Event, LedgerRow
from ledger_kernel.domain.handlers import (
    get_handler,
    lines_for,
    posting_handler,
    registered_event_types,
)
from ledger_kernel.domain.ledger import Ledger, create_ledger
from ledger_kernel.domain.registry import (
    RELATIONSHIP_SEPARATOR,
    ClearingArrangement,
    ClearingMember,
    ComplexLink,
    DebtRelationshipPair,
    HouseAccount,
    LedgerRegistry,
)
from ledger_kernel.domain.values import (
    ZERO,
    AccountKind,
    EventType,
    SettlementRoute,
    Side,
    to_amount,
)

__all__ = [
    # Values
    "ZERO",
    "AccountKind",
    "EventType",
    "SettlementRoute",
    "Side",
    "to_amount",
    # Accounts
    "Account",
    "AccountEntry",
    "Agent",
    "update_account",
    # Events
    "BookingLine",
    "Event",
    "LedgerRow",
    # Handlers
    "get_handler",
    "lines_for",
    "posting_handler",
    "registered_event_types",
    # Ledger
    "Ledger",
    "create_ledger",
    # Registry
    "RELATIONSHIP_SEPARATOR",
    "ClearingArrangement",
    "ClearingMember",
    "ComplexLink",
    "DebtRelationshipPair",
    "HouseAccount",
    "LedgerRegistry",
]
