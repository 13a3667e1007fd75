"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

An invariant breach has to be actionable: the caller must know WHICH agent or
WHICH debt relationship broke and by HOW MUCH. Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, log-safe)
  3. Carries structured DATA (agent, relationship, imbalance ...)

Example:
    try:
        run(events)
    except MacroInvarianceViolation as e:
        log.error("halted", extra={"relationship": e.relationship,
                                   "imbalance": e.imbalance})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- StructuralError
    |   +-- NonCommutativeDiagramError
    |   +-- UniversalPropertyError
    |   +-- MorphismCompositionError
    |
    +-- InvarianceViolation
    |   +-- MicroInvarianceViolation
    |   +-- MacroInvarianceViolation
    |
    +-- EmergenceInconsistency      (reported, never raised by the engines)
    |
    +-- EventError
    |   +-- EventValidationError
    |   +-- HandlerNotFoundError
    |
    +-- LedgerError
    |   +-- AgentNotFoundError
    |   +-- AccountNotFoundError
    |   +-- NegativeAmountError
    |
    +-- SettlementRouteError
    |
    +-- ConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|------------------------------------
Structural   | NON_COMMUTATIVE_DIAGRAM     | Parallel morphisms carry different
             |                             | amounts
             | UNIVERSAL_PROPERTY_VIOLATED | Colimit leg differs from a flow
             | MORPHISM_NOT_COMPOSABLE     | f.target != g.source
-------------|-----------------------------|------------------------------------
Invariance   | MICRO_INVARIANCE_VIOLATED   | Agent debits != credits
             | MACRO_INVARIANCE_VIOLATED   | Debt relationship does not net to 0
-------------|-----------------------------|------------------------------------
Emergence    | EMERGENCE_INCONSISTENCY     | Money pattern not backed
-------------|-----------------------------|------------------------------------
Event        | EVENT_VALIDATION_ERROR      | Malformed event record
             | HANDLER_NOT_FOUND           | No posting handler for event type
-------------|-----------------------------|------------------------------------
Ledger       | AGENT_NOT_FOUND             | Unknown agent name
             | ACCOUNT_NOT_FOUND           | Agent holds no such account
             | NEGATIVE_AMOUNT             | Booking amount < 0
-------------|-----------------------------|------------------------------------
Settlement   | SETTLEMENT_ROUTE_NOT_FOUND  | No payment route between agents
-------------|-----------------------------|------------------------------------
Config       | CONFIG_ERROR                | Set missing or failed validation

===============================================================================
PROPAGATION
===============================================================================

Structural and invariance errors are fatal for the run. There is no rollback:
once one is raised the ledger state is untrustworthy until repaired (see
ledger_services.resynchronizer) and re-verified.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Structural exceptions


class StructuralError(LedgerKernelError):
    """Malformed event diagram. Always a bug in event-to-diagram translation."""

    code: str = "STRUCTURAL_ERROR"


class NonCommutativeDiagramError(StructuralError):
    """Two morphisms with the same source and target carry different amounts."""

    code: str = "NON_COMMUTATIVE_DIAGRAM"

    def __init__(
        self,
        event_type: str,
        source: str,
        target: str,
        amounts: tuple[Decimal, Decimal],
    ):
        self.event_type = event_type
        self.source = source
        self.target = target
        self.amounts = amounts
        super().__init__(
            f"Diagram for {event_type} does not commute: {source} -> {target} "
            f"carries {amounts[0]} and {amounts[1]}"
        )


class UniversalPropertyError(StructuralError):
    """A universal morphism does not reproduce a base flow amount."""

    code: str = "UNIVERSAL_PROPERTY_VIOLATED"

    def __init__(self, event_type: str, obj: str, expected: Decimal, actual: Decimal):
        self.event_type = event_type
        self.obj = obj
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Universal property violated for {event_type} at {obj}: "
            f"expected {expected}, got {actual}"
        )


class MorphismCompositionError(StructuralError):
    """Morphisms are not composable (f.target != g.source)."""

    code: str = "MORPHISM_NOT_COMPOSABLE"

    def __init__(self, first_target: str, second_source: str):
        self.first_target = first_target
        self.second_source = second_source
        super().__init__(
            f"Morphisms not composable: {first_target} != {second_source}"
        )


# Invariance exceptions


class InvarianceViolation(LedgerKernelError):
    """Base exception for balance invariant breaches."""

    code: str = "INVARIANCE_VIOLATION"


class MicroInvarianceViolation(InvarianceViolation):
    """An agent's own books do not balance."""

    code: str = "MICRO_INVARIANCE_VIOLATED"

    def __init__(
        self,
        agent: str,
        total_debits: Decimal,
        total_credits: Decimal,
        event_type: str | None = None,
    ):
        self.agent = agent
        self.total_debits = total_debits
        self.total_credits = total_credits
        self.imbalance = total_debits - total_credits
        self.event_type = event_type
        context = f" after {event_type} event" if event_type else ""
        super().__init__(
            f"Micro invariance violated for agent {agent}{context}: "
            f"debits={total_debits}, credits={total_credits}, "
            f"imbalance={self.imbalance}"
        )


class MacroInvarianceViolation(InvarianceViolation):
    """A registered debt relationship does not net to zero."""

    code: str = "MACRO_INVARIANCE_VIOLATED"

    def __init__(
        self,
        relationship: str,
        imbalance: Decimal,
        event_type: str | None = None,
    ):
        self.relationship = relationship
        self.imbalance = imbalance
        self.event_type = event_type
        context = f" after {event_type} event" if event_type else ""
        super().__init__(
            f"Macro invariance violated{context}: {relationship} "
            f"nets to {imbalance}, not zero"
        )


# Emergence


class EmergenceInconsistency(LedgerKernelError):
    """
    A detected money pattern whose accounts do not net to zero.

    Non-fatal: instances are collected in a report and the pattern is left out
    of money-supply aggregation.
    """

    code: str = "EMERGENCE_INCONSISTENCY"

    def __init__(
        self,
        emergent_property: str,
        holders: tuple[str, ...],
        net_position: Decimal,
    ):
        self.emergent_property = emergent_property
        self.holders = holders
        self.net_position = net_position
        super().__init__(
            f"Money pattern {emergent_property} over {', '.join(holders)} "
            f"is not backed: net position {net_position}"
        )


# Event exceptions


class EventError(LedgerKernelError):
    """Base exception for event-related errors."""

    code: str = "EVENT_ERROR"


class EventValidationError(EventError):
    """Event record is malformed for its type."""

    code: str = "EVENT_VALIDATION_ERROR"

    def __init__(self, event_type: str, reason: str):
        self.event_type = event_type
        self.reason = reason
        super().__init__(f"Invalid {event_type} event: {reason}")


class HandlerNotFoundError(EventError):
    """No posting handler is registered for the event type."""

    code: str = "HANDLER_NOT_FOUND"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"No posting handler for event type: {event_type}")


# Ledger exceptions


class LedgerError(LedgerKernelError):
    """Base exception for agent/account lookups and bookings."""

    code: str = "LEDGER_ERROR"


class AgentNotFoundError(LedgerError):
    """Agent name is not part of the ledger."""

    code: str = "AGENT_NOT_FOUND"

    def __init__(self, agent: str):
        self.agent = agent
        super().__init__(f"Agent not found: {agent}")


class AccountNotFoundError(LedgerError):
    """Agent does not hold the named account."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, agent: str, account: str):
        self.agent = agent
        self.account = account
        super().__init__(f"Agent {agent} holds no account named {account!r}")


class NegativeAmountError(LedgerError):
    """Booking amounts must be >= 0."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, amount: Decimal, account: str | None = None):
        self.amount = amount
        self.account = account
        target = f" on {account}" if account else ""
        super().__init__(f"Amount must be non-negative{target}: {amount}")


# Settlement


class SettlementRouteError(LedgerKernelError):
    """No configured payment route exists between two agents."""

    code: str = "SETTLEMENT_ROUTE_NOT_FOUND"

    def __init__(self, payer: str, payee: str, route: str):
        self.payer = payer
        self.payee = payee
        self.route = route
        super().__init__(
            f"No {route} settlement route from {payer} to {payee}"
        )


# Configuration


class ConfigError(LedgerKernelError):
    """Configuration set missing or invalid."""

    code: str = "CONFIG_ERROR"

    def __init__(self, config_id: str, errors: list[str]):
        self.config_id = config_id
        self.errors = errors
        super().__init__(
            f"Configuration {config_id!r} failed validation:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
