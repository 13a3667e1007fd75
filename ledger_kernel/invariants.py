"""
Kernel Invariants Contract.

These invariants are structural law. No configuration set may switch them
off; configuration only decides *which* relationships and instruments exist.

This module exists solely to declare the invariants and their shared
tolerance. Enforcement is distributed across the invariance checker
(ledger_kernel.services.invariance_checker), the diagram engine
(ledger_engines.diagram) and the event processor
(ledger_services.event_processor).
"""

from decimal import Decimal
from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    PAIRED_MUTATION = "paired_mutation"
    """Accounts change only through the paired lines issued by a posting
    handler and applied by the event processor."""

    MICRO_BALANCE = "micro_balance"
    """For every agent, total debits equal total credits across its
    accounts. Checked for every touched agent after each event."""

    MACRO_NETTING = "macro_netting"
    """Every registered debt relationship nets to zero across all agents
    holding either leg. Checked globally after each event."""

    DIAGRAM_COMMUTATIVITY = "diagram_commutativity"
    """Parallel morphisms in an event diagram carry equal amounts."""

    COLIMIT_UNIVERSALITY = "colimit_universality"
    """Each base flow is reproduced by the universal morphisms from its
    source and its target."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# Absolute tolerance for every balance comparison in the kernel.
BALANCE_TOLERANCE: Decimal = Decimal("1e-10")

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "ledger_config",
    "ledger_engines",
    "ledger_services",
)


def is_zero(amount: Decimal) -> bool:
    """True when ``amount`` is within BALANCE_TOLERANCE of zero."""
    return abs(amount) <= BALANCE_TOLERANCE
