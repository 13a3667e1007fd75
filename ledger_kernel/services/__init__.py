"""Kernel services -- invariant enforcement over a settled ledger."""

from ledger_kernel.services.invariance_checker import (
    check_boe_macro_invariance,
    check_macro_invariance,
    check_micro_invariance,
    check_relationship_invariance,
    relationship_imbalances,
    relationship_net,
    require_micro_invariance,
)

__all__ = [
    "check_boe_macro_invariance",
    "check_macro_invariance",
    "check_micro_invariance",
    "check_relationship_invariance",
    "relationship_imbalances",
    "relationship_net",
    "require_micro_invariance",
]
