"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines. This is the canonical import surface for
    ledger_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel (and sibling engine modules).
    MUST NOT import ledger_services or ledger_config.

Invariants enforced:
    - Engines never mutate a ledger; they read a settled snapshot.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via the ``@traced_engine`` decorator
    (see ``ledger_engines.tracer``), emitting LEDGER_ENGINE_TRACE log
    records that include engine name, version, input fingerprint, and
    duration.

Usage:
    from ledger_engines.diagram import build_diagram, build_colimit
    from ledger_engines.fractures import detect_fractures
    from ledger_engines.emergence import get_money_supply
"""

from ledger_engines.diagram import (
    SYSTEM_BALANCE,
    AccountObject,
    ColimitDiagram,
    Diagram,
    MicroMacroFunctor,
    Morphism,
    build_colimit,
    build_diagram,
    compose_morphisms,
    full_event_sequence,
    identity_morphism,
    is_commutative,
    require_commutative,
    require_universal_property,
    to_macro,
    verify_universal_property,
)
from ledger_engines.emergence import (
    MoneyPattern,
    MoneySupplyReport,
    build_account_index,
    detect_money_emergence,
    get_money_supply,
    money_supply_report,
    verify_money_emergence,
)
from ledger_engines.fractures import Fracture, detect_fractures, list_fractures
from ledger_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Diagram / colimit
    "SYSTEM_BALANCE",
    "AccountObject",
    "ColimitDiagram",
    "Diagram",
    "MicroMacroFunctor",
    "Morphism",
    "build_colimit",
    "build_diagram",
    "compose_morphisms",
    "full_event_sequence",
    "identity_morphism",
    "is_commutative",
    "require_commutative",
    "require_universal_property",
    "to_macro",
    "verify_universal_property",
    # Emergence
    "MoneyPattern",
    "MoneySupplyReport",
    "build_account_index",
    "detect_money_emergence",
    "get_money_supply",
    "money_supply_report",
    "verify_money_emergence",
    # Fractures
    "Fracture",
    "detect_fractures",
    "list_fractures",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]
