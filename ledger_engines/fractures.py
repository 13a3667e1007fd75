"""
ledger_engines.fractures -- Fracture detection over a settled ledger.

Responsibility:
    Scans the registered debt relationships and reports every one whose
    combined net is not zero. Same scan as the macro invariance check, but
    returns magnitudes instead of raising.

Architecture position:
    Engines -- pure, read-only. Repair lives in
    ``ledger_services.resynchronizer``.

Invariants enforced:
    - Idempotence: detection never mutates the ledger, so detecting twice on
      a synchronized ledger returns the same empty map.

Sign convention:
    imbalance > 0  -- the claim leg is overstated (more owed to creditors
                      than debtors acknowledge).
    imbalance < 0  -- the liability leg is overstated.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.ledger import Ledger
from ledger_kernel.domain.values import ZERO
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.invariance_checker import relationship_imbalances

logger = get_logger("engines.fractures")


@dataclass(frozen=True)
class Fracture:
    """A debt relationship that does not net to zero."""

    relationship: str
    imbalance: Decimal

    @property
    def claim_overstated(self) -> bool:
        return self.imbalance > ZERO

    @property
    def magnitude(self) -> Decimal:
        return abs(self.imbalance)


@traced_engine("fractures", "1.0")
def detect_fractures(ledger: Ledger) -> dict[str, Decimal]:
    """Map every fractured relationship name to its signed imbalance."""
    fractures = relationship_imbalances(ledger)
    for name, imbalance in fractures.items():
        logger.warning(
            "fracture_detected",
            extra={"relationship": name, "imbalance": imbalance},
        )
    return fractures


def list_fractures(ledger: Ledger) -> list[Fracture]:
    """``detect_fractures`` as Fracture records, in registry order."""
    return [
        Fracture(relationship=name, imbalance=imbalance)
        for name, imbalance in detect_fractures(ledger).items()
    ]
