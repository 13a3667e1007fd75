"""
ledger_engines.diagram -- Event diagrams, colimits and the micro/macro functor.

Responsibility:
    Represents one financial event as a small category: account objects
    connected by money flows (morphisms). Builds the event's colimit, a
    synthetic ``System.Balance`` object with one universal morphism per
    diagram object, and verifies its universal property.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Diagrams are ephemeral: built and discarded per event.

Invariants enforced:
    - Commutativity: two morphisms sharing (source, target) carry equal
      amounts.
    - Universal property: for every base morphism m, the universal morphism
      from m.source and the one from m.target both carry m.amount.

Failure modes:
    - MorphismCompositionError from ``compose_morphisms``.
    - NonCommutativeDiagramError / UniversalPropertyError from the
      ``require_*`` helpers (the boolean checks never raise).

Colimit amounts:
    An object's universal morphism carries the amount of its first outgoing
    morphism; an object with no outgoing morphism carries its first incoming
    amount; an isolated object carries zero. Intermediaries in a chain are
    therefore sources, which keeps the universal property true for
    multi-hop chains such as settlement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.values import ZERO, AccountKind, EventType, to_amount
from ledger_kernel.exceptions import (
    MorphismCompositionError,
    NonCommutativeDiagramError,
    UniversalPropertyError,
)
from ledger_kernel.invariants import is_zero

MACRO_PREFIX = "Macro"


@dataclass(frozen=True)
class AccountObject:
    """Categorical label for an account inside a diagram."""

    agent: str
    account: str
    kind: AccountKind

    @property
    def label(self) -> str:
        return f"{self.agent}.{self.account}"


SYSTEM_BALANCE = AccountObject("System", "Balance", AccountKind.ASSET)


@dataclass(frozen=True)
class Morphism:
    """A money flow between two account objects."""

    source: AccountObject
    target: AccountObject
    amount: Decimal
    date: date

    @property
    def is_identity(self) -> bool:
        return self.source == self.target


@dataclass(frozen=True)
class Diagram:
    """One event as objects plus flows."""

    objects: tuple[AccountObject, ...]
    morphisms: tuple[Morphism, ...]
    event_type: EventType
    date: date

    def outgoing(self, obj: AccountObject) -> tuple[Morphism, ...]:
        return tuple(m for m in self.morphisms if m.source == obj)

    def incoming(self, obj: AccountObject) -> tuple[Morphism, ...]:
        return tuple(m for m in self.morphisms if m.target == obj)


@dataclass(frozen=True)
class ColimitDiagram:
    """A diagram together with its colimit object and universal morphisms."""

    base: Diagram
    colimit: AccountObject
    universal: tuple[Morphism, ...]

    def universal_from(self, obj: AccountObject) -> Morphism:
        for m in self.universal:
            if m.source == obj:
                return m
        raise KeyError(obj.label)


# =============================================================================
# Morphisms
# =============================================================================


def identity_morphism(obj: AccountObject, event_date: date) -> Morphism:
    return Morphism(obj, obj, ZERO, event_date)


def compose_morphisms(f: Morphism, g: Morphism) -> Morphism:
    """
    Sequential composition ``g . f`` (f first).

    An identity morphism takes the other morphism's amount; otherwise the
    composite carries the first morphism's amount.

    Raises:
        MorphismCompositionError: If f.target != g.source.
    """
    if f.target != g.source:
        raise MorphismCompositionError(f.target.label, g.source.label)
    if f.is_identity:
        return Morphism(f.source, g.target, g.amount, f.date)
    return Morphism(f.source, g.target, f.amount, f.date)


# =============================================================================
# Canonical diagrams
# =============================================================================


def _obj(agent: str, account: str, kind: AccountKind) -> AccountObject:
    return AccountObject(agent, account, kind)


_A = AccountKind.ASSET
_L = AccountKind.LIABILITY

# Each shape is a tuple of paths of (agent, account, kind). Consecutive
# entries in a path are joined by one morphism.
_SHAPES: dict[EventType, tuple[tuple[tuple[str, str, AccountKind], ...], ...]] = {
    EventType.MONEY_CREATION: (
        (("CB", "Paper Money", _A), ("CB", "Paper Money in Circulation", _L),
         ("Banks", "Deposits", _L)),
    ),
    EventType.INTERBANK_LOAN: (
        (("CB", "Paper Money", _A), ("CB", "Loans to Banks", _A)),
        (("CB", "Paper Money", _A), ("CB", "Loans to Bankb", _A)),
    ),
    EventType.PURCHASE: (
        (("B", "Bicycle", _A), ("B", "Liability General", _L)),
    ),
    EventType.BOE_CREATION: (
        (("S", "Receivable from BOE", _A), ("B", "Liability from BOE", _L)),
    ),
    EventType.BOE_TRANSFER: (
        (("Banks", "Receivable from BOE", _A), ("Banks", "Deposits from S", _L)),
    ),
    EventType.SETTLEMENT: (
        (("CB", "Deposits from Banks", _L), ("Banks", "CB Reserve", _A),
         ("Bankb", "CB Reserve", _A), ("CB", "Deposits from Bankb", _L)),
    ),
}


@traced_engine("diagram", "1.0", fingerprint_fields=("event_type", "amount", "event_date"))
def build_diagram(event_type: EventType | str, amount, event_date: date) -> Diagram:
    """
    Build the canonical diagram for an event type.

    Shapes are fixed per type: a chain through the issuer for money
    creation, a fan-out from paper money for loans, single flows for the
    purchase and bill events, and a three-hop chain through both banks'
    reserves at the central bank for settlement.
    """
    event_type = EventType.parse(event_type)
    value = to_amount(amount)
    objects: list[AccountObject] = []
    morphisms: list[Morphism] = []
    for path in _SHAPES[event_type]:
        nodes = [_obj(*node) for node in path]
        for node in nodes:
            if node not in objects:
                objects.append(node)
        for source, target in zip(nodes, nodes[1:]):
            morphisms.append(Morphism(source, target, value, event_date))
    return Diagram(tuple(objects), tuple(morphisms), event_type, event_date)


def full_event_sequence(
    initial_money,
    loan_amount,
    bicycle_price,
    start_date: date,
) -> list[Diagram]:
    """The six canonical diagrams of the reference cycle on consecutive days."""
    plan = (
        (EventType.MONEY_CREATION, initial_money),
        (EventType.INTERBANK_LOAN, loan_amount),
        (EventType.PURCHASE, bicycle_price),
        (EventType.BOE_CREATION, bicycle_price),
        (EventType.BOE_TRANSFER, bicycle_price),
        (EventType.SETTLEMENT, bicycle_price),
    )
    return [
        build_diagram(event_type, amount, start_date + timedelta(days=offset))
        for offset, (event_type, amount) in enumerate(plan)
    ]


# =============================================================================
# Commutativity
# =============================================================================


def _first_conflict(diagram: Diagram) -> tuple[Morphism, Morphism] | None:
    seen: dict[tuple[AccountObject, AccountObject], Morphism] = {}
    for m in diagram.morphisms:
        key = (m.source, m.target)
        earlier = seen.get(key)
        if earlier is not None and not is_zero(earlier.amount - m.amount):
            return earlier, m
        seen.setdefault(key, m)
    return None


def is_commutative(diagram: Diagram) -> bool:
    """True when parallel morphisms carry equal amounts."""
    return _first_conflict(diagram) is None


def require_commutative(diagram: Diagram) -> None:
    conflict = _first_conflict(diagram)
    if conflict is not None:
        first, second = conflict
        raise NonCommutativeDiagramError(
            diagram.event_type.value,
            first.source.label,
            first.target.label,
            (first.amount, second.amount),
        )


# =============================================================================
# Colimit
# =============================================================================


@traced_engine("colimit", "1.0")
def build_colimit(diagram: Diagram) -> ColimitDiagram:
    """Attach ``System.Balance`` with one universal morphism per object."""
    universal = []
    for obj in diagram.objects:
        outgoing = diagram.outgoing(obj)
        incoming = diagram.incoming(obj)
        if outgoing:
            amount = outgoing[0].amount
        elif incoming:
            amount = incoming[0].amount
        else:
            amount = ZERO
        universal.append(Morphism(obj, SYSTEM_BALANCE, amount, diagram.date))
    return ColimitDiagram(diagram, SYSTEM_BALANCE, tuple(universal))


def _first_universal_violation(
    colimit: ColimitDiagram,
) -> tuple[AccountObject, Decimal, Decimal] | None:
    for m in colimit.base.morphisms:
        for end in (m.source, m.target):
            leg = colimit.universal_from(end)
            if not is_zero(leg.amount - m.amount):
                return end, m.amount, leg.amount
    return None


def verify_universal_property(colimit: ColimitDiagram) -> bool:
    """True when every base flow is reproduced from both of its ends."""
    return _first_universal_violation(colimit) is None


def require_universal_property(colimit: ColimitDiagram) -> None:
    violation = _first_universal_violation(colimit)
    if violation is not None:
        obj, expected, actual = violation
        raise UniversalPropertyError(
            colimit.base.event_type.value, obj.label, expected, actual
        )


# =============================================================================
# Micro -> macro functor
# =============================================================================


@dataclass(frozen=True)
class MicroMacroFunctor:
    """Maps a micro-level diagram onto the macro level, object by object."""

    source_category: str
    target_category: str
    object_map: dict[AccountObject, AccountObject] = field(hash=False)
    morphism_map: dict[Morphism, Morphism] = field(hash=False)

    def image(self, diagram: Diagram) -> Diagram:
        """The diagram as seen through the functor."""
        return Diagram(
            tuple(self.object_map[o] for o in diagram.objects),
            tuple(self.morphism_map[m] for m in diagram.morphisms),
            diagram.event_type,
            diagram.date,
        )

    def preserves_structure(self, diagram: Diagram) -> bool:
        """The image still commutes and still has a valid colimit."""
        mapped = self.image(diagram)
        if not is_commutative(mapped):
            return False
        return verify_universal_property(build_colimit(mapped))


def to_macro(diagram: Diagram) -> MicroMacroFunctor:
    """Prefix every agent with "Macro", keeping kinds and amounts."""
    object_map = {
        obj: AccountObject(MACRO_PREFIX + obj.agent, obj.account, obj.kind)
        for obj in diagram.objects
    }
    morphism_map = {
        m: Morphism(object_map[m.source], object_map[m.target], m.amount, m.date)
        for m in diagram.morphisms
    }
    return MicroMacroFunctor("Micro", "Macro", object_map, morphism_map)
