"""
Tests for the posting handlers.

Handlers are pure: they only compute lines. Every line set must balance per
agent, which is what lets the event processor's micro check pass.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain import (
    BookingLine,
    Event,
    EventType,
    SettlementRoute,
    Side,
    get_handler,
    lines_for,
    posting_handler,
    registered_event_types,
)
from ledger_kernel.domain.registry import LedgerRegistry
from ledger_kernel.exceptions import (
    EventValidationError,
    HandlerNotFoundError,
    SettlementRouteError,
)

ON = date(2025, 1, 15)


def _per_agent_balance(lines):
    totals = defaultdict(lambda: Decimal("0"))
    for line in lines:
        totals[line.agent] += line.amount if line.side is Side.DEBIT else -line.amount
    return dict(totals)


def _as_tuples(lines):
    return [(l.agent, l.account, l.side, l.amount) for l in lines]


class TestHandlerRegistry:

    def test_every_event_type_has_a_handler(self):
        assert registered_event_types() == frozenset(EventType)

    def test_lookup_by_alias(self):
        assert get_handler("loans") is get_handler(EventType.INTERBANK_LOAN)

    def test_unknown_type(self):
        with pytest.raises(HandlerNotFoundError) as exc_info:
            get_handler("dividend")
        assert exc_info.value.code == "HANDLER_NOT_FOUND"

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            posting_handler(EventType.PURCHASE)(lambda event, registry: ())


# =============================================================================
# Per event type
# =============================================================================


class TestMoneyCreation:

    def test_lines(self, registry):
        event = Event(EventType.MONEY_CREATION, ON, "CB", ("Paper Money", "Paper Money in Circulation"), 1000)
        assert _as_tuples(lines_for(event, registry)) == [
            ("CB", "Paper Money", Side.DEBIT, Decimal("1000")),
            ("CB", "Paper Money in Circulation", Side.CREDIT, Decimal("1000")),
        ]


class TestInterbankLoan:

    def test_defaults_to_all_members(self, registry):
        event = Event(EventType.INTERBANK_LOAN, ON, "CB", ("Loans to Banks", "Loans to Bankb"), 200)
        lines = lines_for(event, registry)

        assert len(lines) == 8
        assert {l.agent for l in lines} == {"CB", "Banks", "Bankb"}
        assert BookingLine.debit("CB", "Loans to Banks", Decimal("200")) in lines
        assert BookingLine.debit("CB", "Loans to Bankb", Decimal("200")) in lines
        assert BookingLine.debit("Banks", "CB Reserve", Decimal("200")) in lines
        assert BookingLine.credit("Banks", "Loans from CB", Decimal("200")) in lines
        assert BookingLine.credit("CB", "Deposits from Bankb", Decimal("200")) in lines

    def test_single_borrower(self, registry):
        event = Event(
            EventType.INTERBANK_LOAN, ON, "CB", ("Loans to Bankb", "Deposits from Bankb"), 50,
            counterparties=("Bankb",),
        )
        assert {l.agent for l in lines_for(event, registry)} == {"CB", "Bankb"}

    def test_lender_must_be_clearing_agent(self, registry):
        event = Event(EventType.INTERBANK_LOAN, ON, "Banks", ("Loans to Banks", "Loans to Bankb"), 200)
        with pytest.raises(EventValidationError):
            lines_for(event, registry)

    def test_borrower_must_be_member(self, registry):
        event = Event(
            EventType.INTERBANK_LOAN, ON, "CB", ("Loans to Banks", "Loans to Bankb"), 200,
            counterparties=("S",),
        )
        with pytest.raises(EventValidationError, match="not a clearing member"):
            lines_for(event, registry)


class TestPurchaseAndBills:

    def test_purchase(self, registry):
        event = Event(
            EventType.PURCHASE, ON, "B", ("Bicycle", "Liability General", "Receivable General"), 100,
            counterparties=("S",),
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("B", "Bicycle", Side.DEBIT, Decimal("100")),
            ("B", "Liability General", Side.CREDIT, Decimal("100")),
            ("S", "Receivable General", Side.DEBIT, Decimal("100")),
            ("S", "Bicycle", Side.CREDIT, Decimal("100")),
        ]

    def test_purchase_needs_three_accounts(self, registry):
        event = Event(
            EventType.PURCHASE, ON, "B", ("Bicycle", "Liability General"), 100,
            counterparties=("S",),
        )
        with pytest.raises(EventValidationError, match="needs 3 accounts"):
            lines_for(event, registry)

    def test_boe_creation_replaces_trade_debt(self, registry):
        event = Event(
            EventType.BOE_CREATION, ON, "S",
            ("Receivable from BOE", "Liability from BOE", "Receivable General", "Liability General"),
            100, counterparties=("B",),
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("S", "Receivable from BOE", Side.DEBIT, Decimal("100")),
            ("S", "Receivable General", Side.CREDIT, Decimal("100")),
            ("B", "Liability General", Side.DEBIT, Decimal("100")),
            ("B", "Liability from BOE", Side.CREDIT, Decimal("100")),
        ]

    def test_boe_transfer(self, registry):
        event = Event(
            EventType.BOE_TRANSFER, ON, "Banks",
            ("Receivable from BOE", "Deposits from S", "Deposits at Banks"),
            100, counterparties=("S",),
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("Banks", "Receivable from BOE", Side.DEBIT, Decimal("100")),
            ("Banks", "Deposits from S", Side.CREDIT, Decimal("100")),
            ("S", "Deposits at Banks", Side.DEBIT, Decimal("100")),
            ("S", "Receivable from BOE", Side.CREDIT, Decimal("100")),
        ]


class TestSettlement:

    def test_interbank_payment_runs_through_clearing_agent(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "Banks", ("Deposits at Bankb", "Deposits from Banks"), 100,
            counterparties=("Bankb",),
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("Banks", "Deposits at Bankb", Side.CREDIT, Decimal("100")),
            ("Bankb", "Deposits from Banks", Side.DEBIT, Decimal("100")),
            ("Bankb", "CB Reserve", Side.CREDIT, Decimal("100")),
            ("CB", "Deposits from Bankb", Side.DEBIT, Decimal("100")),
            ("CB", "Deposits from Banks", Side.CREDIT, Decimal("100")),
            ("Banks", "CB Reserve", Side.DEBIT, Decimal("100")),
        ]

    def test_customer_pays_from_house_account(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "Banks", ("Receivable from BOE", "Liability from BOE"), 100,
            counterparties=("B",),
        )
        lines = lines_for(event, registry)
        assert BookingLine.credit("B", "Current Account at Banks", Decimal("100")) in lines
        assert BookingLine.debit("Banks", "Current Account of B", Decimal("100")) in lines

    def test_no_route(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "S", ("Receivable General", "Liability General"), 100,
            counterparties=("B",),
        )
        with pytest.raises(SettlementRouteError) as exc_info:
            lines_for(event, registry)
        assert exc_info.value.payer == "B"
        assert exc_info.value.payee == "S"

    def test_direct_repair_credits_overstated_asset(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "Banks", ("Deposits at Bankb", "Deposits from Banks"), 100,
            counterparties=("Bankb",), route=SettlementRoute.DIRECT,
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("Banks", "Deposits at Bankb", Side.CREDIT, Decimal("100")),
        ]

    def test_direct_repair_debits_overstated_liability(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "Bankb", ("Deposits from Banks", "Deposits at Bankb"), 40,
            counterparties=("Banks",), route=SettlementRoute.DIRECT,
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("Bankb", "Deposits from Banks", Side.DEBIT, Decimal("40")),
        ]

    def test_direct_repair_books_missing_leg_for_its_holder(self, registry):
        """Bankb does not hold the overstated claim, so it restores its liability."""
        event = Event(
            EventType.SETTLEMENT, ON, "Bankb", ("Deposits at Bankb", "Deposits from Banks"), 100,
            counterparties=("Banks",), route=SettlementRoute.DIRECT,
        )
        assert _as_tuples(lines_for(event, registry)) == [
            ("Bankb", "Deposits from Banks", Side.CREDIT, Decimal("100")),
        ]

    def test_clearing_repair_books_missing_liability(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "Banks", ("Deposits at Bankb", "Deposits from Banks"), 100,
            counterparties=("Bankb",), route=SettlementRoute.CLEARING,
        )
        lines = lines_for(event, registry)
        assert lines[0] == BookingLine.credit("Bankb", "Deposits from Banks", Decimal("100"))
        assert BookingLine.credit("Banks", "CB Reserve", Decimal("100")) in lines
        assert BookingLine.debit("Bankb", "CB Reserve", Decimal("100")) in lines
        balances = _per_agent_balance(lines)
        assert balances["Bankb"] == Decimal("0")
        assert balances["CB"] == Decimal("0")
        # Banks' own books were overstated by the fracture; the reserve
        # credit is what brings them back.
        assert balances["Banks"] == Decimal("-100")

    def test_clearing_repair_needs_members(self, registry):
        event = Event(
            EventType.SETTLEMENT, ON, "S", ("Receivable from BOE", "Liability from BOE"), 100,
            counterparties=("B",), route=SettlementRoute.CLEARING,
        )
        with pytest.raises(SettlementRouteError):
            lines_for(event, registry)

    def test_clearing_repair_without_arrangement(self, registry):
        bare = LedgerRegistry(
            agents=registry.agents,
            asset_accounts=registry.asset_accounts,
            liability_accounts=registry.liability_accounts,
        )
        event = Event(
            EventType.SETTLEMENT, ON, "Banks", ("Deposits at Bankb", "Deposits from Banks"), 100,
            counterparties=("Bankb",), route=SettlementRoute.CLEARING,
        )
        with pytest.raises(SettlementRouteError):
            lines_for(event, bare)


class TestLinesBalancePerAgent:
    """Every ordinary event's lines leave each agent's debits equal to credits."""

    def test_reference_cycle(self, registry, cycle_events):
        for event in cycle_events:
            balances = _per_agent_balance(lines_for(event, registry))
            assert all(v == Decimal("0") for v in balances.values()), event.type
