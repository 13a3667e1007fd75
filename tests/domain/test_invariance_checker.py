"""
Tests for micro and macro invariance.

Micro: each agent's debits equal its credits.
Macro: each registered debt relationship nets to zero over its scoped legs.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain import Side, update_account
from ledger_kernel.exceptions import MacroInvarianceViolation, MicroInvarianceViolation
from ledger_kernel.services import (
    check_boe_macro_invariance,
    check_macro_invariance,
    check_micro_invariance,
    check_relationship_invariance,
    relationship_imbalances,
    relationship_net,
    require_micro_invariance,
)

ON = date(2025, 1, 15)
INTERBANK = "Deposits at Bankb ↔ Deposits from Banks"
RESERVES_BANKS = "CB Reserve ↔ Deposits from Banks"
BOE = "Receivable from BOE ↔ Liability from BOE"


def _book(ledger, agent, account, amount, side):
    update_account(ledger.account(agent, account), amount, side, ON)


class TestMicroInvariance:

    def test_empty_agent_balances(self, ledger):
        assert check_micro_invariance(ledger.agent("CB"))

    def test_balanced_pair(self, ledger):
        _book(ledger, "CB", "Paper Money", 1000, Side.DEBIT)
        _book(ledger, "CB", "Paper Money in Circulation", 1000, Side.CREDIT)
        assert check_micro_invariance(ledger.agent("CB"))

    def test_one_sided_booking(self, ledger):
        _book(ledger, "CB", "Paper Money", 1000, Side.DEBIT)
        assert not check_micro_invariance(ledger.agent("CB"))

    def test_within_tolerance(self, ledger):
        _book(ledger, "S", "Bicycle", Decimal("100"), Side.DEBIT)
        _book(ledger, "S", "Receivable General", Decimal("99.99999999999"), Side.CREDIT)
        assert check_micro_invariance(ledger.agent("S"))

    def test_require_raises_with_totals(self, ledger, captured_logs):
        _book(ledger, "Banks", "CB Reserve", 200, Side.DEBIT)

        with pytest.raises(MicroInvarianceViolation) as exc_info:
            require_micro_invariance(ledger.agent("Banks"), event_type="interbank_loan")

        err = exc_info.value
        assert err.agent == "Banks"
        assert err.imbalance == Decimal("200")
        assert err.event_type == "interbank_loan"
        records = [r for r in captured_logs() if r["message"] == "micro_invariance_violated"]
        assert records and records[0]["agent"] == "Banks"


# =============================================================================
# Macro
# =============================================================================


class TestRelationshipNet:

    def test_empty_ledger_has_no_imbalances(self, ledger):
        assert relationship_imbalances(ledger) == {}
        check_macro_invariance(ledger)

    def test_claim_without_liability(self, ledger):
        _book(ledger, "Banks", "Deposits at Bankb", 100, Side.DEBIT)

        assert relationship_net(ledger, ledger.registry.pair(INTERBANK)) == Decimal("100")
        assert relationship_imbalances(ledger) == {INTERBANK: Decimal("100")}
        assert not check_relationship_invariance(ledger, INTERBANK)

    def test_matched_legs_net(self, ledger):
        _book(ledger, "Banks", "Deposits at Bankb", 100, Side.DEBIT)
        _book(ledger, "Bankb", "Deposits from Banks", 100, Side.CREDIT)
        assert check_relationship_invariance(ledger, INTERBANK)

    def test_scoped_legs_ignore_other_holders(self, ledger):
        """CB's reserve liability shares a name with Bankb's interbank deposit."""
        _book(ledger, "Banks", "CB Reserve", 300, Side.DEBIT)
        _book(ledger, "CB", "Deposits from Banks", 300, Side.CREDIT)

        assert check_relationship_invariance(ledger, RESERVES_BANKS)
        assert check_relationship_invariance(ledger, INTERBANK)

    def test_unscoped_legs_sum_over_all_holders(self, ledger):
        _book(ledger, "Banks", "Receivable from BOE", 100, Side.DEBIT)
        _book(ledger, "B", "Liability from BOE", 100, Side.CREDIT)
        assert check_relationship_invariance(ledger, BOE)

        _book(ledger, "S", "Receivable from BOE", 40, Side.DEBIT)
        assert relationship_net(ledger, ledger.registry.pair(BOE)) == Decimal("40")

    def test_unknown_relationship(self, ledger):
        with pytest.raises(KeyError):
            check_relationship_invariance(ledger, "Gold ↔ Vault")


class TestCheckMacroInvariance:

    def test_raises_on_first_violation(self, ledger, captured_logs):
        _book(ledger, "Banks", "Deposits at Bankb", 100, Side.DEBIT)

        with pytest.raises(MacroInvarianceViolation) as exc_info:
            check_macro_invariance(ledger, event_type="settlement")

        assert exc_info.value.relationship == INTERBANK
        assert exc_info.value.imbalance == Decimal("100")
        assert exc_info.value.event_type == "settlement"
        assert any(
            r["message"] == "macro_invariance_violated" and r["relationship"] == INTERBANK
            for r in captured_logs()
        )

    def test_tolerated_relationship_skipped(self, ledger):
        _book(ledger, "Banks", "Deposits at Bankb", 100, Side.DEBIT)
        check_macro_invariance(ledger, tolerated=[INTERBANK])

    def test_tolerance_does_not_hide_others(self, ledger):
        _book(ledger, "Banks", "Deposits at Bankb", 100, Side.DEBIT)
        _book(ledger, "S", "Receivable General", 5, Side.DEBIT)
        with pytest.raises(MacroInvarianceViolation) as exc_info:
            check_macro_invariance(ledger, tolerated=[INTERBANK])
        assert exc_info.value.relationship == "Receivable General ↔ Liability General"


class TestBoeMacroInvariance:

    def test_ignores_other_relationships(self, ledger):
        _book(ledger, "Banks", "Deposits at Bankb", 100, Side.DEBIT)
        assert check_boe_macro_invariance(ledger)

    def test_detects_open_bill(self, ledger):
        _book(ledger, "S", "Receivable from BOE", 100, Side.DEBIT)
        assert not check_boe_macro_invariance(ledger)
