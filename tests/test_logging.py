"""Tests for structured ledger logging (ledger_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from ledger_kernel.domain.values import Side
from ledger_kernel.exceptions import MacroInvarianceViolation, SettlementRouteError
from ledger_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)

BOE = "Receivable from BOE ↔ Liability from BOE"


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def records():
    """Route the ledger loggers into a buffer; return a reader of parsed lines."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class TestLedgerPayloads:

    def test_amounts_dates_and_sides(self, records):
        get_logger("services.event_processor").info(
            "event_processed",
            extra={
                "amount": Decimal("100.50"),
                "on": date(2025, 1, 15),
                "side": Side.DEBIT,
                "touched_agents": frozenset({"CB", "Banks"}),
            },
        )

        (record,) = records()
        assert record["logger"] == "ledger_kernel.services.event_processor"
        assert record["amount"] == "100.50"
        assert record["on"] == "2025-01-15"
        assert record["side"] == "debit"
        assert record["touched_agents"] == ["Banks", "CB"]

    def test_event_context_on_every_record(self, records):
        logger = get_logger("test")
        with LogContext.bind(
            correlation_id="c-1", event_type="settlement", event_date="2025-06-15", agent="Banks"
        ):
            logger.info("first")
            logger.warning("second")
        logger.info("outside")

        first, second, outside = records()
        for record in (first, second):
            assert record["event_type"] == "settlement"
            assert record["event_date"] == "2025-06-15"
            assert record["agent"] == "Banks"
        assert "event_type" not in outside

    def test_extra_does_not_override_context(self, records):
        with LogContext.bind(agent="CB"):
            get_logger("test").info("msg", extra={"agent": "S"})

        (record,) = records()
        assert record["agent"] == "CB"

    def test_invariance_violation_attributes(self, records):
        try:
            raise MacroInvarianceViolation(BOE, Decimal("100"))
        except MacroInvarianceViolation:
            get_logger("test").error("halted", exc_info=True)

        (record,) = records()
        assert record["exc_code"] == "MACRO_INVARIANCE_VIOLATED"
        assert record["exc_type"] == "MacroInvarianceViolation"
        assert record["exc_relationship"] == BOE
        assert record["exc_imbalance"] == "100"
        assert "traceback" in record

    def test_settlement_route_error_attributes(self, records):
        try:
            raise SettlementRouteError("S", "B", "clearing")
        except SettlementRouteError:
            get_logger("test").warning("route_failed", exc_info=True)

        (record,) = records()
        assert record["exc_code"] == "SETTLEMENT_ROUTE_NOT_FOUND"
        assert record["exc_payer"] == "S"
        assert record["exc_payee"] == "B"


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class TestLedgerContext:

    def test_fields(self):
        assert CONTEXT_FIELDS == (
            "correlation_id",
            "event_type",
            "event_date",
            "agent",
            "relationship",
        )

    def test_repair_binds_relationship_inside_event(self):
        with LogContext.bind(correlation_id="c", event_type="settlement"):
            with LogContext.bind(relationship=BOE):
                assert LogContext.get_all() == {
                    "correlation_id": "c",
                    "event_type": "settlement",
                    "relationship": BOE,
                }
            assert "relationship" not in LogContext.get_all()

    def test_nested_agent_restored(self):
        LogContext.set(agent="CB")
        with LogContext.bind(agent="Bankb"):
            assert LogContext.get_all()["agent"] == "Bankb"
        assert LogContext.get_all()["agent"] == "CB"

    def test_unknown_and_none_fields_ignored(self):
        with LogContext.bind(agent="S", counterparty="B", relationship=None):
            assert LogContext.get_all() == {"agent": "S"}
