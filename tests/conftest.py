"""
Pytest fixtures for the ledger test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- ``captured_logs`` to assert on emitted JSON log records
- The default configuration set and a fresh ledger built from it
- Event factories for the reference cycle
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from ledger_config import get_active_config
from ledger_kernel.domain import Event, EventType, create_ledger
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_services.scenario import REFERENCE_START, reference_events


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            process_event(ledger, event)
            logs = captured_logs()
            assert any(r["message"] == "event_processed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture(scope="session")
def config():
    return get_active_config()


@pytest.fixture(scope="session")
def registry(config):
    return config.registry


@pytest.fixture
def ledger(registry):
    """A fresh ledger with every agent and account at zero."""
    return create_ledger(registry)


@pytest.fixture
def start_date() -> date:
    return REFERENCE_START


@pytest.fixture
def cycle_events():
    """The seven reference events (money creation through settlement)."""
    return reference_events()


@pytest.fixture
def make_event(start_date):
    """Factory for events with sensible defaults."""

    def _make(
        event_type,
        agent,
        accounts,
        amount=Decimal("100"),
        counterparties=(),
        on=None,
        **kwargs,
    ) -> Event:
        return Event(
            type=EventType.parse(event_type),
            date=on or start_date,
            agent=agent,
            accounts=tuple(accounts),
            amount=amount,
            counterparties=tuple(counterparties),
            **kwargs,
        )

    return _make
