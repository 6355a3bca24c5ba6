"""
conftest.py - Shared pytest fixtures for ticketing tests

Provides common fixtures used across unit, functional and conformance tests:
- Basic ledgers (empty, with STX registered)
- A deployed ticketing contract with funded wallets

Constants and helpers live in tests/helpers.py.
"""

import pytest

from ticketing import Ledger, currency

from tests.helpers import fund, create_event, deploy_funded, BUYER


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def stx_ledger():
    """Ledger with STX and two wallets."""
    ledger = Ledger("test", verbose=False, test_mode=True)
    ledger.register_unit(currency())
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


@pytest.fixture
def funded_ledger(stx_ledger):
    """STX ledger with alice holding 10 STX issued from the system wallet."""
    fund(stx_ledger, "alice", 10_000_000)
    return stx_ledger


# =============================================================================
# TICKETING FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Ledger used by the ticketing fixtures."""
    return Ledger("chain", verbose=False, test_mode=True)


@pytest.fixture
def ticketing(ledger):
    """Deployed contract with four funded wallets."""
    return deploy_funded(ledger)


@pytest.fixture
def event_id(ticketing):
    """One event (100 seats at 1 STX, refund window 1000 blocks) by ORGANIZER."""
    return create_event(ticketing)


@pytest.fixture
def ticket_id(ticketing, event_id):
    """One ticket bought by BUYER for the fixture event."""
    return ticketing.purchase_ticket(event_id, caller=BUYER)
