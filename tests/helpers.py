"""
helpers.py - Constants and helper functions shared by the ticketing tests

The wallet names and constants mirror the contract's Clarinet test suite:
the organizer is wallet_1, buyers are wallet_2 and wallet_3.
"""

from typing import Optional

from ticketing import (
    Ledger, Move, EventTicketing, ExecuteResult,
    build_transaction,
    SYSTEM_WALLET, STX,
)


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_TICKET_PRICE = 1_000_000  # 1 STX in micro-STX
FUTURE_BLOCK = 1000
MAX_REFUND_WINDOW = 1_209_600

DEPLOYER = "deployer"
ORGANIZER = "wallet_1"
BUYER = "wallet_2"
OTHER_BUYER = "wallet_3"
STRANGER = "wallet_4"

WALLETS = [ORGANIZER, BUYER, OTHER_BUYER, STRANGER]

# 100 STX each
STARTING_BALANCE = 100_000_000


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def fund(ledger: Ledger, wallet: str, amount: int) -> None:
    """Issue STX to a wallet from SYSTEM_WALLET."""
    tx = build_transaction(ledger, [
        Move(amount, STX, SYSTEM_WALLET, wallet, f"faucet_{wallet}_{len(ledger.transaction_log)}")
    ])
    assert ledger.execute(tx) == ExecuteResult.APPLIED


def create_event(
    ticketing: EventTicketing,
    caller: str = ORGANIZER,
    name: str = "Tech Conference 2025",
    description: str = "Annual technology conference with industry leaders",
    venue: str = "Convention Center",
    event_height: int = FUTURE_BLOCK,
    total_tickets: int = 100,
    ticket_price: int = MIN_TICKET_PRICE,
    refund_window: int = 1000,
    category: str = "Technology",
) -> int:
    """Create an event with sensible defaults and return its id."""
    return ticketing.create_event(
        name, description, venue, event_height, total_tickets,
        ticket_price, refund_window, category, caller=caller,
    )


def deploy_funded(
    ledger: Ledger,
    balance: int = STARTING_BALANCE,
    min_ticket_price: Optional[int] = None,
) -> EventTicketing:
    """Deploy the contract on ledger and register + fund the standard wallets."""
    kwargs = {}
    if min_ticket_price is not None:
        kwargs["min_ticket_price"] = min_ticket_price
    ticketing = EventTicketing.deploy(ledger, contract_owner=DEPLOYER, **kwargs)
    for wallet in WALLETS:
        ledger.register_wallet(wallet)
        if balance:
            fund(ledger, wallet, balance)
    return ticketing


def snapshot(ledger: Ledger) -> dict:
    """Observable state of a ledger: balances, records, nonces and height."""
    return {
        "height": ledger.current_height,
        "balances": {
            w: {u: q for u, q in b.items() if q}
            for w, b in ledger.balances.items() if any(b.values())
        },
        "records": {
            m: dict(entries) for m, entries in ledger.records.items() if entries
        },
        "nonces": {w: n for w, n in ledger.nonces.items() if n},
        "log_length": len(ledger.transaction_log),
    }
