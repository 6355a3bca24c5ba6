#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Event Ticketing on the Ledger, Step by Step

Walks through one event from creation to the door, with every contract call
printed as the ledger applies (or rejects) it. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup        - Deploying the contract, funding wallets, creating an event
  4-6:   Sales        - Purchases, sold-out events, failed payments
  7-8:   Lifecycle    - Validation at the door, refunds inside the window
  9-10:  Guarantees   - Conservation, clone_at() and replay()

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from ticketing import (
    Ledger, Move, EventTicketing, ContractCall,
    build_transaction,
    SYSTEM_WALLET, STX,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    deployer: str = "deployer"
    organizer: str = "organizer"
    fans: tuple = ("alice", "bob", "carol")
    broke_fan: str = "dave"

    # 50 STX each, in micro-STX
    fan_balance: int = 50_000_000

    event_height: int = 1000
    capacity: int = 3
    ticket_price: int = 5_000_000
    refund_window: int = 100


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def stx(amount: int) -> str:
    return f"{amount / 1_000_000:,.2f} STX"


# ============================================================================
# SETUP
# ============================================================================

def step_01_deploy():
    step_header(1, "Deploying the Contract",
        "The contract's configuration lives in the ledger like any other record.")

    ledger = Ledger("chain", verbose=True)
    ticketing = EventTicketing.deploy(ledger, contract_owner=CONFIG.deployer)

    config = ticketing.get_config()
    section_header("Configuration")
    print(f"Owner:             {config.contract_owner}")
    print(f"Min ticket price:  {stx(config.min_ticket_price)}")
    print(f"Platform fee:      {config.platform_fee_percent}%")
    print(f"Next event id:     {config.next_event_id}")
    return ledger, ticketing


def step_02_fund(ledger: Ledger):
    step_header(2, "Funding Wallets",
        "STX enters through SYSTEM_WALLET, so total supply stays zero.")

    ledger.register_wallet(CONFIG.organizer)
    ledger.register_wallet(CONFIG.broke_fan)
    moves = []
    for fan in CONFIG.fans:
        ledger.register_wallet(fan)
        moves.append(Move(CONFIG.fan_balance, STX, SYSTEM_WALLET, fan, f"fund_{fan}"))
    ledger.execute(build_transaction(ledger, moves))

    section_header("Balances")
    for wallet in (*CONFIG.fans, CONFIG.broke_fan, SYSTEM_WALLET):
        print(f"{wallet:10s} {stx(ledger.get_balance(wallet, STX))}")


def step_03_create_event(ticketing: EventTicketing):
    step_header(3, "Creating an Event",
        "Organizers create events; prices, windows and heights are validated.")

    receipts = ticketing.mine_block([
        ContractCall("create-event", (
            "Jazz Night", "An evening of live jazz", "Blue Room",
            CONFIG.event_height, CONFIG.capacity, CONFIG.ticket_price,
            CONFIG.refund_window, "Music",
        ), CONFIG.organizer),
        ContractCall("create-event", (
            "Bargain Gig", "Too cheap", "Basement",
            CONFIG.event_height, 10, 1, 10, "Music",
        ), CONFIG.organizer),
    ])
    event_id = receipts[0].expect_ok()

    section_header("Stored Event")
    print(ticketing.get_event(event_id))
    return event_id


# ============================================================================
# SALES
# ============================================================================

def step_04_purchases(ticketing: EventTicketing, event_id: int):
    step_header(4, "Buying Tickets",
        "A purchase moves STX and writes five records in ONE atomic transaction.")

    ticketing.mine_block([
        ContractCall("purchase-ticket", (event_id,), fan) for fan in CONFIG.fans
    ])
    event = ticketing.get_event(event_id)
    print(f"\nSold {event.tickets_sold}/{event.total_tickets}, revenue {stx(event.revenue)}")


def step_05_sold_out(ticketing: EventTicketing, event_id: int):
    step_header(5, "Sold Out",
        "Capacity is enforced: the next purchase fails with SoldOut (u3).")

    (receipt,) = ticketing.mine_block([
        ContractCall("purchase-ticket", (event_id,), CONFIG.fans[0]),
    ])
    print(f"\nError code: u{receipt.expect_err()}")


def step_06_failed_payment(ledger: Ledger, ticketing: EventTicketing):
    step_header(6, "A Payment That Cannot Be Made",
        "Insufficient funds reject the whole call: no ticket, no counters, no index entry.")

    event_id = ticketing.create_event(
        "Matinee", "Afternoon show", "Blue Room",
        CONFIG.event_height, 10, CONFIG.ticket_price, CONFIG.refund_window, "Music",
        caller=CONFIG.organizer,
    )
    (receipt,) = ticketing.mine_block([
        ContractCall("purchase-ticket", (event_id,), CONFIG.broke_fan),
    ])
    print(f"\nError code: u{receipt.expect_err()} (PaymentFailed)")
    print(f"Tickets sold: {ticketing.get_event(event_id).tickets_sold}")
    print(f"{CONFIG.broke_fan} owns: {ticketing.get_user_tickets(CONFIG.broke_fan)}")


# ============================================================================
# LIFECYCLE
# ============================================================================

def step_07_validate(ticketing: EventTicketing):
    step_header(7, "At the Door",
        "Only the organizer validates; a used ticket cannot be used again.")

    ticketing.mine_block([
        ContractCall("validate-ticket", (1,), CONFIG.fans[0]),
        ContractCall("validate-ticket", (1,), CONFIG.organizer),
        ContractCall("validate-ticket", (1,), CONFIG.organizer),
    ])


def step_08_refund(ledger: Ledger, ticketing: EventTicketing, event_id: int):
    step_header(8, "Refunds",
        "Refunds are open up to and including purchase height + refund window.")

    ticketing.mine_block([ContractCall("refund-ticket", (2,), CONFIG.fans[1])])

    ticket = ticketing.get_ticket(3)
    # mine_block adds one block, so this refund lands on the last open height
    ledger.advance_height(ticket.purchase_height + CONFIG.refund_window - 1)
    ticketing.mine_block([ContractCall("refund-ticket", (3,), CONFIG.fans[2])])

    event = ticketing.get_event(event_id)
    section_header("Event After Refunds")
    print(f"Tickets sold: {event.tickets_sold} (refunds do not release seats)")
    print(f"Revenue:      {stx(event.revenue)}")


# ============================================================================
# GUARANTEES
# ============================================================================

def step_09_conservation(ledger: Ledger, ticketing: EventTicketing):
    step_header(9, "Conservation",
        "Every micro-STX is accounted for; organizer totals match event revenue.")

    result = ledger.verify_double_entry({STX: 0})
    print(f"Double entry valid: {result['valid']}  supplies: {result['supplies']}")
    stats = ticketing.get_organizer_revenue(CONFIG.organizer)
    print(f"Organizer: {stats.events_organized} events, {stx(stats.total_revenue)} revenue")
    print(f"Organizer balance: {stx(ledger.get_balance(CONFIG.organizer, STX))}")


def step_10_history(ledger: Ledger):
    step_header(10, "Time Travel",
        "The log rebuilds any past height, and replays to the same present.")

    past = ledger.clone_at(2)
    past.verbose = False
    print(f"At height 2, ticket 1 used? {past.get_record('tickets', 1).is_used}")
    print(f"Now,         ticket 1 used? {ledger.get_record('tickets', 1).is_used}")

    ledger.verbose = False
    replayed = ledger.replay()
    same = replayed.list_records("tickets") == ledger.list_records("tickets")
    print(f"Replay of {len(ledger.transaction_log)} transactions matches: {same}")


def main():
    ledger, ticketing = step_01_deploy()
    wait_for_enter()
    step_02_fund(ledger)
    wait_for_enter()
    event_id = step_03_create_event(ticketing)
    wait_for_enter()

    step_04_purchases(ticketing, event_id)
    wait_for_enter()
    step_05_sold_out(ticketing, event_id)
    wait_for_enter()
    step_06_failed_payment(ledger, ticketing)
    wait_for_enter()

    step_07_validate(ticketing)
    wait_for_enter()
    step_08_refund(ledger, ticketing, event_id)
    wait_for_enter()

    step_09_conservation(ledger, ticketing)
    wait_for_enter()
    step_10_history(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See ticketing/tickets.py for the purchase / validate / refund rules
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
