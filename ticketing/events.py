"""
events.py - Event Registry and Organizer Statistics

An Event is a ticketed occasion taking place at a future ledger height.
Organizers create events; the registry keeps per-event counters (tickets
sold, accrued revenue, active flag) and per-organizer aggregates.

Pattern:
    create-event (organizer):
        - events[next_event_id] = Event(tickets_sold=0, revenue=0, is_active=True)
        - organizer-revenue[organizer].events_organized += 1
        - config.next_event_id += 1

Validation order matters and mirrors the on-ledger contract:
    1. price >= minimum and refund window <= MAX_REFUND_WINDOW  -> InvalidPrice
    2. event height > current height                            -> EventExpired
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional

from .core import (
    LedgerView, PendingTransaction, RecordChange,
    MAP_EVENTS, MAP_ORGANIZER_REVENUE,
    InvalidPrice, EventExpired,
    build_transaction,
)
from .config import MAX_REFUND_WINDOW, load_config, config_change, user_origin


@dataclass(frozen=True, slots=True)
class Event:
    """
    A ticketed event.

    ticket_price is in micro-STX. refund_window is a number of blocks counted
    from each ticket's purchase height. revenue is the sum of purchase prices
    of non-refunded tickets.
    """
    event_id: int
    name: str
    description: str
    venue: str
    event_height: int
    total_tickets: int
    ticket_price: int
    refund_window: int
    category: str
    organizer: str
    tickets_sold: int = 0
    revenue: int = 0
    is_active: bool = True

    @property
    def tickets_remaining(self) -> int:
        return self.total_tickets - self.tickets_sold

    @property
    def is_sold_out(self) -> bool:
        return not self.is_active or self.tickets_sold >= self.total_tickets


@dataclass(frozen=True, slots=True)
class OrganizerStats:
    """Aggregate counters for one organizer across all their events."""
    events_organized: int = 0
    total_revenue: int = 0


def organizer_stats_change(
    view: LedgerView,
    organizer: str,
    events_delta: int = 0,
    revenue_delta: int = 0,
) -> RecordChange:
    """
    Build the change to an organizer's aggregates, creating the entry if absent.

    total_revenue never drops below zero.
    """
    old: Optional[OrganizerStats] = view.get_record(MAP_ORGANIZER_REVENUE, organizer)
    base = old or OrganizerStats()
    new = OrganizerStats(
        events_organized=base.events_organized + events_delta,
        total_revenue=max(0, base.total_revenue + revenue_delta),
    )
    return RecordChange(MAP_ORGANIZER_REVENUE, organizer, old, new)


def compute_create_event(
    view: LedgerView,
    name: str,
    description: str,
    venue: str,
    event_height: int,
    total_tickets: int,
    ticket_price: int,
    refund_window: int,
    category: str,
    caller: str,
) -> PendingTransaction:
    """
    Create a new event organized by caller.

    Args:
        view: Read-only ledger access
        name, description, venue, category: Free text
        event_height: Ledger height at which the event takes place
        total_tickets: Capacity (must be positive)
        ticket_price: Price in micro-STX (>= configured minimum)
        refund_window: Blocks after purchase during which a refund is allowed
        caller: The organizer

    Returns:
        PendingTransaction inserting the Event, bumping the organizer's
        events_organized and advancing next_event_id. Its result is the new
        event id.

    Raises:
        InvalidPrice: price below the minimum, refund window above
                      MAX_REFUND_WINDOW or non-positive capacity.
        EventExpired: event_height is not after the current height.

    Example:
        pending = compute_create_event(
            ledger, "Tech Conference 2025", "Annual technology conference",
            "Convention Center", 1000, 100, 1_000_000, 1000, "Technology", "wallet_1",
        )
        ledger.execute(pending)   # pending.result == 1
    """
    config = load_config(view)

    if ticket_price < config.min_ticket_price or refund_window > MAX_REFUND_WINDOW:
        raise InvalidPrice(
            f"price {ticket_price} (min {config.min_ticket_price}) or "
            f"refund window {refund_window} (max {MAX_REFUND_WINDOW}) invalid"
        )
    if refund_window < 0 or total_tickets <= 0:
        raise InvalidPrice(
            f"invalid capacity {total_tickets} or refund window {refund_window}"
        )
    if event_height <= view.current_height:
        raise EventExpired(
            f"event height {event_height} is not after current height {view.current_height}"
        )

    event_id = config.next_event_id
    event = Event(
        event_id=event_id,
        name=name,
        description=description,
        venue=venue,
        event_height=event_height,
        total_tickets=total_tickets,
        ticket_price=ticket_price,
        refund_window=refund_window,
        category=category,
        organizer=caller,
    )

    changes = [
        RecordChange(MAP_EVENTS, event_id, None, event),
        organizer_stats_change(view, caller, events_delta=1),
        config_change(config, replace(config, next_event_id=event_id + 1)),
    ]
    return build_transaction(
        view, [], changes,
        origin=user_origin(view, caller, "create-event"), result=event_id,
    )
