"""
queries.py - Read-only accessors

Lookups return the stored record or None when the key does not exist.
None of them mutate state and none of them raise for a missing key.
"""

from __future__ import annotations
from typing import Optional

from .core import (
    LedgerView,
    MAP_CONFIG, MAP_EVENTS, MAP_TICKETS, MAP_USER_TICKETS, MAP_ORGANIZER_REVENUE,
    CONFIG_KEY,
)
from .config import GlobalConfig
from .events import Event, OrganizerStats
from .tickets import Ticket, OwnedTickets, refund_deadline


def get_event(view: LedgerView, event_id: int) -> Optional[Event]:
    return view.get_record(MAP_EVENTS, event_id)


def get_ticket(view: LedgerView, ticket_id: int) -> Optional[Ticket]:
    return view.get_record(MAP_TICKETS, ticket_id)


def get_user_tickets(view: LedgerView, identity: str) -> Optional[OwnedTickets]:
    return view.get_record(MAP_USER_TICKETS, identity)


def get_organizer_revenue(view: LedgerView, identity: str) -> Optional[OrganizerStats]:
    return view.get_record(MAP_ORGANIZER_REVENUE, identity)


def get_config(view: LedgerView) -> Optional[GlobalConfig]:
    return view.get_record(MAP_CONFIG, CONFIG_KEY)


def get_tickets_remaining(view: LedgerView, event_id: int) -> Optional[int]:
    """Unsold capacity of an event, or None if the event does not exist."""
    event = get_event(view, event_id)
    if event is None:
        return None
    return event.tickets_remaining


def is_refundable(view: LedgerView, ticket_id: int) -> bool:
    """
    Whether the ticket could be refunded by its owner at the current height.

    False for unknown tickets, closed tickets and elapsed windows.
    """
    ticket = get_ticket(view, ticket_id)
    if ticket is None or ticket.is_closed:
        return False
    event = get_event(view, ticket.event_id)
    if event is None:
        return False
    return view.current_height <= refund_deadline(ticket, event)


def sum_event_revenue(view: LedgerView, organizer: str) -> int:
    """
    Sum of the revenue of every event organized by organizer.

    Should always equal get_organizer_revenue(...).total_revenue.
    """
    return sum(
        event.revenue
        for event in view.list_records(MAP_EVENTS).values()
        if event.organizer == organizer
    )
