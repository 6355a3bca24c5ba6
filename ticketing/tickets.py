"""
tickets.py - Ticket Registry and Ownership Index

A Ticket is sold against an Event and moves through a three-way lifecycle:

    valid ──validate (organizer)──> used
      │
      └────refund (owner, in window)──> refunded

Both used and refunded are terminal. A refund returns the purchase price to
the owner and reverses the revenue bookkeeping, but does NOT give the seat
back: tickets_sold is never decremented.

Pattern:
    purchase-ticket (buyer):
        Move(price, STX, buyer -> organizer)
        tickets[next_ticket_id] = Ticket(...)
        events[id].tickets_sold += 1, events[id].revenue += price
        organizer-revenue[organizer].total_revenue += price
        user-tickets[buyer].owned_tickets += (ticket_id,)

    refund-ticket (owner):
        Move(purchase_price, STX, organizer -> owner)
        tickets[id].is_refunded = True
        events[event_id].revenue -= purchase_price
        organizer-revenue[organizer].total_revenue -= purchase_price

Whether the buyer can actually pay is decided by the ledger when the
transaction executes: an insufficient balance rejects the whole thing.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .core import (
    LedgerView, Move, PendingTransaction, RecordChange,
    MAP_EVENTS, MAP_TICKETS, MAP_USER_TICKETS, STX,
    EventNotFound, SoldOut, TicketNotFound, NotAuthorized,
    TicketAlreadyClosed, RefundWindowClosed,
    build_transaction,
)
from .config import load_config, config_change, user_origin
from .events import Event, organizer_stats_change


@dataclass(frozen=True, slots=True)
class Ticket:
    """A sold ticket. purchase_price snapshots the event price at purchase time."""
    ticket_id: int
    event_id: int
    owner: str
    purchase_price: int
    purchase_height: int
    is_used: bool = False
    is_refunded: bool = False

    def __post_init__(self):
        if self.is_used and self.is_refunded:
            raise ValueError(f"ticket {self.ticket_id} cannot be both used and refunded")

    @property
    def is_closed(self) -> bool:
        return self.is_used or self.is_refunded


@dataclass(frozen=True, slots=True)
class OwnedTickets:
    """Every ticket id a buyer has purchased, in purchase order. Append-only."""
    owned_tickets: Tuple[int, ...] = ()

    def append(self, ticket_id: int) -> OwnedTickets:
        return OwnedTickets(self.owned_tickets + (ticket_id,))


def _load_event(view: LedgerView, event_id: int) -> Event:
    event = view.get_record(MAP_EVENTS, event_id)
    if event is None:
        raise EventNotFound(f"event {event_id} not found")
    return event


def _load_ticket(view: LedgerView, ticket_id: int) -> Ticket:
    ticket = view.get_record(MAP_TICKETS, ticket_id)
    if ticket is None:
        raise TicketNotFound(f"ticket {ticket_id} not found")
    return ticket


def refund_deadline(ticket: Ticket, event: Event) -> int:
    """Last height at which ticket may still be refunded."""
    return ticket.purchase_height + event.refund_window


# ============================================================================
# PURCHASE
# ============================================================================

def compute_purchase_ticket(
    view: LedgerView,
    event_id: int,
    caller: str,
) -> PendingTransaction:
    """
    Sell one ticket for event_id to caller at the event's current price.

    Returns:
        PendingTransaction containing:
        - Payment move caller -> organizer (omitted when caller is the organizer)
        - New Ticket record
        - Event update (tickets_sold + 1, revenue + price)
        - Organizer aggregate update (total_revenue + price)
        - Ownership index append
        - next_ticket_id advance
        Its result is the new ticket id.

    Raises:
        EventNotFound: no such event.
        SoldOut: capacity reached or event inactive.
    """
    event = _load_event(view, event_id)
    if event.is_sold_out:
        raise SoldOut(f"event {event_id} sold out ({event.tickets_sold}/{event.total_tickets})")

    config = load_config(view)
    ticket_id = config.next_ticket_id
    price = event.ticket_price

    ticket = Ticket(
        ticket_id=ticket_id,
        event_id=event_id,
        owner=caller,
        purchase_price=price,
        purchase_height=view.current_height,
    )
    new_event = replace(
        event,
        tickets_sold=event.tickets_sold + 1,
        revenue=event.revenue + price,
    )
    old_owned: Optional[OwnedTickets] = view.get_record(MAP_USER_TICKETS, caller)
    new_owned = (old_owned or OwnedTickets()).append(ticket_id)

    moves = []
    if price > 0 and caller != event.organizer:
        moves.append(Move(
            quantity=price,
            unit_symbol=STX,
            source=caller,
            dest=event.organizer,
            contract_id=f"ticket_{ticket_id}_purchase",
        ))

    changes = [
        RecordChange(MAP_TICKETS, ticket_id, None, ticket),
        RecordChange(MAP_EVENTS, event_id, event, new_event),
        organizer_stats_change(view, event.organizer, revenue_delta=price),
        RecordChange(MAP_USER_TICKETS, caller, old_owned, new_owned),
        config_change(config, replace(config, next_ticket_id=ticket_id + 1)),
    ]
    return build_transaction(
        view, moves, changes,
        origin=user_origin(view, caller, "purchase-ticket"), result=ticket_id,
    )


# ============================================================================
# VALIDATION
# ============================================================================

def compute_validate_ticket(
    view: LedgerView,
    ticket_id: int,
    caller: str,
) -> PendingTransaction:
    """
    Mark a ticket as used (admitted). Only the event organizer may do this.

    Raises:
        TicketNotFound: no such ticket.
        NotAuthorized: caller is not the organizer of the ticket's event.
        TicketAlreadyClosed: ticket already used or refunded.
    """
    ticket = _load_ticket(view, ticket_id)
    event = _load_event(view, ticket.event_id)
    if caller != event.organizer:
        raise NotAuthorized(f"{caller} is not the organizer of event {event.event_id}")
    if ticket.is_closed:
        raise TicketAlreadyClosed(f"ticket {ticket_id} is already used or refunded")

    changes = [RecordChange(MAP_TICKETS, ticket_id, ticket, replace(ticket, is_used=True))]
    return build_transaction(
        view, [], changes,
        origin=user_origin(view, caller, "validate-ticket"), result=True,
    )


# ============================================================================
# REFUND
# ============================================================================

def compute_refund_ticket(
    view: LedgerView,
    ticket_id: int,
    caller: str,
) -> PendingTransaction:
    """
    Refund a ticket to its owner while the refund window is open.

    The window is inclusive: at height purchase_height + refund_window the
    ticket is still refundable; one block later it is not.

    Returns:
        PendingTransaction containing:
        - Refund move organizer -> owner (omitted when the owner is the organizer)
        - Ticket update (is_refunded = True)
        - Event revenue reduced by purchase_price (tickets_sold unchanged)
        - Organizer total_revenue reduced by purchase_price

    Raises:
        TicketNotFound: no such ticket.
        NotAuthorized: caller does not own the ticket.
        TicketAlreadyClosed: ticket already used or refunded.
        RefundWindowClosed: current height is past the refund deadline.
    """
    ticket = _load_ticket(view, ticket_id)
    if caller != ticket.owner:
        raise NotAuthorized(f"{caller} does not own ticket {ticket_id}")
    if ticket.is_closed:
        raise TicketAlreadyClosed(f"ticket {ticket_id} is already used or refunded")

    event = _load_event(view, ticket.event_id)
    deadline = refund_deadline(ticket, event)
    if view.current_height > deadline:
        raise RefundWindowClosed(
            f"ticket {ticket_id} refund window closed at height {deadline}"
        )

    amount = ticket.purchase_price
    new_event = replace(event, revenue=max(0, event.revenue - amount))

    moves = []
    if amount > 0 and ticket.owner != event.organizer:
        moves.append(Move(
            quantity=amount,
            unit_symbol=STX,
            source=event.organizer,
            dest=ticket.owner,
            contract_id=f"ticket_{ticket_id}_refund",
        ))

    changes = [
        RecordChange(MAP_TICKETS, ticket_id, ticket, replace(ticket, is_refunded=True)),
        RecordChange(MAP_EVENTS, event.event_id, event, new_event),
        organizer_stats_change(view, event.organizer, revenue_delta=-amount),
    ]
    return build_transaction(
        view, moves, changes,
        origin=user_origin(view, caller, "refund-ticket"), result=True,
    )
