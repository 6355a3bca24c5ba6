"""
Tests for queries.py - Read-only accessors

Missing keys return None (or False / 0), never raise.
"""

from ticketing import (
    Event, Ticket, OwnedTickets, OrganizerStats, GlobalConfig,
    get_event, get_ticket, get_user_tickets, get_organizer_revenue, get_config,
    get_tickets_remaining, is_refundable, sum_event_revenue,
    MAP_EVENTS, MAP_TICKETS, MAP_USER_TICKETS, MAP_ORGANIZER_REVENUE,
)
from tests.fake_view import FakeView


ORGANIZER = "wallet_1"
BUYER = "wallet_2"


def _event(event_id=1, organizer=ORGANIZER, revenue=0, tickets_sold=0):
    return Event(event_id, "Gig", "Live", "Hall", 1000, 10, 1_000_000, 100,
                 "Music", organizer, tickets_sold=tickets_sold, revenue=revenue)


def _view(height=50):
    return FakeView(
        records={
            MAP_EVENTS: {
                1: _event(1, revenue=2_000_000, tickets_sold=3),
                2: _event(2, revenue=1_000_000, tickets_sold=1),
                3: _event(3, organizer="wallet_3", revenue=7),
            },
            MAP_TICKETS: {
                1: Ticket(1, 1, BUYER, 1_000_000, 20),
                2: Ticket(2, 1, BUYER, 1_000_000, 20, is_used=True),
                3: Ticket(3, 1, BUYER, 1_000_000, 20, is_refunded=True),
            },
            MAP_USER_TICKETS: {BUYER: OwnedTickets((1, 2, 3))},
            MAP_ORGANIZER_REVENUE: {ORGANIZER: OrganizerStats(2, 3_000_000)},
        },
        config=GlobalConfig("deployer"),
        height=height,
    )


class TestLookups:

    def test_existing_records(self):
        view = _view()
        assert get_event(view, 1).tickets_sold == 3
        assert get_ticket(view, 2).is_used
        assert get_user_tickets(view, BUYER).owned_tickets == (1, 2, 3)
        assert get_organizer_revenue(view, ORGANIZER) == OrganizerStats(2, 3_000_000)
        assert get_config(view).contract_owner == "deployer"

    def test_missing_records_are_none(self):
        view = _view()
        assert get_event(view, 99) is None
        assert get_ticket(view, 99) is None
        assert get_user_tickets(view, "nobody") is None
        assert get_organizer_revenue(view, "nobody") is None
        assert get_config(FakeView()) is None

    def test_tickets_remaining(self):
        view = _view()
        assert get_tickets_remaining(view, 1) == 7
        assert get_tickets_remaining(view, 99) is None


class TestIsRefundable:

    def test_open_ticket_in_window(self):
        assert is_refundable(_view(height=50), 1)

    def test_open_ticket_at_deadline(self):
        assert is_refundable(_view(height=120), 1)

    def test_open_ticket_past_deadline(self):
        assert not is_refundable(_view(height=121), 1)

    def test_closed_tickets(self):
        view = _view()
        assert not is_refundable(view, 2)
        assert not is_refundable(view, 3)

    def test_unknown_ticket(self):
        assert not is_refundable(_view(), 99)


class TestSumEventRevenue:

    def test_sums_only_own_events(self):
        view = _view()
        assert sum_event_revenue(view, ORGANIZER) == 3_000_000
        assert sum_event_revenue(view, "wallet_3") == 7

    def test_organizer_without_events(self):
        assert sum_event_revenue(_view(), "nobody") == 0
