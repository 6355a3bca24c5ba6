"""
test_core.py - Unit tests for core.py

Tests:
- Move validation (integer quantities, non-empty fields, distinct wallets)
- RecordChange validation and changed_fields()
- PendingTransaction intent_id computation
- TransactionOrigin nonces
- Error codes and error_from_code()
- Unit factories
"""

import pytest
from dataclasses import FrozenInstanceError

from ticketing import (
    Move, RecordChange, PendingTransaction, Transaction, TransactionOrigin, OriginType,
    build_transaction, currency, error_from_code,
    LedgerView, Ledger,
    TicketingError, LedgerError, NotAuthorized, EventNotFound, SoldOut, TicketNotFound,
    InvalidPrice, EventExpired, PaymentFailed, TicketAlreadyClosed, RefundWindowClosed,
    STX, UNIT_TYPE_CURRENCY,
)
from ticketing.events import Event, OrganizerStats
from ticketing.tickets import Ticket
from tests.fake_view import FakeView


def _origin(source="wallet_1", nonce=0, operation="purchase-ticket"):
    return TransactionOrigin(OriginType.USER_ACTION, source, operation=operation, nonce=nonce)


class TestMove:
    """Tests for Move validation."""

    def test_valid_move(self):
        move = Move(1_000_000, STX, "wallet_2", "wallet_1", "ticket_1_purchase")
        assert move.quantity == 1_000_000
        assert move.unit_symbol == STX
        assert repr(move) == "Move(1000000 STX: wallet_2→wallet_1)"

    def test_move_is_frozen(self):
        move = Move(100, STX, "a", "b", "c")
        with pytest.raises(FrozenInstanceError):
            move.quantity = 200

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            Move(0, STX, "a", "b", "c")

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            Move(-5, STX, "a", "b", "c")

    def test_float_quantity_rejected(self):
        """Amounts are integer micro-STX; floats are not accepted."""
        with pytest.raises(ValueError, match="int"):
            Move(1.5, STX, "a", "b", "c")

    def test_bool_quantity_rejected(self):
        with pytest.raises(ValueError, match="int"):
            Move(True, STX, "a", "b", "c")

    def test_same_source_and_dest_rejected(self):
        with pytest.raises(ValueError, match="different"):
            Move(100, STX, "a", "a", "c")

    @pytest.mark.parametrize("field_name,kwargs", [
        ("source", dict(source="", dest="b", unit_symbol=STX, contract_id="c")),
        ("dest", dict(source="a", dest=" ", unit_symbol=STX, contract_id="c")),
        ("unit_symbol", dict(source="a", dest="b", unit_symbol="", contract_id="c")),
        ("contract_id", dict(source="a", dest="b", unit_symbol=STX, contract_id="")),
    ])
    def test_empty_fields_rejected(self, field_name, kwargs):
        with pytest.raises(ValueError, match=field_name):
            Move(quantity=10, **kwargs)


class TestRecordChange:
    """Tests for RecordChange."""

    def test_insert(self):
        rc = RecordChange("events", 1, None, OrganizerStats(1, 0))
        assert rc.is_insert

    def test_update_is_not_insert(self):
        rc = RecordChange("events", 1, OrganizerStats(1, 0), OrganizerStats(1, 5))
        assert not rc.is_insert

    def test_empty_map_name_rejected(self):
        with pytest.raises(ValueError, match="map_name"):
            RecordChange("", 1, None, OrganizerStats())

    def test_none_new_record_rejected(self):
        """Records are never deleted."""
        with pytest.raises(ValueError, match="never deleted"):
            RecordChange("events", 1, OrganizerStats(), None)

    def test_changed_fields_only_reports_differences(self):
        old = Ticket(1, 1, "wallet_2", 1_000_000, 5)
        new = Ticket(1, 1, "wallet_2", 1_000_000, 5, is_used=True)
        rc = RecordChange("tickets", 1, old, new)
        assert rc.changed_fields() == {"is_used": (False, True)}

    def test_changed_fields_of_insert_lists_every_field(self):
        new = OrganizerStats(events_organized=1, total_revenue=0)
        rc = RecordChange("organizer-revenue", "wallet_1", None, new)
        assert rc.changed_fields() == {
            "events_organized": (None, 1),
            "total_revenue": (None, 0),
        }


class TestIntentId:
    """Tests for content-addressed intent ids."""

    def test_same_content_same_intent_id(self):
        move = Move(100, STX, "a", "b", "c")
        tx1 = PendingTransaction((move,), (), _origin(), 1)
        tx2 = PendingTransaction((move,), (), _origin(), 99)
        assert tx1.intent_id == tx2.intent_id

    def test_intent_id_ignores_height(self):
        view_a = FakeView(height=1)
        view_b = FakeView(height=500)
        moves = [Move(100, STX, "a", "b", "c")]
        assert build_transaction(view_a, moves).intent_id == build_transaction(view_b, moves).intent_id

    def test_nonce_distinguishes_identical_intents(self):
        """The same call made twice by the same wallet yields two intents."""
        change = RecordChange("tickets", 1, Ticket(1, 1, "w", 5, 0), Ticket(1, 1, "w", 5, 0, is_used=True))
        tx1 = PendingTransaction((), (change,), _origin(nonce=0), 1)
        tx2 = PendingTransaction((), (change,), _origin(nonce=1), 1)
        assert tx1.intent_id != tx2.intent_id

    def test_operation_is_part_of_intent(self):
        move = Move(100, STX, "a", "b", "c")
        tx1 = PendingTransaction((move,), (), _origin(operation="purchase-ticket"), 1)
        tx2 = PendingTransaction((move,), (), _origin(operation="refund-ticket"), 1)
        assert tx1.intent_id != tx2.intent_id

    def test_move_order_does_not_matter(self):
        m1 = Move(100, STX, "a", "b", "c1")
        m2 = Move(200, STX, "b", "a", "c2")
        tx1 = PendingTransaction((m1, m2), (), _origin(), 1)
        tx2 = PendingTransaction((m2, m1), (), _origin(), 1)
        assert tx1.intent_id == tx2.intent_id

    def test_record_content_changes_intent(self):
        e1 = Event(1, "A", "", "", 10, 5, 1, 0, "x", "o")
        e2 = Event(1, "B", "", "", 10, 5, 1, 0, "x", "o")
        tx1 = PendingTransaction((), (RecordChange("events", 1, None, e1),), _origin(), 1)
        tx2 = PendingTransaction((), (RecordChange("events", 1, None, e2),), _origin(), 1)
        assert tx1.intent_id != tx2.intent_id

    def test_result_does_not_affect_equality(self):
        move = Move(100, STX, "a", "b", "c")
        tx1 = PendingTransaction((move,), (), _origin(), 1, result=1)
        tx2 = PendingTransaction((move,), (), _origin(), 1, result=2)
        assert tx1 == tx2


class TestPendingTransaction:
    """Tests for build_transaction() and PendingTransaction."""

    def test_build_transaction_uses_view_height(self):
        tx = build_transaction(FakeView(height=42), [Move(1, STX, "a", "b", "c")])
        assert tx.height == 42

    def test_default_origin_is_contract(self):
        tx = build_transaction(FakeView(), [Move(1, STX, "a", "b", "c")])
        assert tx.origin.origin_type == OriginType.CONTRACT

    def test_build_transaction_carries_result(self):
        tx = build_transaction(FakeView(), [], [RecordChange("m", 1, None, 1)], result=7)
        assert tx.result == 7

    def test_empty(self):
        tx = build_transaction(FakeView(height=3), [])
        assert tx.is_empty()
        assert tx.height == 3

    def test_transaction_requires_content(self):
        with pytest.raises(ValueError):
            Transaction((), (), _origin(), 0, "id", "exec", "l", 0, 0)

    def test_transaction_collects_contract_ids(self):
        moves = (Move(1, STX, "a", "b", "c1"), Move(1, STX, "b", "a", "c2"))
        tx = Transaction(moves, (), _origin(), 0, "id", "exec", "l", 0, 0)
        assert tx.contract_ids == frozenset({"c1", "c2"})


class TestTransactionOrigin:

    def test_repr_includes_operation_and_nonce(self):
        assert repr(_origin("wallet_2", 3)) == "Origin(user_action:wallet_2, op=purchase-ticket, nonce=3)"

    def test_system_origin_repr(self):
        origin = TransactionOrigin(OriginType.SYSTEM, "deploy")
        assert repr(origin) == "Origin(system:deploy)"


class TestErrors:
    """Tests for ticketing error kinds and their codes."""

    @pytest.mark.parametrize("cls,code", [
        (NotAuthorized, 1),
        (EventNotFound, 2),
        (SoldOut, 3),
        (TicketNotFound, 4),
        (InvalidPrice, 5),
        (EventExpired, 6),
        (PaymentFailed, 7),
        (TicketAlreadyClosed, 8),
        (RefundWindowClosed, 9),
    ])
    def test_codes(self, cls, code):
        assert cls.code == code
        assert error_from_code(code) is cls

    def test_unknown_code(self):
        with pytest.raises(KeyError):
            error_from_code(42)

    def test_hierarchy(self):
        assert issubclass(TicketingError, LedgerError)
        assert isinstance(SoldOut(), TicketingError)

    def test_default_message_is_class_name(self):
        assert str(SoldOut()) == "SoldOut"
        assert str(SoldOut("event 3 sold out")) == "event 3 sold out"


class TestUnits:

    def test_currency_defaults(self):
        unit = currency()
        assert unit.symbol == STX
        assert unit.unit_type == UNIT_TYPE_CURRENCY
        assert unit.min_balance == 0
        assert unit.max_balance is None


class TestProtocol:

    def test_ledger_is_a_ledger_view(self):
        assert isinstance(Ledger("t", verbose=False), LedgerView)

    def test_fake_view_is_a_ledger_view(self):
        assert isinstance(FakeView(), LedgerView)
