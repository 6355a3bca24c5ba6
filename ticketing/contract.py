"""
contract.py - EventTicketing contract facade

Binds the pure contract functions to a Ledger:

    compute_*(view, ...)  ->  PendingTransaction  ->  Ledger.execute()

Each operation either applies its whole transition or raises a
TicketingError with nothing changed. mine_block() applies a batch of calls
at a new height, one at a time and in order, collecting a Receipt per call;
a failing call does not undo the calls before it.

Example:
    ledger = Ledger("main", verbose=False)
    ticketing = EventTicketing.deploy(ledger, contract_owner="deployer")
    ledger.register_wallet("organizer")
    ledger.register_wallet("buyer")
    # ... fund "buyer" with STX from SYSTEM_WALLET ...

    receipts = ticketing.mine_block([
        ContractCall("create-event", ("Gig", "Live music", "Hall", 1000,
                                      100, 1_000_000, 1000, "Music"), "organizer"),
        ContractCall("purchase-ticket", (1,), "buyer"),
    ])
    assert receipts[1].expect_ok() == 1
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .core import (
    PendingTransaction, ExecuteResult, STX,
    LedgerError, TicketingError, PaymentFailed,
    currency,
)
from .ledger import Ledger
from .config import (
    GlobalConfig,
    DEFAULT_MIN_TICKET_PRICE, DEFAULT_PLATFORM_FEE_PERCENT,
    compute_deploy, compute_update_platform_fee, compute_update_min_ticket_price,
    calculate_platform_fee,
)
from .events import Event, OrganizerStats, compute_create_event
from .tickets import (
    Ticket, OwnedTickets,
    compute_purchase_ticket, compute_validate_ticket, compute_refund_ticket,
)
from . import queries


@dataclass(frozen=True, slots=True)
class ContractCall:
    """
    One contract call inside a block.

    Attributes:
        operation: Operation name, e.g. "purchase-ticket"
        args: Positional arguments of the operation, without the caller
        caller: Identity signing the call
    """
    operation: str
    args: Tuple[Any, ...]
    caller: str


@dataclass(frozen=True, slots=True)
class Receipt:
    """Outcome of a ContractCall: either a result or a TicketingError."""
    call: ContractCall
    height: int
    result: Any = None
    error: Optional[TicketingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def expect_ok(self) -> Any:
        """Return the result, re-raising the error if the call failed."""
        if self.error is not None:
            raise self.error
        return self.result

    def expect_err(self) -> int:
        """Return the error code; raise AssertionError if the call succeeded."""
        if self.error is None:
            raise AssertionError(f"{self.call.operation} succeeded with {self.result!r}")
        return self.error.code


class EventTicketing:
    """
    The ticketing contract deployed on a Ledger.

    All state lives in the ledger's record maps; this object only holds the
    ledger reference, so several facades over one ledger see the same state.
    """

    def __init__(self, ledger: Ledger, verbose: Optional[bool] = None):
        """
        Attach to a ledger on which the contract is already deployed.

        Use EventTicketing.deploy() for a fresh ledger.
        """
        if queries.get_config(ledger) is None:
            raise LedgerError("ticketing contract is not deployed on this ledger")
        self.ledger = ledger
        self.verbose = ledger.verbose if verbose is None else verbose
        self._operations: Dict[str, Callable[..., Any]] = {
            "create-event": self.create_event,
            "purchase-ticket": self.purchase_ticket,
            "validate-ticket": self.validate_ticket,
            "refund-ticket": self.refund_ticket,
            "update-platform-fee": self.update_platform_fee,
            "update-min-ticket-price": self.update_min_ticket_price,
        }

    @classmethod
    def deploy(
        cls,
        ledger: Ledger,
        contract_owner: str,
        min_ticket_price: int = DEFAULT_MIN_TICKET_PRICE,
        platform_fee_percent: int = DEFAULT_PLATFORM_FEE_PERCENT,
    ) -> EventTicketing:
        """
        Deploy the contract: register STX and the owner wallet if missing,
        then store the initial configuration.

        Raises:
            LedgerError: If the contract is already deployed on the ledger.
        """
        if STX not in ledger.units:
            ledger.register_unit(currency())
        if not ledger.is_registered(contract_owner):
            ledger.register_wallet(contract_owner)

        pending = compute_deploy(ledger, contract_owner, min_ticket_price, platform_fee_percent)
        if ledger.execute(pending) != ExecuteResult.APPLIED:
            raise LedgerError("deployment transaction rejected")
        return cls(ledger)

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def _submit(self, pending: PendingTransaction) -> Any:
        """
        Execute a pending contract transaction and return its result.

        A rejection of a transaction carrying moves means the currency
        transfer could not be made.
        """
        outcome = self.ledger.execute(pending)
        if outcome == ExecuteResult.APPLIED:
            return pending.result
        if outcome == ExecuteResult.REJECTED and pending.moves:
            raise PaymentFailed(
                f"{pending.origin.operation}: transfer of "
                f"{', '.join(repr(m) for m in pending.moves)} rejected"
            )
        raise LedgerError(f"{pending.origin.operation}: transaction {outcome.value}")

    def call(self, call: ContractCall) -> Any:
        """Dispatch a ContractCall to its operation."""
        operation = self._operations.get(call.operation)
        if operation is None:
            raise ValueError(f"unknown operation: {call.operation}")
        return operation(*call.args, caller=call.caller)

    def mine_block(self, calls: List[ContractCall]) -> List[Receipt]:
        """
        Advance the ledger by one block and apply calls in order.

        Each call is atomic on its own. TicketingErrors are captured in the
        receipt; any other exception propagates.
        """
        height = self.ledger.mine(1)
        receipts: List[Receipt] = []
        for call in calls:
            try:
                result = self.call(call)
            except TicketingError as e:
                if self.verbose:
                    print(f"✗ [{height}] {call.operation} by {call.caller}: "
                          f"{type(e).__name__} (u{e.code}) {e}")
                receipts.append(Receipt(call, height, error=e))
                continue
            if self.verbose:
                print(f"✓ [{height}] {call.operation} by {call.caller} -> {result!r}")
            receipts.append(Receipt(call, height, result=result))
        return receipts

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def create_event(
        self,
        name: str,
        description: str,
        venue: str,
        event_height: int,
        total_tickets: int,
        ticket_price: int,
        refund_window: int,
        category: str,
        *,
        caller: str,
    ) -> int:
        """
        Create an event; returns the new event id.

        The organizer's wallet is registered if missing, once the event has
        passed validation, so that ticket payments can reach it.
        """
        pending = compute_create_event(
            self.ledger, name, description, venue, event_height,
            total_tickets, ticket_price, refund_window, category, caller,
        )
        if not self.ledger.is_registered(caller):
            self.ledger.register_wallet(caller)
        return self._submit(pending)

    def purchase_ticket(self, event_id: int, *, caller: str) -> int:
        """Buy a ticket; returns the new ticket id."""
        return self._submit(compute_purchase_ticket(self.ledger, event_id, caller))

    def validate_ticket(self, ticket_id: int, *, caller: str) -> bool:
        return self._submit(compute_validate_ticket(self.ledger, ticket_id, caller))

    def refund_ticket(self, ticket_id: int, *, caller: str) -> bool:
        return self._submit(compute_refund_ticket(self.ledger, ticket_id, caller))

    def update_platform_fee(self, new_fee: int, *, caller: str) -> bool:
        return self._submit(compute_update_platform_fee(self.ledger, new_fee, caller))

    def update_min_ticket_price(self, new_min: int, *, caller: str) -> bool:
        return self._submit(compute_update_min_ticket_price(self.ledger, new_min, caller))

    # ========================================================================
    # QUERIES
    # ========================================================================

    def calculate_platform_fee(self, amount: int) -> int:
        return calculate_platform_fee(self.ledger, amount)

    def get_event(self, event_id: int) -> Optional[Event]:
        return queries.get_event(self.ledger, event_id)

    def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        return queries.get_ticket(self.ledger, ticket_id)

    def get_user_tickets(self, identity: str) -> Optional[OwnedTickets]:
        return queries.get_user_tickets(self.ledger, identity)

    def get_organizer_revenue(self, identity: str) -> Optional[OrganizerStats]:
        return queries.get_organizer_revenue(self.ledger, identity)

    def get_config(self) -> GlobalConfig:
        return queries.get_config(self.ledger)
