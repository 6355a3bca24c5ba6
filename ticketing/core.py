"""
Core types and pure functions for the ticketing ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: Move, RecordChange, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError, the ledger error types and the ticketing error kinds
4. Type aliases: Positions, BalanceMap, RecordKey
5. Unit factories: currency()

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
import hashlib
from typing import (
    Dict, List, Set, Optional, Any, Protocol,
    Tuple, FrozenSet, Type, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Unit type constants (strings, not enum).
UNIT_TYPE_CURRENCY = "CURRENCY"

# Symbol of the settlement currency (amounts are in micro-STX).
STX = "STX"

# Record maps held by the ledger.
MAP_CONFIG = "config"
MAP_EVENTS = "events"
MAP_TICKETS = "tickets"
MAP_USER_TICKETS = "user-tickets"
MAP_ORGANIZER_REVENUE = "organizer-revenue"

# Key of the configuration singleton inside MAP_CONFIG.
CONFIG_KEY = "global"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]

# Keys are event ids, ticket ids or identities depending on the map.
RecordKey = Any


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Contract functions (compute_*) and queries take a LedgerView and
    declare their read-only intent. The Ledger class implements this protocol
    but also provides mutation methods. For testing, FakeView provides a
    truly immutable implementation.
    """

    @property
    def current_height(self) -> int:
        """Return the current ledger height."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Return the balance of a specific unit in a wallet.

        Returns 0 if the wallet holds none of the unit.
        """
        ...

    def get_record(self, map_name: str, key: RecordKey) -> Optional[Any]:
        """
        Return the record stored under key in map_name, or None if absent.
        """
        ...

    def list_records(self, map_name: str) -> Dict[RecordKey, Any]:
        """Return a copy of every record in map_name."""
        ...

    def get_nonce(self, wallet_id: str) -> int:
        """Return how many transactions originated by wallet_id were applied."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was successfully validated and applied to the ledger.
    ALREADY_APPLIED: Transaction ID was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation due to insufficient funds, balance
              constraints, unregistered wallets or stale records.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """
    Classification of where a transaction originated.

    Used for audit trails and reconciliation.
    """
    USER_ACTION = "user_action"           # Contract call signed by a wallet
    CONTRACT = "contract"                 # Generated by contract code
    SYSTEM = "system"                     # System operations (deployment, issuance)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class TicketingError(LedgerError):
    """
    Base class for ticketing contract errors.

    Every subclass carries a stable integer code so callers can treat the
    error kinds like the numeric error codes of the on-ledger contract.
    """
    code: int = 0

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)


class NotAuthorized(TicketingError):
    """Caller is not allowed to perform the operation."""
    code = 1


class EventNotFound(TicketingError):
    """No event exists with the given id."""
    code = 2


class SoldOut(TicketingError):
    """The event has no remaining capacity."""
    code = 3


class TicketNotFound(TicketingError):
    """No ticket exists with the given id."""
    code = 4


class InvalidPrice(TicketingError):
    """
    Invalid creation or admin parameter.

    Covers a ticket price below the minimum AND a refund window above the
    maximum, plus non-positive capacity and negative admin values.
    """
    code = 5


class EventExpired(TicketingError):
    """The event height is not in the future."""
    code = 6


class PaymentFailed(TicketingError):
    """The currency transfer for a purchase or refund was rejected."""
    code = 7


class TicketAlreadyClosed(TicketingError):
    """The ticket has already been used or refunded."""
    code = 8


class RefundWindowClosed(TicketingError):
    """The refund window for the ticket has elapsed."""
    code = 9


_ERRORS_BY_CODE: Dict[int, Type[TicketingError]] = {
    cls.code: cls for cls in (
        NotAuthorized, EventNotFound, SoldOut, TicketNotFound, InvalidPrice,
        EventExpired, PaymentFailed, TicketAlreadyClosed, RefundWindowClosed,
    )
}


def error_from_code(code: int) -> Type[TicketingError]:
    """
    Return the TicketingError subclass for a numeric error code.

    Raises:
        KeyError: If the code is unknown.
    """
    return _ERRORS_BY_CODE[code]


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source (USER_ACTION, CONTRACT, SYSTEM)
        source_id: Identifier of the specific source (the calling wallet, "deploy", ...)
        operation: Contract operation that produced the transaction (e.g. "purchase-ticket")
        nonce: Per-source sequence number; makes repeated identical intents distinct
    """
    origin_type: OriginType
    source_id: str
    operation: Optional[str] = None
    nonce: Optional[int] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.operation:
            parts.append(f"op={self.operation}")
        if self.nonce is not None:
            parts.append(f"nonce={self.nonce}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# RECORD CHANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class RecordChange:
    """
    Record of a keyed map update for transaction logging and rollback.

    Stores complete before/after records.
    This enables:
    - Forward replay: store new_record
    - Backward replay: restore old_record (None means the key did not exist)
    - Optimistic concurrency: the ledger rejects the change if the current
      record is not old_record
    - Audit queries: compute changed_fields() on demand

    Attributes:
        map_name: Name of the record map (e.g. "events")
        key: Key within the map
        old_record: The record before the change (None if newly inserted)
        new_record: The record after the change
    """
    map_name: str
    key: RecordKey
    old_record: Any
    new_record: Any

    def __post_init__(self):
        if not self.map_name or not self.map_name.strip():
            raise ValueError("RecordChange map_name cannot be empty")
        if self.new_record is None:
            raise ValueError("RecordChange new_record cannot be None (records are never deleted)")

    @property
    def is_insert(self) -> bool:
        return self.old_record is None

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new record.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
            Only includes fields that actually changed.
        """
        old = _record_fields(self.old_record)
        new = _record_fields(self.new_record)
        changes = {}
        for key in sorted(set(old) | set(new)):
            old_val = old.get(key)
            new_val = new.get(key)
            if old_val != new_val:
                changes[key] = (old_val, new_val)
        return changes


def _record_fields(record: Any) -> Dict[str, Any]:
    """Shallow field view of a dataclass record (or dict)."""
    if record is None:
        return {}
    if is_dataclass(record):
        return {f.name: getattr(record, f.name) for f in fields(record)}
    if isinstance(record, dict):
        return dict(record)
    return {"value": record}


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer in the unit's smallest denomination
                  (must be a positive integer).
        unit_symbol: The symbol of the unit being transferred (e.g., "STX").
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the contract call generating this move.

    This class is immutable (frozen=True) and memory-optimized (slots=True).
    All fields are validated in __post_init__.
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    contract_id: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    This function ensures deterministic serialization regardless of:
    - Dict insertion order
    - Nested structure depth
    - Record type (dataclass records are serialized field by field)

    The output is suitable for content-addressable hashing.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}:{_canonicalize(getattr(value, f.name))}" for f in fields(value)
        )
        return f"{type(value).__name__}({body})"
    if isinstance(value, dict):
        # Sort keys for deterministic ordering
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if isinstance(value, (set, frozenset)):
        serialized = ",".join(_canonicalize(item) for item in sorted(value, key=str))
        return f"<{serialized}>"
    return f"R:{repr(value)}"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    record_changes: Tuple[RecordChange, ...],
    origin: TransactionOrigin,
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    This hash is based solely on the semantic content of the transaction
    (moves, record_changes, origin), NOT on heights or ledger-specific data.
    Same inputs always produce the same intent_id.

    Used for idempotency checking: prevents duplicate business transactions.
    """
    sorted_moves = tuple(sorted(
        moves,
        key=lambda m: (m.quantity, m.unit_symbol, m.source, m.dest, m.contract_id)
    ))

    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.operation:
        content_parts.append(f"op:{origin.operation}")
    if origin.nonce is not None:
        content_parts.append(f"nonce:{origin.nonce}")

    for m in sorted_moves:
        content_parts.append(f"move:{m.quantity}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}")

    for rc in sorted(record_changes, key=lambda r: (r.map_name, str(r.key))):
        content_parts.append(
            f"record_change:{rc.map_name}|{_canonicalize(rc.key)}|"
            f"{_canonicalize(rc.old_record)}|{_canonicalize(rc.new_record)}"
        )

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction description before execution - represents INTENT.

    Created by contract functions and submitted to the ledger for execution.

    Lifecycle:
    1. compute_* builds a PendingTransaction with moves, record_changes, origin, height
    2. intent_id is auto-computed from content (deterministic hash)
    3. Ledger.execute() validates and executes, creating a Transaction record

    Attributes:
        moves: Tuple of value transfers between wallets
        record_changes: Tuple of keyed record changes (with old and new record)
        origin: Who/what created this transaction and why
        height: Ledger height the transaction was built at
        intent_id: Content-addressable hash of the transaction intent (auto-computed)
        result: Value handed back to the caller on success (e.g. the new ticket id)
    """
    moves: Tuple[Move, ...]
    record_changes: Tuple[RecordChange, ...]
    origin: TransactionOrigin
    height: int
    intent_id: str = field(default="")
    result: Any = field(default=None, compare=False)

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(self.moves, self.record_changes, self.origin)
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves and no record changes."""
        return not self.moves and not self.record_changes

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {len(self.record_changes)} changes, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    record_changes: Optional[List[RecordChange]] = None,
    origin: Optional[TransactionOrigin] = None,
    result: Any = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves and record changes.

    This is the standard way to create transactions.

    Args:
        view: Read-only ledger view (provides current_height)
        moves: List of moves to include in the transaction
        record_changes: Optional list of RecordChange objects
        origin: Transaction origin (defaults to CONTRACT origin)
        result: Value to return to the caller once the transaction is applied

    Returns:
        A PendingTransaction ready for execution

    Example:
        def compute_validate(view, ticket_id, caller):
            old = view.get_record(MAP_TICKETS, ticket_id)
            new = replace(old, is_used=True)
            return build_transaction(view, [], [RecordChange(MAP_TICKETS, ticket_id, old, new)])
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.CONTRACT,
            source_id="contract",
        )

    return PendingTransaction(
        moves=tuple(moves),
        record_changes=tuple(record_changes or ()),
        origin=origin,
        height=view.current_height,
        result=result,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger state changes - represents FACT.

    Created by the ledger when executing a PendingTransaction.

    Attributes:
        moves: Tuple of value transfers between wallets
        record_changes: Tuple of keyed record changes
        origin: Who/what created this transaction and why
        height: Ledger height the PendingTransaction was built at
        intent_id: Content hash from PendingTransaction (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + height)
        ledger_name: Name of the ledger that executed this
        execution_height: Ledger height when this was executed and logged
        sequence_number: Monotonic sequence within the ledger (for ordering)
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    record_changes: Tuple[RecordChange, ...]
    origin: TransactionOrigin
    height: int
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_height: int
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves and not self.record_changes:
            raise ValueError("Transaction must have moves or record_changes")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        w = 100  # Inner content width
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id      : ' + self.intent_id)}│",
            f"│{pad('   height         : ' + str(self.height))}│",
            f"│{pad('   ledger_name    : ' + self.ledger_name)}│",
            f"│{pad('   executed at    : ' + str(self.execution_height))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   origin         : ' + str(self.origin))}│",
        ]
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Moves (' + str(len(self.moves)) + '):')}│")
        for i, move in enumerate(self.moves):
            move_str = f"   [{i}] {move.quantity} {move.unit_symbol}: {move.source} → {move.dest}"
            lines.append(f"│{pad(move_str)}│")
        if self.record_changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Record Changes (' + str(len(self.record_changes)) + '):')}│")
            for rc in self.record_changes:
                tag = " (new)" if rc.is_insert else ""
                lines.append(f"│{pad('   [' + rc.map_name + ' ' + str(rc.key) + ']' + tag)}│")
                for field_name, (old_val, new_val) in rc.changed_fields().items():
                    lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a transferable unit (currency) in the ledger.

    Attributes:
        symbol: Short identifier for the unit (e.g., "STX").
        name: Human-readable name for the unit.
        unit_type: Category of the unit.
        min_balance: Minimum allowed balance in any non-system wallet.
        max_balance: Maximum allowed balance in any wallet (None = unbounded).
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: int = 0
    max_balance: Optional[int] = None


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def currency(symbol: str = STX, name: str = "Stacks (micro-STX)") -> Unit:
    """
    Create a currency unit denominated in integer micro-units.

    Non-system wallets cannot overdraw: a move that would take a balance
    below zero is rejected by the ledger.

    Args:
        symbol: Currency code (default "STX").
        name: Full name of the currency.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_CURRENCY,
        min_balance=0,
    )
