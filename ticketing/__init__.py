"""
ticketing - Ledger-Resident Event Ticketing

Issues events, sells tickets against them and enforces their lifecycle
(capacity, validation by the organizer, height-boxed refunds) on top of a
double-entry ledger that holds both the STX balances and the contract records.

Usage:
    from ticketing import Ledger, EventTicketing, Move, build_transaction, SYSTEM_WALLET, STX

    ledger = Ledger("main")
    ticketing = EventTicketing.deploy(ledger, contract_owner="deployer")
    ledger.register_wallet("organizer")
    ledger.register_wallet("fan")

    # Fund the fan via SYSTEM_WALLET (proper issuance)
    ledger.execute(build_transaction(ledger, [
        Move(10_000_000, STX, SYSTEM_WALLET, "fan", "initial_balance")
    ]))

    event_id = ticketing.create_event(
        "Music Festival", "Three-day music festival", "Park Grounds",
        1000, 500, 5_000_000, 5000, "Music", caller="organizer",
    )
    ticket_id = ticketing.purchase_ticket(event_id, caller="fan")
    ticketing.validate_ticket(ticket_id, caller="organizer")
"""

# Core types
from .core import (
    LedgerView,
    Move,
    RecordChange,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    ExecuteResult,
    currency,
    error_from_code,
    SYSTEM_WALLET,
    STX,
    UNIT_TYPE_CURRENCY,
    MAP_CONFIG,
    MAP_EVENTS,
    MAP_TICKETS,
    MAP_USER_TICKETS,
    MAP_ORGANIZER_REVENUE,
    CONFIG_KEY,
    # Ledger errors
    LedgerError,
    UnitNotRegistered,
    WalletNotRegistered,
    # Ticketing errors
    TicketingError,
    NotAuthorized,
    EventNotFound,
    SoldOut,
    TicketNotFound,
    InvalidPrice,
    EventExpired,
    PaymentFailed,
    TicketAlreadyClosed,
    RefundWindowClosed,
)

# Ledger
from .ledger import Ledger

# Configuration and administration
from .config import (
    GlobalConfig,
    DEFAULT_MIN_TICKET_PRICE,
    DEFAULT_PLATFORM_FEE_PERCENT,
    MAX_PLATFORM_FEE_PERCENT,
    MAX_REFUND_WINDOW,
    load_config,
    compute_deploy,
    compute_update_platform_fee,
    compute_update_min_ticket_price,
    calculate_platform_fee,
)

# Event registry
from .events import (
    Event,
    OrganizerStats,
    compute_create_event,
)

# Ticket registry
from .tickets import (
    Ticket,
    OwnedTickets,
    compute_purchase_ticket,
    compute_validate_ticket,
    compute_refund_ticket,
    refund_deadline,
)

# Queries
from .queries import (
    get_event,
    get_ticket,
    get_user_tickets,
    get_organizer_revenue,
    get_config,
    get_tickets_remaining,
    is_refundable,
    sum_event_revenue,
)

# Contract facade
from .contract import EventTicketing, ContractCall, Receipt

__all__ = [
    # Core
    'LedgerView', 'Move', 'RecordChange', 'Transaction', 'PendingTransaction',
    'TransactionOrigin', 'OriginType', 'build_transaction',
    'Unit', 'ExecuteResult', 'currency', 'error_from_code',
    'SYSTEM_WALLET', 'STX', 'UNIT_TYPE_CURRENCY',
    'MAP_CONFIG', 'MAP_EVENTS', 'MAP_TICKETS', 'MAP_USER_TICKETS',
    'MAP_ORGANIZER_REVENUE', 'CONFIG_KEY',
    'LedgerError', 'UnitNotRegistered', 'WalletNotRegistered',
    'TicketingError', 'NotAuthorized', 'EventNotFound', 'SoldOut', 'TicketNotFound',
    'InvalidPrice', 'EventExpired', 'PaymentFailed', 'TicketAlreadyClosed',
    'RefundWindowClosed',
    # Ledger
    'Ledger',
    # Configuration
    'GlobalConfig', 'DEFAULT_MIN_TICKET_PRICE', 'DEFAULT_PLATFORM_FEE_PERCENT',
    'MAX_PLATFORM_FEE_PERCENT', 'MAX_REFUND_WINDOW', 'load_config', 'compute_deploy',
    'compute_update_platform_fee', 'compute_update_min_ticket_price',
    'calculate_platform_fee',
    # Events
    'Event', 'OrganizerStats', 'compute_create_event',
    # Tickets
    'Ticket', 'OwnedTickets', 'compute_purchase_ticket', 'compute_validate_ticket',
    'compute_refund_ticket', 'refund_deadline',
    # Queries
    'get_event', 'get_ticket', 'get_user_tickets', 'get_organizer_revenue',
    'get_config', 'get_tickets_remaining', 'is_refundable', 'sum_event_revenue',
    # Contract
    'EventTicketing', 'ContractCall', 'Receipt',
]

__version__ = '1.0.0'
