"""
config.py - Global Configuration and Administration

The contract's configuration is a single GlobalConfig record stored in the
ledger under MAP_CONFIG / CONFIG_KEY. It holds the administrator identity,
the minimum ticket price, the platform fee percentage and the id counters.

1. GlobalConfig - frozen record
2. compute_deploy() - initial configuration (SYSTEM origin)
3. compute_update_platform_fee() / compute_update_min_ticket_price() - owner-only updates
4. calculate_platform_fee() - pure fee arithmetic
5. load_config() - the one place that reads the record from a LedgerView

All functions take LedgerView (read-only) and return immutable results.
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from .core import (
    LedgerView, PendingTransaction, RecordChange, TransactionOrigin, OriginType,
    MAP_CONFIG, CONFIG_KEY,
    LedgerError, NotAuthorized, InvalidPrice,
    build_transaction,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# 1 STX in micro-STX
DEFAULT_MIN_TICKET_PRICE = 1_000_000

DEFAULT_PLATFORM_FEE_PERCENT = 5
MAX_PLATFORM_FEE_PERCENT = 100

# Longest allowed refund window, in blocks
MAX_REFUND_WINDOW = 1_209_600


@dataclass(frozen=True, slots=True)
class GlobalConfig:
    """
    Process-wide contract configuration.

    contract_owner is fixed at deployment. The counters hold the NEXT id to
    assign and only advance inside a successful creation transaction.
    """
    contract_owner: str
    min_ticket_price: int = DEFAULT_MIN_TICKET_PRICE
    platform_fee_percent: int = DEFAULT_PLATFORM_FEE_PERCENT
    next_event_id: int = 1
    next_ticket_id: int = 1

    def __post_init__(self):
        if not self.contract_owner or not self.contract_owner.strip():
            raise ValueError("contract_owner cannot be empty")
        if self.min_ticket_price < 0:
            raise ValueError(f"min_ticket_price must be non-negative, got {self.min_ticket_price}")
        if not 0 <= self.platform_fee_percent <= MAX_PLATFORM_FEE_PERCENT:
            raise ValueError(
                f"platform_fee_percent must be in [0, {MAX_PLATFORM_FEE_PERCENT}], "
                f"got {self.platform_fee_percent}"
            )
        if self.next_event_id < 1 or self.next_ticket_id < 1:
            raise ValueError("id counters start at 1")


def load_config(view: LedgerView) -> GlobalConfig:
    """
    Read the configuration record.

    Raises:
        LedgerError: If the contract has not been deployed on this ledger.
    """
    config = view.get_record(MAP_CONFIG, CONFIG_KEY)
    if config is None:
        raise LedgerError("ticketing contract is not deployed on this ledger")
    return config


def config_change(old: GlobalConfig, new: GlobalConfig) -> RecordChange:
    return RecordChange(MAP_CONFIG, CONFIG_KEY, old, new)


def user_origin(view: LedgerView, caller: str, operation: str) -> TransactionOrigin:
    """Origin for a contract call signed by caller, stamped with the caller's nonce."""
    return TransactionOrigin(
        origin_type=OriginType.USER_ACTION,
        source_id=caller,
        operation=operation,
        nonce=view.get_nonce(caller),
    )


# ============================================================================
# DEPLOYMENT
# ============================================================================

def compute_deploy(
    view: LedgerView,
    contract_owner: str,
    min_ticket_price: int = DEFAULT_MIN_TICKET_PRICE,
    platform_fee_percent: int = DEFAULT_PLATFORM_FEE_PERCENT,
) -> PendingTransaction:
    """
    Build the transaction that stores the initial configuration.

    Raises:
        LedgerError: If a configuration record already exists.
        ValueError: If the parameters are out of range.
    """
    if view.get_record(MAP_CONFIG, CONFIG_KEY) is not None:
        raise LedgerError("ticketing contract is already deployed on this ledger")

    config = GlobalConfig(
        contract_owner=contract_owner,
        min_ticket_price=min_ticket_price,
        platform_fee_percent=platform_fee_percent,
    )
    origin = TransactionOrigin(OriginType.SYSTEM, "deploy", operation="deploy")
    return build_transaction(
        view, [], [RecordChange(MAP_CONFIG, CONFIG_KEY, None, config)],
        origin=origin, result=True,
    )


# ============================================================================
# ADMINISTRATION
# ============================================================================

def compute_update_platform_fee(
    view: LedgerView,
    new_fee: int,
    caller: str,
) -> PendingTransaction:
    """
    Set the platform fee percentage.

    Raises:
        NotAuthorized: caller is not the contract owner.
        InvalidPrice: new_fee is outside [0, 100].
    """
    config = load_config(view)
    if caller != config.contract_owner:
        raise NotAuthorized(f"{caller} is not the contract owner")
    if new_fee < 0 or new_fee > MAX_PLATFORM_FEE_PERCENT:
        raise InvalidPrice(f"platform fee {new_fee} outside [0, {MAX_PLATFORM_FEE_PERCENT}]")

    new_config = replace(config, platform_fee_percent=new_fee)
    return build_transaction(
        view, [], [config_change(config, new_config)],
        origin=user_origin(view, caller, "update-platform-fee"), result=True,
    )


def compute_update_min_ticket_price(
    view: LedgerView,
    new_min: int,
    caller: str,
) -> PendingTransaction:
    """
    Set the minimum ticket price. No upper bound is enforced.

    Raises:
        NotAuthorized: caller is not the contract owner.
        InvalidPrice: new_min is negative.
    """
    config = load_config(view)
    if caller != config.contract_owner:
        raise NotAuthorized(f"{caller} is not the contract owner")
    if new_min < 0:
        raise InvalidPrice(f"minimum ticket price cannot be negative, got {new_min}")

    new_config = replace(config, min_ticket_price=new_min)
    return build_transaction(
        view, [], [config_change(config, new_config)],
        origin=user_origin(view, caller, "update-min-ticket-price"), result=True,
    )


def calculate_platform_fee(view: LedgerView, amount: int) -> int:
    """
    Platform fee owed on amount: amount * fee_percent / 100, floored.

    Example:
        5% of 1_000_000 -> 50_000
    """
    config = load_config(view)
    return amount * config.platform_fee_percent // 100
