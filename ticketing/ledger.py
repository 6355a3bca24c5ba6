"""
ledger.py - Stateful Ledger for the Ticketing Contract

The Ledger class is the central state manager of the ticketing system.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Executes transactions atomically (all moves and record changes succeed or all fail)
    - Maintains wallet balances, unit definitions and the keyed record maps
    - Tracks ledger height and provides temporal operations (clone_at, replay)
    - Always validates and always logs - no exceptions
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Set, Optional, Tuple, Any

from .core import (
    # Types
    Move, Transaction, Unit, RecordChange,
    PendingTransaction, OriginType,
    ExecuteResult, LedgerView,
    Positions, BalanceMap, RecordKey,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    LedgerError, UnitNotRegistered, WalletNotRegistered,
)


class Ledger:
    """
    Double-entry ledger with keyed record maps, full validation and audit trail.

    Implements the LedgerView protocol, allowing the ledger to be passed to pure
    functions that access only read-only methods.

    Design Principles:
        - Always validates: Every transaction is validated against wallet
          registration, balance constraints, record freshness and height.
        - Always logs: Every transaction is recorded in the audit trail, enabling
          clone_at() and replay() for historical state reconstruction.

    Thread Safety:
        Not thread-safe. Operations are applied one at a time.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(currency())
        ledger.register_wallet("alice")
        ledger.register_wallet("bob")

        tx = build_transaction(ledger, [
            Move(100, "STX", "alice", "bob", "payment_001")
        ])
        result = ledger.execute(tx)
    """

    def __init__(
        self,
        name: str,
        initial_height: int = 0,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_height: Starting ledger height (default: 0)
            verbose: Enable debug output (default: True)
            test_mode: Enable test mode to allow set_balance() calls (default: False)
        """
        if initial_height < 0:
            raise ValueError(f"initial_height must be non-negative, got {initial_height}")
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = {}
        self.units: Dict[str, Unit] = {}
        self.records: Dict[str, Dict[RecordKey, Any]] = defaultdict(dict)
        self.nonces: Dict[str, int] = defaultdict(int)
        self.registered_wallets: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()  # For idempotency (content-based)
        self.transaction_log: List[Transaction] = []
        self._initial_height = initial_height
        self._current_height: int = initial_height
        self.verbose = verbose
        self._test_mode = test_mode
        # Monotonic sequence counter for execution ordering
        self._next_sequence: int = 0
        # Inverted index mapping unit -> {wallet -> quantity} for O(1) position lookups
        self._positions_by_unit: Dict[str, Dict[str, int]] = defaultdict(dict)

        # Auto-register the system wallet (used for issuance/redemption)
        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(int)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_height(self) -> int:
        """Current ledger height."""
        return self._current_height

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Get the balance of a specific unit in a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.balances[wallet_id].get(unit_symbol, 0)

    def get_record(self, map_name: str, key: RecordKey) -> Optional[Any]:
        """
        Get the record stored under key, or None if absent.

        Records are frozen dataclasses, so the stored instance is returned
        directly; callers derive new records with dataclasses.replace().
        """
        return self.records.get(map_name, {}).get(key)

    def list_records(self, map_name: str) -> Dict[RecordKey, Any]:
        """Get a copy of a whole record map."""
        return dict(self.records.get(map_name, {}))

    def get_nonce(self, wallet_id: str) -> int:
        """Number of applied transactions originated by wallet_id."""
        return self.nonces.get(wallet_id, 0)

    def get_positions(self, unit_symbol: str) -> Positions:
        """
        Get all non-zero positions for a specific unit across all wallets.

        Uses an inverted index for O(1) lookup performance.
        """
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def list_units(self) -> List[str]:
        """List all registered unit symbols."""
        return sorted(self.units.keys())

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        if symbol not in self.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self.units[symbol]

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Get all balances for a wallet."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return dict(self.balances[wallet_id])

    def total_supply(self, unit_symbol: str) -> int:
        """
        Calculate total supply of a unit across all wallets.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(self.balances[w].get(unit_symbol, 0) for w in sorted(self.registered_wallets))

    def verify_double_entry(
        self,
        expected_supplies: Dict[str, int] = None,
    ) -> Dict[str, Any]:
        """
        Verify that conservation laws hold for all units.

        For every unit, the sum of all balances across all wallets (the system
        wallet included) must equal a constant. Moves only redistribute.

        Args:
            expected_supplies: Optional dict mapping unit symbols to expected totals.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, int] - Current total supply for each unit
            - 'discrepancies': List[Dict] - unit, expected, actual, difference

        Example:
            result = ledger.verify_double_entry({'STX': 0})
            assert result['valid'], f"Conservation violated: {result['discrepancies']}"
        """
        supplies = {}
        discrepancies = []

        for unit_symbol in self.units:
            current_supply = self.total_supply(unit_symbol)
            supplies[unit_symbol] = current_supply

            if expected_supplies and unit_symbol in expected_supplies:
                expected = expected_supplies[unit_symbol]
                if current_supply != expected:
                    discrepancies.append({
                        'unit': unit_symbol,
                        'expected': expected,
                        'actual': current_supply,
                        'difference': current_supply - expected,
                    })

        if expected_supplies:
            for unit_symbol, expected in expected_supplies.items():
                if unit_symbol not in supplies:
                    discrepancies.append({
                        'unit': unit_symbol,
                        'expected': expected,
                        'actual': 0,
                        'difference': -expected,
                        'error': 'unit not registered',
                    })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    # ========================================================================
    # HEIGHT MANAGEMENT
    # ========================================================================

    def advance_height(self, new_height: int) -> None:
        """
        Advance the ledger height.

        Height can only move forward, never backward.

        Raises:
            ValueError: If new_height is below the current height
        """
        if new_height < self._current_height:
            raise ValueError(
                f"Cannot move height backwards: {new_height} < {self._current_height}"
            )
        self._current_height = new_height

    def mine(self, blocks: int = 1) -> int:
        """Advance the height by a number of blocks and return the new height."""
        if blocks < 0:
            raise ValueError(f"blocks must be non-negative, got {blocks}")
        self.advance_height(self._current_height + blocks)
        return self._current_height

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet in the ledger.

        Raises:
            ValueError: If wallet is already registered or the id is empty
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("Wallet id cannot be empty")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        """
        Register a new unit in the ledger.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """
        Set a wallet's balance for a unit directly.

        WARNING: This method bypasses double-entry accounting and is only
        available in test mode. For production use, fund wallets from
        SYSTEM_WALLET with build_transaction() and execute().

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Use build_transaction() and execute() to modify balances. "
                "Set test_mode=True when creating Ledger for testing."
            )
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        self.balances[wallet_id][unit_symbol] = int(quantity)
        self._update_position_index(wallet_id, unit_symbol, int(quantity))

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}:{height}
        """
        return f"exec:{self.name}:{sequence:012d}:{self._current_height}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        All moves and record changes succeed together or all fail together.
        Execution is idempotent: a pending transaction with the same intent_id
        will not be applied twice.

        All transactions are fully validated against:
        - Unit and wallet registration
        - Balance constraints (min/max balance limits)
        - Record freshness (each change's old_record must be current)
        - Origin nonce
        - Height requirements

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if transaction was already executed
            ExecuteResult.REJECTED if validation failed
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1
        exec_id = self._generate_exec_id(sequence)

        tx = Transaction(
            moves=pending.moves,
            record_changes=pending.record_changes,
            origin=pending.origin,
            height=pending.height,
            intent_id=pending.intent_id,
            exec_id=exec_id,
            ledger_name=self.name,
            execution_height=self._current_height,
            sequence_number=sequence,
        )

        self._execute_moves(tx.moves)
        for rc in tx.record_changes:
            self.records[rc.map_name][rc.key] = rc.new_record
        if tx.origin.origin_type == OriginType.USER_ACTION:
            self.nonces[tx.origin.source_id] += 1

        # Log transaction (always - audit trail is mandatory)
        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            self._print_tx_result(tx, "APPLIED", "✓")
        return ExecuteResult.APPLIED

    def _print_tx_result(self, tx: Transaction, result: str, icon: str) -> None:
        """
        Print transaction details and result.

        Uses Transaction.__repr__ and appends a result line.
        """
        lines = repr(tx).split('\n')
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))
        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate pending transaction against all constraints.

        Checks performed:
        1. Height validation (transaction must not be built in the future)
        2. Origin nonce (a user transaction must carry the caller's current nonce)
        3. Unit and wallet registration
        4. Record freshness (optimistic concurrency on every record change)
        5. Balance constraint validation (min/max balance limits)

        Returns:
            Tuple of (success: bool, reason: str)
        """
        if pending.height > self._current_height:
            return False, "future height"

        origin = pending.origin
        if origin.origin_type == OriginType.USER_ACTION and origin.nonce is not None:
            expected = self.get_nonce(origin.source_id)
            if origin.nonce != expected:
                return False, f"stale nonce for {origin.source_id}: {origin.nonce} != {expected}"

        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

        # Each key may be touched once per transaction; old_record must be current
        touched: Set[Tuple[str, Any]] = set()
        for rc in pending.record_changes:
            slot = (rc.map_name, rc.key)
            if slot in touched:
                return False, f"duplicate record change: {rc.map_name}[{rc.key!r}]"
            touched.add(slot)
            current = self.get_record(rc.map_name, rc.key)
            if current != rc.old_record:
                return False, f"stale record: {rc.map_name}[{rc.key!r}]"

        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in pending.moves:
            net[(move.source, move.unit_symbol)] -= move.quantity
            net[(move.dest, move.unit_symbol)] += move.quantity

        # Note: SYSTEM_WALLET is exempt from balance validation - it can hold any balance
        for (wallet, unit_sym), delta in sorted(net.items()):
            if wallet == SYSTEM_WALLET:
                continue

            unit = self.units[unit_sym]
            proposed = self.balances[wallet][unit_sym] + delta

            if proposed < unit.min_balance:
                return False, f"insufficient funds: {wallet} {unit_sym}: {proposed} < min {unit.min_balance}"
            if unit.max_balance is not None and proposed > unit.max_balance:
                return False, f"{wallet} {unit_sym}: {proposed} > max {unit.max_balance}"

        return True, ""

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """
        Update the inverted position index after a balance change.

        Zero balances are removed from the index to keep it compact.
        """
        if quantity != 0:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves) -> None:
        """Apply all moves to wallet balances and update the position index."""
        for move in moves:
            new_src_balance = self.balances[move.source][move.unit_symbol] - move.quantity
            self.balances[move.source][move.unit_symbol] = new_src_balance
            self._update_position_index(move.source, move.unit_symbol, new_src_balance)

            new_dst_balance = self.balances[move.dest][move.unit_symbol] + move.quantity
            self.balances[move.dest][move.unit_symbol] = new_dst_balance
            self._update_position_index(move.dest, move.unit_symbol, new_dst_balance)

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create a deep copy of this ledger.

        All state is fully independent: modifications to the clone will not
        affect the original ledger, and vice versa. Records are immutable, so
        the maps are copied one level deep.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned._initial_height = self._initial_height
        cloned._current_height = self._current_height
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode

        cloned.units = dict(self.units)
        cloned.registered_wallets = self.registered_wallets.copy()
        cloned.seen_intent_ids = self.seen_intent_ids.copy()
        cloned.transaction_log = list(self.transaction_log)
        cloned._next_sequence = self._next_sequence

        cloned.records = defaultdict(dict)
        for map_name, entries in self.records.items():
            cloned.records[map_name] = dict(entries)
        cloned.nonces = defaultdict(int, self.nonces)

        cloned.balances = {}
        for wallet, bals in self.balances.items():
            cloned.balances[wallet] = defaultdict(int, bals)

        cloned._positions_by_unit = defaultdict(dict)
        for unit_symbol, positions in self._positions_by_unit.items():
            cloned._positions_by_unit[unit_symbol] = dict(positions)

        return cloned

    def clone_at(self, target_height: int) -> Ledger:
        """
        Create a copy of this ledger as it existed at a past height.

        Reconstructs historical state by unwinding:
        1. Clone the current ledger state
        2. Walk backward through all transactions executed after target_height
        3. Reverse each transaction's effects:
           - Restore balances (add to source, subtract from destination)
           - Restore records from old_record (dropping keys that were inserted)
           - Roll back the originator's nonce
        4. Filter the transaction log to transactions up to target_height

        Raises:
            ValueError: If target_height is in the future
        """
        if target_height > self._current_height:
            raise ValueError(f"Target height {target_height} is in the future")

        cloned = self.clone()
        cloned._current_height = target_height

        cloned.transaction_log = [
            tx for tx in self.transaction_log
            if tx.execution_height <= target_height
        ]
        cloned.seen_intent_ids = {tx.intent_id for tx in cloned.transaction_log}
        cloned._next_sequence = len(cloned.transaction_log)

        cloned._unwind(tx for tx in reversed(self.transaction_log)
                       if tx.execution_height > target_height)
        return cloned

    def _unwind(self, transactions) -> None:
        """Reverse the effects of transactions, given newest first."""
        for tx in transactions:
            for move in tx.moves:
                if move.unit_symbol not in self.units:
                    raise LedgerError(f"Cannot unwind: unit {move.unit_symbol} not found in cloned ledger")
                new_src = self.balances[move.source][move.unit_symbol] + move.quantity
                new_dst = self.balances[move.dest][move.unit_symbol] - move.quantity
                self.balances[move.source][move.unit_symbol] = new_src
                self.balances[move.dest][move.unit_symbol] = new_dst
                self._update_position_index(move.source, move.unit_symbol, new_src)
                self._update_position_index(move.dest, move.unit_symbol, new_dst)

            for rc in reversed(tx.record_changes):
                if rc.old_record is None:
                    self.records[rc.map_name].pop(rc.key, None)
                else:
                    self.records[rc.map_name][rc.key] = rc.old_record

            if tx.origin.origin_type == OriginType.USER_ACTION:
                self.nonces[tx.origin.source_id] -= 1

    def replay(self, from_tx: int = 0) -> Ledger:
        """
        Create a new ledger by replaying the transaction log.

        With from_tx=0, re-executes all logged transactions in order on a
        fresh ledger with the same units and wallets, advancing height as
        needed.

        With from_tx > 0, the first from_tx transactions are kept as the
        starting state: the ledger is cloned and every later transaction is
        unwound, then those later transactions are re-executed. Records,
        nonces and balances they expect are therefore in place.

        Note: Balances set via set_balance() are NOT replayed when
        from_tx=0 because they are not part of the transaction log. Use
        clone() or clone_at() if you need to preserve them.

        Raises:
            ValueError: If from_tx is outside the transaction log
            LedgerError: If replay fails
        """
        if not 0 <= from_tx <= len(self.transaction_log):
            raise ValueError(
                f"from_tx {from_tx} outside log of {len(self.transaction_log)} transactions"
            )

        if from_tx == 0:
            new_ledger = Ledger(
                name=f"{self.name}_replayed",
                initial_height=self._initial_height,
                verbose=self.verbose,
                test_mode=self._test_mode
            )

            for unit in self.units.values():
                new_ledger.units[unit.symbol] = unit

            for wallet in sorted(self.registered_wallets):
                # Skip system wallet - it's auto-registered in Ledger.__init__
                if wallet != SYSTEM_WALLET:
                    new_ledger.register_wallet(wallet)
        else:
            new_ledger = self.clone()
            new_ledger.name = f"{self.name}_replayed"
            new_ledger._unwind(reversed(self.transaction_log[from_tx:]))
            new_ledger.transaction_log = self.transaction_log[:from_tx]
            new_ledger.seen_intent_ids = {tx.intent_id for tx in new_ledger.transaction_log}
            new_ledger._next_sequence = from_tx
            new_ledger._current_height = self.transaction_log[from_tx - 1].execution_height

        for tx in self.transaction_log[from_tx:]:
            if tx.execution_height > new_ledger._current_height:
                new_ledger.advance_height(tx.execution_height)

            pending = PendingTransaction(
                moves=tx.moves,
                record_changes=tx.record_changes,
                origin=tx.origin,
                height=tx.height,
            )

            result = new_ledger.execute(pending)
            if result == ExecuteResult.REJECTED:
                raise LedgerError(f"Replay failed at tx {tx.exec_id}")

        if self._current_height > new_ledger._current_height:
            new_ledger.advance_height(self._current_height)

        return new_ledger
