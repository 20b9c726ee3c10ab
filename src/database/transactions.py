"""
In-memory transaction store for the STK push relay.

Holds reference -> Transaction for the life of the process (minus TTL
eviction). All mutations take a single lock, so the callback's
"find then update" sequence cannot interleave with an initiation or a poll.
`RedisTransactionStore` in src.database.transactions_real implements the
same interface for deployments that set REDIS_URL.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Optional

from src.integrations.contracts.interfaces import Transaction, TransactionStatus
from src.integrations.contracts.payments import is_terminal_status


class TransactionStore:
    def __init__(self, ttl_seconds: int = 86400, clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()
        # Creation ordered, so iteration yields the oldest transaction first
        self._transactions: Dict[str, Transaction] = {}
        # Secondary ids (MerchantRequestID, external reference) -> reference
        self._aliases: Dict[str, str] = {}

    # --- Reads ----------------------------------------------------------------

    def get(self, reference: str) -> Optional[Transaction]:
        with self._lock:
            self._purge_locked()
            tx = self._transactions.get(reference)
            return replace(tx) if tx else None

    def find_by_alias(self, alias: str) -> Optional[Transaction]:
        with self._lock:
            self._purge_locked()
            reference = self._aliases.get(alias)
            if reference is None:
                return None
            tx = self._transactions.get(reference)
            return replace(tx) if tx else None

    def first_pending(self) -> Optional[Transaction]:
        with self._lock:
            self._purge_locked()
            for tx in self._transactions.values():
                if tx.status == TransactionStatus.PENDING:
                    return replace(tx)
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    # --- Writes ---------------------------------------------------------------

    def set(self, transaction: Transaction) -> None:
        with self._lock:
            self._transactions[transaction.reference] = replace(transaction)
            for alias in (transaction.merchant_request_id, transaction.external_reference):
                if alias:
                    self._aliases[alias] = transaction.reference

    def add_alias(self, alias: str, reference: str) -> None:
        with self._lock:
            self._aliases[alias] = reference

    def compare_and_set(self, reference: str, expected: TransactionStatus, status: TransactionStatus) -> bool:
        with self._lock:
            self._purge_locked()
            tx = self._transactions.get(reference)
            if tx is None or tx.status != expected:
                return False
            tx.status = status
            tx.updated_at = self._clock()
            return True

    def resolve(self, reference: str, status: TransactionStatus) -> TransactionStatus:
        """Record a provider-reported status; terminal records are never changed."""
        with self._lock:
            self._purge_locked()
            tx = self._transactions.get(reference)
            if tx is None:
                now = self._clock()
                self._transactions[reference] = Transaction(
                    reference=reference, status=status, created_at=now, updated_at=now
                )
                return status
            if is_terminal_status(tx.status):
                return tx.status
            tx.status = status
            tx.updated_at = self._clock()
            return status

    # --- Expiry ---------------------------------------------------------------

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        if not self._ttl:
            return 0
        cutoff = self._clock() - self._ttl
        # Records are kept in creation order, so the first live one ends the scan
        expired = []
        for ref, tx in self._transactions.items():
            if tx.created_at >= cutoff:
                break
            expired.append(ref)
        for ref in expired:
            del self._transactions[ref]
        if expired:
            gone = set(expired)
            self._aliases = {a: r for a, r in self._aliases.items() if r not in gone}
        return len(expired)

    # --- Misc -----------------------------------------------------------------

    def ping(self) -> bool:
        return True
