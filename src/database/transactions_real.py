"""
Redis-backed transaction store for deployments where REDIS_URL is set.
Implements the same interface as src.database.transactions (in-memory).

Keys:
- transaction:<reference>        JSON Transaction, expires after the TTL
- transaction_alias:<alias>      provider reference for a secondary id
- transactions:pending           sorted set of pending references by creation time
"""

from __future__ import annotations

import json
import time
from typing import Optional

import redis

from src.integrations.contracts.interfaces import Transaction, TransactionStatus
from src.integrations.contracts.payments import is_terminal_status

_PENDING_KEY = "transactions:pending"


class RedisTransactionStore:
    def __init__(self, url: Optional[str] = None, ttl_seconds: int = 86400, client: Optional[redis.Redis] = None) -> None:
        if client is None:
            if not url:
                raise ValueError("RedisTransactionStore needs a url or a client")
            client = redis.from_url(url, decode_responses=True)
        # Injected clients must be built with decode_responses=True
        self._client = client
        self._ttl = ttl_seconds or None

    def _key(self, reference: str) -> str:
        return f"transaction:{reference}"

    def _alias_key(self, alias: str) -> str:
        return f"transaction_alias:{alias}"

    def _decode(self, raw: Optional[str]) -> Optional[Transaction]:
        if not raw:
            return None
        try:
            return Transaction.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, ValueError):
            return None

    # --- Reads ----------------------------------------------------------------

    def get(self, reference: str) -> Optional[Transaction]:
        return self._decode(self._client.get(self._key(reference)))

    def find_by_alias(self, alias: str) -> Optional[Transaction]:
        reference = self._client.get(self._alias_key(alias))
        if not reference:
            return None
        return self.get(reference)

    def first_pending(self) -> Optional[Transaction]:
        for reference in self._client.zrange(_PENDING_KEY, 0, -1):
            tx = self.get(reference)
            if tx is not None and tx.status == TransactionStatus.PENDING:
                return tx
            # Expired or already resolved
            self._client.zrem(_PENDING_KEY, reference)
        return None

    # --- Writes ---------------------------------------------------------------

    def set(self, transaction: Transaction) -> None:
        pipe = self._client.pipeline()
        pipe.set(self._key(transaction.reference), json.dumps(transaction.to_dict()), ex=self._ttl)
        for alias in (transaction.merchant_request_id, transaction.external_reference):
            if alias:
                pipe.set(self._alias_key(alias), transaction.reference, ex=self._ttl)
        if transaction.status == TransactionStatus.PENDING:
            pipe.zadd(_PENDING_KEY, {transaction.reference: transaction.created_at})
        else:
            pipe.zrem(_PENDING_KEY, transaction.reference)
        pipe.execute()

    def add_alias(self, alias: str, reference: str) -> None:
        self._client.set(self._alias_key(alias), reference, ex=self._ttl)

    def compare_and_set(self, reference: str, expected: TransactionStatus, status: TransactionStatus) -> bool:
        key = self._key(reference)

        def _swap(pipe) -> bool:
            tx = self._decode(pipe.get(key))
            if tx is None or tx.status != expected:
                return False
            tx.status = status
            tx.updated_at = time.time()
            pipe.multi()
            pipe.set(key, json.dumps(tx.to_dict()), keepttl=True)
            pipe.zrem(_PENDING_KEY, reference)
            return True

        return self._client.transaction(_swap, key, value_from_callable=True)

    def resolve(self, reference: str, status: TransactionStatus) -> TransactionStatus:
        key = self._key(reference)

        def _resolve(pipe) -> TransactionStatus:
            tx = self._decode(pipe.get(key))
            if tx is not None and is_terminal_status(tx.status):
                return tx.status
            pipe.multi()
            if tx is None:
                tx = Transaction(reference=reference, status=status)
                pipe.set(key, json.dumps(tx.to_dict()), ex=self._ttl)
            else:
                tx.status = status
                tx.updated_at = time.time()
                pipe.set(key, json.dumps(tx.to_dict()), keepttl=True)
            pipe.zrem(_PENDING_KEY, reference)
            return status

        return self._client.transaction(_resolve, key, value_from_callable=True)

    # --- Expiry ---------------------------------------------------------------

    def purge_expired(self) -> int:
        """Records expire through Redis TTLs; only stale pending-index entries are dropped here."""
        removed = 0
        for reference in self._client.zrange(_PENDING_KEY, 0, -1):
            if not self._client.exists(self._key(reference)):
                removed += self._client.zrem(_PENDING_KEY, reference)
        return removed

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
