"""
Transaction reconciler.

Folds the three asynchronous signals about an STK push payment into one
status per provider reference:

- the initiation response (creates the transaction as pending)
- the provider's webhook callback (resolves it)
- an on-demand status query against the provider (resolves it when the
  callback is late or lost)

Status only ever moves pending -> completed or pending -> failed; every
write goes through the store's compare-and-set / resolve operations.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from src.integrations.contracts.interfaces import (
    PaymentsProviderClient,
    StkPushRequest,
    Transaction,
    TransactionStatus,
)
from src.integrations.contracts.payments import (
    PaymentCallbackEvent,
    is_terminal_status,
    validate_stk_push_request,
)
from src.integrations.policy.response_wrappers import (
    IntegrationResponseError,
    ProviderRequestError,
    normalize_callback_payload,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StkPushValidationError(ValueError):
    """The caller's phone/amount were rejected before contacting the provider."""


class StkPushRejectedError(Exception):
    """The provider answered but declined to start the payment."""

    def __init__(self, message: str, *, payload: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


@dataclass
class PollResult:
    status: TransactionStatus
    degraded: bool = False               # provider unreachable, status is the local view


class TransactionReconciler:
    def __init__(
        self,
        store,
        client: PaymentsProviderClient,
        callback_url: str,
        pending_fallback: bool = True,
        provider_deadline_seconds: Optional[float] = 15.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.client = client
        self.callback_url = callback_url
        self.pending_fallback = pending_fallback
        self.provider_deadline_seconds = provider_deadline_seconds
        self._clock = clock

    async def _with_deadline(self, call: Awaitable[T], operation: str) -> T:
        if not self.provider_deadline_seconds:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.provider_deadline_seconds)
        except asyncio.TimeoutError as exc:
            raise ProviderRequestError(
                f"{operation} exceeded {self.provider_deadline_seconds}s deadline", timed_out=True
            ) from exc

    # ------------------------------------------------------------------
    # Initiator
    # ------------------------------------------------------------------

    async def initiate(self, phone: str, amount: Union[int, float]) -> Transaction:
        """
        Send an STK push and record the provider's reference as pending.

        Raises:
            StkPushValidationError: phone/amount are invalid
            StkPushRejectedError: the provider declined, or returned no reference
            ProviderRequestError: transport failure, timeout or non-JSON body
            IntegrationResponseError: the provider body could not be interpreted
        """
        request = StkPushRequest(
            phone=(phone or "").strip(),
            amount=amount,
            external_reference=f"REF_{int(self._clock() * 1000)}",
            callback_url=self.callback_url,
        )
        errors = validate_stk_push_request(request)
        if errors:
            raise StkPushValidationError("; ".join(errors))

        logger.info("[STK PUSH] Initiating phone=%s amount=%s ext_ref=%s",
                    request.phone, request.amount, request.external_reference)
        result = await self._with_deadline(self.client.initiate_stk_push(request), "STK push")

        if not result.success:
            logger.warning("[STK PUSH] Provider rejected ext_ref=%s: %s", request.external_reference, result.message)
            raise StkPushRejectedError(result.message or "Payment request was rejected", payload=result.raw)
        if not result.reference:
            logger.warning("[STK PUSH] Provider accepted ext_ref=%s without a reference", request.external_reference)
            raise StkPushRejectedError("Provider response did not include a transaction reference", payload=result.raw)

        now = self._clock()
        transaction = Transaction(
            reference=result.reference,
            status=TransactionStatus.PENDING,
            merchant_request_id=result.merchant_request_id,
            external_reference=request.external_reference,
            phone=request.phone,
            amount=request.amount,
            created_at=now,
            updated_at=now,
        )
        self.store.set(transaction)

        if result.merchant_request_id:
            logger.info("[STK PUSH] Linked MerchantID %s to reference %s",
                        result.merchant_request_id, result.reference)
        logger.info("[STK PUSH] Recorded %s as pending", result.reference)
        return transaction

    # ------------------------------------------------------------------
    # Callback receiver
    # ------------------------------------------------------------------

    def handle_callback(self, payload: Any) -> Optional[Transaction]:
        """Apply a provider callback; returns the resolved transaction, or None if nothing changed."""
        try:
            event = normalize_callback_payload(payload)
        except IntegrationResponseError as exc:
            logger.warning("[CALLBACK] Ignoring malformed payload: %s", exc)
            return None

        logger.info("[CALLBACK] Received status=%s ids=%s", event.provider_status or "<none>", event.identifiers)

        if event.identifiers:
            return self._resolve_by_identifier(event)
        if self.pending_fallback:
            return self._resolve_first_pending(event)

        logger.warning("[CALLBACK] Payload carries no identifier and pending fallback is disabled")
        return None

    def _resolve_by_identifier(self, event: PaymentCallbackEvent) -> Optional[Transaction]:
        for identifier in event.identifiers:
            tx = self.store.get(identifier) or self.store.find_by_alias(identifier)
            if tx is None:
                continue
            if self.store.compare_and_set(tx.reference, TransactionStatus.PENDING, event.status):
                logger.info("[CALLBACK] Updated %s -> %s", tx.reference, event.status.value)
                return self.store.get(tx.reference)
            logger.info("[CALLBACK] %s already resolved; ignoring %s", tx.reference, event.provider_status)
            return None

        logger.warning("[CALLBACK] No transaction matches ids=%s", event.identifiers)
        return None

    def _resolve_first_pending(self, event: PaymentCallbackEvent) -> Optional[Transaction]:
        # A failed swap means another writer resolved that one first; move on to the next.
        while True:
            tx = self.store.first_pending()
            if tx is None:
                logger.warning("[CALLBACK] No pending transaction found")
                return None
            if self.store.compare_and_set(tx.reference, TransactionStatus.PENDING, event.status):
                logger.info("[CALLBACK] Updated oldest pending %s -> %s", tx.reference, event.status.value)
                return self.store.get(tx.reference)

    # ------------------------------------------------------------------
    # Status poller
    # ------------------------------------------------------------------

    async def poll_status(self, reference: str) -> PollResult:
        local = self.store.get(reference)
        if local is not None and is_terminal_status(local.status):
            return PollResult(status=local.status)

        logger.info("[POLL] Querying provider for %s", reference)
        try:
            result = await self._with_deadline(self.client.check_status(reference), "Status query")
        except ProviderRequestError as exc:
            logger.error("[POLL] Provider error for %s: %s", reference, exc)
            return PollResult(status=self._local_status(reference), degraded=True)
        except IntegrationResponseError as exc:
            logger.warning("[POLL] Unreadable provider response for %s: %s", reference, exc)
            return PollResult(status=self._local_status(reference))

        logger.info("[POLL] Provider says status for %s is: %s", reference, result.provider_status or "<none>")
        if result.status is None:
            return PollResult(status=self._local_status(reference))

        return PollResult(status=self.store.resolve(reference, result.status))

    def _local_status(self, reference: str) -> TransactionStatus:
        tx = self.store.get(reference)
        return tx.status if tx is not None else TransactionStatus.PENDING
