"""
Lipia STK Push MOCK client.

Purpose:
- Provides a fake Lipia integration used for development/testing
- Does NOT make any network calls
- Builds Lipia-shaped payloads and runs them through the same
  normalisers as the real client, so parsing is exercised end-to-end

Behavior:
- initiate_stk_push(...) returns a new transaction reference (or a rejection
  when the mock is configured to reject)
- check_status(...) reports whatever status was set with resolve(...),
  otherwise the payment looks unresolved

Swap:
The real client in clients/real_http/payments.py is selected in src/api/main.py
when LIPIA_API_KEY is configured.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from src.integrations.contracts.interfaces import (
    PaymentsProviderClient,
    ProviderStatusResult,
    StkPushRequest,
    StkPushResult,
)
from src.integrations.policy.response_wrappers import (
    ProviderRequestError,
    normalize_status_response,
    normalize_stk_push_response,
)

logger = logging.getLogger(__name__)


class LipiaMockClient(PaymentsProviderClient):
    """
    Mock Lipia client.

    Parameters
    ----------
    reject_message : str, optional
        When set, every initiation is rejected with this provider message.
    unreachable : bool
        If True, every call raises ProviderRequestError as if the network failed.
    reference_prefix : str
        Prefix for generated transaction references. Default "LPM".
    """

    def __init__(
        self,
        reject_message: Optional[str] = None,
        unreachable: bool = False,
        reference_prefix: str = "LPM",
    ):
        self.reject_message = reject_message
        self.unreachable = unreachable
        self._reference_prefix = reference_prefix

        # In-memory provider state (reset on restart)
        self._statuses: Dict[str, str] = {}
        self.initiations: List[StkPushRequest] = []
        self.status_queries: List[str] = []

        logger.info("[LIPIA MOCK] Client initialised")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_reachable(self, operation: str) -> None:
        if self.unreachable:
            logger.warning("[LIPIA MOCK] Simulating network failure for %s", operation)
            raise ProviderRequestError(f"[LIPIA MOCK] {operation} failed: provider unreachable")

    def _new_reference(self) -> str:
        return f"{self._reference_prefix}{uuid.uuid4().hex[:10].upper()}"

    def resolve(self, reference: str, provider_status: str) -> None:
        """Make later status queries for `reference` report `provider_status` (e.g. "SUCCESS")."""
        self._statuses[reference] = provider_status

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def initiate_stk_push(self, request: StkPushRequest) -> StkPushResult:
        self._check_reachable("initiate_stk_push")
        self.initiations.append(request)
        logger.info("[LIPIA MOCK] STK push phone=%s amount=%s ext_ref=%s",
                    request.phone, request.amount, request.external_reference)

        if self.reject_message:
            raw: Dict[str, Any] = {"success": False, "message": self.reject_message}
        else:
            reference = self._new_reference()
            raw = {
                "success": True,
                "message": "STK push sent",
                "data": {
                    "TransactionReference": reference,
                    "MerchantRequestID": f"MR-{uuid.uuid4().hex[:8]}",
                    "ResponseCode": 0,
                },
            }
            self._statuses.setdefault(reference, "PENDING")

        normalized = normalize_stk_push_response(raw)
        return StkPushResult(
            success=normalized.success,
            message=normalized.message,
            reference=normalized.reference,
            merchant_request_id=normalized.merchant_request_id,
            raw=normalized.raw,
        )

    async def check_status(self, reference: str) -> ProviderStatusResult:
        self._check_reachable("check_status")
        self.status_queries.append(reference)

        if reference in self._statuses:
            raw: Dict[str, Any] = {
                "success": True,
                "data": {"response": {"Status": self._statuses[reference]}},
            }
        else:
            # Unknown reference: Lipia answers with an unsuccessful body
            raw = {"success": False, "message": "Transaction not found"}

        normalized = normalize_status_response(raw)
        return ProviderStatusResult(
            reference=reference,
            provider_status=normalized.provider_status,
            status=normalized.status,
            raw=normalized.raw,
        )
