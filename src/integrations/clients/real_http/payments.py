"""
Real Lipia HTTP Client.

Used when LIPIA_API_KEY is configured (or INTEGRATIONS_MODE=real).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

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


class LipiaPaymentsClient(PaymentsProviderClient):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://lipia-api.kreativelabske.com/api/v2",
        stk_push_path: str = "/payments/stk-push",
        status_path: str = "/payments/status",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.stk_push_path = stk_push_path
        self.status_path = status_path
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderRequestError(f"{method} {url} timed out after {self.timeout_seconds}s", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise ProviderRequestError(f"{method} {url} failed: {exc}") from exc

        # Lipia reports rejections in the JSON body, often with a 4xx code, so
        # the status code alone is not treated as a transport failure.
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderRequestError(
                f"{method} {url} returned a non-JSON body (HTTP {response.status_code})"
            ) from exc

    async def initiate_stk_push(self, request: StkPushRequest) -> StkPushResult:
        payload: Dict[str, Any] = {
            "phone_number": request.phone,
            "amount": request.amount,
            "external_reference": request.external_reference,
            "callback_url": request.callback_url,
        }

        data = await self._request("POST", self.stk_push_path, json=payload)
        logger.debug("[LIPIA] STK push response: %s", data)

        normalized = normalize_stk_push_response(data)
        return StkPushResult(
            success=normalized.success,
            message=normalized.message,
            reference=normalized.reference,
            merchant_request_id=normalized.merchant_request_id,
            raw=normalized.raw,
        )

    async def check_status(self, reference: str) -> ProviderStatusResult:
        data = await self._request("GET", self.status_path, params={"reference": reference})
        logger.debug("[LIPIA] Status response for %s: %s", reference, data)

        normalized = normalize_status_response(data)
        return ProviderStatusResult(
            reference=reference,
            provider_status=normalized.provider_status,
            status=normalized.status,
            raw=normalized.raw,
        )
