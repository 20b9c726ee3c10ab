from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from src.integrations.contracts.interfaces import TransactionStatus
from src.integrations.contracts.payments import (
    PaymentCallbackEvent,
    map_callback_status,
    map_poll_status,
)


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class ProviderRequestError(RuntimeError):
    """The provider could not be reached, timed out, or answered with a non-JSON body."""

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out


class StkPushResponseModel(BaseModel):
    success: bool
    message: str = ""
    reference: Optional[str] = None
    merchant_request_id: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class StatusResponseModel(BaseModel):
    success: bool
    provider_status: str = ""
    status: Optional[TransactionStatus] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


def normalize_stk_push_response(raw: Any) -> StkPushResponseModel:
    """
    Lipia puts the reference under data.TransactionReference; older payloads
    carry it top-level. MerchantRequestID sits either on data or on
    data.response depending on the API revision.
    """
    if not isinstance(raw, dict):
        raise IntegrationResponseError("STK push response is not a JSON object.", payload={"body": raw})

    success = bool(raw.get("success"))
    data = _as_dict(raw.get("data"))
    nested = _as_dict(data.get("response"))
    message = str(_first_non_empty(raw, "message", "error", default="") or "")

    reference = None
    merchant_request_id = None
    if success:
        reference = _first_non_empty(data, "TransactionReference", "transaction_reference", "reference", default=None)
        if reference is None:
            reference = _first_non_empty(raw, "TransactionReference", "transactionReference", "reference", default=None)
        merchant_request_id = _first_non_empty(data, "MerchantRequestID", default=None)
        if merchant_request_id is None:
            merchant_request_id = _first_non_empty(nested, "MerchantRequestID", default=None)

    return _build_model(
        StkPushResponseModel,
        {
            "success": success,
            "message": message,
            "reference": str(reference) if reference is not None else None,
            "merchant_request_id": str(merchant_request_id) if merchant_request_id is not None else None,
            "raw": raw,
        },
        raw,
    )


def normalize_status_response(raw: Any) -> StatusResponseModel:
    if not isinstance(raw, dict):
        raise IntegrationResponseError("Status response is not a JSON object.", payload={"body": raw})

    success = bool(raw.get("success"))
    response = _as_dict(_as_dict(raw.get("data")).get("response"))
    provider_status = ""
    status = None
    if success and response:
        provider_status = str(response.get("Status") or "").strip().upper()
        status = map_poll_status(provider_status)

    return _build_model(
        StatusResponseModel,
        {
            "success": success,
            "provider_status": provider_status,
            "status": status,
            "raw": raw,
        },
        raw,
    )


def normalize_callback_payload(raw: Any) -> PaymentCallbackEvent:
    if not isinstance(raw, dict):
        raise IntegrationResponseError("Callback payload is not a JSON object.", payload={"body": raw})

    data = raw.get("response") if isinstance(raw.get("response"), dict) else raw
    provider_status = str(data.get("Status") or "").strip().upper()

    return PaymentCallbackEvent(
        provider_status=provider_status,
        status=map_callback_status(provider_status),
        reference=_optional_str(_first_non_empty(data, "TransactionReference", "transaction_reference", "reference", default=None)),
        merchant_request_id=_optional_str(_first_non_empty(data, "MerchantRequestID", default=None)),
        checkout_request_id=_optional_str(_first_non_empty(data, "CheckoutRequestID", default=None)),
        external_reference=_optional_str(
            _first_non_empty(data, "ExternalReference", "external_reference", default=None)
        ),
        raw_payload=raw,
    )


_MISSING = object()


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = _MISSING) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not _MISSING:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
