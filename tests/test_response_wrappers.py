import pytest

from src.integrations.contracts.interfaces import TransactionStatus
from src.integrations.policy.response_wrappers import (
    IntegrationResponseError,
    normalize_callback_payload,
    normalize_status_response,
    normalize_stk_push_response,
)


def test_stk_push_reference_and_merchant_id_from_data():
    out = normalize_stk_push_response(
        {"success": True, "data": {"TransactionReference": "LP123", "MerchantRequestID": "MR-9"}}
    )
    assert out.success is True
    assert out.reference == "LP123"
    assert out.merchant_request_id == "MR-9"


def test_stk_push_merchant_id_nested_under_response_and_reference_top_level():
    out = normalize_stk_push_response(
        {"success": True, "TransactionReference": "LP7", "data": {"response": {"MerchantRequestID": "MR-7"}}}
    )
    assert out.reference == "LP7"
    assert out.merchant_request_id == "MR-7"


def test_stk_push_failure_keeps_provider_message():
    out = normalize_stk_push_response({"success": False, "message": "Invalid phone number"})
    assert out.success is False
    assert out.message == "Invalid phone number"
    assert out.reference is None


def test_stk_push_rejects_non_object_body():
    with pytest.raises(IntegrationResponseError):
        normalize_stk_push_response(["not", "an", "object"])


@pytest.mark.parametrize(
    "provider_status, expected",
    [
        ("SUCCESS", TransactionStatus.COMPLETED),
        ("completed", TransactionStatus.COMPLETED),
        ("FAILED", TransactionStatus.FAILED),
        ("Cancelled", TransactionStatus.FAILED),
        ("PENDING", None),
        ("", None),
    ],
)
def test_status_response_mapping(provider_status, expected):
    out = normalize_status_response({"success": True, "data": {"response": {"Status": provider_status}}})
    assert out.status == expected
    assert out.provider_status == provider_status.upper()


def test_status_response_ignores_status_when_unsuccessful():
    out = normalize_status_response({"success": False, "data": {"response": {"Status": "SUCCESS"}}})
    assert out.status is None


def test_callback_wrapped_under_response():
    event = normalize_callback_payload(
        {"response": {"Status": "success", "TransactionReference": "LP1", "MerchantRequestID": "MR-1"}}
    )
    assert event.provider_status == "SUCCESS"
    assert event.status == TransactionStatus.COMPLETED
    assert event.identifiers == ["LP1", "MR-1"]


def test_callback_flat_payload_without_ids_maps_non_success_to_failed():
    event = normalize_callback_payload({"Status": "Insufficient balance"})
    assert event.status == TransactionStatus.FAILED
    assert event.identifiers == []


def test_callback_missing_status_is_failed():
    assert normalize_callback_payload({}).status == TransactionStatus.FAILED
