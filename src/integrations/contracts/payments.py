"""
Payment contracts.

Defines the request/response structures shared by the STK push flow:
- initiating a payment prompt on the payer's handset
- receiving the provider's callback
- polling the provider for a final status

These contracts are used by both:
- clients/mocks/payments.py (fake responses for development/testing)
- clients/real_http/payments.py (real Lipia API calls)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .interfaces import StkPushRequest, TransactionStatus


# ---------------------------------------------------------------------------
# Callback model
# ---------------------------------------------------------------------------


@dataclass
class PaymentCallbackEvent:
    """Payload received from a provider webhook callback."""
    provider_status: str
    status: TransactionStatus
    reference: Optional[str] = None
    merchant_request_id: Optional[str] = None
    checkout_request_id: Optional[str] = None
    external_reference: Optional[str] = None
    raw_payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def identifiers(self) -> List[str]:
        """Every correlation id carried by the payload, primary reference first."""
        candidates = [
            self.reference,
            self.merchant_request_id,
            self.checkout_request_id,
            self.external_reference,
        ]
        return [c for c in candidates if c]


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------

_POLL_STATUS_MAP: Dict[str, TransactionStatus] = {
    "SUCCESS": TransactionStatus.COMPLETED,
    "COMPLETED": TransactionStatus.COMPLETED,
    "FAILED": TransactionStatus.FAILED,
    "CANCELLED": TransactionStatus.FAILED,
}


def map_poll_status(raw_status: Any) -> Optional[TransactionStatus]:
    """Map a status-query value; None means the provider has not resolved it yet."""
    return _POLL_STATUS_MAP.get(str(raw_status or "").strip().upper())


def map_callback_status(raw_status: Any) -> TransactionStatus:
    """Callbacks are final: only SUCCESS completes, everything else fails."""
    if str(raw_status or "").strip().upper() == "SUCCESS":
        return TransactionStatus.COMPLETED
    return TransactionStatus.FAILED


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def validate_stk_push_request(request: StkPushRequest) -> List[str]:
    """
    Return a list of validation errors.
    Empty list means the request is valid.
    """
    errors: List[str] = []

    if not (request.phone or "").strip():
        errors.append("phone is required")
    if request.amount is None or request.amount <= 0:
        errors.append("amount must be greater than zero")
    if not request.callback_url:
        errors.append("callback_url is required")

    return errors


def is_terminal_status(status: TransactionStatus) -> bool:
    """Return True if the transaction has reached a final, non-changeable state."""
    return status in {TransactionStatus.COMPLETED, TransactionStatus.FAILED}
