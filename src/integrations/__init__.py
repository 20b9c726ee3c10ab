"""
Integrations layer.
This package contains all code used to communicate with the payment provider:
- Lipia STK push initiation (M-Pesa prompt on the payer's handset)
- Lipia payment status queries
- Normalisation of Lipia webhook callbacks

Key rule:
- Route handlers MUST NOT call the provider directly.
- They go through the TransactionReconciler, which uses a client under src/integrations/clients.
- We use the MOCK client during development and the REAL_HTTP client when LIPIA_API_KEY is set.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (src/api/main.py).
"""

from .contracts.interfaces import (
    PaymentsProviderClient,
    ProviderStatusResult,
    StkPushRequest,
    StkPushResult,
    Transaction,
    TransactionStatus,
)
from .contracts.payments import (
    PaymentCallbackEvent,
    is_terminal_status,
    map_callback_status,
    map_poll_status,
    validate_stk_push_request,
)

__all__ = [
    # interfaces
    "PaymentsProviderClient", "ProviderStatusResult", "StkPushRequest",
    "StkPushResult", "Transaction", "TransactionStatus",
    # payments
    "PaymentCallbackEvent", "is_terminal_status", "map_callback_status",
    "map_poll_status", "validate_stk_push_request",
]
