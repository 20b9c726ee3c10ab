from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any, Dict, Optional, Union


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class Transaction:
    reference: str                       # provider-issued, primary lookup key
    status: TransactionStatus = TransactionStatus.PENDING
    merchant_request_id: Optional[str] = None
    external_reference: Optional[str] = None
    phone: Optional[str] = None
    amount: Optional[Union[int, float]] = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference": self.reference,
            "status": self.status.value,
            "merchant_request_id": self.merchant_request_id,
            "external_reference": self.external_reference,
            "phone": self.phone,
            "amount": self.amount,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            reference=data["reference"],
            status=TransactionStatus(data.get("status", TransactionStatus.PENDING.value)),
            merchant_request_id=data.get("merchant_request_id"),
            external_reference=data.get("external_reference"),
            phone=data.get("phone"),
            amount=data.get("amount"),
            created_at=float(data.get("created_at") or time.time()),
            updated_at=float(data.get("updated_at") or time.time()),
        )


@dataclass
class StkPushRequest:
    phone: str
    amount: Union[int, float]
    external_reference: str              # REF_<epoch ms>, provider-side bookkeeping only
    callback_url: str


@dataclass
class StkPushResult:
    success: bool
    message: str
    reference: Optional[str] = None
    merchant_request_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderStatusResult:
    reference: str
    provider_status: str                 # upper-cased raw provider value, "" if absent
    status: Optional[TransactionStatus]  # None when the provider has not resolved it
    raw: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Abstract provider interface
# ---------------------------------------------------------------------------

class PaymentsProviderClient(ABC):
    """Every STK push provider client must implement this interface."""

    @abstractmethod
    async def initiate_stk_push(self, request: StkPushRequest) -> StkPushResult:
        """Ask the provider to prompt the payer's handset for payment."""

    @abstractmethod
    async def check_status(self, reference: str) -> ProviderStatusResult:
        """Query the provider for the current state of a payment reference."""
