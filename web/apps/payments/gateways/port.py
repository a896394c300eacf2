"""Payment gateway port.

Every processor the checkout can capture through implements
``PaymentGateway``. The set of processors is closed: ``GatewayName`` lists
them and the registry refuses to start unless each one has a factory.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Mapping, Optional

from pydantic import BaseModel

if TYPE_CHECKING:
    from apps.orders.domain import Order


class GatewayName(str, Enum):
    BRAINTREE = "brainTree"
    FAKE = "fake"


class PaymentCredential(BaseModel):
    """Gateway-specific credential supplied by the buyer's client."""

    nonce: Optional[str] = None


@dataclass(frozen=True)
class ChargeResult:
    """Successful capture.

    Attributes:
        transaction_id: Processor transaction reference stored on the order.
        gateway_status: Raw status reported by the processor.
    """

    transaction_id: str
    gateway_status: Optional[str] = None


class GatewayError(Exception):
    """A capture attempt failed (declined, rejected, unreachable, timed out)."""

    def __init__(self, reason: str, detail: Any = None):
        self.reason = reason
        self.detail = detail
        super().__init__(reason)


class PaymentGateway(ABC):
    """Abstract payment gateway.

    Attributes:
        name: Gateway identity stored on orders created under it.
        credential_model: Pydantic model validating the capture payload.
    """

    name: ClassVar[GatewayName]
    credential_model: ClassVar[type[PaymentCredential]] = PaymentCredential

    def get_name(self) -> str:
        return self.name.value

    def parse_credential(self, payload: Mapping[str, Any]) -> PaymentCredential:
        """Validate a capture payload (raises ``pydantic.ValidationError``)."""
        return self.credential_model.model_validate(payload or {})

    @abstractmethod
    def pay(self, order: "Order", credential: PaymentCredential) -> ChargeResult:
        """Capture ``order.payable_amount``.

        Raises:
            GatewayError: When the processor does not capture the payment.
        """
        ...
