"""Braintree gateway adapter built on the ``braintree`` SDK.

Captures a client-side nonce with ``transaction.sale`` submitted for
settlement. The SDK call is guarded by a dedicated circuit breaker and is
never retried: a retried sale could capture twice. Transport errors,
timeouts, validation errors, declines and unreadable responses are all
reported as ``GatewayError``.
"""

import logging
import threading
from decimal import Decimal
from typing import Any, ClassVar, Mapping, Optional
from xml.parsers.expat import ExpatError

import braintree
from braintree.exceptions import GatewayTimeoutError, RequestTimeoutError
from braintree.exceptions.braintree_error import BraintreeError
from braintree.exceptions.http.timeout_error import TimeoutError as HttpTimeoutError
from pydantic import Field

from apps.common.resilience import CircuitBreaker, CircuitOpenError

from .port import ChargeResult, GatewayError, GatewayName, PaymentCredential, PaymentGateway

logger = logging.getLogger(__name__)

ENVIRONMENTS = {
    "sandbox": braintree.Environment.Sandbox,
    "production": braintree.Environment.Production,
}
CAPTURED_STATUSES = {
    braintree.Transaction.Status.Authorized,
    braintree.Transaction.Status.SubmittedForSettlement,
    braintree.Transaction.Status.Settling,
    braintree.Transaction.Status.Settled,
}
_TIMEOUTS = (HttpTimeoutError, GatewayTimeoutError, RequestTimeoutError)
# Raised by the SDK or by us when the processor answers with something unreadable
_BAD_RESPONSES = (ExpatError, ValueError, TypeError, AttributeError, KeyError)


class BrainTreeCredential(PaymentCredential):
    nonce: str = Field(min_length=1, max_length=4096)


class BrainTreeGateway(PaymentGateway):
    """Braintree processor.

    The SDK client is built on first use so a process without Braintree
    credentials can still start with another active gateway.

    Args:
        merchant_id: Braintree merchant id (identifies the API account).
        merchant_account_id: Optional merchant account the sale settles into.
        client: Pre-built ``braintree.BraintreeGateway``; built from the
            credentials when omitted.
    """

    name: ClassVar[GatewayName] = GatewayName.BRAINTREE
    credential_model = BrainTreeCredential

    def __init__(
        self,
        public_key: str,
        private_key: str,
        environment: str = "sandbox",
        merchant_id: str = "",
        merchant_account_id: Optional[str] = None,
        timeout: float = 20.0,
        client: Any = None,
    ):
        if environment not in ENVIRONMENTS:
            raise ValueError(f"Unknown Braintree environment: {environment}")
        self.environment = environment
        self.merchant_id = merchant_id
        self.public_key = public_key
        self.private_key = private_key
        self.merchant_account_id = merchant_account_id or None
        self.timeout = timeout
        self.breaker = CircuitBreaker.from_settings("braintree")
        self._client = client
        self._client_lock = threading.Lock()

    @classmethod
    def from_options(cls, options: Mapping[str, Any], timeout: float) -> "BrainTreeGateway":
        return cls(
            public_key=options.get("PUBLIC_KEY", ""),
            private_key=options.get("PRIVATE_KEY", ""),
            environment=options.get("ENVIRONMENT", "sandbox"),
            merchant_id=options.get("MERCHANT_ID", ""),
            merchant_account_id=options.get("MERCHANT_ACCOUNT_ID"),
            timeout=timeout,
        )

    @property
    def client(self):
        with self._client_lock:
            if self._client is None:
                config = braintree.Configuration(
                    ENVIRONMENTS[self.environment],
                    merchant_id=self.merchant_id,
                    public_key=self.public_key,
                    private_key=self.private_key,
                    timeout=self.timeout,
                    wrap_http_exceptions=True,
                )
                self._client = braintree.BraintreeGateway(config)
            return self._client

    def build_sale(self, order, credential: PaymentCredential) -> dict:
        params: dict[str, Any] = {
            "amount": format_amount(order.payable_amount),
            "payment_method_nonce": credential.nonce,
            "order_id": order.hash,
            "options": {"submit_for_settlement": True},
        }
        if self.merchant_account_id:
            params["merchant_account_id"] = self.merchant_account_id
        return params

    def pay(self, order, credential):
        try:
            self.breaker.before_call()
        except CircuitOpenError as e:
            raise GatewayError("GATEWAY_UNAVAILABLE", str(e)) from e

        try:
            result = self.client.transaction.sale(self.build_sale(order, credential))
            # Answers that carry a business outcome keep the breaker closed
            self.breaker.on_success()
            return self._read_result(order, result)
        except _TIMEOUTS as e:
            self.breaker.on_failure()
            raise GatewayError("GATEWAY_TIMEOUT", str(e)) from e
        except BraintreeError as e:
            self.breaker.on_failure()
            raise GatewayError("GATEWAY_UNREACHABLE", f"{type(e).__name__}: {e}") from e
        except _BAD_RESPONSES as e:
            self.breaker.on_failure()
            logger.error("unreadable braintree response", extra={"order_id": str(order.id)}, exc_info=e)
            raise GatewayError("GATEWAY_BAD_RESPONSE", f"{type(e).__name__}: {e}") from e
        finally:
            self.breaker.on_finish()

    def _read_result(self, order, result) -> ChargeResult:
        tx = result.transaction
        if not result.is_success:
            if tx is not None:
                raise GatewayError(
                    "PAYMENT_DECLINED",
                    {"status": tx.status, "processor_response": getattr(tx, "processor_response_text", None)},
                )
            raise GatewayError("GATEWAY_REJECTED", [err.message for err in result.errors.deep_errors] or result.message)

        if not tx.id or tx.status not in CAPTURED_STATUSES:
            raise GatewayError("PAYMENT_DECLINED", {"status": tx.status})

        logger.info(
            "braintree capture succeeded",
            extra={"order_id": str(order.id), "transaction_id": tx.id, "gateway_status": tx.status},
        )
        return ChargeResult(transaction_id=tx.id, gateway_status=tx.status)


def format_amount(minor_units: int) -> str:
    """Render minor units as the decimal string Braintree expects."""
    return str((Decimal(minor_units) / Decimal(100)).quantize(Decimal("0.01")))
