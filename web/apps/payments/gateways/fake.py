"""Configurable fake gateway for development and tests.

Never calls out. ``should_succeed`` decides the outcome and every attempt
is recorded in ``calls`` so tests can assert on dispatch.
"""

from typing import ClassVar
from uuid import uuid4

from .port import ChargeResult, GatewayError, GatewayName, PaymentGateway


class FakeGateway(PaymentGateway):
    name: ClassVar[GatewayName] = GatewayName.FAKE

    def __init__(self, should_succeed: bool = True, failure_reason: str = "PAYMENT_DECLINED"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.calls: list[dict] = []

    def pay(self, order, credential):
        self.calls.append({"order_id": order.id, "amount": order.payable_amount, "nonce": credential.nonce})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)
        return ChargeResult(transaction_id=f"fake_txn_{uuid4().hex[:12]}", gateway_status="succeeded")
