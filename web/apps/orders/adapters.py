"""Django-backed and in-process adapters for the orders domain ports.

- ``DjangoUnitOfWork`` wraps ``transaction.atomic`` and bounds the order
  transaction with a PostgreSQL ``statement_timeout``.
- ``DjangoReferenceData`` resolves payment and shipping methods.
- ``NotificationStub`` records submitted tasks without any network calls;
  it is used by tests and local development (``USE_HTTP_ADAPTERS=0``).

The HTTP notification client lives in ``http_adapters``.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, connection, transaction

from apps.common.errors import PersistenceError
from apps.payments.models import PaymentMethod
from apps.shipping.models import ShippingMethod

from .domain import NotificationPort, ReferenceDataPort, UnitOfWork
from .pricing import PaymentFeeRule, ShippingRule

logger = logging.getLogger(__name__)


class DjangoUnitOfWork(UnitOfWork):
    """Transaction boundary on the default database.

    Args:
        timeout_ms: Statement deadline applied inside the transaction
            (PostgreSQL only); a timed-out statement fails like any other
            database error and rolls the transaction back.
    """

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = timeout_ms if timeout_ms is not None else getattr(settings, "ORDER_TRANSACTION_TIMEOUT_MS", 0)

    @contextmanager
    def atomic(self):
        try:
            with transaction.atomic():
                self._apply_deadline()
                yield
        except DatabaseError as exc:
            logger.error("order transaction failed", exc_info=exc)
            raise PersistenceError(errors=str(exc)) from exc

    def _apply_deadline(self):
        if self.timeout_ms and connection.vendor == "postgresql":
            with connection.cursor() as cur:
                cur.execute("SET LOCAL statement_timeout = %s", [int(self.timeout_ms)])


class DjangoReferenceData(ReferenceDataPort):
    """Reference-data resolver over the payments and shipping tables."""

    def get_payment_fee_rule(self, payment_method_id: uuid.UUID) -> Optional[PaymentFeeRule]:
        try:
            pm = PaymentMethod.objects.filter(id=payment_method_id, is_active=True).first()
        except DatabaseError as exc:
            raise PersistenceError(errors=str(exc)) from exc
        return pm.fee_rule() if pm else None

    def get_shipping_rule(self, shipping_method_id: uuid.UUID) -> Optional[ShippingRule]:
        try:
            sm = ShippingMethod.objects.filter(id=shipping_method_id, is_active=True).first()
        except DatabaseError as exc:
            raise PersistenceError(errors=str(exc)) from exc
        return sm.charge_rule() if sm else None


class NotificationStub(NotificationPort):
    """In-process notification sink.

    Keeps every submission in ``sent`` as ``(order_id, subject)`` tuples.
    """

    def __init__(self):
        self.sent: list[tuple[uuid.UUID, str]] = []

    def send_order_details_email(self, order_id: uuid.UUID, subject: str) -> None:
        self.sent.append((order_id, subject))
        logger.info("order email queued (stub)", extra={"order_id": str(order_id), "subject": subject})
