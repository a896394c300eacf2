"""Order orchestrators.

``OrderService`` runs the order creation transaction, ``PaymentCaptureService``
captures payment for an existing order and ``OrderReadService`` serves the
read endpoints. They only talk to the ports declared in ``domain`` (plus the
payment ``GatewayRegistry``), so tests can drive them with in-process stubs.

Both write paths submit the order details email after their transaction
has committed. A failed submission is logged and never changes the outcome
of the request.
"""

import logging
import uuid
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from apps.common.context import CallerContext
from apps.common.errors import (
    OrderAlreadyPaid,
    OrderDataInvalid,
    OrderNotFound,
    OrderPaymentDataInvalid,
    PaymentMethodNotFound,
    PaymentNotRecorded,
    PaymentProcessingFailed,
    PersistenceError,
    ProductUnavailable,
    RejectedRequestError,
    ShippingMethodNotFound,
)
from apps.payments.gateways import GatewayError, GatewayRegistry, UnknownGateway

from .domain import (
    CatalogPort,
    CreateOrderCommand,
    NotificationPort,
    Order,
    OrderedItem,
    OrderStatus,
    OrderStorePort,
    ReferenceDataPort,
    UnitOfWork,
)
from .pricing import TaxPolicy, order_totals, price_line

logger = logging.getLogger(__name__)

ORDER_PLACED_SUBJECT = "Order placed"
PAYMENT_RECEIVED_SUBJECT = "Payment received"


class OrderService:
    """Creates orders.

    Args:
        reference_data: Resolves payment and shipping methods.
        catalog: Reserves stock line by line.
        orders: Order persistence.
        uow: Transaction boundary shared by the three ports above.
        gateways: Registry whose active gateway name is stamped on new orders.
        notifier: Email task submission.
        tax_policy: Per-line tax/VAT policy (zero by default).
        currency: Currency recorded on new orders.
    """

    def __init__(
        self,
        reference_data: ReferenceDataPort,
        catalog: CatalogPort,
        orders: OrderStorePort,
        uow: UnitOfWork,
        gateways: GatewayRegistry,
        notifier: NotificationPort,
        tax_policy: Optional[TaxPolicy] = None,
        currency: str = "USD",
    ):
        self.reference_data = reference_data
        self.catalog = catalog
        self.orders = orders
        self.uow = uow
        self.gateways = gateways
        self.notifier = notifier
        self.tax_policy = tax_policy
        self.currency = currency

    def create_order(self, caller: CallerContext, command: CreateOrderCommand) -> Order:
        """Validate, reserve, price and persist an order in one transaction.

        Any failure inside the transaction rolls back every reservation and
        every row written so far before the error reaches the caller.

        Returns:
            The persisted order re-read with its items.

        Raises:
            OrderDataInvalid: The command has no items.
            PaymentMethodNotFound: Unknown or inactive payment method.
            ShippingMethodNotFound: Unknown or inactive shipping method.
            ProductUnavailable: A line could not be reserved.
            OrderNotFound: The order could not be re-read after insertion.
            PersistenceError: The database failed or the commit did not go through.
        """
        if not command.items:
            raise OrderDataInvalid(errors=[{"loc": ["items"], "msg": "at least one item is required"}])

        with self.uow.atomic():
            fee_rule = self.reference_data.get_payment_fee_rule(command.payment_method_id)
            if fee_rule is None:
                raise PaymentMethodNotFound()

            shipping_rule = None
            if command.shipping_method_id is not None:
                shipping_rule = self.reference_data.get_shipping_rule(command.shipping_method_id)
                if shipping_rule is None:
                    raise ShippingMethodNotFound()

            order_id = uuid.uuid4()
            lines = []
            items = []
            weight_grams = 0
            for line in command.items:
                reserved = self.catalog.reserve_for_order(command.store_id, line.product_id, line.quantity)
                if reserved is None:
                    raise ProductUnavailable(errors={"product_id": str(line.product_id)})
                priced = price_line(line.product_id, line.quantity, reserved.price, self.tax_policy)
                lines.append(priced)
                weight_grams += reserved.weight_grams * line.quantity
                items.append(
                    OrderedItem(
                        order_id=order_id,
                        product_id=reserved.product_id,
                        quantity=priced.quantity,
                        price=priced.price,
                        sub_total=priced.sub_total,
                        total_tax=priced.total_tax,
                        total_vat=priced.total_vat,
                    )
                )

            shipping_charge = shipping_rule.calculate_delivery_charge(weight_grams) if shipping_rule else 0
            totals = order_totals(lines, fee_rule, shipping_charge)

            order = Order(
                id=order_id,
                hash=new_order_hash(),
                user_id=caller.user_id,
                store_id=command.store_id,
                shipping_address_id=command.shipping_address_id,
                billing_address_id=command.billing_address_id,
                payment_method_id=command.payment_method_id,
                shipping_method_id=command.shipping_method_id,
                sub_total=totals.sub_total,
                total_tax=totals.total_tax,
                total_vat=totals.total_vat,
                shipping_charge=totals.shipping_charge,
                payment_processing_fee=totals.payment_processing_fee,
                grand_total=totals.grand_total,
                currency=self.currency,
                status=OrderStatus.PENDING,
                is_paid=False,
                payment_gateway=self.gateways.active.get_name(),
            )
            self.orders.create(order)
            for item in items:
                self.orders.add_ordered_item(item)

            created = self.orders.get_details(order_id)
            if created is None:
                raise OrderNotFound()

        logger.info(
            "order created",
            extra={"order_id": str(created.id), "store_id": str(created.store_id), "grand_total": created.grand_total},
        )
        _submit_email(self.notifier, created.id, ORDER_PLACED_SUBJECT)
        return created


class PaymentCaptureService:
    """Captures payment for an unpaid order.

    The gateway is resolved from the name stored on the order, never from
    the currently active gateway. The order row stays locked while the
    gateway is called, so concurrent captures of one order are serialized.

    Args:
        record_attempts: Fresh transactions tried to record a charge whose
            first commit failed.
    """

    def __init__(
        self,
        orders: OrderStorePort,
        uow: UnitOfWork,
        gateways: GatewayRegistry,
        notifier: NotificationPort,
        record_attempts: int = 3,
    ):
        self.orders = orders
        self.uow = uow
        self.gateways = gateways
        self.notifier = notifier
        self.record_attempts = max(1, record_attempts)

    def capture(self, caller: CallerContext, order_id: uuid.UUID, payload: Optional[Mapping[str, Any]]) -> Order:
        """Charge the order through its gateway.

        A declined or failed charge leaves the order untouched (still
        pending and unpaid); ``PAYMENT_FAILED`` is only reported in the
        error. When the charge succeeds but the paid status cannot be
        committed, the write is retried in fresh transactions before
        ``PaymentNotRecorded`` is raised with the gateway transaction id.

        Raises:
            OrderNotFound: Missing order, or one the caller does not own.
            OrderAlreadyPaid: The order was captured before.
            OrderPaymentDataInvalid: The payload does not fit the gateway credential.
            PaymentProcessingFailed: Unknown gateway or a failed charge.
            PaymentNotRecorded: The gateway charged but the order could not be marked paid.
        """
        charge = None
        try:
            with self.uow.atomic():
                order = self.orders.get_details_for_update(order_id)
                if order is None or order.user_id != caller.user_id:
                    raise OrderNotFound()
                if order.is_paid:
                    raise OrderAlreadyPaid()

                try:
                    gateway = self.gateways.get(order.payment_gateway or "")
                except UnknownGateway as e:
                    logger.error("order references an unknown gateway", extra={"order_id": str(order.id)})
                    raise PaymentProcessingFailed(errors={"reason": str(e)}) from e

                try:
                    credential = gateway.parse_credential(payload or {})
                except PydanticValidationError as e:
                    raise OrderPaymentDataInvalid(
                        errors=e.errors(include_url=False, include_context=False, include_input=False)
                    ) from e
                order.nonce = credential.nonce

                try:
                    charge = gateway.pay(order, credential)
                except GatewayError as e:
                    logger.warning(
                        "payment capture failed",
                        extra={"order_id": str(order.id), "gateway": gateway.get_name(), "reason": e.reason},
                    )
                    raise PaymentProcessingFailed(
                        errors={"reason": e.reason, "status": OrderStatus.PAYMENT_FAILED.value}
                    ) from e
                self.orders.mark_paid(order.id, charge.transaction_id)
        except (PersistenceError, RejectedRequestError) as e:
            if charge is None:
                raise
            logger.error(
                "payment captured but not recorded",
                extra={
                    "order_id": str(order.id),
                    "gateway": gateway.get_name(),
                    "transaction_id": charge.transaction_id,
                },
                exc_info=e,
            )
            self._record_paid(order, gateway.get_name(), charge.transaction_id)

        order.status = OrderStatus.PAID
        order.is_paid = True
        order.transaction_id = charge.transaction_id
        logger.info("payment captured", extra={"order_id": str(order.id), "gateway": gateway.get_name()})
        _submit_email(self.notifier, order.id, PAYMENT_RECEIVED_SUBJECT)
        return order

    def _record_paid(self, order: Order, gateway_name: str, transaction_id: str) -> None:
        """Mark the already charged order paid, one short transaction per attempt."""
        last_error = None
        for attempt in range(1, self.record_attempts + 1):
            try:
                with self.uow.atomic():
                    self.orders.mark_paid(order.id, transaction_id)
            except (PersistenceError, RejectedRequestError) as e:
                last_error = e
                logger.warning(
                    "recording captured payment failed",
                    extra={"order_id": str(order.id), "transaction_id": transaction_id, "attempt": attempt},
                )
            else:
                logger.info(
                    "captured payment recorded on retry",
                    extra={"order_id": str(order.id), "transaction_id": transaction_id, "attempt": attempt},
                )
                return

        logger.critical(
            "captured payment left unrecorded",
            extra={"order_id": str(order.id), "gateway": gateway_name, "transaction_id": transaction_id},
        )
        raise PaymentNotRecorded(
            errors={"order_id": str(order.id), "gateway": gateway_name, "transaction_id": transaction_id}
        ) from last_error


class OrderReadService:
    """Caller-scoped order reads."""

    def __init__(self, orders):
        self.orders = orders

    def get_for_caller(self, caller: CallerContext, order_id: uuid.UUID) -> Order:
        """Buyers read their own orders, staff the orders of their store."""
        order = self.orders.get_details(order_id)
        if order is None:
            raise OrderNotFound()
        if caller.is_staff and order.store_id == caller.store_id:
            return order
        if order.user_id == caller.user_id:
            return order
        raise OrderNotFound()

    def list_for_store(self, caller: CallerContext, page: int, limit: int) -> tuple[int, list[Order]]:
        return self.orders.list_for_store(caller.store_id, page, limit)


def new_order_hash() -> str:
    """Short identifier buyers can quote to support."""
    return uuid.uuid4().hex[:12].upper()


def _submit_email(notifier: NotificationPort, order_id: uuid.UUID, subject: str) -> None:
    try:
        notifier.send_order_details_email(order_id, subject)
    except Exception:
        logger.exception("order email submission failed", extra={"order_id": str(order_id), "subject": subject})
