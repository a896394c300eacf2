"""HTTP views for the orders app.

Views are kept intentionally small: they validate requests (via Pydantic),
map them to domain commands, delegate to the orchestrators obtained from
``providers`` and wrap the result in the response envelope. Errors are
raised as ``ApiError`` subclasses and rendered by the DRF exception
handler.

Idempotency: when an ``Idempotency-Key`` header is sent to the create
endpoint, the first request is processed and its response stored; retries
with the same payload replay the stored response with an
``Idempotent-Replay: true`` header. Reusing the key with a different payload
returns 409 ``IdempotencyConflict``.
"""

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.common.errors import ApiError, OrderDataInvalid
from apps.common.permissions import IsBuyer, IsBuyerOrStaff, IsStoreStaff, caller_of
from apps.common.responses import envelope, envelope_body

from . import providers
from .idempotency import finalize, get_or_create_idempotent, scoped_key
from .schemas import CreateOrderDTO, PageParams, order_to_dict


def _validation_errors(exc: PydanticValidationError) -> list:
    return exc.errors(include_url=False, include_context=False)


class OrdersCollectionView(APIView):
    """Create an order (buyers) or list the store's orders (staff)."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get_permissions(self):
        if self.request.method == "GET":
            return [IsStoreStaff()]
        return [IsBuyer()]

    def get(self, request):
        try:
            params = PageParams.model_validate(request.query_params.dict())
        except PydanticValidationError as e:
            raise OrderDataInvalid(errors=_validation_errors(e)) from e

        total, orders = providers.get_read_service().list_for_store(caller_of(request), params.page, params.limit)
        return envelope(
            status.HTTP_200_OK,
            title="Orders",
            data={
                "count": total,
                "page": params.page,
                "limit": params.limit,
                "results": [order_to_dict(o) for o in orders],
            },
        )

    def post(self, request):
        """Create a new order.

        Returns:
            Response: 201 envelope with the order and its items, or the
            stored response when an idempotent retry is replayed.
        """
        caller = caller_of(request)

        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except PydanticValidationError as e:
            raise OrderDataInvalid(errors=_validation_errors(e)) from e

        # 2) Idempotency get-or-create
        rec = None
        idem_key = request.headers.get("Idempotency-Key")
        if idem_key:
            existing, rec = get_or_create_idempotent(scoped_key(caller.user_id, idem_key), request.data)
            if existing:
                return Response(rec.response_body, status=rec.response_status, headers={"Idempotent-Replay": "true"})

        # 3) Domain
        try:
            order = providers.get_order_service().create_order(caller, dto.to_command())
        except ApiError as e:
            if rec:
                finalize(rec, e.status, envelope_body(e.status, title=e.title, code=e.code, errors=e.errors))
            raise

        # 4) Response
        body = envelope_body(status.HTTP_201_CREATED, data=order_to_dict(order), title="Order created")
        if rec:
            finalize(rec, status.HTTP_201_CREATED, body, order_id=order.id)
        return Response(body, status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"
    permission_classes = [IsBuyerOrStaff]

    def get(self, request, oid):
        order = providers.get_read_service().get_for_caller(caller_of(request), oid)
        return envelope(status.HTTP_200_OK, data=order_to_dict(order), title="Order details")


class PayOrderView(APIView):
    """Capture payment for an order through the gateway stored on it."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_pay"
    permission_classes = [IsBuyer]

    def post(self, request, oid):
        order = providers.get_capture_service().capture(caller_of(request), oid, request.data)
        return envelope(
            status.HTTP_200_OK,
            data={"transaction_id": order.transaction_id},
            title="Payment successful",
        )
