"""HTTP views for coupons.

Store staff manage the coupons of their own store; buyers and staff can
check whether a coupon applies to a product.
"""

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.common.errors import CouponDataInvalid
from apps.common.permissions import IsBuyerOrStaff, IsStoreStaff, caller_of
from apps.common.responses import envelope

from .repository import CouponRepository
from .schemas import AvailabilityCheckDTO, CouponCreateDTO, CouponListParams, CouponUpdateDTO, coupon_to_dict
from .services import CouponService


def _validate(model, payload):
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise CouponDataInvalid(errors=e.errors(include_url=False, include_context=False)) from e


class CouponsCollectionView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "coupons"
    permission_classes = [IsStoreStaff]

    def post(self, request):
        data = _validate(CouponCreateDTO, request.data)
        coupon = CouponRepository().create(caller_of(request).store_id, data)
        return envelope(status.HTTP_201_CREATED, data=coupon_to_dict(coupon), title="Coupon created")

    def get(self, request):
        params = _validate(CouponListParams, request.query_params.dict())
        total, coupons = CouponRepository().list(caller_of(request).store_id, params.page, params.limit, params.query)
        return envelope(
            status.HTTP_200_OK,
            title="Coupons",
            data={
                "count": total,
                "page": params.page,
                "limit": params.limit,
                "results": [coupon_to_dict(c) for c in coupons],
            },
        )


class CouponDetailView(APIView):
    """Staff CRUD on one coupon; ``POST`` is the availability check."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "coupons"

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsBuyerOrStaff()]
        return [IsStoreStaff()]

    def get(self, request, coupon_id):
        coupon = CouponRepository().get(caller_of(request).store_id, coupon_id)
        return envelope(status.HTTP_200_OK, data=coupon_to_dict(coupon), title="Coupon details")

    def patch(self, request, coupon_id):
        changes = _validate(CouponUpdateDTO, request.data)
        coupon = CouponRepository().update(caller_of(request).store_id, coupon_id, changes)
        return envelope(status.HTTP_200_OK, data=coupon_to_dict(coupon), title="Coupon updated")

    def delete(self, request, coupon_id):
        CouponRepository().delete(caller_of(request).store_id, coupon_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def post(self, request, coupon_id):
        body = _validate(AvailabilityCheckDTO, request.data)
        result = CouponService().check_availability(caller_of(request), coupon_id, body.product_id)
        return envelope(status.HTTP_200_OK, data=result.as_dict(), title="Coupon availability")
