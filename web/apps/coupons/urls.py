from django.urls import path

from .views import CouponDetailView, CouponsCollectionView

app_name = "coupons"

urlpatterns = [
    path("", CouponsCollectionView.as_view(), name="coupons-collection"),
    path("<uuid:coupon_id>/", CouponDetailView.as_view(), name="coupons-detail"),
]
