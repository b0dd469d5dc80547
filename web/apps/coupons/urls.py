from django.urls import path

from .views import ApplyCouponView

app_name = "coupons"

urlpatterns = [
    path("apply/", ApplyCouponView.as_view(), name="coupons-apply"),
]
