from django.urls import include, path

urlpatterns = [
    path("api/", include("apps.monitoring.urls")),
    path("api/orders/", include("apps.orders.urls")),
    path("api/coupons/", include("apps.coupons.urls")),
]
