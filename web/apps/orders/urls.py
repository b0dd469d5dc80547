from django.urls import path

from .views import OrdersCollectionView, OrderStatusView, RetrieveOrderView, TrackOrderView

app_name = "orders"

urlpatterns = [
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create
    path("track/", TrackOrderView.as_view(), name="orders-track"),
    path("<uuid:oid>/", RetrieveOrderView.as_view(), name="orders-detail"),
    path("<uuid:oid>/status/", OrderStatusView.as_view(), name="orders-status"),
]
