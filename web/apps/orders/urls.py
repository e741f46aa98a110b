from django.urls import re_path
from .views import OrdersCollectionView, OrderStatisticsView, PaymentView, PaymentUploadView
app_name = "orders"

# Trailing slash optional: storefront clients call /api/orders and /api/orders/
urlpatterns = [
    re_path(r"^orders/?$", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create / PUT update
    re_path(r"^orders/statistics/?$", OrderStatisticsView.as_view(), name="orders-statistics"),
    re_path(r"^payment/?$", PaymentView.as_view(), name="payment"),
    re_path(r"^upload-payment/?$", PaymentUploadView.as_view(), name="upload-payment"),
]
