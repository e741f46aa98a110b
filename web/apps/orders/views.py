"""HTTP views for the orders app.

This module contains the DRF API views for orders, payments and
proof-of-payment uploads. Views are kept intentionally small: they read
the request, delegate to a domain service obtained from ``providers``
and wrap the result in the response envelope. Domain errors are not
caught here; ``responses.envelope_exception_handler`` maps them to HTTP
status codes (400 validation, 404 not found, 500 store/decode).

Services are looked up through the ``providers`` module at call time so
tests can swap the store or a whole service with ``monkeypatch``.
"""

from collections.abc import Mapping

from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .domain import ORDER_FILTERS, ValidationError
from .responses import envelope


def _payload(request) -> dict:
    """Return the JSON body as a plain dict.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    if not isinstance(request.data, Mapping):
        raise ValidationError(["request body must be a JSON object"])
    return dict(request.data)


class OrdersCollectionView(APIView):
    """List, create and update orders.

    - GET: orders filtered by ``user_id``, ``order_id``, ``status`` and
      ``payment_status`` query parameters, newest first.
    - POST: create an order (201).
    - PUT: patch the order named by ``order_id`` in the body.
    """

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders"

    def get(self, request):
        filters = {k: request.query_params.get(k) for k in ORDER_FILTERS}
        orders = providers.get_order_service().list(filters)
        return envelope(data=orders)

    def post(self, request):
        order = providers.get_order_service().create(_payload(request))
        return envelope("Order created successfully", order, status_code=status.HTTP_201_CREATED)

    def put(self, request):
        body = _payload(request)
        order_id = body.pop("order_id", None)
        order = providers.get_order_service().update(order_id, body)
        return envelope("Order updated successfully", order)


class OrderStatisticsView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders"

    def get(self, request):
        return envelope(data=providers.get_order_service().statistics())


class PaymentView(APIView):
    """Read, record and update the payment of an order.

    - GET ``?order_id=``: the order's payment view, tagged with
      ``payment_type`` (``manual`` when a payment record exists for a
      credit order, ``simple`` otherwise).
    - POST: record a payment submission (201).
    - PUT: change the payment status, optionally through a payment record
      identified by ``manual_payment_id``.
    """

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment"

    def get(self, request):
        view = providers.get_payment_service().get_payment(request.query_params.get("order_id"))
        return envelope(data=view, payment_type=view["payment_type"])

    def post(self, request):
        recorded = providers.get_payment_service().create_payment(_payload(request))
        return envelope("Payment created successfully", recorded.row, status_code=status.HTTP_201_CREATED)

    def put(self, request):
        recorded = providers.get_payment_service().update_status(_payload(request))
        return envelope("Payment updated successfully", recorded.row)


class PaymentUploadView(APIView):
    """Accept a base64 proof of payment and link it to an order."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "upload"

    def post(self, request):
        body = _payload(request)
        result = providers.get_proof_service().upload(
            order_id=body.get("order_id"),
            filename=body.get("filename"),
            file=body.get("file"),
            payment_method=body.get("payment_method"),
        )
        return envelope("Payment proof uploaded successfully", result)
