from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone

from apps.orders.domain import ORDERS, OrdersError
from apps.orders.providers import get_store


def health_view(_request):
    store_ok = False
    try:
        get_store().select_many(ORDERS, {}, order_by=None, limit=1)
        store_ok = True
    except OrdersError:
        store_ok = False

    code = 200 if store_ok else 503
    return JsonResponse(
        {
            "success": store_ok,
            "message": "Server is running" if store_ok else "Store unavailable",
            "data": {
                "timestamp": timezone.now().isoformat(),
                "components": {
                    "store": {"ok": store_ok, "backend": getattr(settings, "ORDERS_STORE_BACKEND", "django")},
                },
            },
        },
        status=code,
    )
