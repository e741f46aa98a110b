"""Logging filter stamping request context on every record.

Fallback warnings from the payment engine only make sense next to the
request that triggered them and the store backend that refused the
write, so both are added to each record for the JSON formatter.
"""

from logging import Filter, LogRecord

from django.conf import settings

from .middleware import REQUEST_ID_CTX


class RequestContextFilter(Filter):
    """Attach ``request_id`` and ``store_backend`` to log records.

    ``request_id`` comes from ``REQUEST_ID_CTX`` (set by
    ``RequestIdMiddleware``) and is "-" outside a request.
    ``store_backend`` is ``settings.ORDERS_STORE_BACKEND``. Values passed
    explicitly through ``extra`` are left untouched.
    """

    def filter(self, record: LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = REQUEST_ID_CTX.get()
        if not getattr(record, "store_backend", None):
            record.store_backend = getattr(settings, "ORDERS_STORE_BACKEND", "django")
        return True
