"""Gateway middleware: request ids, request logging, size limit and CORS.

``RequestIdMiddleware`` ensures every request carries an identifier. The
id is read from the incoming ``X-Request-Id`` header when provided by the
client, or generated server-side otherwise; it is stored on the request
and in a context variable so downstream code (log filters, the store
HTTP client) can read it without passing it explicitly. The response
echoes it in ``X-Request-ID`` and one "request handled" line is logged
per request.

``ApiSizeLimitMiddleware`` rejects oversized API bodies before they are
read. ``CorsMiddleware`` answers pre-flight ``OPTIONS`` requests with an
empty 200 and adds the CORS headers to every API response.
"""

import contextvars
import logging
import os
import time
import uuid

from django.conf import settings
from django.http import HttpResponse, JsonResponse
from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
MAX_API_BYTES = int(os.getenv("API_MAX_BYTES", str(50 * 1024 * 1024)))

logger = logging.getLogger("gateway")


class RequestIdMiddleware(MiddlewareMixin):
    """Django middleware that sets and returns a per-request identifier.

    Attributes:
        HEADER (str): Incoming header name in ``request.META`` casing.
        RESPONSE_HEADER (str): Header name set on responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        request._started_at = time.monotonic()
        REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        started = getattr(request, "_started_at", None)
        logger.info(
            "request handled",
            extra={
                "path": request.path,
                "method": request.method,
                "status": response.status_code,
                "duration_ms": round((time.monotonic() - started) * 1000, 1) if started else None,
            },
        )
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    def process_request(self, request):
        if request.path.startswith("/api/"):
            clen = request.META.get("CONTENT_LENGTH")
            limit = getattr(settings, "API_MAX_BYTES", MAX_API_BYTES)
            if clen and clen.isdigit() and int(clen) > limit:
                return JsonResponse({"success": False, "message": "Payload too large"}, status=413)


class CorsMiddleware(MiddlewareMixin):
    """Answer pre-flight requests and add CORS headers to API responses."""

    ALLOW_METHODS = "GET, POST, PUT, OPTIONS"
    ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With, X-Request-ID"

    def process_request(self, request):
        if request.method == "OPTIONS":
            return HttpResponse(status=200)

    def process_response(self, request, response):
        if request.path.startswith("/api/") or request.method == "OPTIONS":
            response["Access-Control-Allow-Origin"] = getattr(settings, "CORS_ALLOWED_ORIGIN", "*")
            response["Access-Control-Allow-Methods"] = self.ALLOW_METHODS
            response["Access-Control-Allow-Headers"] = self.ALLOW_HEADERS
        return response
