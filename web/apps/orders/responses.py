"""Response shaping for the orders API.

Every endpoint answers with the same envelope::

    {"success": bool, "message": str, "data": ...}

This module builds that envelope for successful results, maps domain
errors onto it (``envelope_exception_handler`` is installed as the DRF
``EXCEPTION_HANDLER``), and provides the JSON handler used for unknown
routes.
"""

import logging

from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .domain import DecodeError, OrdersError, StoreError, ValidationError

logger = logging.getLogger("orders")


def envelope(message: str | None = None, data=None, *, status_code: int = status.HTTP_200_OK, **extra) -> Response:
    """Build a successful envelope response.

    Args:
        message: Optional human-readable message.
        data: Payload placed under ``data``; omitted when None.
        status_code: HTTP status code of the response.
        **extra: Additional top-level keys (for example ``payment_type``).
    """
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return Response(body, status=status_code)


def error_body(exc: OrdersError) -> dict:
    if isinstance(exc, ValidationError):
        message = f"Validation failed: {exc.message}"
    elif isinstance(exc, DecodeError):
        message = f"Upload failed: {exc.message}"
    elif isinstance(exc, StoreError):
        message = f"Server error: {exc.message}"
    else:
        message = exc.message
    return {"success": False, "message": message}


def envelope_exception_handler(exc, context):
    """DRF exception handler producing the envelope for every failure.

    Domain errors use their own status codes. Framework errors (parse
    errors, 405, throttling) keep DRF's status and headers. Anything else
    is logged with its traceback and answered with a bare 500.
    """
    if isinstance(exc, OrdersError):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(level, "request failed", extra={"error": exc.message, "error_type": type(exc).__name__})
        return Response(error_body(exc), status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is not None:
        detail = response.data.get("detail", response.data) if isinstance(response.data, dict) else response.data
        response.data = {"success": False, "message": str(detail)}
        return response

    logger.exception("unhandled error")
    return Response(
        {"success": False, "message": "Internal server error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def not_found(request, exception=None):
    """JSON replacement for Django's HTML 404 page."""
    return JsonResponse(
        {"success": False, "message": "API endpoint not found", "path": request.path, "method": request.method},
        status=404,
    )
