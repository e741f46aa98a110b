"""HTTP adapter for a hosted PostgREST store, with retries and a circuit breaker.

This module implements ``StorePort`` on top of a PostgREST API (the REST
layer Supabase exposes) using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the gateway middleware.
- A circuit breaker shared by every store client in the process, so an
    unhealthy store is not hammered; HALF_OPEN probing after a timeout.
- A retry policy with exponential backoff for transport errors and 5xx on
    reads. Writes are sent once.
"""

import datetime as dt
import decimal
import threading
import time
from typing import Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import NotFoundError, StoreError, StorePort

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")


# ---------------- Circuit Breaker ---------------- #

class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED → OPEN when failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN → CLOSED on a successful probe; only one probe may be in
      flight; back to OPEN on failure.

    This implementation is thread-safe via an internal lock.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"
        self._opened_at = 0.0
        self._half_open_probe_in_flight = False

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._half_open_probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check the breaker before a protected call.

        Raises:
            StoreError: If the circuit is OPEN or a HALF_OPEN probe is busy.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise StoreError(f"{self.name} unavailable (circuit open)")
            if st == "HALF_OPEN":
                if self._half_open_probe_in_flight:
                    raise StoreError(f"{self.name} unavailable (circuit half-open)")
                self._half_open_probe_in_flight = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._half_open_probe_in_flight = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN" or (self._failures >= self.fail_threshold and self._state != "OPEN"):
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                self._half_open_probe_in_flight = False

    def on_finish(self):
        with self._lock:
            if self._state == "HALF_OPEN":
                self._half_open_probe_in_flight = False


_store_cb = CircuitBreaker(
    "store",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers including X-Request-ID and any extras."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base_seconds)."""
    return (
        getattr(settings, "HTTP_RETRY_MAX", 3),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
    )


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    if exc is not None:
        return True
    return resp is not None and 500 <= resp.status_code < 600


def _jsonable(value):
    """Convert datetimes, dates and decimals into JSON-friendly values."""
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if isinstance(value, decimal.Decimal):
        return str(value)
    return value


def _eq_filters(filters: Optional[dict]) -> dict:
    return {k: f"eq.{_jsonable(v)}" for k, v in (filters or {}).items()}


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {resp.status_code}"


# ---------------- Store Adapter ---------------- #

class PostgrestStore(StorePort):
    """``StorePort`` implementation speaking the PostgREST protocol.

    Each collection is a table exposed at ``<base_url>/<collection>``.
    The API key is sent as ``apikey`` and bearer token and is never
    included in error messages.
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.POSTGREST_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.POSTGREST_API_KEY
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def _auth_headers(self) -> dict:
        if not self.api_key:
            return {}
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    def _send(self, method: str, collection: str, *, params=None, json=None, prefer=None) -> list:
        """Send one request to the store and return the decoded row list.

        Reads (GET) are retried on transport errors and 5xx with
        exponential backoff; writes are sent once.

        Raises:
            StoreError: On transport failure, non-2xx response or an open
                circuit.
        """
        max_retries, backoff = _retry_policy()
        if method != "GET":
            max_retries = 1
        tries = 0

        extras = self._auth_headers()
        if prefer:
            extras["Prefer"] = prefer
        state = _store_cb.before_call()
        extras["X-Circuit-State"] = state
        extras["X-Retry-Count"] = "0"
        headers = _request_headers(extras)
        url = f"{self.base_url}/{collection}"

        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    resp = None
                    exc = None
                    try:
                        resp = client.request(method, url, params=params, json=json, headers=headers)
                        if 200 <= resp.status_code < 300:
                            _store_cb.on_success()
                            return resp.json() if resp.content else []
                        if not _should_retry(resp, None):
                            # 4xx is a business answer (missing table, bad column), not a circuit failure
                            _store_cb.on_success()
                            raise StoreError(f"{collection}: {_error_message(resp)}")
                    except httpx.RequestError as e:
                        exc = e

                    tries += 1
                    headers["X-Retry-Count"] = str(tries)

                    if tries >= max_retries or not _should_retry(resp, exc):
                        _store_cb.on_failure()
                        if exc is not None:
                            raise StoreError(f"{collection}: store unreachable ({type(exc).__name__})")
                        raise StoreError(f"{collection}: {_error_message(resp)}")

                    sleep_s = backoff * (2 ** (tries - 1))
                    cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
                    time.sleep(min(sleep_s, cap))
        finally:
            _store_cb.on_finish()

    def insert(self, collection: str, row: dict) -> dict:
        rows = self._send("POST", collection, json=[_jsonable(row)], prefer="return=representation")
        if not rows:
            raise StoreError(f"{collection}: insert returned no row")
        return rows[0]

    def update(self, collection: str, filters: dict, patch: dict) -> dict:
        rows = self._send(
            "PATCH", collection, params=_eq_filters(filters), json=_jsonable(patch), prefer="return=representation",
        )
        if not rows:
            raise NotFoundError(f"No {collection} row matches {filters}")
        if len(rows) > 1:
            raise StoreError(f"More than one {collection} row matches {filters}")
        return rows[0]

    def select_one(self, collection: str, filters: dict) -> dict:
        params = {"select": "*", "limit": "2", **_eq_filters(filters)}
        rows = self._send("GET", collection, params=params)
        if not rows:
            raise NotFoundError(f"No {collection} row matches {filters}")
        if len(rows) > 1:
            raise StoreError(f"More than one {collection} row matches {filters}")
        return rows[0]

    def select_many(self, collection, filters=None, order_by="-created_at", limit=None):
        params = {"select": "*", **_eq_filters(filters)}
        if order_by:
            column = order_by.lstrip("-")
            params["order"] = f"{column}.desc" if order_by.startswith("-") else f"{column}.asc"
        if limit is not None:
            params["limit"] = str(limit)
        return self._send("GET", collection, params=params)
