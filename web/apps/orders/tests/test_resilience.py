# Retry and circuit-breaker behavior of the PostgREST store adapter.
import httpx
import pytest


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3
    settings.HTTP_RETRY_BACKOFF_BASE = 0.0
    monkeypatch.setattr("time.sleep", lambda *a, **k: None, raising=True)

    # breaker state is process-wide
    from apps.orders.http_adapters import _store_cb
    _store_cb.on_success()
    yield
    _store_cb.on_success()


def test_reads_retry_on_5xx(monkeypatch):
    calls = {"n": 0}

    def fake_request(self, method, url, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503, json={"message": "unavailable"})
        return httpx.Response(200, json=[{"id": 1}])

    monkeypatch.setattr(httpx.Client, "request", fake_request, raising=True)

    from apps.orders.http_adapters import PostgrestStore
    rows = PostgrestStore(base_url="http://x", api_key="").select_many("orders")
    assert rows == [{"id": 1}]
    assert calls["n"] == 2


def test_writes_are_not_retried(monkeypatch):
    calls = {"n": 0}

    def fake_request(self, method, url, **kwargs):
        calls["n"] += 1
        return httpx.Response(500, json={"message": "boom"})

    monkeypatch.setattr(httpx.Client, "request", fake_request, raising=True)

    from apps.orders.domain import StoreError
    from apps.orders.http_adapters import PostgrestStore
    with pytest.raises(StoreError):
        PostgrestStore(base_url="http://x", api_key="").insert("orders", {"status": "new"})
    assert calls["n"] == 1


def test_no_retry_on_4xx(monkeypatch):
    calls = {"n": 0}

    def fake_request(self, method, url, **kwargs):
        calls["n"] += 1
        return httpx.Response(400, json={"message": "column orders.foo does not exist"})

    monkeypatch.setattr(httpx.Client, "request", fake_request, raising=True)

    from apps.orders.domain import StoreError
    from apps.orders.http_adapters import PostgrestStore
    with pytest.raises(StoreError):
        PostgrestStore(base_url="http://x", api_key="").select_many("orders", {"foo": 1})
    assert calls["n"] == 1


def test_circuit_opens_after_repeated_failures(monkeypatch):
    from apps.orders.domain import StoreError
    from apps.orders.http_adapters import PostgrestStore, _store_cb

    calls = {"n": 0}

    def fake_request(self, method, url, **kwargs):
        calls["n"] += 1
        return httpx.Response(502, json={})

    monkeypatch.setattr(httpx.Client, "request", fake_request, raising=True)
    store = PostgrestStore(base_url="http://x", api_key="")

    for _ in range(_store_cb.fail_threshold):
        with pytest.raises(StoreError):
            store.insert("orders", {"status": "new"})
    assert _store_cb.state == "OPEN"

    sent = calls["n"]
    with pytest.raises(StoreError) as e:
        store.select_many("orders")
    assert "circuit open" in e.value.message
    assert calls["n"] == sent


def test_half_open_probe_closes_circuit(monkeypatch):
    from apps.orders.http_adapters import CircuitBreaker

    cb = CircuitBreaker("test", fail_threshold=1, reset_timeout=0.0)
    cb.on_failure()
    assert cb.state == "HALF_OPEN"
    assert cb.before_call() == "HALF_OPEN"
    cb.on_success()
    assert cb.state == "CLOSED"
