# Project imports stay inside fixtures: this conftest is loaded before Django is set up.
import pytest
from datetime import datetime, timedelta, timezone


@pytest.fixture(autouse=True)
def use_memory_store(settings, tmp_path):
    """Every test starts with an empty in-memory store and its own uploads dir."""
    from django.core.cache import cache
    from apps.orders import providers

    settings.ORDERS_STORE_BACKEND = "memory"
    settings.UPLOADS_ROOT = tmp_path / "uploads"
    providers.reset()
    cache.clear()  # throttle counters
    yield
    providers.reset()


@pytest.fixture
def store():
    """The store instance the API views will use."""
    from apps.orders import providers

    return providers.get_store()


class FrozenClock:
    """Callable clock advancing by one millisecond on each call."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(milliseconds=1)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def order_payload():
    return {
        "customer_name": "Budi Santoso",
        "nik_ktp": "3201010101900001",
        "birth_place": "Bandung",
        "birth_date": "1990-01-01",
        "occupation": "Karyawan",
        "address": "Jl. Merdeka No. 10, Bandung",
        "customer_phone": "081234567890",
        "stnk_name": "Budi Santoso",
        "motorcycle_id": 7,
        "motorcycle_name": "Honda PCX 160",
        "total_price": 25000000,
    }


@pytest.fixture
def no_payment_records():
    """A store deployed without the dedicated payment_records collection."""
    from apps.orders.adapters import InMemoryStore

    return InMemoryStore(collections=["orders"])
