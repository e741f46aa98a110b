"""Service provider helpers wiring the domain services with their ports.

The store adapter and the blob storage are built once per process and
shared by reference (``lru_cache`` factories); services are cheap and
built per call around those shared instances. The store backend is
chosen by ``settings.ORDERS_STORE_BACKEND``:

- ``django``: ``DjangoStore`` over the configured database (default).
- ``postgrest``: ``PostgrestStore`` against a hosted PostgREST API.
- ``memory``: ``InMemoryStore``, for tests and local development.

The WSGI entry point calls ``warm_up()`` so both exist before the first
request. Tests reset the shared instances with ``reset()``.
"""

import logging
from functools import lru_cache

from django.conf import settings

from .adapters import InMemoryStore, LocalBlobStorage
from .domain import BlobStoragePort, OrderService, StorePort
from .http_adapters import PostgrestStore
from .payments import PaymentService
from .proofs import ProofService
from .repository import DjangoStore

logger = logging.getLogger("orders")

STORE_BACKENDS = {
    "django": DjangoStore,
    "postgrest": PostgrestStore,
    "memory": InMemoryStore,
}


@lru_cache(maxsize=None)
def get_store() -> StorePort:
    """Return the process-wide store adapter.

    Raises:
        ValueError: If ``ORDERS_STORE_BACKEND`` names an unknown backend.
    """
    backend = getattr(settings, "ORDERS_STORE_BACKEND", "django")
    try:
        factory = STORE_BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown ORDERS_STORE_BACKEND {backend!r}")
    logger.info("store backend initialised", extra={"backend": backend})
    return factory()


@lru_cache(maxsize=None)
def get_blob_storage() -> BlobStoragePort:
    return LocalBlobStorage(settings.UPLOADS_ROOT, settings.UPLOADS_URL)


def get_order_service() -> OrderService:
    return OrderService(get_store())


def get_payment_service() -> PaymentService:
    return PaymentService(get_store())


def get_proof_service() -> ProofService:
    return ProofService(get_store(), get_blob_storage())


def warm_up() -> None:
    """Build the shared store and blob storage at process start.

    Creating the blob storage makes sure the uploads root exists before
    the first upload is served.
    """
    get_store()
    storage = get_blob_storage()
    logger.info("uploads root ready", extra={"path": str(getattr(storage, "root", ""))})


def reset() -> None:
    """Drop the cached store and blob storage instances."""
    get_store.cache_clear()
    get_blob_storage.cache_clear()
