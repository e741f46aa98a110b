"""In-process adapters for the orders domain ports.

``InMemoryStore`` implements ``StorePort`` without any database. It is
intended for unit tests and local development where deterministic
behavior is useful; building it without the ``payment_records``
collection reproduces a deployment where the dedicated payment store
does not exist.

``LocalBlobStorage`` implements ``BlobStoragePort`` on the local
filesystem and is used in every environment.
"""

import copy
import threading
from itertools import count
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .domain import ORDERS, PAYMENT_RECORDS, BlobStoragePort, NotFoundError, StoreError, StorePort


class InMemoryStore(StorePort):
    """Dictionary-backed store keyed by collection name.

    Identities are assigned from a per-collection counter starting at 1.
    Filter values are compared by their string form, which mirrors how
    query-string values reach a SQL store.
    """

    def __init__(self, collections: Iterable[str] = (ORDERS, PAYMENT_RECORDS)):
        self._rows: Dict[str, List[dict]] = {name: [] for name in collections}
        self._ids = {name: count(1) for name in self._rows}
        self._lock = threading.RLock()

    def _table(self, collection: str) -> List[dict]:
        try:
            return self._rows[collection]
        except KeyError:
            raise StoreError(f'relation "{collection}" does not exist')

    @staticmethod
    def _matches(row: dict, filters: Optional[dict]) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in (filters or {}).items())

    def insert(self, collection: str, row: dict) -> dict:
        with self._lock:
            table = self._table(collection)
            stored = copy.deepcopy(row)
            stored["id"] = next(self._ids[collection])
            table.append(stored)
            return copy.deepcopy(stored)

    def update(self, collection: str, filters: dict, patch: dict) -> dict:
        with self._lock:
            hits = [r for r in self._table(collection) if self._matches(r, filters)]
            if not hits:
                raise NotFoundError(f"No {collection} row matches {filters}")
            if len(hits) > 1:
                raise StoreError(f"{len(hits)} {collection} rows match {filters}")
            hits[0].update(copy.deepcopy(patch))
            return copy.deepcopy(hits[0])

    def select_one(self, collection: str, filters: dict) -> dict:
        with self._lock:
            hits = [r for r in self._table(collection) if self._matches(r, filters)]
            if not hits:
                raise NotFoundError(f"No {collection} row matches {filters}")
            if len(hits) > 1:
                raise StoreError(f"{len(hits)} {collection} rows match {filters}")
            return copy.deepcopy(hits[0])

    def select_many(self, collection, filters=None, order_by="-created_at", limit=None):
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._table(collection) if self._matches(r, filters)]
        if order_by:
            key = order_by.lstrip("-")
            # rows lacking the key sort last in either direction
            present = [r for r in rows if r.get(key) is not None]
            absent = [r for r in rows if r.get(key) is None]
            present.sort(key=lambda r: (r[key], r["id"]), reverse=order_by.startswith("-"))
            rows = present + absent
        return rows[:limit] if limit is not None else rows


class LocalBlobStorage(BlobStoragePort):
    """Filesystem storage rooted at ``root`` and published under ``url_prefix``.

    The root directory is created when the adapter is constructed, so a
    process-scoped instance checks it once at startup.
    """

    def __init__(self, root, url_prefix: str = "/uploads/"):
        self.root = Path(root)
        self.url_prefix = url_prefix if url_prefix.endswith("/") else url_prefix + "/"
        self.ensure_directory()

    def ensure_directory(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create uploads directory: {e.strerror}")

    def write_file(self, name: str, data: bytes) -> str:
        """Write ``data`` to ``<root>/<name>`` and return its public path.

        Raises:
            StoreError: If the file cannot be written.
        """
        if Path(name).name != name:
            raise StoreError("Invalid file name")
        try:
            (self.root / name).write_bytes(data)
        except OSError as e:
            raise StoreError(f"Cannot write {name}: {e.strerror}")
        return f"{self.url_prefix}{name}"
