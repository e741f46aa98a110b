"""Domain types, ports and the order aggregate service.

This module contains the enums and small value objects shared by the
orders and payments services, the error hierarchy raised by the domain
and its adapters, the protocol definitions (ports) for persistence and
blob storage, and ``OrderService``, which owns the order aggregate.
"""

import logging
import math
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Iterable, List, Optional, Protocol

from pydantic import BaseModel, ValidationError as PydanticValidationError

from .schemas import OrderCreateIn, OrderUpdateIn, describe_error, is_blank

logger = logging.getLogger("orders")

ORDERS = "orders"
PAYMENT_RECORDS = "payment_records"

CODE_ALPHABET = string.ascii_lowercase + string.digits


# ---- Enums ----
class PaymentStatus(str, Enum):
    """Values the ``payment_status`` field of an order can take."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT = "credit"


class PaymentPath(str, Enum):
    """Where a payment write landed.

    DEDICATED means a row in the ``payment_records`` collection; INLINE
    means the payment fields of the order row itself.
    """

    DEDICATED = "dedicated"
    INLINE = "inline"


# ---- Errors ----
class OrdersError(Exception):
    """Base class for errors raised by the orders domain and its adapters.

    Attributes:
        status_code: HTTP status the error maps to at the API boundary.
    """

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrdersError):
    """Missing or malformed input. Carries every field error found."""

    status_code = 400

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


class NotFoundError(OrdersError):
    status_code = 404


class StoreError(OrdersError):
    """Failure of the underlying persistence or blob storage."""

    status_code = 500


class DecodeError(OrdersError):
    status_code = 500


# ---- Value objects ----
@dataclass(frozen=True)
class Recorded:
    """Outcome of a payment write.

    Attributes:
        path: Which representation was written.
        row: The stored row as returned by the store (a payment record
            for DEDICATED, the order for INLINE).
    """

    path: PaymentPath
    row: dict

    @property
    def dedicated(self) -> bool:
        return self.path is PaymentPath.DEDICATED


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def generate_code(prefix: str, moment: datetime) -> str:
    """Build a public code such as ``ORD1718000000000X7K2P``.

    The code is the prefix, the millisecond timestamp and a 5 character
    random suffix, uppercased. Uniqueness is probabilistic only.
    """
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(5))
    return f"{prefix}{epoch_millis(moment)}{suffix}".upper()


def parse_payload(dto_cls: type[BaseModel], data: dict) -> BaseModel:
    """Validate ``data`` against a pydantic DTO.

    Presence is checked first so that every missing required field is
    reported together; format errors are reported only once all required
    fields are present.

    Raises:
        ValidationError: With one message per offending field.
    """
    missing = [
        name for name, field in dto_cls.model_fields.items()
        if field.is_required() and is_blank(data.get(name))
    ]
    if missing:
        raise ValidationError([f"{name} is required" for name in missing])
    try:
        return dto_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError([describe_error(err) for err in e.errors()])


def parse_id(value, field: str = "order_id") -> int:
    """Parse a store identity given as int or decimal string.

    Raises:
        ValidationError: If the value is blank, not an integer or not
            positive.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError([f"{field} is required"])
    if isinstance(value, bool):
        raise ValidationError([f"{field} must be a positive integer"])
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise ValidationError([f"{field} must be a positive integer"])
    if parsed <= 0:
        raise ValidationError([f"{field} must be a positive integer"])
    return parsed


# ---- Ports (DIP) ----
class StorePort(Protocol):
    """Port over a relational store addressed by collection name.

    Filters are equality matches on column values. Implementations raise
    ``NotFoundError`` when a filter resolves no row and ``StoreError``
    for every other failure.
    """

    def insert(self, collection: str, row: dict) -> dict:
        """Insert a row and return it with its store-assigned identity."""
        raise NotImplementedError()

    def update(self, collection: str, filters: dict, patch: dict) -> dict:
        """Apply ``patch`` to the single row matching ``filters``."""
        raise NotImplementedError()

    def select_one(self, collection: str, filters: dict) -> dict:
        """Return the single row matching ``filters``."""
        raise NotImplementedError()

    def select_many(
        self,
        collection: str,
        filters: Optional[dict] = None,
        order_by: Optional[str] = "-created_at",
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Return the rows matching ``filters``.

        ``order_by`` names a column, prefixed with ``-`` for descending.
        """
        raise NotImplementedError()


class BlobStoragePort(Protocol):
    """Port describing durable file storage for uploaded evidence."""

    def ensure_directory(self) -> None:
        raise NotImplementedError()

    def write_file(self, name: str, data: bytes) -> str:
        """Write ``data`` under ``name`` and return the public path."""
        raise NotImplementedError()


def load_order(store: StorePort, order_id: int) -> dict:
    try:
        return store.select_one(ORDERS, {"id": order_id})
    except NotFoundError:
        raise NotFoundError(f"Order {order_id} not found")


def update_order(store: StorePort, order_id: int, patch: dict) -> dict:
    try:
        return store.update(ORDERS, {"id": order_id}, patch)
    except NotFoundError:
        raise NotFoundError(f"Order {order_id} not found")


# ---- Domain service ----
ORDER_FILTERS = ("user_id", "order_id", "status", "payment_status")
IMMUTABLE_ORDER_FIELDS = ("id", "order_code", "created_at")
DEFAULT_ORDER_STATUS = "new"
UNINITIATED = "uninitiated"


def _as_number(value) -> float:
    try:
        number = float(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class OrderService:
    """Domain service owning the order aggregate.

    The service validates input, generates order codes and stamps
    timestamps; persistence goes through the injected ``StorePort``.
    """

    def __init__(self, store: StorePort, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def create(self, data: dict) -> dict:
        """Validate and persist a new order.

        Args:
            data: Raw order fields as received from the client.

        Returns:
            The stored order row, including ``id`` and ``order_code``.

        Raises:
            ValidationError: Naming every missing field, or the format
                errors when all required fields are present.
        """
        dto = parse_payload(OrderCreateIn, data)
        now = self.clock()
        row = dto.model_dump(exclude_none=True)
        row.setdefault("status", DEFAULT_ORDER_STATUS)
        row["order_code"] = generate_code("ORD", now)
        row["created_at"] = now
        row["updated_at"] = now
        order = self.store.insert(ORDERS, row)
        logger.info("order created", extra={"order_id": order.get("id"), "order_code": row["order_code"]})
        return order

    def get(self, order_id) -> dict:
        return load_order(self.store, parse_id(order_id))

    def list(self, filters: Optional[dict] = None) -> List[dict]:
        """List orders newest first, filtered by the known query keys."""
        query = {}
        for key, value in (filters or {}).items():
            if key not in ORDER_FILTERS or value in (None, ""):
                continue
            if key == "order_id":
                query["id"] = parse_id(value)
            else:
                query[key] = value
        return self.store.select_many(ORDERS, query, order_by="-created_at")

    def update(self, order_id, patch: dict) -> dict:
        """Apply an administrative patch to an order.

        Identity fields are never patched; ``updated_at`` is always bumped.
        Fields sent as null are left unchanged.

        Raises:
            ValidationError: If the id is invalid, a field is malformed or
                a key is not an updatable order field.
            NotFoundError: If the order does not exist.
        """
        oid = parse_id(order_id)
        fields = {k: v for k, v in patch.items() if k not in IMMUTABLE_ORDER_FIELDS}
        changes = parse_payload(OrderUpdateIn, fields).model_dump(exclude_none=True)
        changes["updated_at"] = self.clock()
        return update_order(self.store, oid, changes)

    def update_status(self, order_id, status: str) -> dict:
        if not status:
            raise ValidationError(["status is required"])
        return self.update(order_id, {"status": status})

    def update_payment_status(self, order_id, payment_status: str) -> dict:
        try:
            value = PaymentStatus(payment_status).value
        except ValueError:
            raise ValidationError([f"payment_status must be one of {', '.join(s.value for s in PaymentStatus)}"])
        return self.update(order_id, {"payment_status": value})

    def statistics(self) -> dict:
        """Aggregate order counts and revenue by status and payment status."""
        rows = self.store.select_many(ORDERS, {}, order_by=None)
        return summarize(rows)


def summarize(rows: Iterable[dict]) -> dict:
    stats = {"total_orders": 0, "total_revenue": 0.0, "by_status": {}, "by_payment_status": {}}
    for row in rows:
        revenue = _as_number(row.get("total_price"))
        stats["total_orders"] += 1
        stats["total_revenue"] += revenue
        for bucket, key in (
            (stats["by_status"], row.get("status") or DEFAULT_ORDER_STATUS),
            (stats["by_payment_status"], row.get("payment_status") or UNINITIATED),
        ):
            group = bucket.setdefault(str(key), {"count": 0, "revenue": 0.0})
            group["count"] += 1
            group["revenue"] += revenue
    return stats
