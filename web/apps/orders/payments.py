"""Payment recording engine.

``PaymentService`` decides where the state of a payment lives. Credit
payments are recorded preferentially in the dedicated
``payment_records`` collection; when that store rejects the write the
engine falls back to the payment fields of the order row. Cash payments
always use the order row. Status updates follow the same addressing:
a known payment record is targeted first and the order row is the
target of last resort.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from .domain import (
    PAYMENT_RECORDS,
    NotFoundError,
    PaymentMethod,
    PaymentPath,
    PaymentStatus,
    Recorded,
    StoreError,
    StorePort,
    generate_code,
    load_order,
    parse_id,
    parse_payload,
    update_order,
    utcnow,
)
from .schemas import PaymentCreateIn, PaymentUpdateIn

logger = logging.getLogger("orders.payments")

PAYMENT_TTL = timedelta(hours=24)
DEDICATED_METHOD = "bank_transfer"
CREDIT_FIELDS = ("down_payment_percent", "loan_term", "monthly_installment")


class PaymentService:
    """Domain service recording payments against orders."""

    def __init__(self, store: StorePort, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    # ---- reads ----
    def get_payment(self, order_id) -> dict:
        """Return the payment view of an order.

        Credit orders are merged with their newest payment record when one
        can be loaded; any failure to read the dedicated store degrades to
        the bare order.

        Returns:
            dict: The order fields plus ``payment_type`` (``manual`` or
            ``simple``) and, for ``manual``, ``manual_payment``.

        Raises:
            ValidationError: If ``order_id`` is not a positive integer.
            NotFoundError: If the order does not exist.
        """
        oid = parse_id(order_id)
        order = load_order(self.store, oid)
        if order.get("payment_method") == PaymentMethod.CREDIT.value:
            try:
                records = self.store.select_many(PAYMENT_RECORDS, {"order_id": oid}, order_by="-created_at", limit=1)
            except StoreError as e:
                logger.warning("payment records unavailable, using order data", extra={"order_id": oid, "error": e.message})
                records = []
            if records:
                return {**order, "manual_payment": records[0], "payment_type": "manual"}
        return {**order, "payment_type": "simple"}

    # ---- writes ----
    def create_payment(self, data: dict) -> Recorded:
        """Record a payment submission for an order.

        Args:
            data: Raw payment fields; ``order_id`` and ``amount`` are
                mandatory.

        Returns:
            Recorded: DEDICATED with the new payment record, or INLINE
            with the updated order.

        Raises:
            ValidationError: On missing or malformed fields, before any
                write.
            NotFoundError: If the order does not exist.
            StoreError: If the order-row write fails.
        """
        dto = parse_payload(PaymentCreateIn, data)
        load_order(self.store, dto.order_id)

        if dto.payment_method == PaymentMethod.CREDIT.value:
            try:
                record = self._insert_record(dto)
            except (StoreError, NotFoundError) as e:
                logger.warning(
                    "dedicated payment store unavailable, falling back to order row",
                    extra={"order_id": dto.order_id, "error": e.message},
                )
            else:
                logger.info("payment record created", extra={"order_id": dto.order_id, "payment_code": record.get("payment_code")})
                return Recorded(PaymentPath.DEDICATED, record)

        order = self._record_inline(dto)
        logger.info("payment recorded on order", extra={"order_id": dto.order_id, "payment_method": order.get("payment_method")})
        return Recorded(PaymentPath.INLINE, order)

    def update_status(self, data: dict) -> Recorded:
        """Apply a payment status transition.

        When ``manual_payment_id`` is given the payment record is updated;
        if that fails the order row is updated instead.

        Raises:
            ValidationError: If ``order_id`` or ``status`` is missing or
                invalid.
            NotFoundError: If the order row is targeted and does not exist.
            StoreError: If the order-row write fails.
        """
        dto = parse_payload(PaymentUpdateIn, data)
        now = self.clock()

        if dto.manual_payment_id is not None:
            patch = {"status": dto.status, "updated_at": now}
            if dto.status == PaymentStatus.PAID.value:
                patch["paid_at"] = now
                if dto.payment_proof:
                    patch["payment_proof_image"] = dto.payment_proof
            try:
                record = self.store.update(PAYMENT_RECORDS, {"id": dto.manual_payment_id}, patch)
            except (StoreError, NotFoundError) as e:
                logger.warning(
                    "payment record update failed, updating order instead",
                    extra={"order_id": dto.order_id, "manual_payment_id": dto.manual_payment_id, "error": e.message},
                )
            else:
                logger.info("payment record updated", extra={"manual_payment_id": dto.manual_payment_id, "status": dto.status})
                return Recorded(PaymentPath.DEDICATED, record)

        patch = {"payment_status": dto.status, "updated_at": now}
        if dto.status == PaymentStatus.PAID.value:
            patch["payment_date"] = now
        if dto.payment_proof:
            patch["payment_proof"] = dto.payment_proof
        order = update_order(self.store, dto.order_id, patch)
        logger.info("order payment status updated", extra={"order_id": dto.order_id, "status": dto.status})
        return Recorded(PaymentPath.INLINE, order)

    # ---- helpers ----
    def _insert_record(self, dto: PaymentCreateIn) -> dict:
        now = self.clock()
        return self.store.insert(PAYMENT_RECORDS, {
            "order_id": dto.order_id,
            "payment_code": generate_code("PAY", now),
            "payment_method": DEDICATED_METHOD,
            "amount": dto.amount,
            "status": PaymentStatus.PENDING.value,
            "created_at": now,
            "expired_at": now + PAYMENT_TTL,
        })

    def _record_inline(self, dto: PaymentCreateIn) -> dict:
        patch = {
            "payment_status": PaymentStatus.PENDING.value,
            "payment_method": dto.payment_method or PaymentMethod.CASH.value,
            "updated_at": self.clock(),
        }
        if dto.payment_method == PaymentMethod.CREDIT.value:
            patch["down_payment"] = dto.amount
            for field in CREDIT_FIELDS:
                value = getattr(dto, field)
                if value is not None:
                    patch[field] = value
        return update_order(self.store, dto.order_id, patch)
