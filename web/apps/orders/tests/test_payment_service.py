"""Unit tests for PaymentService: dedicated vs inline recording, status
transitions through payment records or the order row, and the payment
read view."""

from datetime import timedelta

import pytest
from apps.orders.adapters import InMemoryStore
from apps.orders.domain import (
    ORDERS,
    PAYMENT_RECORDS,
    NotFoundError,
    OrderService,
    PaymentPath,
    ValidationError,
)
from apps.orders import payments
from apps.orders.payments import PaymentService


class UntouchableStore:
    """Store double failing the test on any access."""

    def __getattr__(self, name):
        raise AssertionError(f"store.{name} must not be called")


@pytest.fixture
def mem_store():
    return InMemoryStore()


@pytest.fixture
def order(mem_store, order_payload, clock):
    return OrderService(mem_store, clock=clock).create(order_payload)


def test_credit_payment_goes_to_dedicated_store(mem_store, order, clock):
    """Credit payments create a pending record expiring 24h later; the order row is left alone."""
    recorded = PaymentService(mem_store, clock=clock).create_payment(
        {"order_id": order["id"], "amount": 5000000, "payment_method": "credit"}
    )
    assert recorded.path is PaymentPath.DEDICATED
    assert recorded.dedicated
    row = recorded.row
    assert row["order_id"] == order["id"]
    assert row["status"] == "pending"
    assert row["payment_method"] == "bank_transfer"
    assert row["payment_code"].startswith("PAY")
    assert row["expired_at"] - row["created_at"] == timedelta(hours=24)

    stored_order = mem_store.select_one(ORDERS, {"id": order["id"]})
    assert "payment_status" not in stored_order


def test_credit_payment_falls_back_to_order_row(no_payment_records, order_payload, clock, monkeypatch):
    """Without a payment_records collection the order row receives the payment fields."""
    order = OrderService(no_payment_records, clock=clock).create(order_payload)
    service = PaymentService(no_payment_records, clock=clock)

    warnings = []
    monkeypatch.setattr(payments.logger, "warning", lambda msg, *a, **k: warnings.append(msg))
    recorded = service.create_payment({
        "order_id": order["id"],
        "amount": 5000000,
        "payment_method": "credit",
        "loan_term": 12,
        "monthly_installment": "1850000",
    })

    assert recorded.path is PaymentPath.INLINE
    row = recorded.row
    assert row["payment_status"] == "pending"
    assert row["payment_method"] == "credit"
    assert row["down_payment"] == 5000000
    assert row["loan_term"] == 12
    assert "down_payment_percent" not in row
    assert warnings == ["dedicated payment store unavailable, falling back to order row"]


def test_cash_payment_never_touches_payment_records(mem_store, order, clock):
    recorded = PaymentService(mem_store, clock=clock).create_payment({"order_id": order["id"], "amount": 25000000})
    assert recorded.path is PaymentPath.INLINE
    assert recorded.row["payment_status"] == "pending"
    assert recorded.row["payment_method"] == "cash"
    assert "down_payment" not in recorded.row
    assert mem_store.select_many(PAYMENT_RECORDS) == []


@pytest.mark.parametrize("payload, missing", [
    ({"amount": 100}, ["order_id is required"]),
    ({"order_id": 1}, ["amount is required"]),
    ({"payment_method": "credit"}, ["order_id is required", "amount is required"]),
])
def test_create_payment_validates_before_any_write(payload, missing):
    with pytest.raises(ValidationError) as e:
        PaymentService(UntouchableStore()).create_payment(payload)
    assert e.value.errors == missing


def test_create_payment_rejects_unknown_method():
    with pytest.raises(ValidationError):
        PaymentService(UntouchableStore()).create_payment({"order_id": 1, "amount": 100, "payment_method": "barter"})


def test_create_payment_for_missing_order(mem_store):
    with pytest.raises(NotFoundError):
        PaymentService(mem_store).create_payment({"order_id": 404, "amount": 100, "payment_method": "credit"})
    assert mem_store.select_many(PAYMENT_RECORDS) == []


def test_paid_through_payment_record_sets_paid_at(mem_store, order, clock):
    service = PaymentService(mem_store, clock=clock)
    record = service.create_payment({"order_id": order["id"], "amount": 5000000, "payment_method": "credit"}).row

    recorded = service.update_status({
        "order_id": order["id"],
        "status": "paid",
        "manual_payment_id": record["id"],
        "payment_proof": "/uploads/payment_1_1.jpg",
    })

    assert recorded.path is PaymentPath.DEDICATED
    assert recorded.row["status"] == "paid"
    assert recorded.row["paid_at"] == recorded.row["updated_at"]
    assert recorded.row["payment_proof_image"] == "/uploads/payment_1_1.jpg"
    assert "payment_status" not in mem_store.select_one(ORDERS, {"id": order["id"]})


def test_unknown_payment_record_falls_back_to_order(mem_store, order, clock):
    recorded = PaymentService(mem_store, clock=clock).update_status(
        {"order_id": order["id"], "status": "failed", "manual_payment_id": 77}
    )
    assert recorded.path is PaymentPath.INLINE
    assert recorded.row["payment_status"] == "failed"
    assert "payment_date" not in recorded.row


def test_paid_on_order_row_sets_payment_date(mem_store, order, clock):
    recorded = PaymentService(mem_store, clock=clock).update_status({"order_id": order["id"], "status": "paid"})
    assert recorded.row["payment_status"] == "paid"
    assert recorded.row["payment_date"] == recorded.row["updated_at"]


def test_update_status_requires_valid_status():
    with pytest.raises(ValidationError) as e:
        PaymentService(UntouchableStore()).update_status({"order_id": 1})
    assert e.value.errors == ["status is required"]
    with pytest.raises(ValidationError):
        PaymentService(UntouchableStore()).update_status({"order_id": 1, "status": "refunded"})


def test_update_status_for_missing_order(mem_store):
    with pytest.raises(NotFoundError):
        PaymentService(mem_store).update_status({"order_id": 9, "status": "paid"})


def test_get_payment_manual_for_credit_order_with_record(mem_store, order, clock):
    service = PaymentService(mem_store, clock=clock)
    service.create_payment({"order_id": order["id"], "amount": 1000, "payment_method": "credit"})
    newest = service.create_payment({"order_id": order["id"], "amount": 2000, "payment_method": "credit"}).row
    mem_store.update(ORDERS, {"id": order["id"]}, {"payment_method": "credit"})

    view = service.get_payment(str(order["id"]))
    assert view["payment_type"] == "manual"
    assert view["manual_payment"]["id"] == newest["id"]
    assert view["order_code"] == order["order_code"]


def test_get_payment_simple_without_record(mem_store, order):
    mem_store.update(ORDERS, {"id": order["id"]}, {"payment_method": "credit"})
    view = PaymentService(mem_store).get_payment(order["id"])
    assert view["payment_type"] == "simple"
    assert "manual_payment" not in view


def test_get_payment_simple_when_records_unavailable(no_payment_records, order_payload):
    order = OrderService(no_payment_records).create(order_payload)
    no_payment_records.update(ORDERS, {"id": order["id"]}, {"payment_method": "credit"})
    assert PaymentService(no_payment_records).get_payment(order["id"])["payment_type"] == "simple"


def test_get_payment_errors(mem_store):
    with pytest.raises(ValidationError):
        PaymentService(UntouchableStore()).get_payment(None)
    with pytest.raises(NotFoundError):
        PaymentService(mem_store).get_payment(12)
