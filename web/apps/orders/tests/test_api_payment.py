"""API tests for the payment, proof-upload and health endpoints, plus the
end-to-end cash checkout flow."""

import base64

import pytest

ORDERS_URL = "/api/orders"
PAYMENT_URL = "/api/payment"
UPLOAD_URL = "/api/upload-payment"
HEALTH_URL = "/api/health"

PROOF = base64.b64encode(b"receipt-bytes").decode()


@pytest.fixture
def order(client, order_payload):
    r = client.post(ORDERS_URL, order_payload, content_type="application/json")
    assert r.status_code == 201
    return r.json()["data"]


def test_create_cash_payment(client, order):
    r = client.post(PAYMENT_URL, {"order_id": order["id"], "amount": 25000000}, content_type="application/json")
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Payment created successfully"
    assert body["data"]["payment_status"] == "pending"
    assert body["data"]["payment_method"] == "cash"


def test_create_credit_payment_returns_record(client, order, store):
    r = client.post(
        PAYMENT_URL,
        {"order_id": order["id"], "amount": 5000000, "payment_method": "credit"},
        content_type="application/json",
    )
    assert r.status_code == 201
    record = r.json()["data"]
    assert record["order_id"] == order["id"]
    assert record["status"] == "pending"
    assert record["payment_code"].startswith("PAY")
    assert len(store.select_many("payment_records", {"order_id": order["id"]})) == 1


def test_create_payment_missing_amount_400(client, order):
    r = client.post(PAYMENT_URL, {"order_id": order["id"]}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["message"] == "Validation failed: amount is required"


def test_create_payment_unknown_order_404(client):
    r = client.post(PAYMENT_URL, {"order_id": 999, "amount": 10}, content_type="application/json")
    assert r.status_code == 404


def test_get_payment_simple(client, order):
    r = client.get(PAYMENT_URL, {"order_id": order["id"]})
    assert r.status_code == 200
    body = r.json()
    assert body["payment_type"] == "simple"
    assert body["data"]["payment_type"] == "simple"
    assert body["data"]["id"] == order["id"]


def test_get_payment_manual(client, order, store):
    client.post(
        PAYMENT_URL,
        {"order_id": order["id"], "amount": 5000000, "payment_method": "credit"},
        content_type="application/json",
    )
    store.update("orders", {"id": order["id"]}, {"payment_method": "credit"})
    body = client.get(PAYMENT_URL, {"order_id": order["id"]}).json()
    assert body["payment_type"] == "manual"
    assert body["data"]["manual_payment"]["status"] == "pending"


def test_get_payment_requires_order_id(client):
    r = client.get(PAYMENT_URL)
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Validation failed: order_id is required"}


def test_update_payment_status_via_record(client, order):
    record = client.post(
        PAYMENT_URL,
        {"order_id": order["id"], "amount": 5000000, "payment_method": "credit"},
        content_type="application/json",
    ).json()["data"]
    r = client.put(
        PAYMENT_URL,
        {"order_id": order["id"], "status": "paid", "manual_payment_id": record["id"]},
        content_type="application/json",
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Payment updated successfully"
    assert r.json()["data"]["status"] == "paid"
    assert r.json()["data"]["paid_at"]


def test_update_payment_status_invalid_400(client, order):
    r = client.put(PAYMENT_URL, {"order_id": order["id"], "status": "refunded"}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["message"].startswith("Validation failed: status must be one of")


def test_upload_proof(client, order):
    r = client.post(
        UPLOAD_URL,
        {"order_id": str(order["id"]), "filename": "bukti.png", "file": f"data:image/png;base64,{PROOF}"},
        content_type="application/json",
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["order"]["payment_status"] == "pending"
    assert data["order"]["payment_proof"] == data["file_info"]["file_path"]
    assert data["file_info"]["file_size"] == len(b"receipt-bytes")

    served = client.get(data["file_info"]["file_path"])
    assert served.status_code == 200
    assert b"".join(served.streaming_content) == b"receipt-bytes"


def test_upload_empty_payload_500(client, order):
    r = client.post(
        UPLOAD_URL,
        {"order_id": order["id"], "filename": "bukti.png", "file": "data:image/png;base64,"},
        content_type="application/json",
    )
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Upload failed: Failed to decode base64 file data"}


def test_upload_non_numeric_order_400(client):
    r = client.post(UPLOAD_URL, {"order_id": "abc", "filename": "a.png", "file": PROOF}, content_type="application/json")
    assert r.status_code == 400


def test_missing_upload_returns_json_404(client):
    r = client.get("/uploads/payment_1_0.png")
    assert r.status_code == 404
    assert r.json()["success"] is False


def test_health_ok(client):
    r = client.get(HEALTH_URL)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["components"]["store"] == {"ok": True, "backend": "memory"}


def test_health_reports_store_failure(client, monkeypatch):
    from apps.orders import providers
    from apps.orders.domain import StoreError

    def broken(*args, **kwargs):
        raise StoreError("down")

    monkeypatch.setattr(providers.get_store(), "select_many", broken)
    r = client.get(HEALTH_URL)
    assert r.status_code == 503
    assert r.json()["success"] is False


def test_cash_checkout_end_to_end(client, order_payload, store):
    """Create an order, pay cash without naming the method, upload a proof, confirm payment."""
    order_payload.update(total_price=25000000, motorcycle_id=7)
    order = client.post(ORDERS_URL, order_payload, content_type="application/json").json()["data"]
    oid = order["id"]

    r = client.post(PAYMENT_URL, {"order_id": oid, "amount": 5000000}, content_type="application/json")
    assert r.status_code == 201
    after_payment = store.select_one("orders", {"id": oid})
    assert after_payment["payment_status"] == "pending"
    assert after_payment["payment_method"] == "cash"
    assert store.select_many("payment_records") == []

    r = client.post(
        UPLOAD_URL,
        {"order_id": oid, "filename": "transfer.jpg", "file": PROOF},
        content_type="application/json",
    )
    assert r.status_code == 200
    proof_path = r.json()["data"]["file_info"]["file_path"]
    after_upload = store.select_one("orders", {"id": oid})
    assert after_upload["payment_proof"] == proof_path
    assert after_upload["payment_status"] == "pending"
    assert "payment_date" not in after_upload

    r = client.put(PAYMENT_URL, {"order_id": oid, "status": "paid"}, content_type="application/json")
    assert r.status_code == 200
    final = store.select_one("orders", {"id": oid})
    assert final["payment_status"] == "paid"
    assert final["payment_date"] is not None
    assert final["payment_proof"] == proof_path
    assert final["payment_method"] == "cash"

    view = client.get(PAYMENT_URL, {"order_id": oid}).json()
    assert view["payment_type"] == "simple"
    assert view["data"]["payment_status"] == "paid"
