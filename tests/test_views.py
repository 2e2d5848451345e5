import json
from unittest import mock

import pytest
from django.db import DatabaseError

from orders.models import Order
from sales.models import SalesTransaction
from sales.store import LedgerStore

pytestmark = pytest.mark.django_db(databases=["default", "ledger"])


def _put_status(client, order_id, body):
    return client.put(
        f"/orders/{order_id}/status", data=json.dumps(body), content_type="application/json"
    )


def test_create_order_computes_totals(client, order_payload):
    resp = client.post("/orders", data=json.dumps(order_payload()), content_type="application/json")

    assert resp.status_code == 201
    data = resp.json()
    assert data["created"] is True
    assert (data["subtotal"], data["delivery_fee"], data["total_amount"]) == (13000, 2000, 15000)
    assert data["order_status"] == "pending"
    assert data["payment_status"] == "pending"
    assert [i["total_price"] for i in data["items"]] == [10000, 3000]


def test_create_order_twice_returns_existing(client, order_payload):
    client.post("/orders", data=json.dumps(order_payload()), content_type="application/json")

    resp = client.post("/orders", data=json.dumps(order_payload()), content_type="application/json")

    assert resp.status_code == 200
    assert resp.json()["created"] is False
    assert Order.objects.count() == 1


def test_create_order_rejects_bad_lines(client, order_payload):
    payload = order_payload(items=[{"product_id": 1, "product_name": "A", "quantity": 0, "unit_price": 5}])

    resp = client.post("/orders", data=json.dumps(payload), content_type="application/json")

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_create_order_rejects_malformed_json(client):
    resp = client.post("/orders", data="{not json", content_type="application/json")

    assert resp.status_code == 400


def test_get_order(client, make_order):
    make_order("ORD-1001")

    resp = client.get("/orders/ORD-1001")

    assert resp.status_code == 200
    assert resp.json()["id"] == "ORD-1001"
    assert len(resp.json()["items"]) == 2


def test_get_missing_order(client):
    assert client.get("/orders/ORD-404").status_code == 404


def test_update_status_completes_and_mirrors(client, make_order):
    make_order("ORD-1001", order_status="processing", payment_status="paid")

    resp = _put_status(client, "ORD-1001", {"order_status": "completed"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["message"] == "Order status updated successfully"
    assert data["ledger"] == "created"
    assert data["ledger_reference"] == "ORD-1001-POS"

    resp = _put_status(client, "ORD-1001", {"order_status": "completed", "payment_status": "paid"})

    assert resp.status_code == 200
    assert resp.json()["ledger"] == "already_synchronized"
    assert SalesTransaction.objects.count() == 1

    ledger = client.get("/orders/ORD-1001/ledger")
    assert ledger.status_code == 200
    assert ledger.json()["total_amount"] == 15000
    assert [i["quantity"] for i in ledger.json()["items"]] == [2, 1]


def test_update_status_accepts_patch(client, make_order):
    make_order("ORD-1001")

    resp = client.patch(
        "/orders/ORD-1001/status",
        data=json.dumps({"order_status": "shipped"}),
        content_type="application/json",
    )

    assert resp.status_code == 200
    assert resp.json()["ledger"] == "not_eligible"


def test_ledger_missing_before_completion(client, make_order):
    make_order("ORD-1001")

    assert client.get("/orders/ORD-1001/ledger").status_code == 404


@pytest.mark.parametrize("body", [{}, {"payment_status": "paid"}, {"order_status": "completed", "version": "3"}])
def test_update_status_invalid_payload(client, make_order, body):
    make_order("ORD-1001")

    assert _put_status(client, "ORD-1001", body).status_code == 400


def test_update_status_invalid_status_value(client, make_order):
    make_order("ORD-1001")

    resp = _put_status(client, "ORD-1001", {"order_status": "archived"})

    assert resp.status_code == 400
    assert "archived" in resp.json()["message"]


def test_update_status_unknown_order(client):
    resp = _put_status(client, "ORD-404", {"order_status": "completed"})

    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_update_status_version_conflict(client, make_order):
    order = make_order("ORD-1001")

    resp = _put_status(client, "ORD-1001", {"order_status": "shipped", "version": order.version + 1})

    assert resp.status_code == 409


def test_update_status_ledger_failure_is_retryable(client, make_order):
    make_order("ORD-1001", order_status="processing", payment_status="paid")

    with mock.patch.object(LedgerStore, "insert_ledger_transaction", side_effect=DatabaseError("down")):
        resp = _put_status(client, "ORD-1001", {"order_status": "completed"})

    assert resp.status_code == 503
    assert resp.json() == {
        "success": False,
        "message": "Could not record the sale for order ORD-1001; the order was left unchanged",
        "retryable": True,
    }
    assert Order.objects.get(pk="ORD-1001").order_status == "processing"

    assert _put_status(client, "ORD-1001", {"order_status": "completed"}).status_code == 200
    assert SalesTransaction.objects.count() == 1


def test_update_status_rejects_get(client, make_order):
    make_order("ORD-1001")

    assert client.get("/orders/ORD-1001/status").status_code == 405
