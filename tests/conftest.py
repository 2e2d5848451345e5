"""
Pytest fixtures for the fulfillment synchronizer.

Orders live in the "default" database and sales in "ledger"; tests that
touch both must request both databases.
"""

from unittest import mock

import pytest


def build_order_payload(order_id="ORD-1001", **overrides):
    """2 x Item A @ 5,000 + 1 x Item B @ 3,000, delivery fee 2,000 -> total 15,000."""
    payload = {
        "id": order_id,
        "customer_name": "Ana Pérez",
        "customer_phone": "555-0101",
        "customer_email": "ana@example.com",
        "delivery_address": "Calle 1 # 2-3",
        "delivery_notes": "",
        "notes": "",
        "payment_method": "transfer",
        "delivery_fee": 2000,
        "items": [
            {"product_id": 1, "product_name": "Item A", "quantity": 2, "unit_price": 5000},
            {"product_id": 2, "product_name": "Item B", "quantity": 1, "unit_price": 3000},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def order_payload():
    return build_order_payload


@pytest.fixture
def make_order():
    """Create an order, then force its statuses without going through the synchronizer."""
    from orders.models import Order
    from orders.store import OrderStore

    def _make(order_id="ORD-1001", order_status="processing", payment_status="paid", **overrides):
        order, _ = OrderStore().create_order(build_order_payload(order_id, **overrides))
        Order.objects.filter(pk=order.pk).update(order_status=order_status, payment_status=payment_status)
        order.refresh_from_db()
        return order

    return _make


@pytest.fixture
def publisher():
    return mock.Mock(name="publisher")


@pytest.fixture
def synchronizer(publisher):
    from fulfillment.synchronizer import FulfillmentSynchronizer

    return FulfillmentSynchronizer(publisher=publisher)
