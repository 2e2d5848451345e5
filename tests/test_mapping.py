import pytest

from fulfillment.errors import InconsistentOrder
from fulfillment.mapping import build_ledger_draft
from orders.models import Order, OrderItem


def _order(**overrides):
    fields = dict(
        id="ORD-1001",
        customer_name="Ana Pérez",
        customer_phone="555-0101",
        delivery_address="Calle 1",
        payment_method="cash",
        subtotal=13000,
        delivery_fee=2000,
        total_amount=15000,
    )
    fields.update(overrides)
    return Order(**fields)


def _items():
    return [
        OrderItem(product_id=1, product_name="Item A", quantity=2, unit_price=5000, total_price=10000),
        OrderItem(product_id=2, product_name="Item B", quantity=1, unit_price=3000, total_price=3000),
    ]


def test_draft_mirrors_order():
    draft = build_ledger_draft(_order(), _items())

    assert draft.transaction_number == "ORD-1001-POS"
    assert draft.total_amount == 15000
    assert draft.items_total == 13000
    assert draft.status == "completed"
    assert draft.payment_method == "cash"
    assert draft.customer_phone == "555-0101"
    assert draft.notes == "Auto-generated from catalog order ORD-1001"
    assert [(i.product_id, i.quantity, i.unit_price) for i in draft.items] == [(1, 2, 5000), (2, 1, 3000)]


def test_line_total_must_match_quantity_times_price():
    items = _items()
    items[0].total_price = 9999

    with pytest.raises(InconsistentOrder):
        build_ledger_draft(_order(), items)


def test_lines_must_add_up_to_subtotal():
    with pytest.raises(InconsistentOrder):
        build_ledger_draft(_order(subtotal=12000, total_amount=14000), _items())


def test_subtotal_plus_fee_must_equal_total():
    with pytest.raises(InconsistentOrder):
        build_ledger_draft(_order(total_amount=15001), _items())


def test_zero_quantity_line_is_rejected():
    items = _items() + [OrderItem(product_id=3, product_name="Gift", quantity=0, unit_price=0, total_price=0)]

    with pytest.raises(InconsistentOrder):
        build_ledger_draft(_order(), items)
