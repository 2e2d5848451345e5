from types import SimpleNamespace

import pytest

from fulfillment.errors import InvalidArgument
from orders.validators import BadJSON, parse_json_body, validate_new_order


def _request(body: bytes):
    return SimpleNamespace(body=body)


def test_parse_json_body():
    assert parse_json_body(_request(b'{"order_status": "completed"}')) == {"order_status": "completed"}
    assert parse_json_body(_request(b"")) == {}


@pytest.mark.parametrize("body", [b"{nope", b"[1, 2]", b"\xff\xfe"])
def test_parse_json_body_rejects(body):
    with pytest.raises(BadJSON):
        parse_json_body(_request(body))


def test_validate_new_order_normalizes(order_payload):
    data = validate_new_order(order_payload(customer_name="  Ana  ", delivery_notes=None))

    assert data["customer_name"] == "Ana"
    assert data["delivery_notes"] == ""
    assert data["delivery_fee"] == 2000
    assert data["items"][0] == {"product_id": 1, "product_name": "Item A", "quantity": 2, "unit_price": 5000}


def test_delivery_fee_defaults_to_zero(order_payload):
    payload = order_payload()
    del payload["delivery_fee"]

    assert validate_new_order(payload)["delivery_fee"] == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"id": ""},
        {"id": "X" * 65},
        {"customer_name": None},
        {"payment_method": 3},
        {"delivery_fee": -1},
        {"delivery_fee": 12.5},
        {"delivery_fee": True},
        {"items": []},
        {"items": "A"},
        {"items": [{"product_id": 1, "product_name": "A", "quantity": -2, "unit_price": 5}]},
        {"items": [{"product_id": 1, "product_name": "A", "quantity": 1, "unit_price": "5"}]},
        {"items": [{"product_id": 1, "product_name": "", "quantity": 1, "unit_price": 5}]},
        {"items": [7]},
    ],
)
def test_validate_new_order_rejects(order_payload, overrides):
    with pytest.raises(InvalidArgument):
        validate_new_order(order_payload(**overrides))
