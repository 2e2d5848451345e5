import json

from fulfillment.errors import InvalidArgument


class BadJSON(Exception):
    """Se lanza cuando el cuerpo no es JSON válido."""
    pass


def parse_json_body(request):
    """
    Intenta decodificar el body del request como JSON y retorna un dict.
    Lanza BadJSON si falla o si no es un objeto.
    """
    try:
        body = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(body or "{}")
    except (UnicodeDecodeError, ValueError) as e:
        raise BadJSON(f"JSON inválido: {e}")
    if not isinstance(data, dict):
        raise BadJSON("JSON body must be an object")
    return data


def _non_negative_int(value, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument(f"{field} must be a non-negative integer")
    return value


def _required_text(body: dict, field: str, max_length: int) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{field} is required")
    if len(value) > max_length:
        raise InvalidArgument(f"{field} is longer than {max_length} characters")
    return value.strip()


def _optional_text(body: dict, field: str) -> str:
    value = body.get(field) or ""
    if not isinstance(value, str):
        raise InvalidArgument(f"{field} must be a string")
    return value


def validate_new_order(body: dict) -> dict:
    """
    Validate a create-order payload. Amounts are integers in minor currency
    units; the delivery fee arrives already computed.
    """
    items = body.get("items")
    if not isinstance(items, list) or not items:
        raise InvalidArgument("items must be a non-empty list")

    lines = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidArgument(f"items[{idx}] must be an object")
        quantity = _non_negative_int(item.get("quantity"), f"items[{idx}].quantity")
        if quantity == 0:
            raise InvalidArgument(f"items[{idx}].quantity must be greater than zero")
        lines.append(
            {
                "product_id": _non_negative_int(item.get("product_id"), f"items[{idx}].product_id"),
                "product_name": _required_text(item, "product_name", 200),
                "quantity": quantity,
                "unit_price": _non_negative_int(item.get("unit_price"), f"items[{idx}].unit_price"),
            }
        )

    return {
        "id": _required_text(body, "id", 64),
        "customer_name": _required_text(body, "customer_name", 200),
        "customer_phone": _required_text(body, "customer_phone", 32),
        "customer_email": _optional_text(body, "customer_email"),
        "delivery_address": _required_text(body, "delivery_address", 10_000),
        "delivery_notes": _optional_text(body, "delivery_notes"),
        "notes": _optional_text(body, "notes"),
        "payment_method": _required_text(body, "payment_method", 64),
        "delivery_fee": _non_negative_int(body.get("delivery_fee", 0), "delivery_fee"),
        "items": lines,
    }
