from django.http import JsonResponse, HttpResponseBadRequest, HttpResponseNotFound
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from fulfillment.errors import FulfillmentError, NotFound
from fulfillment.idempotency import derived_ledger_key
from fulfillment.synchronizer import FulfillmentSynchronizer
from sales.store import LedgerStore

from .publisher import publish_order_created
from .store import OrderStore
from .validators import parse_json_body, validate_new_order, BadJSON


def _json(data, status=200):
    return JsonResponse(data, status=status, json_dumps_params={"ensure_ascii": False})


def _error(exc: FulfillmentError):
    payload = {"success": False, "message": exc.message}
    if exc.retryable:
        payload["retryable"] = True
    return _json(payload, exc.http_status)


def _line(item):
    return {
        "product_id": item.product_id,
        "product_name": item.product_name,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "total_price": item.total_price,
    }


def _order_payload(order, items):
    return {
        "id": order.id,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_email": order.customer_email,
        "delivery_address": order.delivery_address,
        "delivery_notes": order.delivery_notes,
        "notes": order.notes,
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "total_amount": order.total_amount,
        "payment_method": order.payment_method,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
        "version": order.version,
        "items": [_line(i) for i in items],
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat(),
    }


@require_GET
def get_order(request, order_id: str):
    store = OrderStore()
    try:
        o = store.get_order(order_id)
    except NotFound:
        return HttpResponseNotFound("order not found")
    return _json(_order_payload(o, store.list_order_items(o.id)))


@require_POST
def create_order(request):
    try:
        data = validate_new_order(parse_json_body(request))
    except BadJSON:
        return HttpResponseBadRequest("invalid payload")
    except FulfillmentError as e:
        return _error(e)

    store = OrderStore()
    obj, created = store.create_order(data)
    if created:
        publish_order_created(obj.id, obj.order_status)
    body = _order_payload(obj, store.list_order_items(obj.id))
    body["created"] = created
    return _json(body, 201 if created else 200)


@require_http_methods(["PUT", "PATCH"])
def update_status(request, order_id: str):
    """
    Ruta crítica:
    - Bloquea la orden (SELECT ... FOR UPDATE) y escribe el nuevo estado.
    - Si queda completed + paid, registra la venta POS en la base del ledger
      antes de confirmar la orden; un reintento nunca duplica la venta.
    - Control optimista opcional por 'version'.
    - Códigos: 200 OK, 400 payload inválido, 404 no existe, 409 conflicto de
      versión, 503 fallo de propagación (reintentar).
    """
    try:
        body = parse_json_body(request)
        order_status = body["order_status"]
        payment_status = body.get("payment_status")
        expected = body.get("version")  # int opcional para control optimista
        meta = body.get("meta", {})
    except (BadJSON, KeyError):
        return HttpResponseBadRequest("invalid payload")
    if expected is not None and (isinstance(expected, bool) or not isinstance(expected, int)):
        return HttpResponseBadRequest("invalid payload")

    try:
        result = FulfillmentSynchronizer().synchronize(
            order_id,
            order_status,
            payment_status,
            expected_version=expected,
            meta=meta,
        )
    except FulfillmentError as e:
        return _error(e)
    return _json(result.as_dict())


@require_GET
def get_order_ledger(request, order_id: str):
    sale = LedgerStore().get_by_reference(derived_ledger_key(order_id))
    if sale is None:
        return HttpResponseNotFound("ledger transaction not found")
    return _json(
        {
            "id": sale.id,
            "transaction_number": sale.transaction_number,
            "customer_name": sale.customer_name,
            "customer_phone": sale.customer_phone,
            "total_amount": sale.total_amount,
            "payment_method": sale.payment_method,
            "status": sale.status,
            "notes": sale.notes,
            "items": [_line(i) for i in sale.items.all()],
            "created_at": sale.created_at.isoformat(),
        }
    )
