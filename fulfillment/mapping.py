from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from fulfillment.errors import InconsistentOrder
from fulfillment.idempotency import derived_ledger_key
from sales.models import SalesTransaction


@dataclass(frozen=True)
class LedgerLineDraft:
    product_id: int
    product_name: str
    quantity: int
    unit_price: int
    total_price: int


@dataclass(frozen=True)
class LedgerDraft:
    transaction_number: str
    customer_name: str
    customer_phone: str
    total_amount: int
    payment_method: str
    status: str
    notes: str
    items: List[LedgerLineDraft] = field(default_factory=list)

    @property
    def items_total(self) -> int:
        return sum(item.total_price for item in self.items)


def provenance_note(order_id: str) -> str:
    return f"Auto-generated from catalog order {order_id}"


def build_ledger_draft(order, items: Iterable) -> LedgerDraft:
    """
    Mirror an order and its lines into a ledger draft.

    Amounts are copied as stored, never recomputed from prices, so the sale
    carries exactly what the customer was charged. Raises InconsistentOrder
    when the stored amounts do not add up.
    """
    lines = []
    for item in items:
        if item.quantity <= 0:
            raise InconsistentOrder(
                f"Order {order.pk} has a line with quantity {item.quantity}", order_id=order.pk
            )
        if item.quantity * item.unit_price != item.total_price:
            raise InconsistentOrder(
                f"Order {order.pk} line {item.product_name!r} total {item.total_price} "
                f"!= {item.quantity} x {item.unit_price}",
                order_id=order.pk,
            )
        lines.append(
            LedgerLineDraft(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
        )

    lines_total = sum(line.total_price for line in lines)
    if lines_total != order.subtotal:
        raise InconsistentOrder(
            f"Order {order.pk} lines sum to {lines_total}, subtotal is {order.subtotal}",
            order_id=order.pk,
        )
    if order.subtotal + order.delivery_fee != order.total_amount:
        raise InconsistentOrder(
            f"Order {order.pk} subtotal {order.subtotal} + delivery fee {order.delivery_fee} "
            f"!= total {order.total_amount}",
            order_id=order.pk,
        )

    return LedgerDraft(
        transaction_number=derived_ledger_key(order.pk),
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        total_amount=order.total_amount,
        payment_method=order.payment_method,
        status=SalesTransaction.COMPLETED,
        notes=provenance_note(order.pk),
        items=lines,
    )
