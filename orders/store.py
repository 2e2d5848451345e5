"""
Order Store adapter.

Every method runs against one database alias; callers that need the row
lock wrap the calls in ``begin()``.
"""

from __future__ import annotations

from django.db import models, transaction
from django.utils import timezone

from config.routers import ORDERS_DB
from fulfillment.errors import NotFound, VersionConflict
from orders.models import Order, OrderItem


class OrderStore:
    def __init__(self, alias: str = ORDERS_DB):
        self.alias = alias

    def begin(self):
        return transaction.atomic(using=self.alias)

    def get_order(self, order_id: str) -> Order:
        try:
            return Order.objects.using(self.alias).get(pk=order_id)
        except Order.DoesNotExist:
            raise NotFound(f"Order {order_id} not found", order_id=order_id)

    def get_order_for_update(self, order_id: str, expected_version: int | None = None) -> Order:
        """
        SELECT ... FOR UPDATE on the order row. The lock is held until the
        enclosing begin() block commits or rolls back.
        """
        q = Order.objects.using(self.alias).select_for_update().filter(pk=order_id)
        if expected_version is not None:
            q = q.filter(version=expected_version)
        row = q.first()

        if row is None:
            # Distinguir entre no existe vs. conflicto de versión
            exists = Order.objects.using(self.alias).filter(pk=order_id).exists()
            if exists and expected_version is not None:
                raise VersionConflict(
                    f"Order {order_id} is not at version {expected_version}", order_id=order_id
                )
            raise NotFound(f"Order {order_id} not found", order_id=order_id)
        return row

    def update_order_status(self, order: Order, order_status: str, payment_status: str) -> Order:
        Order.objects.using(self.alias).filter(pk=order.pk).update(
            order_status=order_status,
            payment_status=payment_status,
            version=models.F("version") + 1,
            updated_at=timezone.now(),
        )
        order.refresh_from_db(
            using=self.alias,
            fields=["order_status", "payment_status", "version", "updated_at"],
        )
        return order

    def list_order_items(self, order_id: str) -> list[OrderItem]:
        return list(OrderItem.objects.using(self.alias).filter(order_id=order_id).order_by("id"))

    def create_order(self, data: dict) -> tuple[Order, bool]:
        """
        Create an order and its lines from validated data.

        Returns (order, created); an existing order with the same id is
        returned untouched.
        """
        lines = [
            {**item, "total_price": item["quantity"] * item["unit_price"]}
            for item in data["items"]
        ]
        subtotal = sum(line["total_price"] for line in lines)
        delivery_fee = data.get("delivery_fee", 0)

        with self.begin():
            order, created = Order.objects.using(self.alias).get_or_create(
                id=data["id"],
                defaults={
                    "customer_name": data["customer_name"],
                    "customer_phone": data["customer_phone"],
                    "customer_email": data.get("customer_email", ""),
                    "delivery_address": data["delivery_address"],
                    "delivery_notes": data.get("delivery_notes", ""),
                    "notes": data.get("notes", ""),
                    "payment_method": data["payment_method"],
                    "subtotal": subtotal,
                    "delivery_fee": delivery_fee,
                    "total_amount": subtotal + delivery_fee,
                },
            )
            if created:
                OrderItem.objects.using(self.alias).bulk_create(
                    [OrderItem(order=order, **line) for line in lines]
                )
        return order, created
