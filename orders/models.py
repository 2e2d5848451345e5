from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Order(models.Model):
    """Catalog order. Amounts are integers in minor currency units."""

    id = models.CharField(primary_key=True, max_length=64)

    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=32)
    customer_email = models.CharField(max_length=254, blank=True, default="")
    delivery_address = models.TextField()
    delivery_notes = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    subtotal = models.PositiveBigIntegerField(default=0)
    delivery_fee = models.PositiveBigIntegerField(default=0)
    total_amount = models.PositiveBigIntegerField(default=0)
    payment_method = models.CharField(max_length=64)

    order_status = models.CharField(
        max_length=16, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    version = models.IntegerField(default=0)  # control optimista

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_orders"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.id}:{self.order_status}/{self.payment_status}:{self.version}"


class OrderItem(models.Model):
    """Line of an order; written once at order creation."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product_id = models.PositiveIntegerField()
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    unit_price = models.PositiveBigIntegerField()
    total_price = models.PositiveBigIntegerField()

    class Meta:
        db_table = "catalog_order_items"
        ordering = ["id"]

    def __str__(self):
        return f"{self.order_id}:{self.product_name}x{self.quantity}"
