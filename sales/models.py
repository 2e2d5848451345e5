from django.db import models


class SalesTransaction(models.Model):
    """
    POS sale. Lives in the ledger database.

    transaction_number is unique; for sales mirrored from a catalog order it
    is derived from the order id (see fulfillment.idempotency) and is the only
    link back to the order.
    """

    COMPLETED = "completed"

    transaction_number = models.CharField(max_length=100, unique=True)
    customer_name = models.CharField(max_length=200, blank=True, default="")
    customer_phone = models.CharField(max_length=32, blank=True, default="")
    total_amount = models.PositiveBigIntegerField()
    payment_method = models.CharField(max_length=64)
    status = models.CharField(max_length=16, default=COMPLETED)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "sales_transactions"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.transaction_number}:{self.total_amount}"


class SalesItem(models.Model):
    transaction = models.ForeignKey(
        SalesTransaction, on_delete=models.CASCADE, related_name="items"
    )
    product_id = models.PositiveIntegerField()
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    unit_price = models.PositiveBigIntegerField()
    total_price = models.PositiveBigIntegerField()

    class Meta:
        db_table = "sales_items"
        ordering = ["id"]

    def __str__(self):
        return f"{self.transaction_id}:{self.product_name}x{self.quantity}"
