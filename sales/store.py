"""Ledger Store adapter. Insert-only from the fulfillment side."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Iterator

from django.db import IntegrityError, transaction

from config.routers import LEDGER_DB
from fulfillment import idempotency
from sales.models import SalesItem, SalesTransaction


class LedgerStore:
    def __init__(self, alias: str = LEDGER_DB):
        self.alias = alias

    def begin(self):
        return transaction.atomic(using=self.alias)

    def exists(self, reference: str) -> bool:
        return idempotency.exists(reference, using=self.alias)

    def get_by_reference(self, reference: str) -> SalesTransaction | None:
        return (
            SalesTransaction.objects.using(self.alias)
            .prefetch_related("items")
            .filter(transaction_number=reference)
            .first()
        )

    def existing_references(self, references: Iterable[str]) -> set[str]:
        """Subset of ``references`` already recorded in the ledger."""
        return set(
            SalesTransaction.objects.using(self.alias)
            .filter(transaction_number__in=list(references))
            .values_list("transaction_number", flat=True)
        )

    def mirrored_sales(self, batch_size: int = 500) -> Iterator[list[tuple[str, datetime]]]:
        """
        (transaction_number, created_at) of sales mirrored from orders, in
        batches, so the ledger is never loaded whole.
        """
        rows = (
            SalesTransaction.objects.using(self.alias)
            .filter(transaction_number__endswith=idempotency.LEDGER_KEY_SUFFIX)
            .order_by("id")
            .values_list("transaction_number", "created_at")
            .iterator(chunk_size=batch_size)
        )
        batch = []
        for row in rows:
            batch.append(row)
            if len(batch) >= batch_size:
                yield batch
                batch = []
        if batch:
            yield batch

    def insert_ledger_transaction(self, draft) -> SalesTransaction:
        """
        Insert the transaction row. Raises AlreadySynchronized when another
        caller inserted the same transaction number first.
        """
        try:
            # Savepoint: a failed INSERT must not poison the enclosing transaction.
            with transaction.atomic(using=self.alias):
                return SalesTransaction.objects.using(self.alias).create(
                    transaction_number=draft.transaction_number,
                    customer_name=draft.customer_name,
                    customer_phone=draft.customer_phone,
                    total_amount=draft.total_amount,
                    payment_method=draft.payment_method,
                    status=draft.status,
                    notes=draft.notes,
                )
        except IntegrityError as exc:
            idempotency.handle_integrity_error(draft.transaction_number, exc, using=self.alias)

    def insert_ledger_items(self, ledger_transaction: SalesTransaction, items: Iterable) -> list[SalesItem]:
        return SalesItem.objects.using(self.alias).bulk_create(
            [
                SalesItem(
                    transaction=ledger_transaction,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in items
            ]
        )
