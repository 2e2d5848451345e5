"""
Reconciliation between the order store and the ledger.

Three kinds of drift are looked for:

* unmirrored: a completed + paid order without a ledger sale.
* uncommitted: a ledger sale committed but the order commit that went
  with it did not. The order still carries a status and an ``updated_at``
  from before the sale was written.
* stranded: a sale whose order moved away from completed + paid after it
  was mirrored, or no longer exists.

Unmirrored and uncommitted orders are re-affirmed as completed + paid
through the synchronizer, which is idempotent. Stranded sales are only
reported. Ledger sales are never modified here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Tuple

from fulfillment.errors import FulfillmentError
from fulfillment.idempotency import derived_ledger_key, is_derived_ledger_key, order_id_from_ledger_key
from fulfillment.synchronizer import FulfillmentSynchronizer, LedgerOutcome
from orders.models import Order, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

BATCH_SIZE = 500


@dataclass
class ReconcileReport:
    unmirrored: List[str] = field(default_factory=list)
    uncommitted: List[str] = field(default_factory=list)
    mirrored: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    stranded: List[str] = field(default_factory=list)


def _chunks(values: Iterable[str], size: int) -> Iterator[List[str]]:
    chunk: List[str] = []
    for value in values:
        chunk.append(value)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def find_unmirrored_orders(synchronizer: FulfillmentSynchronizer) -> List[str]:
    """Ids of completed + paid orders without a ledger sale."""
    completed = (
        Order.objects.using(synchronizer.orders.alias)
        .filter(order_status=OrderStatus.COMPLETED, payment_status=PaymentStatus.PAID)
        .order_by("created_at")
        .values_list("id", flat=True)
        .iterator(chunk_size=BATCH_SIZE)
    )
    missing = []
    for order_ids in _chunks(completed, BATCH_SIZE):
        recorded = synchronizer.ledger.existing_references(
            derived_ledger_key(order_id) for order_id in order_ids
        )
        missing.extend(order_id for order_id in order_ids if derived_ledger_key(order_id) not in recorded)
    return missing


def classify_mirrored_sales(synchronizer: FulfillmentSynchronizer) -> Tuple[List[str], List[str]]:
    """
    Split sales whose order is not completed + paid into (uncommitted order
    ids, stranded references).

    An order last written before its sale was created never saw its own
    completed + paid commit. An order written after the sale moved on
    deliberately.
    """
    uncommitted: List[str] = []
    stranded: List[str] = []
    for batch in synchronizer.ledger.mirrored_sales(batch_size=BATCH_SIZE):
        created_by_order = {
            order_id_from_ledger_key(ref): (ref, created_at)
            for ref, created_at in batch
            if is_derived_ledger_key(ref)
        }
        orders = {
            order.id: order
            for order in Order.objects.using(synchronizer.orders.alias)
            .filter(id__in=list(created_by_order))
            .only("id", "order_status", "payment_status", "updated_at")
        }
        for order_id, (ref, sale_created_at) in created_by_order.items():
            order = orders.get(order_id)
            if order is None:
                stranded.append(ref)
                continue
            if order.order_status == OrderStatus.COMPLETED and order.payment_status == PaymentStatus.PAID:
                continue
            if order.updated_at < sale_created_at:
                uncommitted.append(order_id)
            else:
                stranded.append(ref)
    return sorted(uncommitted), sorted(stranded)


def find_uncommitted_orders(synchronizer: FulfillmentSynchronizer) -> List[str]:
    """Ids of orders whose ledger sale committed while the order commit failed."""
    return classify_mirrored_sales(synchronizer)[0]


def find_stranded_ledger_entries(synchronizer: FulfillmentSynchronizer) -> List[str]:
    """
    Ledger references mirrored from an order that is no longer completed +
    paid, or no longer exists. Reported only; the sale stays as recorded.
    """
    return classify_mirrored_sales(synchronizer)[1]


def reconcile(synchronizer: FulfillmentSynchronizer | None = None, dry_run: bool = False) -> ReconcileReport:
    synchronizer = synchronizer or FulfillmentSynchronizer()
    report = ReconcileReport()
    report.unmirrored = find_unmirrored_orders(synchronizer)
    report.uncommitted, report.stranded = classify_mirrored_sales(synchronizer)

    for order_id in report.uncommitted:
        logger.warning(
            "Ledger sale %s exists but order %s never committed as completed + paid",
            derived_ledger_key(order_id),
            order_id,
        )
    for ref in report.stranded:
        logger.warning("Ledger sale %s no longer matches a completed + paid order", ref)

    if dry_run:
        return report

    for order_id in report.unmirrored + report.uncommitted:
        try:
            result = synchronizer.synchronize(
                order_id,
                OrderStatus.COMPLETED,
                PaymentStatus.PAID,
                meta={"source": "reconcile"},
            )
        except FulfillmentError as e:
            logger.warning("Reconcile of order %s failed: %s", order_id, e.message)
            report.failed.append(order_id)
            continue
        if result.outcome is not LedgerOutcome.NOT_ELIGIBLE:
            report.mirrored.append(order_id)
    return report
