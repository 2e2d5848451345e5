"""
Fulfillment synchronizer.

Applies a status change to a catalog order and, when the order becomes
completed + paid, mirrors it as a POS sales transaction in the ledger
database. The two databases commit separately (a saga, not two-phase
commit):

  1. lock the order row (order transaction stays open)
  2. write the new status
  3. if eligible and not yet mirrored: insert + COMMIT the ledger sale
  4. COMMIT the order

Ledger failure in 3 rolls the order back and the call can be retried.
A failure of the order commit in 4 after the ledger committed leaves a
sale for an order still showing its old status; retrying the call finds
the sale through the derived transaction number and only re-applies the
status.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from django.db import DatabaseError

from fulfillment import idempotency
from fulfillment.errors import (
    AlreadySynchronized,
    FulfillmentPropagationFailed,
    InvalidArgument,
    OrderStoreFailed,
)
from fulfillment.mapping import build_ledger_draft
from orders import publisher as default_publisher
from orders.models import OrderStatus, PaymentStatus
from orders.store import OrderStore
from sales.store import LedgerStore

logger = logging.getLogger(__name__)


class LedgerOutcome(str, enum.Enum):
    NOT_ELIGIBLE = "not_eligible"
    CREATED = "created"
    ALREADY_SYNCHRONIZED = "already_synchronized"


@dataclass(frozen=True)
class SyncResult:
    success: bool
    message: str
    order_id: str
    order_status: str
    payment_status: str
    version: int
    outcome: LedgerOutcome
    ledger_reference: str | None = None

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "id": self.order_id,
            "order_status": self.order_status,
            "payment_status": self.payment_status,
            "version": self.version,
            "ledger": self.outcome.value,
            "ledger_reference": self.ledger_reference,
        }


def is_fulfillment_due(order_status: str, payment_status: str) -> bool:
    return order_status == OrderStatus.COMPLETED and payment_status == PaymentStatus.PAID


def validate_statuses(order_status, payment_status=None) -> None:
    if order_status not in OrderStatus.values:
        raise InvalidArgument(
            f"Invalid order status {order_status!r}; expected one of {', '.join(OrderStatus.values)}"
        )
    if payment_status is not None and payment_status not in PaymentStatus.values:
        raise InvalidArgument(
            f"Invalid payment status {payment_status!r}; expected one of {', '.join(PaymentStatus.values)}"
        )


class FulfillmentSynchronizer:
    def __init__(self, orders: OrderStore | None = None, ledger: LedgerStore | None = None, publisher=None):
        self.orders = orders or OrderStore()
        self.ledger = ledger or LedgerStore()
        self.publisher = publisher or default_publisher

    def synchronize(
        self,
        order_id: str,
        order_status: str,
        payment_status: str | None = None,
        *,
        expected_version: int | None = None,
        meta: dict | None = None,
    ) -> SyncResult:
        validate_statuses(order_status, payment_status)

        ledger_committed = False
        outcome = LedgerOutcome.NOT_ELIGIBLE
        reference = None
        try:
            with self.orders.begin():
                order = self.orders.get_order_for_update(order_id, expected_version)
                previous_status = order.order_status
                effective_payment = payment_status or order.payment_status

                self.orders.update_order_status(order, order_status, effective_payment)

                if is_fulfillment_due(order.order_status, order.payment_status):
                    outcome, reference, ledger_committed = self._propagate(order)
                elif previous_status == OrderStatus.COMPLETED:
                    self._warn_if_mirrored(order)
        except DatabaseError as exc:
            if ledger_committed:
                logger.error(
                    "Order %s: ledger sale %s committed but order commit failed; "
                    "order keeps its previous status until retried",
                    order_id,
                    reference,
                    exc_info=True,
                )
            raise OrderStoreFailed(
                f"Order store failed while updating {order_id}",
                order_id=order_id,
                ledger_committed=ledger_committed,
            ) from exc

        logger.info(
            "Order %s -> %s/%s (v%s), ledger %s",
            order.pk,
            order.order_status,
            order.payment_status,
            order.version,
            outcome.value,
        )

        # Publicar eventos fuera de la transacción
        self.publisher.publish_order_status_updated(
            order.pk, order.order_status, order.payment_status, order.version, meta=meta
        )
        if outcome is LedgerOutcome.CREATED:
            self.publisher.publish_ledger_transaction_created(order.pk, reference, order.total_amount)

        return SyncResult(
            success=True,
            message="Order status updated successfully",
            order_id=order.pk,
            order_status=order.order_status,
            payment_status=order.payment_status,
            version=order.version,
            outcome=outcome,
            ledger_reference=reference if outcome is not LedgerOutcome.NOT_ELIGIBLE else None,
        )

    def _propagate(self, order) -> tuple[LedgerOutcome, str, bool]:
        """
        Mirror the locked order into the ledger. Returns (outcome, reference,
        ledger_committed). Must run inside the order transaction.
        """
        reference = idempotency.derived_ledger_key(order.pk)
        try:
            if self.ledger.exists(reference):
                return LedgerOutcome.ALREADY_SYNCHRONIZED, reference, False

            draft = build_ledger_draft(order, self.orders.list_order_items(order.pk))
            with self.ledger.begin():
                sale = self.ledger.insert_ledger_transaction(draft)
                self.ledger.insert_ledger_items(sale, draft.items)
        except AlreadySynchronized:
            logger.info("Order %s: ledger sale %s inserted concurrently", order.pk, reference)
            return LedgerOutcome.ALREADY_SYNCHRONIZED, reference, False
        except DatabaseError as exc:
            logger.warning("Order %s: ledger write failed, order rolled back: %s", order.pk, exc)
            raise FulfillmentPropagationFailed(
                f"Could not record the sale for order {order.pk}; the order was left unchanged",
                order_id=order.pk,
            ) from exc

        logger.info("Order %s mirrored as ledger sale %s (%s)", order.pk, reference, draft.total_amount)
        return LedgerOutcome.CREATED, reference, True

    def _warn_if_mirrored(self, order) -> None:
        reference = idempotency.derived_ledger_key(order.pk)
        try:
            mirrored = self.ledger.exists(reference)
        except DatabaseError:
            logger.warning("Order %s: could not check ledger sale %s", order.pk, reference, exc_info=True)
            return
        if mirrored:
            logger.warning(
                "Order %s left completed/paid as %s/%s; ledger sale %s stays as recorded",
                order.pk,
                order.order_status,
                order.payment_status,
                reference,
            )


def synchronize(order_id, order_status, payment_status=None, **kwargs) -> SyncResult:
    return FulfillmentSynchronizer().synchronize(order_id, order_status, payment_status, **kwargs)
