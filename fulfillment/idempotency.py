"""
Idempotency guard for mirrored sales.

The ledger transaction number is derived from the order id, so "was this
order already mirrored" is one indexed lookup in the ledger database.

Enforcement at TWO levels:
  A) Application level: exists() before inserting
  B) Database level: unique constraint on transaction_number; the
     IntegrityError raised for a concurrent insert means "already mirrored"
"""

from django.db import IntegrityError

from config.routers import LEDGER_DB
from fulfillment.errors import AlreadySynchronized
from sales.models import SalesTransaction

LEDGER_KEY_SUFFIX = "-POS"


def derived_ledger_key(order_id: str) -> str:
    """Transaction number of the sale mirrored from ``order_id``."""
    if not order_id:
        raise ValueError("order_id must be a non-empty string")
    return f"{order_id}{LEDGER_KEY_SUFFIX}"


def order_id_from_ledger_key(key: str) -> str:
    """Inverse of derived_ledger_key. ValueError for labels it did not produce."""
    if not key.endswith(LEDGER_KEY_SUFFIX) or len(key) == len(LEDGER_KEY_SUFFIX):
        raise ValueError(f"{key!r} is not a derived ledger key")
    return key[: -len(LEDGER_KEY_SUFFIX)]


def is_derived_ledger_key(key: str) -> bool:
    try:
        order_id_from_ledger_key(key)
    except ValueError:
        return False
    return True


def exists(key: str, using: str = LEDGER_DB) -> bool:
    """
    Application-level check. Read-only.

    A False answer is only a hint: two callers may both see False, the
    unique constraint decides which insert wins.
    """
    return SalesTransaction.objects.using(using).filter(transaction_number=key).exists()


def handle_integrity_error(key: str, exc: IntegrityError, using: str = LEDGER_DB) -> None:
    """
    Database-level fallback for the insert race.

    Raises AlreadySynchronized when the violated constraint is the derived
    label (the row is there now); re-raises any other integrity error.
    """
    if exists(key, using=using):
        raise AlreadySynchronized(key) from exc
    raise exc
