import pytest
from django.db import IntegrityError

from fulfillment import idempotency
from fulfillment.errors import AlreadySynchronized
from sales.models import SalesTransaction


def test_derived_key_is_deterministic_and_reversible():
    key = idempotency.derived_ledger_key("ORD-1001")

    assert key == "ORD-1001-POS"
    assert idempotency.derived_ledger_key("ORD-1001") == key
    assert idempotency.order_id_from_ledger_key(key) == "ORD-1001"


def test_derived_key_keeps_suffix_inside_order_id():
    key = idempotency.derived_ledger_key("ORD-POS")

    assert idempotency.order_id_from_ledger_key(key) == "ORD-POS"


def test_empty_order_id_is_rejected():
    with pytest.raises(ValueError):
        idempotency.derived_ledger_key("")


@pytest.mark.parametrize("label", ["TXN-1700000000", "-POS", "ORD-1-pos"])
def test_foreign_labels_are_not_derived_keys(label):
    assert not idempotency.is_derived_ledger_key(label)
    with pytest.raises(ValueError):
        idempotency.order_id_from_ledger_key(label)


@pytest.mark.django_db(databases=["ledger"])
def test_exists_looks_up_the_ledger():
    assert not idempotency.exists("ORD-1-POS")

    SalesTransaction.objects.create(transaction_number="ORD-1-POS", total_amount=10, payment_method="cash")

    assert idempotency.exists("ORD-1-POS")
    assert not idempotency.exists("ORD-2-POS")


@pytest.mark.django_db(databases=["ledger"])
def test_integrity_error_on_existing_label_means_already_synchronized():
    SalesTransaction.objects.create(transaction_number="ORD-1-POS", total_amount=10, payment_method="cash")

    with pytest.raises(AlreadySynchronized) as excinfo:
        idempotency.handle_integrity_error("ORD-1-POS", IntegrityError("duplicate key"))

    assert excinfo.value.reference == "ORD-1-POS"


@pytest.mark.django_db(databases=["ledger"])
def test_other_integrity_errors_propagate():
    exc = IntegrityError("NOT NULL constraint failed")

    with pytest.raises(IntegrityError) as excinfo:
        idempotency.handle_integrity_error("ORD-1-POS", exc)

    assert excinfo.value is exc
