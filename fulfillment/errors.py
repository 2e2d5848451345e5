"""
Fulfillment errors.

Every error the synchronizer surfaces carries the HTTP status the view
should answer with and whether the caller may retry the same call.
"""


class FulfillmentError(Exception):
    http_status = 500
    retryable = False

    def __init__(self, message: str, order_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id


class NotFound(FulfillmentError):
    """Se lanza cuando la orden no existe."""

    http_status = 404


class InvalidArgument(FulfillmentError):
    """Status value or payload outside the allowed values."""

    http_status = 400


class VersionConflict(FulfillmentError):
    """The caller's expected version no longer matches the stored order."""

    http_status = 409


class InconsistentOrder(FulfillmentError):
    """Stored order amounts do not add up; mirroring it would drift the ledger."""

    http_status = 422


class FulfillmentPropagationFailed(FulfillmentError):
    """
    The ledger write failed after the order became eligible.
    The order transaction was rolled back, so the call can be repeated as is.
    """

    http_status = 503
    retryable = True


class OrderStoreFailed(FulfillmentError):
    """
    The order store failed. When ledger_committed is True the ledger row
    exists but the order kept its old status until the call is retried.
    """

    http_status = 503
    retryable = True

    def __init__(self, message: str, order_id: str | None = None, ledger_committed: bool = False):
        super().__init__(message, order_id=order_id)
        self.ledger_committed = ledger_committed


class AlreadySynchronized(Exception):
    """Internal: a ledger transaction with the derived label already exists."""

    def __init__(self, reference: str):
        super().__init__(f"ledger transaction {reference} already exists")
        self.reference = reference
