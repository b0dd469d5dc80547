"""Error taxonomy for the order fulfillment core.

Each error carries a stable ``code`` (returned to clients as ``detail``),
the HTTP status the views answer with and whether the same request may
succeed when sent again (``retryable``). The human-readable message is kept
intact all the way to the response body.
"""


class FulfillmentError(Exception):
    code = "FULFILLMENT_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(FulfillmentError):
    """Malformed or inconsistent input, caught before any mutation."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(FulfillmentError):
    code = "NOT_FOUND"
    status_code = 404


class BusinessRuleError(FulfillmentError):
    """Inactive product, ineligible coupon, stock pre-check, illegal transition."""

    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class ConflictError(FulfillmentError):
    """A stock reservation lost a race at commit time. Safe to retry."""

    code = "STOCK_CONFLICT"
    status_code = 409
    retryable = True


class InfrastructureError(FulfillmentError):
    """Storage failed inside a transactional unit; the unit was rolled back."""

    code = "UPSTREAM_UNAVAILABLE"
    status_code = 503
    retryable = True
