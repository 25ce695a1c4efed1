"""
Payment-specific exceptions for payment operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Rental/payment/user/unit lookup failures
    ├── PaymentValidationError - Payment validation failures
    │   └── WebhookPayloadError - Event body cannot be decoded (HTTP 400)
    └── PaymentProcessingError - Payment processing failures
        ├── WebhookPreconditionError - Event lacks an id the flow needs (HTTP 500)
        └── StripeError - Base for all Stripe errors
            ├── StripeInvalidRequestError - Invalid request or signature (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    PaymentImmutableError - Update/delete of an append-only Payment (inherits ConflictError)

Usage:
    from payments.exceptions import WebhookPreconditionError

    if not session.payment_intent_id:
        raise WebhookPreconditionError(
            "Checkout session has no payment intent",
            details={"session_id": session.session_id},
        )

The webhook endpoint maps WebhookPayloadError to 400 so Stripe stops
retrying an event that can never be decoded, and every other exception to
500 so Stripe redelivers it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class,
    which itself inherits from BaseApplicationError for
    consistent API error responses.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when an entity referenced by a payment flow cannot be found.

    Use for:
    - Payment lookup fails (invoice download)
    - User or StorageUnit named in checkout metadata does not exist

    Example:
        unit = StorageUnit.objects.filter(id=metadata.unit_id).first()
        if not unit:
            raise PaymentNotFoundError(
                f"StorageUnit {metadata.unit_id} not found",
                details={"unit_id": str(metadata.unit_id)}
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """
    Raised when payment validation fails.

    Use for:
    - Unit not available for checkout
    - Missing required fields
    - Business rule violations
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class PaymentProcessingError(PaymentError):
    """
    Raised when payment processing fails.

    Use for:
    - Stripe API errors
    - Webhook events that cannot be reconciled yet
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Webhook Exceptions
# =============================================================================


class WebhookPayloadError(PaymentValidationError):
    """
    Raised when a verified webhook body cannot be decoded.

    Covers malformed JSON, a missing event id/type, or a data object that
    lacks its own id or carries a malformed metadata id. Redelivery of the
    same bytes can never succeed, so the endpoint answers 400.
    """

    default_error_code: str = "WEBHOOK_PAYLOAD_INVALID"


class WebhookPreconditionError(PaymentProcessingError):
    """
    Raised when an event lacks a reference its reconciliation flow requires.

    Example: a subscription checkout without a subscription id, or a
    single-payment checkout without a payment intent. The endpoint answers
    500 so Stripe redelivers the event.
    """

    default_error_code: str = "WEBHOOK_PRECONDITION_FAILED"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Provides common attributes for Stripe error handling:
    - stripe_code: Stripe's internal error code
    - is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeInvalidRequestError(StripeError):
    """
    Invalid request sent to Stripe, or a webhook signature that does not
    verify.

    This is a permanent error - the request itself is malformed
    and will never succeed with the same parameters.

    Possible causes:
    - Unknown subscription, invoice or payment intent ID
    - Invalid amount or currency
    - Wrong API key
    - Webhook signature mismatch or missing signing secret

    Note:
        Outside signature checks this usually indicates a bug in our code,
        not a user error. Log these errors for developer investigation.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """
    Rate limited by Stripe API.

    During webhook reconciliation the event is failed with 500 and Stripe's
    own redelivery provides the backoff.
    """

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    This covers:
    - Network connectivity issues
    - Stripe server errors (5xx)
    - DNS resolution failures
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The request was sent but no response was received within
    the configured timeout (STRIPE_API_TIMEOUT_SECONDS).

    The operation may have succeeded on Stripe's side; every write we
    make is keyed so that retrying is safe.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Ledger Exceptions
# =============================================================================


class PaymentImmutableError(ConflictError):
    """
    Raised when code tries to update or delete a recorded Payment.

    Payments are an append-only ledger: corrections are new rows, never
    edits. The single exception is backfilling a missing invoice reference
    through Payment.record_invoice_reference().
    """

    default_error_code: str = "PAYMENT_IMMUTABLE"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "PaymentProcessingError",
    # Webhooks
    "WebhookPayloadError",
    "WebhookPreconditionError",
    # Stripe-specific
    "StripeError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # Ledger
    "PaymentImmutableError",
]
