"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts and observability.

Features:
- Configurable timeouts and network retries on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Thread-safe for use from Celery workers

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_VERSION: Pinned Stripe API version
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Max network retry attempts (default: 2)

Usage:
    from payments.adapters import StripeAdapter

    event = StripeAdapter.verify_webhook_signature(request.body, signature)
    subscription = StripeAdapter.retrieve_subscription("sub_123")
    subscription.latest_invoice_id  # "in_123"
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
    WebhookPayloadError,
)


# =============================================================================
# Data Types
# =============================================================================


CHECKOUT_MODES = ("payment", "subscription")


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout Session.

    Attributes:
        mode: 'payment' for single payments, 'subscription' for monthly billing
        line_items: Stripe line item dicts (price_data + quantity)
        success_url: Redirect after payment; may contain {CHECKOUT_SESSION_ID}
        cancel_url: Redirect when the renter abandons checkout
        customer_email: Prefills the checkout form
        metadata: String key-value pairs echoed back on the webhook
    """

    mode: str
    line_items: list[dict[str, Any]]
    success_url: str
    cancel_url: str
    customer_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.mode not in CHECKOUT_MODES:
            raise ValueError(f"mode must be one of {CHECKOUT_MODES}")
        if not self.line_items:
            raise ValueError("line_items must not be empty")


@dataclass
class CheckoutSessionResult:
    """
    Result from Stripe Checkout Session creation.

    Attributes:
        id: Checkout Session ID (cs_xxx)
        url: Hosted checkout page URL
    """

    id: str
    url: str


@dataclass
class SubscriptionResult:
    """
    Result from Stripe Subscription retrieval.

    Attributes:
        id: Subscription ID (sub_xxx)
        status: Stripe subscription status (active, past_due, ...)
        latest_invoice_id: Most recent invoice (in_xxx), the first one right
            after checkout
        latest_payment_intent_id: PaymentIntent that paid the latest invoice
    """

    id: str
    status: str
    latest_invoice_id: str | None = None
    latest_payment_intent_id: str | None = None


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent retrieval.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (succeeded, requires_payment_method, ...)
        invoice_id: Invoice the intent paid, if any
    """

    id: str
    status: str
    invoice_id: str | None = None


@dataclass
class InvoiceResult:
    """
    Result from Stripe Invoice retrieval.

    Attributes:
        id: Invoice ID (in_xxx)
        number: Human-readable invoice number
        status: Invoice status (paid, open, ...)
        invoice_pdf: Hosted PDF URL (None until finalized)
    """

    id: str
    number: str | None = None
    status: str | None = None
    invoice_pdf: str | None = None


def _object_id(value: Any) -> str | None:
    """Return the id of a Stripe reference that may be expanded or a bare id."""
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are class methods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Usage:
        result = StripeAdapter.create_checkout_session(params)
        invoice = StripeAdapter.retrieve_invoice("in_123")
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, version and timeout."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.api_version = settings.STRIPE_API_VERSION
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 2)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Checkout
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a hosted Stripe Checkout Session.

        For subscription mode the metadata is also copied onto the
        subscription so later subscription events carry it.

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_checkout_session",
            "mode": params.mode,
            "unit_id": params.metadata.get("unitId"),
            "user_id": params.metadata.get("userId"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        create_kwargs: dict[str, Any] = {
            "mode": params.mode,
            "payment_method_types": ["card"],
            "line_items": params.line_items,
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "metadata": params.metadata,
        }
        if params.customer_email:
            create_kwargs["customer_email"] = params.customer_email
        if params.mode == "subscription":
            create_kwargs["subscription_data"] = {"metadata": params.metadata}
            create_kwargs["payment_method_collection"] = "always"

        try:
            session = stripe.checkout.Session.create(**create_kwargs)

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "checkout_session_id": session.id,
                    "duration_ms": duration_ms,
                },
            )

            return CheckoutSessionResult(id=session.id, url=session.url)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

    # =========================================================================
    # Retrieval
    # =========================================================================

    @classmethod
    def retrieve_subscription(cls, subscription_id: str) -> SubscriptionResult:
        """
        Retrieve a Subscription with its latest invoice expanded.

        Raises:
            StripeInvalidRequestError: Subscription not found
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_subscription",
            "subscription_id": subscription_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            subscription = stripe.Subscription.retrieve(
                subscription_id,
                expand=["latest_invoice"],
            )

            latest_invoice = getattr(subscription, "latest_invoice", None)
            payment_intent_id = None
            if latest_invoice is not None and not isinstance(latest_invoice, str):
                payment_intent_id = _object_id(getattr(latest_invoice, "payment_intent", None))

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": subscription.status,
                    "duration_ms": duration_ms,
                },
            )

            return SubscriptionResult(
                id=subscription.id,
                status=subscription.status,
                latest_invoice_id=_object_id(latest_invoice),
                latest_payment_intent_id=payment_intent_id,
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id: str) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": intent.status,
                    "duration_ms": duration_ms,
                },
            )

            return PaymentIntentResult(
                id=intent.id,
                status=intent.status,
                invoice_id=_object_id(getattr(intent, "invoice", None)),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def retrieve_invoice(cls, invoice_id: str) -> InvoiceResult:
        """
        Retrieve an Invoice by ID.

        Raises:
            StripeInvalidRequestError: Invoice not found
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_invoice",
            "invoice_id": invoice_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            invoice = stripe.Invoice.retrieve(invoice_id)

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": getattr(invoice, "status", None),
                    "duration_ms": duration_ms,
                },
            )

            return InvoiceResult(
                id=invoice.id,
                number=getattr(invoice, "number", None),
                status=getattr(invoice, "status", None),
                invoice_pdf=getattr(invoice, "invoice_pdf", None),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes, exactly as received
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or no signing secret
            WebhookPayloadError: Signature is valid but the body is not JSON
        """
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            cls.get_logger().critical("STRIPE_WEBHOOK_SECRET is not configured")
            raise StripeInvalidRequestError(
                "Webhook signing secret is not configured",
                stripe_code="webhook_secret_missing",
            )

        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise WebhookPayloadError(
                "Webhook payload is not valid JSON",
                details={"error": str(e)},
            ) from e

        event = json.loads(payload)
        if not isinstance(event, dict):
            raise WebhookPayloadError("Webhook payload is not a JSON object")
        return event

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Maps Stripe SDK errors to appropriate domain exceptions
        with proper error categorization for retry decisions.

        Raises:
            StripeInvalidRequestError: Invalid request parameters or API key
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable
        """
        logger = cls.get_logger()

        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning(
                "Rate limited by Stripe",
                extra=log_context,
            )
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            if "timed out" in str(error).lower():
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error(
                "Stripe API error",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
