"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts and observability.

Usage:
    from payments.adapters import StripeAdapter

    invoice = StripeAdapter.retrieve_invoice("in_123")
"""

from payments.adapters.stripe_adapter import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    InvoiceResult,
    PaymentIntentResult,
    StripeAdapter,
    SubscriptionResult,
)

__all__ = [
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "InvoiceResult",
    "PaymentIntentResult",
    "StripeAdapter",
    "SubscriptionResult",
]
