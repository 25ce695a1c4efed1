"""
Webhook event handlers for Stripe events.

This module provides a handler registry and the handlers for the Stripe
events this service reconciles.

The handler registry allows:
- Clean separation between event routing and handling
- Typed payload decoding before any handler runs
- Unknown event types acknowledged without side effects

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event", CustomPayload)
    def handle_custom_event(webhook_event: WebhookEvent, payload: CustomPayload) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from core.services import ServiceResult

from payments.models import WebhookEvent
from payments.services import ReconciliationService
from payments.webhooks.events import (
    CheckoutSessionPayload,
    InvoicePayload,
    PaymentIntentPayload,
    SubscriptionPayload,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


Handler = Callable[[WebhookEvent, Any], ServiceResult]


@dataclass(frozen=True)
class HandlerRegistration:
    """A handler and the payload type its data object decodes into."""

    handler: Handler
    payload_class: type


# Maps event type strings to handler registrations
WEBHOOK_HANDLERS: dict[str, HandlerRegistration] = {}


def register_handler(event_type: str, payload_class: type) -> Callable[[Handler], Handler]:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("invoice.payment_succeeded", InvoicePayload)
        def handle_invoice_paid(webhook_event, invoice: InvoicePayload) -> ServiceResult:
            ...

    Args:
        event_type: The Stripe event type (e.g., "invoice.payment_succeeded")
        payload_class: Class with a from_stripe(dict) constructor
    """

    def decorator(func: Handler) -> Handler:
        WEBHOOK_HANDLERS[event_type] = HandlerRegistration(func, payload_class)
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Decode a webhook event and dispatch it to the appropriate handler.

    If no handler is registered, logs and returns success so Stripe stops
    delivering events we do not subscribe to.

    Raises:
        WebhookPayloadError: The data object does not decode
    """
    registration = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not registration:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    payload = registration.payload_class.from_stripe(webhook_event.get_data_object())

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "object_id": webhook_event.get_object_id(),
        },
    )

    return registration.handler(webhook_event, payload)


# =============================================================================
# Checkout Handlers
# =============================================================================


@register_handler("checkout.session.completed", CheckoutSessionPayload)
def handle_checkout_session_completed(
    webhook_event: WebhookEvent, session: CheckoutSessionPayload
) -> ServiceResult:
    """
    Handle a completed checkout.

    Creates the rental, claims the unit, records the first payment and
    queues the WhatsApp confirmation. Duplicate sessions are acknowledged.
    """
    logger.info(
        "Processing checkout.session.completed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "checkout_session_id": session.session_id,
            "payment_type": session.metadata.payment_type,
        },
    )
    return ReconciliationService.reconcile_checkout(session)


@register_handler("checkout.session.expired", CheckoutSessionPayload)
def handle_checkout_session_expired(
    webhook_event: WebhookEvent, session: CheckoutSessionPayload
) -> ServiceResult:
    """
    Handle an abandoned checkout.

    Units are only claimed when a rental is created, so there is nothing
    to release.
    """
    logger.info(
        "Checkout session expired without payment",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "checkout_session_id": session.session_id,
            "unit_id": str(session.metadata.unit_id) if session.metadata.unit_id else None,
        },
    )
    return ServiceResult.success(None)


# =============================================================================
# Invoice Handlers
# =============================================================================


@register_handler("invoice.payment_succeeded", InvoicePayload)
def handle_invoice_payment_succeeded(
    webhook_event: WebhookEvent, invoice: InvoicePayload
) -> ServiceResult:
    """
    Handle a paid subscription invoice.

    Renewals extend the rental by one month; the first invoice of a
    subscription is left to checkout reconciliation.
    """
    logger.info(
        "Processing invoice.payment_succeeded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "invoice_id": invoice.invoice_id,
            "subscription_id": invoice.subscription_id,
        },
    )
    return ReconciliationService.apply_renewal(invoice)


@register_handler("invoice.payment_failed", InvoicePayload)
def handle_invoice_payment_failed(
    webhook_event: WebhookEvent, invoice: InvoicePayload
) -> ServiceResult:
    """Handle a failed subscription charge by marking the rental past due."""
    logger.info(
        "Processing invoice.payment_failed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "invoice_id": invoice.invoice_id,
            "subscription_id": invoice.subscription_id,
        },
    )
    return ReconciliationService.mark_past_due(invoice)


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler("customer.subscription.deleted", SubscriptionPayload)
def handle_subscription_deleted(
    webhook_event: WebhookEvent, subscription: SubscriptionPayload
) -> ServiceResult:
    """Handle subscription termination; access continues until end_date."""
    logger.info(
        "Processing customer.subscription.deleted",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "subscription_id": subscription.subscription_id,
        },
    )
    return ReconciliationService.cancel_subscription(subscription)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded", PaymentIntentPayload)
def handle_payment_intent_succeeded(
    webhook_event: WebhookEvent, intent: PaymentIntentPayload
) -> ServiceResult:
    """
    Acknowledge a successful PaymentIntent.

    Rentals are reconciled from the checkout session, which carries the
    rental metadata; the intent alone is only logged.
    """
    logger.info(
        "payment_intent.succeeded acknowledged",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": intent.payment_intent_id,
        },
    )
    return ServiceResult.success(None)
