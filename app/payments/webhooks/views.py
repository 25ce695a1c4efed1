"""
Webhook endpoint views for Stripe.

This module provides the HTTP endpoint for receiving Stripe webhooks.
The view:
1. Verifies the webhook signature against the raw body
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Processes the event synchronously
4. Maps the outcome to the status code Stripe uses to decide on redelivery

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError, WebhookPayloadError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.processor import process_webhook_event


logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive, verify and reconcile Stripe webhook events.

    Security:
    - Signature verification happens before any database write
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - WebhookEvent.stripe_event_id is unique
    - Processed events return 200 without reprocessing
    - Failed events are reprocessed on redelivery; handlers are idempotent

    Returns:
        JsonResponse with status:
        - 200: {"received": true} for processed, duplicate or ignored events
        - 400: {"error": ...} for a bad signature or undecodable payload
        - 500: {"error": ...} for failures Stripe should retry

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return _error("Missing Stripe-Signature header", 400)

    # Step 1: Verify signature
    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e)},
        )
        return _error(f"Webhook signature verification failed: {e.message}", 400)
    except WebhookPayloadError as e:
        logger.warning("Webhook payload could not be parsed", extra={"error": str(e)})
        return _error(e.message, 400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return _error("Webhook event is missing id or type", 400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
        },
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    try:
        webhook_event, created = WebhookEvent.objects.get_or_create(
            stripe_event_id=stripe_event_id,
            defaults={
                "event_type": event_type,
                "payload": event_data,
                "status": WebhookEventStatus.PENDING,
            },
        )
    except DatabaseError:
        logger.exception(
            "Could not store webhook event",
            extra={"stripe_event_id": stripe_event_id},
        )
        return _error("Could not store webhook event", 500)

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"stripe_event_id": stripe_event_id},
        )
        return JsonResponse({"received": True})

    # Step 3: Process
    try:
        result = process_webhook_event(webhook_event)
    except WebhookPayloadError as e:
        return _error(e.message, 400)
    except Exception as e:
        return _error(getattr(e, "message", None) or str(e), 500)

    if not result.success:
        return _error(result.error or "Webhook processing failed", 500)

    return JsonResponse({"received": True})
