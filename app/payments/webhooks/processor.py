"""
Synchronous processing of stored webhook events.

Stripe's response code is the retry signal, so events are processed inside
the request rather than queued: a 500 makes Stripe redeliver, a 200 ends
delivery. The handler's writes and the PROCESSED status commit in one
transaction, so a crash between them cannot leave an event marked done
without its effects.

Usage:
    from payments.webhooks.processor import process_webhook_event

    result = process_webhook_event(webhook_event)
"""

from __future__ import annotations

import logging

from django.db import transaction

from core.services import ServiceResult

from payments.models import WebhookEvent
from payments.webhooks.handlers import dispatch_webhook

logger = logging.getLogger(__name__)


def process_webhook_event(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Process a stored Stripe webhook event.

    This function:
    1. Skips events already processed (idempotency)
    2. Marks the event as processing
    3. Dispatches to the handler inside a transaction
    4. Marks as processed in that same transaction, or failed after rollback

    Returns:
        ServiceResult from the handler

    Raises:
        Exception: Re-raised after marking the event failed, so the caller
            can map it to an HTTP status
    """
    log_context = {
        "webhook_event_id": str(webhook_event.id),
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
    }

    if webhook_event.is_processed:
        logger.info("WebhookEvent already processed, skipping", extra=log_context)
        return ServiceResult.success(None)

    webhook_event.mark_processing()
    webhook_event.save()

    logger.info(
        f"Dispatching webhook: {webhook_event.event_type}",
        extra={**log_context, "retry_count": webhook_event.retry_count},
    )

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
            if result.success:
                webhook_event.mark_processed()
                webhook_event.save()

    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()

        logger.exception(
            "Webhook processing failed with exception",
            extra={**log_context, "error": error_msg},
        )
        raise

    if not result.success:
        error_msg = result.error or "Handler returned failure"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.warning(
            f"Webhook handler failed: {error_msg}",
            extra={**log_context, "error_code": result.error_code},
        )
        return result

    logger.info("Webhook processed successfully", extra=log_context)
    return result
