"""
Celery tasks for WhatsApp notification delivery.

Tasks:
    send_rental_confirmation: Welcome message with the unit access code
    send_cancellation_notice: Evacuation deadline after a subscription ends

Design:
    - Tasks receive the rental id (UUID string), never model instances
    - Each rental gets at most one message per type; re-running a task for
      a message that is no longer PENDING is a no-op
    - Transient Twilio errors raise DeliveryError, which Celery retries with
      exponential backoff
    - Permanent errors, exhausted retries and unexpected exceptions mark the
      message failed and return False; they never propagate

Usage:
    from notifications.tasks import send_rental_confirmation

    # Called by NotificationDispatcher after the webhook transaction commits
    send_rental_confirmation.delay(str(rental.id))
"""

from __future__ import annotations

import logging
from typing import Callable

from celery import shared_task

from rentals.models import Rental

from notifications.clients import DeliveryError, WhatsAppClient
from notifications.messages import render_cancellation_notice, render_rental_confirmation
from notifications.models import MessageType, SkipReason, WhatsAppMessage

logger = logging.getLogger(__name__)


MAX_RETRIES = 3


def _deliver(task, rental_id: str, message_type: str, render: Callable[[Rental], str]) -> bool:
    """
    Render and send one message for a rental.

    Returns:
        True if sent or skipped, False if delivery was given up

    Raises:
        DeliveryError: On transient failure with retries left (triggers retry)
    """
    log_context = {"rental_id": rental_id, "message_type": message_type}

    rental = Rental.objects.select_related("user", "unit").filter(pk=rental_id).first()
    if rental is None:
        logger.warning("Rental not found for notification", extra=log_context)
        return False

    message, _ = WhatsAppMessage.objects.get_or_create(
        rental=rental,
        message_type=message_type,
        defaults={"user": rental.user},
    )
    if not message.is_pending:
        logger.info(
            f"WhatsApp message status is {message.status}, skipping",
            extra=log_context,
        )
        return True

    phone_number = rental.user.phone_number
    if not phone_number:
        message.mark_skipped(SkipReason.NO_PHONE)
        logger.info("WhatsApp message skipped: renter has no phone number", extra=log_context)
        return True

    message.phone_number = phone_number
    message.body = render(rental)
    message.save(update_fields=["phone_number", "body", "updated_at"])

    try:
        provider_message_id = WhatsAppClient.send_message(phone_number, message.body)

    except DeliveryError as e:
        if e.is_permanent or task.request.retries >= MAX_RETRIES:
            message.mark_failed(e.code, e.message, e.is_permanent)
            logger.warning(
                f"WhatsApp message failed: {e.code} - {e.message}",
                extra={**log_context, "attempts": message.attempt_count},
            )
            return False

        message.record_attempt(e.code, e.message)
        logger.warning(
            f"WhatsApp message transiently failed: {e.code} - {e.message}, will retry",
            extra={**log_context, "attempts": message.attempt_count},
        )
        raise

    except Exception as e:
        message.mark_failed("unexpected_error", str(e), is_permanent=False)
        logger.exception("Unexpected error sending WhatsApp message", extra=log_context)
        return False

    message.mark_sent(provider_message_id)
    logger.info(
        "WhatsApp message sent",
        extra={**log_context, "provider_message_id": provider_message_id},
    )
    return True


@shared_task(
    bind=True,
    autoretry_for=(DeliveryError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": MAX_RETRIES},
)
def send_rental_confirmation(self, rental_id: str) -> bool:
    """
    Send the welcome message with the unit number, start date and access code.

    Args:
        rental_id: UUID string of the Rental
    """
    return _deliver(self, rental_id, MessageType.RENTAL_CONFIRMATION, render_rental_confirmation)


@shared_task(
    bind=True,
    autoretry_for=(DeliveryError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": MAX_RETRIES},
)
def send_cancellation_notice(self, rental_id: str) -> bool:
    """
    Send the evacuation deadline (the rental's end date) after cancellation.

    Args:
        rental_id: UUID string of the Rental
    """
    return _deliver(self, rental_id, MessageType.CANCELLATION_NOTICE, render_cancellation_notice)
