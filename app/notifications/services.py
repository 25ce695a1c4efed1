"""
Notification service layer.

NotificationDispatcher is the only entry point reconciliation code uses to
message renters. It never sends inline: the Celery task is submitted after
the surrounding transaction commits, so a rolled-back webhook never
messages anyone and a slow or failing broker never fails a webhook.

Usage:
    from notifications.services import NotificationDispatcher

    with transaction.atomic():
        rental = RentalService.open_rental(terms)
        NotificationDispatcher.send_rental_confirmation(rental)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService

from notifications.tasks import send_cancellation_notice, send_rental_confirmation

if TYPE_CHECKING:
    from celery import Task

    from rentals.models import Rental


class NotificationDispatcher(BaseService):
    """Queues WhatsApp notifications once the caller's transaction commits."""

    @classmethod
    def send_rental_confirmation(cls, rental: Rental) -> None:
        """Queue the welcome message with the access code."""
        cls._submit_on_commit(send_rental_confirmation, rental)

    @classmethod
    def send_cancellation_notice(cls, rental: Rental) -> None:
        """Queue the evacuation deadline notice."""
        cls._submit_on_commit(send_cancellation_notice, rental)

    @classmethod
    def _submit_on_commit(cls, task: Task, rental: Rental) -> None:
        logger = cls.get_logger()
        rental_id = str(rental.id)

        def submit() -> None:
            try:
                task.delay(rental_id)
            except Exception:
                # Broker outages must not surface to the webhook caller
                logger.exception(
                    "Failed to queue notification task",
                    extra={"rental_id": rental_id, "task": task.name},
                )

        transaction.on_commit(submit)
