"""
Notification models for WhatsApp delivery tracking.

Each outbound WhatsApp message is recorded before it is sent so that task
retries and redelivered webhooks never message a renter twice: a rental has
at most one message of each type.

Models:
    WhatsAppMessage: One rendered message and its delivery outcome

Usage:
    from notifications.models import MessageType, WhatsAppMessage

    message, created = WhatsAppMessage.objects.get_or_create(
        rental=rental,
        message_type=MessageType.RENTAL_CONFIRMATION,
        defaults={"user": rental.user, "phone_number": rental.user.phone_number},
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class MessageType(models.TextChoices):
    """Kinds of WhatsApp message sent to renters."""

    RENTAL_CONFIRMATION = "rental_confirmation", "Rental Confirmation"
    CANCELLATION_NOTICE = "cancellation_notice", "Cancellation Notice"


class DeliveryStatus(models.TextChoices):
    """
    Delivery status of a WhatsApp message.

    State transitions:
        PENDING -> SENT (provider accepted the message)
        PENDING -> FAILED (permanent error, or retries exhausted)
        PENDING -> SKIPPED (renter has no phone number)
    """

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class SkipReason(models.TextChoices):
    """Reasons a message was not sent."""

    NO_PHONE = "no_phone", "No Phone Number"


class WhatsAppMessage(UUIDPrimaryKeyMixin, BaseModel):
    """
    A WhatsApp message to a renter about one of their rentals.

    Fields:
        user: Recipient
        rental: Rental the message is about
        message_type: Confirmation or cancellation notice
        phone_number: E.164 destination at send time
        body: Rendered message text
        status: Delivery status
        provider_message_id: Twilio message SID
        failure_code/failure_reason: Last delivery error
        is_permanent_failure: Whether the last error cannot be retried
        attempt_count: Number of send attempts
        sent_at/failed_at: Outcome timestamps
        skipped_reason: Why the message was not sent
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="whatsapp_messages",
        help_text="Recipient",
    )

    rental = models.ForeignKey(
        "rentals.Rental",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="whatsapp_messages",
        help_text="Rental the message is about",
    )

    message_type = models.CharField(
        max_length=30,
        choices=MessageType.choices,
        help_text="Kind of message",
    )

    phone_number = models.CharField(
        max_length=20,
        blank=True,
        help_text="E.164 destination number at send time",
    )

    body = models.TextField(
        blank=True,
        help_text="Rendered message text",
    )

    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
        db_index=True,
        help_text="Delivery status",
    )

    provider_message_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Twilio message SID",
    )

    failure_code = models.CharField(
        max_length=50,
        blank=True,
        help_text="Machine-readable code of the last delivery error",
    )

    failure_reason = models.TextField(
        blank=True,
        help_text="Description of the last delivery error",
    )

    is_permanent_failure = models.BooleanField(
        default=False,
        help_text="Whether the last error cannot be retried",
    )

    attempt_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of send attempts",
    )

    sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the provider accepted the message",
    )

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When delivery was given up",
    )

    skipped_reason = models.CharField(
        max_length=30,
        choices=SkipReason.choices,
        blank=True,
        help_text="Why the message was not sent",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "WhatsApp Message"
        verbose_name_plural = "WhatsApp Messages"
        constraints = [
            models.UniqueConstraint(
                fields=["rental", "message_type"],
                name="whatsapp_message_unique_per_rental",
            ),
        ]

    def __str__(self) -> str:
        return f"WhatsAppMessage({self.message_type}, {self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == DeliveryStatus.PENDING

    def mark_sent(self, provider_message_id: str | None) -> None:
        self.status = DeliveryStatus.SENT
        self.sent_at = timezone.now()
        self.provider_message_id = provider_message_id
        self.attempt_count += 1
        self.save(
            update_fields=[
                "status",
                "sent_at",
                "provider_message_id",
                "attempt_count",
                "updated_at",
            ]
        )

    def mark_failed(self, code: str, reason: str, is_permanent: bool) -> None:
        self.status = DeliveryStatus.FAILED
        self.failed_at = timezone.now()
        self.failure_code = code
        self.failure_reason = reason
        self.is_permanent_failure = is_permanent
        self.attempt_count += 1
        self.save(
            update_fields=[
                "status",
                "failed_at",
                "failure_code",
                "failure_reason",
                "is_permanent_failure",
                "attempt_count",
                "updated_at",
            ]
        )

    def record_attempt(self, code: str, reason: str) -> None:
        """Count a transient failure that will be retried."""
        self.failure_code = code
        self.failure_reason = reason
        self.attempt_count += 1
        self.save(update_fields=["failure_code", "failure_reason", "attempt_count", "updated_at"])

    def mark_skipped(self, reason: str) -> None:
        self.status = DeliveryStatus.SKIPPED
        self.skipped_reason = reason
        self.save(update_fields=["status", "skipped_reason", "updated_at"])
