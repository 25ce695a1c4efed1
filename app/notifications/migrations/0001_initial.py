import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("rentals", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="WhatsAppMessage",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "message_type",
                    models.CharField(
                        choices=[
                            ("rental_confirmation", "Rental Confirmation"),
                            ("cancellation_notice", "Cancellation Notice"),
                        ],
                        help_text="Kind of message",
                        max_length=30,
                    ),
                ),
                (
                    "phone_number",
                    models.CharField(
                        blank=True,
                        help_text="E.164 destination number at send time",
                        max_length=20,
                    ),
                ),
                (
                    "body",
                    models.TextField(blank=True, help_text="Rendered message text"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                            ("skipped", "Skipped"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Delivery status",
                        max_length=20,
                    ),
                ),
                (
                    "provider_message_id",
                    models.CharField(
                        blank=True,
                        help_text="Twilio message SID",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "failure_code",
                    models.CharField(
                        blank=True,
                        help_text="Machine-readable code of the last delivery error",
                        max_length=50,
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Description of the last delivery error",
                    ),
                ),
                (
                    "is_permanent_failure",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the last error cannot be retried",
                    ),
                ),
                (
                    "attempt_count",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Number of send attempts",
                    ),
                ),
                (
                    "sent_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the provider accepted the message",
                        null=True,
                    ),
                ),
                (
                    "failed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When delivery was given up",
                        null=True,
                    ),
                ),
                (
                    "skipped_reason",
                    models.CharField(
                        blank=True,
                        choices=[("no_phone", "No Phone Number")],
                        help_text="Why the message was not sent",
                        max_length=30,
                    ),
                ),
                (
                    "rental",
                    models.ForeignKey(
                        blank=True,
                        help_text="Rental the message is about",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="whatsapp_messages",
                        to="rentals.rental",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Recipient",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="whatsapp_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "WhatsApp Message",
                "verbose_name_plural": "WhatsApp Messages",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("rental", "message_type"),
                        name="whatsapp_message_unique_per_rental",
                    ),
                ],
            },
        ),
    ]
