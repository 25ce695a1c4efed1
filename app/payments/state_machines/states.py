"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment status (append-only rows, status set at insert time):
    pending | succeeded | failed

WebhookEvent status:
    pending → processing → processed
    pending → processing → failed (Stripe redelivers; processing starts again)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Outcome of a recorded charge.

    Reconciliation only ever inserts SUCCEEDED rows; failed renewal charges
    are reflected on the rental's subscription status instead.
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
