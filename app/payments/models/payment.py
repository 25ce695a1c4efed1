"""
Payment model: the append-only ledger of successful charges.

One row is inserted per reconciled charge: the initial checkout (single or
subscription) and every paid renewal invoice. Rows are never updated or
deleted; the only permitted write after insert is backfilling a missing
Stripe invoice reference.

Usage:
    from payments.models import Payment

    Payment.objects.create(
        rental=rental,
        payment_type=PaymentType.SUBSCRIPTION,
        subscription_id="sub_123",
        stripe_invoice_id="in_123",
        billing_cycle_start=previous_end,
        billing_cycle_end=rental.end_date,
        months_paid=rental.months_paid,
        unit_price=rental.price,
        total_amount=Decimal("49.00"),
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin
from rentals.state_machines import PaymentType

from payments.exceptions import PaymentImmutableError
from payments.state_machines import PaymentStatus


class PaymentQuerySet(models.QuerySet):
    """QuerySet that refuses bulk deletes on the ledger."""

    def delete(self):
        raise PaymentImmutableError("Payments are append-only and cannot be deleted")

    def for_invoice(self, invoice_id: str) -> PaymentQuerySet:
        return self.filter(stripe_invoice_id=invoice_id)


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A successful charge recorded against a rental.

    Invariants:
        - stripe_invoice_id is unique when present (renewal dedupe key)
        - at most one subscription payment per (subscription_id,
          billing_cycle_end)
        - rows are immutable after insert

    Fields:
        rental: Rental the charge pays for
        stripe_payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        stripe_invoice_id: Stripe Invoice ID (in_xxx), NULL for single payments
            until backfilled by an invoice download
        status: Charge outcome
        payment_date: When the charge was reconciled
        payment_type: single or subscription
        subscription_id: Stripe Subscription ID for subscription charges
        billing_cycle_start/end: Period this charge covers
        is_subscription_active: Subscription status at charge time
        next_billing_date: Next expected charge at charge time
        months_paid: Rental's months paid including this charge
        unit_price: Monthly unit price
        total_amount: Amount charged (EUR)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    rental = models.ForeignKey(
        "rentals.Rental",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Rental this charge pays for",
    )

    # ==========================================================================
    # Stripe References
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    stripe_invoice_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Invoice ID (in_xxx) - unique constraint for renewal idempotency",
    )

    subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Subscription ID (sub_xxx) for subscription charges",
    )

    # ==========================================================================
    # Charge
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.SUCCEEDED,
        help_text="Charge outcome",
    )

    payment_date = models.DateTimeField(
        default=timezone.now,
        help_text="When the charge was reconciled",
    )

    payment_method = models.CharField(
        max_length=20,
        default="card",
        help_text="Payment method used",
    )

    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        help_text="single or subscription",
    )

    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Monthly unit price (EUR)",
    )

    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount charged (EUR)",
    )

    currency = models.CharField(
        max_length=3,
        default="eur",
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # Coverage
    # ==========================================================================

    billing_cycle_start = models.DateField(help_text="First day covered by this charge")

    billing_cycle_end = models.DateField(help_text="Last day covered by this charge")

    months_paid = models.PositiveIntegerField(
        help_text="Rental months paid including this charge",
    )

    is_subscription_active = models.BooleanField(
        default=False,
        help_text="Whether the subscription was active when charged",
    )

    next_billing_date = models.DateField(
        null=True,
        blank=True,
        help_text="Next expected charge at the time of this charge",
    )

    objects = PaymentQuerySet.as_manager()

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-payment_date"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["rental", "payment_date"], name="payments_pa_rental__4d2c9e_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["subscription_id", "billing_cycle_end"],
                condition=models.Q(payment_type=PaymentType.SUBSCRIPTION),
                name="payment_unique_subscription_cycle",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, rental={self.rental_id}, {self.total_amount} {self.currency})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PaymentImmutableError(
                "Payments are append-only and cannot be modified",
                details={"payment_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PaymentImmutableError(
            "Payments are append-only and cannot be deleted",
            details={"payment_id": str(self.pk)},
        )

    def record_invoice_reference(self, invoice_id: str) -> bool:
        """
        Backfill the Stripe invoice reference on a payment that lacks one.

        Only writes when stripe_invoice_id is still NULL, so an existing
        reference is never overwritten.

        Returns:
            True if the reference was written
        """
        updated = type(self).objects.filter(
            pk=self.pk,
            stripe_invoice_id__isnull=True,
        ).update(stripe_invoice_id=invoice_id, updated_at=timezone.now())
        if updated:
            self.stripe_invoice_id = invoice_id
        return bool(updated)
