"""
Rental domain models.

StorageUnit is a rentable physical slot; Rental binds a user to a unit for a
paid period. Both pre-exist or are created by payment reconciliation; they
are never deleted.

Usage:
    from rentals.models import Rental
    from rentals.state_machines import SubscriptionStatus

    rental = Rental.objects.for_subscription("sub_123").select_for_update().first()
    rental.renew()  # active/past_due -> active, extends end_date by one month
    rental.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from rentals.periods import add_months, next_payment_after
from rentals.state_machines import (
    PaymentType,
    RentalLifecycle,
    RentalStatus,
    SubscriptionStatus,
    UnitStatus,
)


class StorageUnit(UUIDPrimaryKeyMixin, BaseModel):
    """
    A rentable storage unit.

    Fields:
        unit_number: Human label shown to renters and used in messages
        size_m2: Floor area, which is the unit's size class
        price: Base monthly price in EUR
        status: Availability (see UnitStatus)
    """

    unit_number = models.CharField(
        max_length=20,
        unique=True,
        help_text="Human-readable unit label (e.g. 'A-12')",
    )

    size_m2 = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        help_text="Unit size in square metres",
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Base monthly price in EUR",
    )

    status = models.CharField(
        max_length=20,
        choices=UnitStatus.choices,
        default=UnitStatus.AVAILABLE,
        db_index=True,
        help_text="Availability; becomes occupied only when a rental is created",
    )

    class Meta:
        ordering = ["unit_number"]
        verbose_name = "Storage Unit"
        verbose_name_plural = "Storage Units"

    def __str__(self) -> str:
        return f"Unit {self.unit_number} ({self.status})"

    @property
    def is_available(self) -> bool:
        return self.status == UnitStatus.AVAILABLE


class RentalQuerySet(models.QuerySet):
    """QuerySet helpers for webhook lookups by external reference."""

    def for_subscription(self, subscription_id: str) -> RentalQuerySet:
        """Subscription rentals billed under a Stripe subscription."""
        return self.filter(
            stripe_subscription_id=subscription_id,
            payment_type=PaymentType.SUBSCRIPTION,
        )

    def for_checkout_session(self, checkout_session_id: str) -> RentalQuerySet:
        return self.filter(checkout_session_id=checkout_session_id)


class Rental(UUIDPrimaryKeyMixin, BaseModel):
    """
    An agreement binding a user to a storage unit for a paid period.

    Uses django-fsm for both state fields. The combined lifecycle is:

        no rental ──create──> active/subscription-active | active/single
        active/subscription-active ──mark_past_due──> active/past-due
        active/subscription-active | active/past-due ──renew──> active/subscription-active
        active/subscription-active | active/past-due
            ──cancel_subscription──> active/cancelled-pending-expiry
        active/* ──expire──> expired
        active/* ──cancel──> cancelled

    Invariants:
        - payment_type=subscription iff subscription_status and
          stripe_subscription_id are both set (database check constraint)
        - end_date never moves backwards
        - one rental per checkout_session_id (unique, the creation
          idempotency key)

    Fields:
        user/unit: Renter and rented unit
        start_date/end_date: Paid access period (end_date inclusive bound)
        price: Monthly unit price charged
        insurance_amount: Monthly insurance add-on charged
        status: Access status (FSM)
        payment_type: single or subscription
        subscription_status: Billing status for subscriptions (FSM, NULL for single)
        stripe_subscription_id: Stripe Subscription ID (sub_xxx)
        checkout_session_id: Stripe Checkout Session ID (cs_xxx)
        stripe_payment_intent_id: First charge's PaymentIntent ID (pi_xxx)
        months_paid: Months covered so far
        next_payment_date: Next expected charge (NULL when none is due)
        access_code: 4-digit code for physical unit access
        occupancy_conflict: Set when the unit was no longer available at
            reconciliation time; needs manual resolution
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rentals",
        help_text="Renter",
    )

    unit = models.ForeignKey(
        StorageUnit,
        on_delete=models.PROTECT,
        related_name="rentals",
        help_text="Rented storage unit",
    )

    # ==========================================================================
    # Period & Price
    # ==========================================================================

    start_date = models.DateField(help_text="First day of access")

    end_date = models.DateField(help_text="Last paid day of access")

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Monthly unit price charged (EUR)",
    )

    insurance_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Monthly insurance add-on charged (EUR)",
    )

    months_paid = models.PositiveIntegerField(
        default=1,
        help_text="Number of months paid so far",
    )

    next_payment_date = models.DateField(
        null=True,
        blank=True,
        help_text="Next expected charge; NULL for single payments and cancelled subscriptions",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=RentalStatus.ACTIVE,
        choices=RentalStatus.choices,
        db_index=True,
        help_text="Access status (managed by FSM)",
    )

    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        help_text="Commercial flow chosen at checkout",
    )

    subscription_status = FSMField(
        null=True,
        blank=True,
        default=None,
        choices=SubscriptionStatus.choices,
        db_index=True,
        help_text="Subscription billing status (managed by FSM); NULL for single payments",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )

    checkout_session_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Checkout Session ID (cs_xxx) - unique constraint for idempotency",
    )

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="PaymentIntent of the first charge (pi_xxx)",
    )

    # ==========================================================================
    # Access
    # ==========================================================================

    access_code = models.CharField(
        max_length=4,
        help_text="4-digit unit access code",
    )

    occupancy_conflict = models.BooleanField(
        default=False,
        help_text="Unit was not available when this rental was reconciled",
    )

    objects = RentalQuerySet.as_manager()

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Rental"
        verbose_name_plural = "Rentals"
        indexes = [
            models.Index(fields=["user", "status"], name="rentals_ren_user_id_6c1f0e_idx"),
            models.Index(fields=["unit", "status"], name="rentals_ren_unit_id_2b9d4a_idx"),
            models.Index(
                fields=["stripe_subscription_id", "payment_type"],
                name="rentals_ren_stripe__8e3a71_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(
                        payment_type=PaymentType.SUBSCRIPTION,
                        subscription_status__isnull=False,
                        stripe_subscription_id__isnull=False,
                    )
                    | models.Q(
                        payment_type=PaymentType.SINGLE,
                        subscription_status__isnull=True,
                        stripe_subscription_id__isnull=True,
                    )
                ),
                name="rental_subscription_fields_match_payment_type",
            ),
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="rental_end_not_before_start",
            ),
        ]

    def __str__(self) -> str:
        return f"Rental({self.id}, unit={self.unit_id}, {self.lifecycle})"

    # ==========================================================================
    # Subscription Transitions (django-fsm)
    # ==========================================================================

    def is_active(self) -> bool:
        """Transition condition: access has not lapsed or been revoked."""
        return self.status == RentalStatus.ACTIVE

    @transition(
        field=subscription_status,
        source=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAST_DUE],
        target=SubscriptionStatus.ACTIVE,
        conditions=[is_active],
    )
    def renew(self):
        """
        Apply one paid renewal invoice.

        Transition: ACTIVE/PAST_DUE -> ACTIVE

        Extends end_date by one calendar month from the current end_date
        (not from today), so late webhooks still yield contiguous coverage.

        Returns:
            The previous end_date, which is the new billing cycle's start.
        """
        previous_end = self.end_date
        self.end_date = add_months(previous_end, 1)
        self.months_paid += 1
        self.next_payment_date = next_payment_after(self.end_date)
        return previous_end

    @transition(
        field=subscription_status,
        source=SubscriptionStatus.ACTIVE,
        target=SubscriptionStatus.PAST_DUE,
        conditions=[is_active],
    )
    def mark_past_due(self):
        """
        Mark the subscription as past due after a failed renewal charge.

        Transition: ACTIVE -> PAST_DUE

        Stripe Smart Retries keep collecting; access is unchanged.
        """

    @transition(
        field=subscription_status,
        source=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAST_DUE],
        target=SubscriptionStatus.CANCELLED,
    )
    def cancel_subscription(self):
        """
        Record that Stripe ended the subscription.

        Transition: ACTIVE/PAST_DUE -> CANCELLED

        end_date and status are untouched: the renter keeps access until the
        already-paid period lapses.
        """
        self.next_payment_date = None

    # ==========================================================================
    # Access Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=RentalStatus.ACTIVE,
        target=RentalStatus.EXPIRED,
    )
    def expire(self):
        """
        Close the rental once the paid period has lapsed.

        Transition: ACTIVE -> EXPIRED
        """
        self.next_payment_date = None

    @transition(
        field=status,
        source=RentalStatus.ACTIVE,
        target=RentalStatus.CANCELLED,
    )
    def cancel(self):
        """
        Administratively revoke the rental.

        Transition: ACTIVE -> CANCELLED
        """
        self.next_payment_date = None

    # ==========================================================================
    # Helper Properties
    # ==========================================================================

    @property
    def is_subscription(self) -> bool:
        return self.payment_type == PaymentType.SUBSCRIPTION

    @property
    def lifecycle(self) -> str:
        """Combined lifecycle state (see RentalLifecycle)."""
        if self.status == RentalStatus.EXPIRED:
            return RentalLifecycle.EXPIRED
        if self.status == RentalStatus.CANCELLED:
            return RentalLifecycle.CANCELLED
        if not self.is_subscription:
            return RentalLifecycle.SINGLE
        if self.subscription_status == SubscriptionStatus.PAST_DUE:
            return RentalLifecycle.PAST_DUE
        if self.subscription_status == SubscriptionStatus.CANCELLED:
            return RentalLifecycle.CANCELLED_PENDING_EXPIRY
        return RentalLifecycle.SUBSCRIPTION_ACTIVE

    @property
    def monthly_total(self) -> Decimal:
        """Unit price plus insurance add-on."""
        return self.price + self.insurance_amount
