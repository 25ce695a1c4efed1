"""
State enums for rental models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

StorageUnit status (plain field, conditional update only):
    available → occupied (rental created)

Rental status:
    active → expired (paid period lapsed)
    active → cancelled (administrative)

Rental subscription_status (NULL for single-payment rentals):
    active → past_due (renewal charge failed)
    active/past_due → active (renewal invoice paid)
    active/past_due → cancelled (subscription deleted; access kept until end_date)

Combined lifecycle (RentalLifecycle) is derived from both fields.
"""

from django.db import models


class UnitStatus(models.TextChoices):
    """
    Availability of a StorageUnit.

    Only rental creation moves a unit to OCCUPIED, through a conditional
    update on AVAILABLE.
    """

    AVAILABLE = "available", "Available"
    OCCUPIED = "occupied", "Occupied"
    MAINTENANCE = "maintenance", "Maintenance"


class RentalStatus(models.TextChoices):
    """
    Access status of a Rental.

    State Flow:
        ACTIVE → EXPIRED
        ACTIVE → CANCELLED
    """

    ACTIVE = "active", "Active"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"


class SubscriptionStatus(models.TextChoices):
    """
    Billing status of a subscription Rental.

    State Flow:
        ACTIVE → PAST_DUE
        ACTIVE/PAST_DUE → ACTIVE (renewal)
        ACTIVE/PAST_DUE → CANCELLED
    """

    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past Due"
    CANCELLED = "cancelled", "Cancelled"


class PaymentType(models.TextChoices):
    """
    Commercial flow chosen at checkout.

    SINGLE pays N months up front; SUBSCRIPTION bills monthly via Stripe.
    """

    SINGLE = "single", "Single Payment"
    SUBSCRIPTION = "subscription", "Subscription"


class RentalLifecycle(models.TextChoices):
    """
    Combined lifecycle state derived from (status, subscription_status).

    Not stored; see Rental.lifecycle.
    """

    SUBSCRIPTION_ACTIVE = "active/subscription-active", "Active, subscription active"
    PAST_DUE = "active/past-due", "Active, payment past due"
    CANCELLED_PENDING_EXPIRY = (
        "active/cancelled-pending-expiry",
        "Active until end date, subscription cancelled",
    )
    SINGLE = "active/single", "Active, paid up front"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"


__all__ = [
    "PaymentType",
    "RentalLifecycle",
    "RentalStatus",
    "SubscriptionStatus",
    "UnitStatus",
]
