"""
Rental services.

RentalService opens rentals and claims units. Webhook reconciliation in the
payments app calls it inside its own transaction; nothing here commits on its
own.

Usage:
    from rentals.services import RentalService, RentalTerms

    rental = RentalService.open_rental(
        RentalTerms(
            user=user,
            unit=unit,
            checkout_session_id="cs_123",
            payment_type=PaymentType.SINGLE,
            months=3,
            price=Decimal("100.00"),
            stripe_payment_intent_id="pi_123",
        )
    )
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService

from rentals.models import Rental, StorageUnit
from rentals.periods import add_months, next_payment_after
from rentals.state_machines import PaymentType, SubscriptionStatus, UnitStatus

if TYPE_CHECKING:
    from authentication.models import User


@dataclass
class RentalTerms:
    """
    Everything needed to open a rental from a completed checkout.

    Subscriptions always cover one month per billing cycle; months only
    applies to single payments.
    """

    user: User
    unit: StorageUnit
    checkout_session_id: str
    payment_type: str
    price: Decimal
    months: int = 1
    insurance_amount: Decimal = Decimal("0.00")
    stripe_subscription_id: str | None = None
    stripe_payment_intent_id: str | None = None
    start_date: date | None = None

    @property
    def covered_months(self) -> int:
        if self.payment_type == PaymentType.SUBSCRIPTION:
            return 1
        return self.months


class RentalService(BaseService):
    """Opens rentals and marks units occupied."""

    ACCESS_CODE_MIN = 1000
    ACCESS_CODE_MAX = 9999

    @classmethod
    def generate_access_code(cls) -> str:
        """
        Generate a 4-digit numeric access code.

        This is a convenience code for the unit keypad, not a security
        credential.
        """
        span = cls.ACCESS_CODE_MAX - cls.ACCESS_CODE_MIN + 1
        return str(cls.ACCESS_CODE_MIN + secrets.randbelow(span))

    @classmethod
    def occupy_unit(cls, unit: StorageUnit) -> bool:
        """
        Flip a unit from available to occupied.

        Uses a conditional UPDATE so two concurrent checkouts for the same
        unit cannot both claim it.

        Returns:
            True if this call claimed the unit, False if it was not available.
        """
        updated = StorageUnit.objects.filter(
            pk=unit.pk, status=UnitStatus.AVAILABLE
        ).update(status=UnitStatus.OCCUPIED, updated_at=timezone.now())
        if updated:
            unit.status = UnitStatus.OCCUPIED
        return bool(updated)

    @classmethod
    def open_rental(cls, terms: RentalTerms) -> Rental:
        """
        Create the Rental row and claim its unit.

        Must run inside a transaction. A duplicate checkout_session_id raises
        IntegrityError, which callers treat as already reconciled.

        When the unit is no longer available the rental is still recorded
        (the renter has paid), flagged with occupancy_conflict and logged at
        ERROR for manual resolution.
        """
        logger = cls.get_logger()
        start = terms.start_date or timezone.now().date()
        months = terms.covered_months
        end = add_months(start, months)
        is_subscription = terms.payment_type == PaymentType.SUBSCRIPTION

        rental = Rental.objects.create(
            user=terms.user,
            unit=terms.unit,
            start_date=start,
            end_date=end,
            price=terms.price,
            insurance_amount=terms.insurance_amount,
            payment_type=terms.payment_type,
            subscription_status=SubscriptionStatus.ACTIVE if is_subscription else None,
            stripe_subscription_id=terms.stripe_subscription_id if is_subscription else None,
            checkout_session_id=terms.checkout_session_id,
            stripe_payment_intent_id=terms.stripe_payment_intent_id,
            months_paid=months,
            next_payment_date=next_payment_after(start) if is_subscription else None,
            access_code=cls.generate_access_code(),
        )

        if not cls.occupy_unit(terms.unit):
            rental.occupancy_conflict = True
            rental.save(update_fields=["occupancy_conflict", "updated_at"])
            logger.error(
                "Unit was not available when rental was reconciled",
                extra={
                    "rental_id": str(rental.id),
                    "unit_id": str(terms.unit.pk),
                    "checkout_session_id": terms.checkout_session_id,
                },
            )

        logger.info(
            "Rental opened",
            extra={
                "rental_id": str(rental.id),
                "unit_id": str(terms.unit.pk),
                "payment_type": terms.payment_type,
                "end_date": end.isoformat(),
            },
        )
        return rental
