"""
State machine enums for rental models.

This module defines the state enums used by rental models with django-fsm.
"""

from rentals.state_machines.states import (
    PaymentType,
    RentalLifecycle,
    RentalStatus,
    SubscriptionStatus,
    UnitStatus,
)

__all__ = [
    "PaymentType",
    "RentalLifecycle",
    "RentalStatus",
    "SubscriptionStatus",
    "UnitStatus",
]
