"""
Rentals application.

Owns the storage units and the rental agreements that bind a user to a unit.
Rental lifecycle is modeled as an explicit django-fsm state machine over the
(status, subscription_status) pair; payment webhooks drive the transitions.

Usage:
    from rentals.models import Rental, StorageUnit
    from rentals.services import RentalService
"""
