"""
Django admin configuration for rental models.
"""

from django.contrib import admin

from rentals.models import Rental, StorageUnit


@admin.register(StorageUnit)
class StorageUnitAdmin(admin.ModelAdmin):
    """Admin configuration for StorageUnit model."""

    list_display = ("unit_number", "size_m2", "price", "status", "updated_at")
    list_filter = ("status",)
    search_fields = ("unit_number",)
    ordering = ("unit_number",)


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    """
    Admin configuration for Rental model.

    State fields are read-only: they only change through FSM transitions
    driven by payment webhooks.
    """

    list_display = (
        "id",
        "user",
        "unit",
        "payment_type",
        "status",
        "subscription_status",
        "end_date",
        "months_paid",
        "occupancy_conflict",
    )
    list_filter = ("status", "subscription_status", "payment_type", "occupancy_conflict")
    search_fields = (
        "user__email",
        "unit__unit_number",
        "checkout_session_id",
        "stripe_subscription_id",
    )
    raw_id_fields = ("user", "unit")
    readonly_fields = (
        "status",
        "subscription_status",
        "checkout_session_id",
        "stripe_subscription_id",
        "stripe_payment_intent_id",
        "created_at",
        "updated_at",
    )
