"""
Payment admin configuration.

Payments are an append-only ledger, so their admin is read-only.
Webhook events keep their payload read-only; status can be inspected.
"""

from django.contrib import admin

from payments.models import Payment, WebhookEvent

__all__ = [
    "PaymentAdmin",
    "WebhookEventAdmin",
]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Provides visibility into recorded charges. Nothing is editable:
    corrections are new rows, never edits.
    """

    list_display = [
        "id",
        "rental",
        "payment_type",
        "total_amount",
        "currency",
        "billing_cycle_start",
        "billing_cycle_end",
        "status",
        "payment_date",
    ]
    list_filter = ["payment_type", "status", "payment_date"]
    search_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_invoice_id",
        "subscription_id",
        "rental__user__email",
    ]
    date_hierarchy = "payment_date"
    ordering = ["-payment_date"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "rental", "status", "payment_type", "payment_method"),
            },
        ),
        (
            "Amounts",
            {
                "fields": ("unit_price", "total_amount", "currency", "months_paid"),
            },
        ),
        (
            "Coverage",
            {
                "fields": (
                    "billing_cycle_start",
                    "billing_cycle_end",
                    "is_subscription_active",
                    "next_billing_date",
                ),
            },
        ),
        (
            "Stripe",
            {
                "fields": ("stripe_payment_intent_id", "stripe_invoice_id", "subscription_id"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("payment_date", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )
