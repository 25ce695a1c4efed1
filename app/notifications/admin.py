"""
Django admin configuration for notification models.

WhatsApp messages are read-only in the admin; they are written only by the
delivery tasks.
"""

from django.contrib import admin

from notifications.models import WhatsAppMessage


@admin.register(WhatsAppMessage)
class WhatsAppMessageAdmin(admin.ModelAdmin):
    """
    Admin configuration for WhatsAppMessage.

    Shows delivery outcome per rental for support staff.
    """

    list_display = [
        "message_type",
        "user",
        "rental",
        "status",
        "attempt_count",
        "sent_at",
        "created_at",
    ]
    list_filter = ["message_type", "status", "is_permanent_failure"]
    search_fields = ["user__email", "phone_number", "provider_message_id"]
    raw_id_fields = ["user", "rental"]
    readonly_fields = [field.name for field in WhatsAppMessage._meta.fields]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False
