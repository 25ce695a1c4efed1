"""
Payments app configuration.

This app reconciles Stripe billing into rentals:
- Stripe webhook verification, routing and reconciliation
- Append-only payment ledger
- Checkout session creation and invoice downloads
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # Registers webhook handlers
        from payments.webhooks import handlers  # noqa: F401
