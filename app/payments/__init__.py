"""
Payments app for Stripe integration.

This app handles:
- Stripe webhook verification and idempotent event processing
- Reconciliation of checkouts, renewals, cancellations and failed charges
- The append-only payment ledger
- Checkout session creation and invoice downloads

Related apps:
    - rentals: Rentals and units created or updated by reconciliation
    - notifications: WhatsApp messages queued after reconciliation

Usage:
    from payments.webhooks.views import stripe_webhook
    from payments.services import ReconciliationService
"""
