"""
URL configuration for the payments app.

Routes:
    - POST /webhooks/stripe/ - Stripe webhook endpoint
    - POST /checkout-sessions/ - Create a Stripe Checkout Session
    - POST /invoices/download/ - Get an invoice PDF link

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import CreateCheckoutSessionView, InvoiceDownloadView
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    # Renter endpoints
    path("checkout-sessions/", CreateCheckoutSessionView.as_view(), name="checkout_session"),
    path("invoices/download/", InvoiceDownloadView.as_view(), name="invoice_download"),
]
