"""
Payment services for coordinating payment operations.

This module provides:
- ReconciliationService: Applies Stripe billing events to rentals and payments
- CheckoutService: Creates Stripe Checkout Sessions for available units
- InvoiceService: Resolves payments to Stripe invoice PDFs

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService.apply_renewal(invoice_payload)
"""

from payments.services.checkout_service import CheckoutRequest, CheckoutService
from payments.services.invoice_service import InvoiceDownload, InvoiceService
from payments.services.reconciliation_service import ReconciliationService

__all__ = [
    "CheckoutRequest",
    "CheckoutService",
    "InvoiceDownload",
    "InvoiceService",
    "ReconciliationService",
]
