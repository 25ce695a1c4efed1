"""
Invoice lookup for a renter's recorded payments.

Resolves a Payment to its Stripe invoice PDF. Subscription payments carry
the invoice id from reconciliation; for others the invoice is found through
the payment intent once and cached on the payment row.

Usage:
    from payments.services import InvoiceService

    result = InvoiceService.get_invoice_download(user=request.user, payment_id=payment_id)
    if result.success:
        result.data.download_url
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from core.services import BaseService, ServiceResult

from payments.adapters import StripeAdapter
from payments.exceptions import StripeError
from payments.models import Payment

if TYPE_CHECKING:
    from authentication.models import User


PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
PERMISSION_DENIED = "PERMISSION_DENIED"
INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
INVOICE_PDF_UNAVAILABLE = "INVOICE_PDF_UNAVAILABLE"
INVOICE_RETRIEVAL_FAILED = "INVOICE_RETRIEVAL_FAILED"


@dataclass
class InvoiceDownload:
    """Hosted PDF link for a payment's invoice."""

    download_url: str
    invoice_number: str | None
    invoice_id: str

    def to_response(self) -> dict[str, str | None]:
        return {
            "downloadUrl": self.download_url,
            "invoiceNumber": self.invoice_number,
            "invoiceId": self.invoice_id,
        }


class InvoiceService(BaseService):
    """Finds invoice PDFs for payments owned by a user."""

    @classmethod
    def get_invoice_download(
        cls, user: User, payment_id: uuid.UUID
    ) -> ServiceResult[InvoiceDownload]:
        """
        Return the invoice PDF link for one of the user's payments.

        Failure codes:
            PAYMENT_NOT_FOUND, PERMISSION_DENIED, INVOICE_NOT_FOUND,
            INVOICE_PDF_UNAVAILABLE, INVOICE_RETRIEVAL_FAILED
        """
        logger = cls.get_logger()
        log_context = {"payment_id": str(payment_id), "user_id": str(user.pk)}

        payment = Payment.objects.select_related("rental").filter(pk=payment_id).first()
        if payment is None:
            return ServiceResult.failure("Payment not found", PAYMENT_NOT_FOUND)

        if payment.rental.user_id != user.pk:
            logger.warning("Invoice requested for another user's payment", extra=log_context)
            return ServiceResult.failure("Payment belongs to another user", PERMISSION_DENIED)

        invoice_id = payment.stripe_invoice_id or cls._find_invoice_id(payment)
        if not invoice_id:
            return ServiceResult.failure("No invoice available for this payment", INVOICE_NOT_FOUND)

        try:
            invoice = StripeAdapter.retrieve_invoice(invoice_id)
        except StripeError as e:
            logger.error(
                "Failed to retrieve invoice from Stripe",
                extra={**log_context, "invoice_id": invoice_id, "error_code": e.error_code},
            )
            return ServiceResult.failure(
                "Failed to retrieve invoice from Stripe",
                INVOICE_RETRIEVAL_FAILED,
            )

        if not invoice.invoice_pdf:
            return ServiceResult.failure("Invoice PDF not available", INVOICE_PDF_UNAVAILABLE)

        return ServiceResult.success(
            InvoiceDownload(
                download_url=invoice.invoice_pdf,
                invoice_number=invoice.number,
                invoice_id=invoice.id,
            )
        )

    @classmethod
    def _find_invoice_id(cls, payment: Payment) -> str | None:
        """
        Look up the invoice through the payment intent and cache it.

        Lookup failures are logged and reported as "no invoice".
        """
        logger = cls.get_logger()
        if not payment.stripe_payment_intent_id:
            return None

        try:
            intent = StripeAdapter.retrieve_payment_intent(payment.stripe_payment_intent_id)
        except StripeError:
            logger.warning(
                "Could not look up invoice through payment intent",
                extra={
                    "payment_id": str(payment.id),
                    "payment_intent_id": payment.stripe_payment_intent_id,
                },
            )
            return None

        if not intent.invoice_id:
            return None

        try:
            with transaction.atomic():
                payment.record_invoice_reference(intent.invoice_id)
        except IntegrityError:
            logger.warning(
                "Invoice already referenced by another payment; not cached",
                extra={"payment_id": str(payment.id), "invoice_id": intent.invoice_id},
            )
        return intent.invoice_id
