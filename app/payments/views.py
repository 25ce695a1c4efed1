"""
DRF views for payments app.

This module provides API views for:
- Checkout session creation
- Invoice PDF download links

The Stripe webhook endpoint lives in payments.webhooks.views.

Related files:
    - services/: CheckoutService, InvoiceService
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/checkout-sessions/ - Create checkout session
    POST /api/v1/payments/invoices/download/ - Get invoice PDF link

Security:
    - Both endpoints require a JWT bearer token
    - Invoices are only returned for the caller's own payments
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.serializers import (
    CheckoutSessionResponseSerializer,
    CreateCheckoutSessionSerializer,
    InvoiceDownloadRequestSerializer,
    InvoiceDownloadResponseSerializer,
)
from payments.services import CheckoutService, InvoiceService
from payments.services.checkout_service import CHECKOUT_FAILED
from payments.services.invoice_service import (
    INVOICE_NOT_FOUND,
    INVOICE_PDF_UNAVAILABLE,
    INVOICE_RETRIEVAL_FAILED,
    PAYMENT_NOT_FOUND,
    PERMISSION_DENIED,
)

logger = logging.getLogger(__name__)


def _invalid(message: str, errors) -> Response:
    return Response(
        {"error": message, "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class CreateCheckoutSessionView(APIView):
    """
    Create a Stripe Checkout Session for an available unit.

    POST /api/v1/payments/checkout-sessions/

    Request body:
        {
            "unitId": "…",
            "months": 3,
            "paymentType": "single",
            "insurance": true,
            "insurancePrice": "9.99",
            "insuranceCoverage": "3000",
            "unitPrice": "45.00",
            "totalPrice": "164.97",
            "unitSize": "4"
        }

    Returns:
        {"url": "https://checkout.stripe.com/..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_checkout_session",
        summary="Create checkout session",
        request=CreateCheckoutSessionSerializer,
        responses={
            200: CheckoutSessionResponseSerializer,
            400: OpenApiResponse(description="Invalid request, unit unavailable or stale price"),
            500: OpenApiResponse(description="Stripe could not create the session"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = CreateCheckoutSessionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid("Invalid checkout request", serializer.errors)

        result = CheckoutService.create_session(
            user=request.user,
            checkout=serializer.to_checkout_request(),
            origin=request.headers.get("Origin"),
        )

        if not result.success:
            if result.error_code == CHECKOUT_FAILED:
                return Response(result.to_response(), status=status.HTTP_500_INTERNAL_SERVER_ERROR)
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        return Response({"url": result.data.url})


class InvoiceDownloadView(APIView):
    """
    Return the Stripe-hosted invoice PDF for one of the caller's payments.

    POST /api/v1/payments/invoices/download/

    Request body:
        {"paymentId": "…"}

    Returns:
        {"downloadUrl": "...", "invoiceNumber": "...", "invoiceId": "in_..."}
    """

    permission_classes = [IsAuthenticated]

    error_statuses = {
        PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
        PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
        INVOICE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
        INVOICE_PDF_UNAVAILABLE: status.HTTP_404_NOT_FOUND,
        INVOICE_RETRIEVAL_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    @extend_schema(
        operation_id="download_invoice",
        summary="Get invoice PDF link",
        request=InvoiceDownloadRequestSerializer,
        responses={
            200: InvoiceDownloadResponseSerializer,
            400: OpenApiResponse(description="paymentId missing or malformed"),
            403: OpenApiResponse(description="Payment belongs to another user"),
            404: OpenApiResponse(description="Payment, invoice or PDF not found"),
            500: OpenApiResponse(description="Stripe could not return the invoice"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = InvoiceDownloadRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid("Payment ID is required", serializer.errors)

        result = InvoiceService.get_invoice_download(
            user=request.user,
            payment_id=serializer.validated_data["paymentId"],
        )

        if not result.success:
            return Response(
                result.to_response(),
                status=self.error_statuses.get(
                    result.error_code, status.HTTP_400_BAD_REQUEST
                ),
            )

        return Response(result.data.to_response())
