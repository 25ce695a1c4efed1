"""
DRF serializers for payments app.

This module provides serializers for:
- Checkout session requests
- Invoice download requests and responses

Field names are camelCase because the browser client posts them that way.

Usage:
    serializer = CreateCheckoutSessionSerializer(data=request.data)
    if serializer.is_valid():
        checkout = serializer.to_checkout_request()
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from rentals.state_machines import PaymentType

from payments.services import CheckoutRequest


MAX_SINGLE_PAYMENT_MONTHS = 36


def _money(**kwargs) -> serializers.DecimalField:
    return serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0"),
        **kwargs,
    )


class CreateCheckoutSessionSerializer(serializers.Serializer):
    """
    Checkout session request.

    Fields:
        unitId: Unit to rent
        months: Months to pay for (single payments; subscriptions bill monthly)
        paymentType: single or subscription
        insurance: Whether to add contents insurance
        insurancePrice: Monthly insurance price
        insuranceCoverage: Insured amount shown on the line item
        unitPrice/totalPrice: Prices the client displayed, checked server-side
        unitSize: Unit size the client displayed (informational)
    """

    unitId = serializers.UUIDField()
    months = serializers.IntegerField(
        min_value=1, max_value=MAX_SINGLE_PAYMENT_MONTHS, default=1
    )
    paymentType = serializers.ChoiceField(choices=PaymentType.choices)
    insurance = serializers.BooleanField(default=False)
    insurancePrice = _money(required=False, default=Decimal("0.00"))
    insuranceCoverage = _money(required=False, default=Decimal("0.00"))
    unitPrice = _money(required=False, allow_null=True, default=None)
    totalPrice = _money(required=False, allow_null=True, default=None)
    unitSize = _money(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        if attrs["insurance"] and attrs["insurancePrice"] <= 0:
            raise serializers.ValidationError(
                {"insurancePrice": ["Required when insurance is selected."]}
            )
        return attrs

    def to_checkout_request(self) -> CheckoutRequest:
        data = self.validated_data
        return CheckoutRequest(
            unit_id=data["unitId"],
            payment_type=data["paymentType"],
            months=data["months"],
            insurance=data["insurance"],
            insurance_price=data["insurancePrice"],
            insurance_coverage=data["insuranceCoverage"],
            unit_price=data["unitPrice"],
            total_price=data["totalPrice"],
        )


class CheckoutSessionResponseSerializer(serializers.Serializer):
    """Hosted checkout page to redirect the renter to."""

    url = serializers.URLField()


class InvoiceDownloadRequestSerializer(serializers.Serializer):
    """Invoice download request for one of the caller's payments."""

    paymentId = serializers.UUIDField()


class InvoiceDownloadResponseSerializer(serializers.Serializer):
    """Invoice PDF link."""

    downloadUrl = serializers.URLField()
    invoiceNumber = serializers.CharField(allow_null=True)
    invoiceId = serializers.CharField()
