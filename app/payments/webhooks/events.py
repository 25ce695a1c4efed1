"""
Typed payloads decoded from Stripe webhook data objects.

Handlers never read raw dicts: each registered event type names a payload
class, and the dispatcher decodes payload.data.object into it before the
handler runs. Decoding failures raise WebhookPayloadError, which the
endpoint answers with 400.

Monetary amounts arrive in cents and are converted to Decimal EUR here.
Checkout metadata arrives as strings (Stripe stores metadata as strings)
and is parsed into typed values with documented fallbacks. Malformed
metadata never fails decoding; it makes the session non-actionable so the
event is logged and acknowledged.

Usage:
    from payments.webhooks.events import CheckoutSessionPayload

    session = CheckoutSessionPayload.from_stripe(event["data"]["object"])
    session.metadata.months  # int, at least 1
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from rentals.state_machines import PaymentType

from payments.exceptions import WebhookPayloadError


# =============================================================================
# Field Decoders
# =============================================================================


def _require_id(obj: dict[str, Any], kind: str) -> str:
    object_id = obj.get("id")
    if not isinstance(object_id, str) or not object_id:
        raise WebhookPayloadError(f"{kind} object has no id")
    return object_id


def _reference(value: Any) -> str | None:
    """Stripe references are either a bare id or an expanded object."""
    if isinstance(value, dict):
        value = value.get("id")
    if isinstance(value, str) and value:
        return value
    return None


def _cents_to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, int):
        raise WebhookPayloadError("Amount is not an integer number of cents")
    return (Decimal(value) / 100).quantize(Decimal("0.01"))


def _timestamp_to_date(value: Any) -> date | None:
    if not isinstance(value, int) or isinstance(value, bool):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).date()


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if value in (None, ""):
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _parse_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return None
    if not parsed.is_finite() or parsed < 0:
        return None
    return parsed.quantize(Decimal("0.01"))


def _parse_months(value: Any) -> int:
    try:
        months = int(str(value))
    except (TypeError, ValueError):
        return 1
    return months if months > 0 else 1


# =============================================================================
# Checkout
# =============================================================================


@dataclass(frozen=True)
class CheckoutMetadata:
    """
    Rental parameters carried from checkout creation to reconciliation.

    Attributes:
        user_id/unit_id: Renter and unit (None when absent or malformed)
        payment_type: single or subscription (absent means single,
            unrecognised means None)
        months: Months bought; invalid or non-positive values fall back to 1
        insurance: Whether the insurance add-on was chosen
        insurance_price: Monthly insurance price
        unit_price/total_price: Prices shown at checkout; None when invalid
    """

    user_id: uuid.UUID | None
    unit_id: uuid.UUID | None
    payment_type: str | None = PaymentType.SINGLE
    months: int = 1
    insurance: bool = False
    insurance_price: Decimal | None = None
    unit_price: Decimal | None = None
    total_price: Decimal | None = None

    @classmethod
    def from_stripe(cls, metadata: Any) -> CheckoutMetadata:
        if not isinstance(metadata, dict):
            metadata = {}

        payment_type = metadata.get("paymentType") or PaymentType.SINGLE
        if payment_type not in PaymentType.values:
            payment_type = None

        return cls(
            user_id=_parse_uuid(metadata.get("userId")),
            unit_id=_parse_uuid(metadata.get("unitId")),
            payment_type=payment_type,
            months=_parse_months(metadata.get("months")),
            insurance=str(metadata.get("insurance", "")).lower() == "true",
            insurance_price=_parse_decimal(metadata.get("insurancePrice")),
            unit_price=_parse_decimal(metadata.get("unitPrice")),
            total_price=_parse_decimal(metadata.get("totalPrice")),
        )

    @property
    def is_actionable(self) -> bool:
        """Both ids and a known payment type are needed to create a rental."""
        return (
            self.user_id is not None
            and self.unit_id is not None
            and self.payment_type is not None
        )

    @property
    def is_subscription(self) -> bool:
        return self.payment_type == PaymentType.SUBSCRIPTION

    @property
    def monthly_insurance(self) -> Decimal:
        if not self.insurance or self.insurance_price is None:
            return Decimal("0.00")
        return self.insurance_price


@dataclass(frozen=True)
class CheckoutSessionPayload:
    """checkout.session.completed / checkout.session.expired data object."""

    session_id: str
    metadata: CheckoutMetadata
    payment_intent_id: str | None = None
    subscription_id: str | None = None
    amount_total: Decimal | None = None
    customer_email: str | None = None

    @classmethod
    def from_stripe(cls, obj: dict[str, Any]) -> CheckoutSessionPayload:
        customer_details = obj.get("customer_details") or {}
        return cls(
            session_id=_require_id(obj, "Checkout session"),
            metadata=CheckoutMetadata.from_stripe(obj.get("metadata")),
            payment_intent_id=_reference(obj.get("payment_intent")),
            subscription_id=_reference(obj.get("subscription")),
            amount_total=_cents_to_decimal(obj.get("amount_total")),
            customer_email=customer_details.get("email") or obj.get("customer_email"),
        )


# =============================================================================
# Invoices & Subscriptions
# =============================================================================


@dataclass(frozen=True)
class InvoicePayload:
    """invoice.payment_succeeded / invoice.payment_failed data object."""

    invoice_id: str
    subscription_id: str | None = None
    payment_intent_id: str | None = None
    amount_paid: Decimal | None = None
    billing_reason: str | None = None
    period_start: date | None = None
    period_end: date | None = None

    @classmethod
    def from_stripe(cls, obj: dict[str, Any]) -> InvoicePayload:
        return cls(
            invoice_id=_require_id(obj, "Invoice"),
            subscription_id=_reference(obj.get("subscription")),
            payment_intent_id=_reference(obj.get("payment_intent")),
            amount_paid=_cents_to_decimal(obj.get("amount_paid")),
            billing_reason=obj.get("billing_reason"),
            period_start=_timestamp_to_date(obj.get("period_start")),
            period_end=_timestamp_to_date(obj.get("period_end")),
        )


@dataclass(frozen=True)
class SubscriptionPayload:
    """customer.subscription.deleted data object."""

    subscription_id: str
    status: str | None = None

    @classmethod
    def from_stripe(cls, obj: dict[str, Any]) -> SubscriptionPayload:
        return cls(
            subscription_id=_require_id(obj, "Subscription"),
            status=obj.get("status"),
        )


@dataclass(frozen=True)
class PaymentIntentPayload:
    """payment_intent.* data object; acknowledged but not reconciled."""

    payment_intent_id: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, obj: dict[str, Any]) -> PaymentIntentPayload:
        metadata = obj.get("metadata")
        return cls(
            payment_intent_id=_require_id(obj, "PaymentIntent"),
            metadata=metadata if isinstance(metadata, dict) else {},
        )
