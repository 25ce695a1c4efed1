"""
Tests for the Stripe webhook endpoint.

Tests cover:
- Signature verification before any database write
- Webhook event creation and idempotency
- Status codes for each outcome (200/400/500)
- Signed round trips through reconciliation
"""

import datetime
import json
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import IntegrityError
from django.test import RequestFactory
from django.urls import reverse

from payments.models import Payment, WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import (
    checkout_completed_event,
    checkout_metadata,
    invoice_event,
    stripe_signature_header,
    subscription_deleted_event,
)
from payments.webhooks.views import stripe_webhook
from rentals.models import Rental
from rentals.state_machines import (
    PaymentType,
    RentalStatus,
    SubscriptionStatus,
    UnitStatus,
)


WEBHOOK_PATH = "/api/v1/payments/webhooks/stripe/"


# =============================================================================
# Setup
# =============================================================================


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


@pytest.fixture
def deliver(rf, webhook_secret):
    """POST a correctly signed event to the webhook view."""

    def _deliver(event, raw: bytes | None = None):
        body = raw if raw is not None else json.dumps(event).encode()
        request = rf.post(
            WEBHOOK_PATH,
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=stripe_signature_header(body, webhook_secret),
        )
        return stripe_webhook(request)

    return _deliver


def body_of(response) -> dict:
    return json.loads(response.content)


# =============================================================================
# Signature Verification Tests
# =============================================================================


@pytest.mark.django_db
class TestStripeWebhookSignature:
    """Tests for signature verification."""

    def test_missing_signature_returns_400(self, rf, webhook_secret):
        request = rf.post(
            WEBHOOK_PATH,
            data=json.dumps(invoice_event()),
            content_type="application/json",
        )

        response = stripe_webhook(request)

        assert response.status_code == 400
        assert "error" in body_of(response)
        assert WebhookEvent.objects.count() == 0

    def test_invalid_signature_writes_nothing(self, rf, webhook_secret, subscription_rental):
        body = json.dumps(invoice_event()).encode()
        request = rf.post(
            WEBHOOK_PATH,
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=stripe_signature_header(body, "whsec_wrong"),
        )

        response = stripe_webhook(request)

        assert response.status_code == 400
        assert WebhookEvent.objects.count() == 0
        assert Payment.objects.count() == 0
        subscription_rental.refresh_from_db()
        assert subscription_rental.months_paid == 1

    def test_missing_secret_returns_400(self, rf, settings):
        settings.STRIPE_WEBHOOK_SECRET = ""
        body = json.dumps(invoice_event()).encode()
        request = rf.post(
            WEBHOOK_PATH,
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=stripe_signature_header(body, "whsec_any"),
        )

        assert stripe_webhook(request).status_code == 400

    def test_non_json_body_returns_400(self, deliver):
        response = deliver(None, raw=b"not json")

        assert response.status_code == 400
        assert WebhookEvent.objects.count() == 0

    def test_missing_event_type_returns_400(self, deliver):
        event = invoice_event()
        del event["type"]

        assert deliver(event).status_code == 400
        assert WebhookEvent.objects.count() == 0

    def test_get_not_allowed(self, client):
        response = client.get(reverse("payments:stripe_webhook"))

        assert response.status_code == 405


# =============================================================================
# Event Handling Tests
# =============================================================================


@pytest.mark.django_db
class TestStripeWebhookHandling:
    """Tests for event storage and status codes."""

    def test_unknown_event_type_is_acknowledged(self, deliver):
        event = {"id": "evt_unknown", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}

        response = deliver(event)

        assert response.status_code == 200
        assert body_of(response) == {"received": True}
        stored = WebhookEvent.objects.get(stripe_event_id="evt_unknown")
        assert stored.status == WebhookEventStatus.PROCESSED

    def test_processed_duplicate_is_not_reprocessed(self, deliver):
        event = {"id": "evt_dup", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}
        deliver(event)

        with patch("payments.webhooks.views.process_webhook_event") as mock_process:
            response = deliver(event)

        assert response.status_code == 200
        mock_process.assert_not_called()
        assert WebhookEvent.objects.filter(stripe_event_id="evt_dup").count() == 1

    def test_event_insert_failure_returns_json_500(self, deliver):
        event = {"id": "evt_race", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}

        with patch.object(
            WebhookEvent.objects, "get_or_create", side_effect=IntegrityError("duplicate key")
        ):
            with patch("payments.webhooks.views.process_webhook_event") as mock_process:
                response = deliver(event)

        assert response.status_code == 500
        assert response["Content-Type"] == "application/json"
        assert "error" in body_of(response)
        mock_process.assert_not_called()

    def test_precondition_failure_returns_500_and_marks_failed(self, deliver, renter, unit):
        event = checkout_completed_event(
            event_id="evt_no_sub",
            metadata=checkout_metadata(renter, unit, payment_type=PaymentType.SUBSCRIPTION),
            subscription=None,
        )

        response = deliver(event)

        assert response.status_code == 500
        stored = WebhookEvent.objects.get(stripe_event_id="evt_no_sub")
        assert stored.status == WebhookEventStatus.FAILED
        assert Rental.objects.count() == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"paymentType": "lifetime"},
            {"userId": "u1"},
            {"unitId": "r1"},
        ],
    )
    def test_malformed_metadata_is_acknowledged(self, deliver, renter, unit, mock_dispatcher, overrides):
        metadata = {**checkout_metadata(renter, unit), **overrides}
        event = checkout_completed_event(event_id="evt_bad_meta", metadata=metadata)

        response = deliver(event)

        assert response.status_code == 200
        stored = WebhookEvent.objects.get(stripe_event_id="evt_bad_meta")
        assert stored.status == WebhookEventStatus.PROCESSED
        assert Rental.objects.count() == 0
        assert Payment.objects.count() == 0
        mock_dispatcher.send_rental_confirmation.assert_not_called()

    def test_expired_session_with_malformed_metadata_is_acknowledged(self, deliver):
        event = checkout_completed_event(
            event_id="evt_expired",
            metadata={"userId": "u1", "unitId": "r1"},
        )
        event["type"] = "checkout.session.expired"

        response = deliver(event)

        assert response.status_code == 200
        assert body_of(response) == {"received": True}
        assert Rental.objects.count() == 0

    def test_unknown_user_returns_500(self, deliver, unit, renter):
        metadata = checkout_metadata(renter, unit)
        metadata["userId"] = "33333333-3333-4333-8333-333333333333"

        response = deliver(checkout_completed_event(metadata=metadata))

        assert response.status_code == 500
        assert Rental.objects.count() == 0


# =============================================================================
# Signed Round Trips
# =============================================================================


@pytest.mark.django_db
class TestCheckoutRoundTrip:
    """A signed checkout.session.completed creates exactly one rental."""

    def test_single_payment_checkout(self, deliver, renter, unit, django_capture_on_commit_callbacks):
        event = checkout_completed_event(
            event_id="evt_checkout_1",
            session_id="cs_round_trip",
            metadata=checkout_metadata(renter, unit, months=3),
            amount_total=30000,
        )

        with patch("notifications.services.send_rental_confirmation.delay") as mock_delay:
            with django_capture_on_commit_callbacks(execute=True):
                response = deliver(event)

        assert response.status_code == 200
        rental = Rental.objects.get(checkout_session_id="cs_round_trip")
        assert rental.user == renter
        assert rental.payment_type == PaymentType.SINGLE
        assert rental.months_paid == 3
        assert rental.status == RentalStatus.ACTIVE
        unit.refresh_from_db()
        assert unit.status == UnitStatus.OCCUPIED
        payment = rental.payments.get()
        assert payment.total_amount == Decimal("300.00")
        assert payment.stripe_payment_intent_id == "pi_test_abc"
        mock_delay.assert_called_once_with(str(rental.id))

    def test_redelivery_creates_nothing_new(self, deliver, renter, unit, mock_dispatcher):
        event = checkout_completed_event(metadata=checkout_metadata(renter, unit))
        deliver(event)

        # Same session under a new event id, as when Stripe re-sends
        event["id"] = "evt_resent"
        response = deliver(event)

        assert response.status_code == 200
        assert Rental.objects.count() == 1
        assert Payment.objects.count() == 1
        assert mock_dispatcher.send_rental_confirmation.call_count == 1

    def test_subscription_checkout(self, deliver, renter, unit, mock_retrieve_subscription, mock_dispatcher):
        event = checkout_completed_event(
            session_id="cs_sub",
            metadata=checkout_metadata(renter, unit, payment_type=PaymentType.SUBSCRIPTION),
            subscription="sub_test_abc",
            payment_intent=None,
            amount_total=10000,
        )

        assert deliver(event).status_code == 200

        rental = Rental.objects.get(checkout_session_id="cs_sub")
        assert rental.subscription_status == SubscriptionStatus.ACTIVE
        assert rental.stripe_subscription_id == "sub_test_abc"
        payment = rental.payments.get()
        assert payment.stripe_invoice_id == "in_first_001"
        assert payment.stripe_payment_intent_id == "pi_first_001"


@pytest.mark.django_db
class TestSubscriptionRoundTrips:
    """Renewal, failure and cancellation through the signed endpoint."""

    def test_renewal_extends_end_date_once(self, deliver, subscription_rental):
        event = invoice_event(event_id="evt_renew", invoice_id="in_renew")

        assert deliver(event).status_code == 200
        event["id"] = "evt_renew_again"
        assert deliver(event).status_code == 200

        subscription_rental.refresh_from_db()
        assert subscription_rental.end_date == datetime.date(2024, 3, 15)
        assert subscription_rental.months_paid == 2
        assert Payment.objects.for_invoice("in_renew").count() == 1

    def test_out_of_order_renewals_are_contiguous(self, deliver, subscription_rental):
        deliver(invoice_event(invoice_id="in_second"))
        deliver(invoice_event(invoice_id="in_first"))

        subscription_rental.refresh_from_db()
        assert subscription_rental.end_date == datetime.date(2024, 4, 15)
        assert subscription_rental.months_paid == 3
        cycles = sorted(
            (p.billing_cycle_start, p.billing_cycle_end)
            for p in subscription_rental.payments.all()
        )
        assert cycles == [
            (datetime.date(2024, 2, 15), datetime.date(2024, 3, 15)),
            (datetime.date(2024, 3, 15), datetime.date(2024, 4, 15)),
        ]

    def test_failed_then_paid_invoice(self, deliver, subscription_rental):
        deliver(invoice_event("invoice.payment_failed", invoice_id="in_retry"))
        subscription_rental.refresh_from_db()
        assert subscription_rental.subscription_status == SubscriptionStatus.PAST_DUE
        assert Payment.objects.count() == 0

        deliver(invoice_event(invoice_id="in_retry"))
        subscription_rental.refresh_from_db()
        assert subscription_rental.subscription_status == SubscriptionStatus.ACTIVE
        assert subscription_rental.months_paid == 2

    def test_cancellation_preserves_access(self, deliver, subscription_rental, mock_dispatcher):
        response = deliver(subscription_deleted_event("sub_test_abc"))

        assert response.status_code == 200
        subscription_rental.refresh_from_db()
        assert subscription_rental.status == RentalStatus.ACTIVE
        assert subscription_rental.subscription_status == SubscriptionStatus.CANCELLED
        assert subscription_rental.end_date == datetime.date(2024, 2, 15)
        mock_dispatcher.send_cancellation_notice.assert_called_once()

    def test_renewal_for_unknown_subscription_is_acknowledged(self, deliver, db):
        response = deliver(invoice_event(subscription_id="sub_nobody"))

        assert response.status_code == 200
        assert Payment.objects.count() == 0
