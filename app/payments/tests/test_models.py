"""
Tests for payment models.

Tests cover:
- Payment immutability (no update, no delete)
- Invoice reference backfill
- Ledger uniqueness constraints
- WebhookEvent status helpers
"""

import datetime
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from payments.exceptions import PaymentImmutableError
from payments.models import Payment, WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import PaymentFactory, WebhookEventFactory
from rentals.state_machines import PaymentType
from rentals.tests.factories import SubscriptionRentalFactory


@pytest.mark.django_db
class TestPaymentImmutability:
    """Payments are append-only."""

    def test_update_raises(self):
        payment = PaymentFactory()
        payment.total_amount = Decimal("1.00")

        with pytest.raises(PaymentImmutableError):
            payment.save()

        payment.refresh_from_db()
        assert payment.total_amount == Decimal("300.00")

    def test_delete_raises(self):
        payment = PaymentFactory()

        with pytest.raises(PaymentImmutableError):
            payment.delete()

        assert Payment.objects.filter(pk=payment.pk).exists()

    def test_queryset_delete_raises(self):
        PaymentFactory()

        with pytest.raises(PaymentImmutableError):
            Payment.objects.all().delete()

        assert Payment.objects.count() == 1

    def test_immutable_error_is_conflict(self):
        payment = PaymentFactory()

        with pytest.raises(PaymentImmutableError) as exc_info:
            payment.delete()

        assert exc_info.value.details == {"payment_id": str(payment.pk)}


@pytest.mark.django_db
class TestRecordInvoiceReference:
    """Tests for the one permitted post-insert write."""

    def test_backfills_missing_reference(self):
        payment = PaymentFactory(stripe_invoice_id=None)

        assert payment.record_invoice_reference("in_backfill") is True

        payment.refresh_from_db()
        assert payment.stripe_invoice_id == "in_backfill"

    def test_never_overwrites_existing_reference(self):
        payment = PaymentFactory(stripe_invoice_id="in_original")

        assert payment.record_invoice_reference("in_other") is False

        payment.refresh_from_db()
        assert payment.stripe_invoice_id == "in_original"

    def test_for_invoice_lookup(self):
        payment = PaymentFactory(stripe_invoice_id="in_lookup")
        PaymentFactory()

        assert list(Payment.objects.for_invoice("in_lookup")) == [payment]


@pytest.mark.django_db
class TestPaymentConstraints:
    """Database-level dedupe keys."""

    def test_invoice_id_is_unique(self):
        PaymentFactory(stripe_invoice_id="in_dup")

        with pytest.raises(IntegrityError), transaction.atomic():
            PaymentFactory(stripe_invoice_id="in_dup")

    def test_one_subscription_payment_per_cycle(self):
        rental = SubscriptionRentalFactory(stripe_subscription_id="sub_cycle")
        values = {
            "rental": rental,
            "payment_type": PaymentType.SUBSCRIPTION,
            "subscription_id": "sub_cycle",
            "billing_cycle_start": datetime.date(2024, 2, 15),
            "billing_cycle_end": datetime.date(2024, 3, 15),
        }
        PaymentFactory(stripe_invoice_id="in_a", **values)

        with pytest.raises(IntegrityError), transaction.atomic():
            PaymentFactory(stripe_invoice_id="in_b", **values)

    def test_cycle_constraint_ignores_single_payments(self):
        PaymentFactory(billing_cycle_end=datetime.date(2024, 4, 15))
        PaymentFactory(billing_cycle_end=datetime.date(2024, 4, 15))

        assert Payment.objects.count() == 2


@pytest.mark.django_db
class TestWebhookEvent:
    """Tests for WebhookEvent helpers."""

    def test_processing_increments_retry_count(self):
        event = WebhookEventFactory()

        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

    def test_processed_clears_error(self):
        event = WebhookEventFactory(error_message="earlier failure")

        event.mark_processed()

        assert event.is_processed
        assert event.processed_at is not None
        assert event.error_message is None

    def test_failed_keeps_error(self):
        event = WebhookEventFactory()

        event.mark_failed("ValueError: bad")

        assert event.is_failed
        assert event.error_message == "ValueError: bad"

    def test_data_object_and_id(self):
        event = WebhookEventFactory(
            payload={"id": "evt_1", "data": {"object": {"id": "in_123", "object": "invoice"}}}
        )

        assert event.get_data_object() == {"id": "in_123", "object": "invoice"}
        assert event.get_object_id() == "in_123"

    def test_data_object_tolerates_malformed_payload(self):
        event = WebhookEvent(stripe_event_id="evt_x", event_type="x", payload={"data": "nope"})

        assert event.get_data_object() == {}
        assert event.get_object_id() is None

    def test_event_id_is_unique(self):
        WebhookEventFactory(stripe_event_id="evt_same")

        with pytest.raises(IntegrityError), transaction.atomic():
            WebhookEventFactory(stripe_event_id="evt_same")
