"""
Tests for WhatsApp delivery tasks.

Tests cover:
- Successful delivery and message record
- Idempotency on re-run
- Skipping renters without a phone number
- Permanent, transient and unexpected failures
"""

import uuid
from unittest.mock import MagicMock

import pytest

from notifications.clients import DeliveryError
from notifications.models import DeliveryStatus, MessageType, SkipReason, WhatsAppMessage
from notifications.tasks import (
    MAX_RETRIES,
    _deliver,
    send_cancellation_notice,
    send_rental_confirmation,
)
from notifications.messages import render_rental_confirmation
from notifications.tests.factories import WhatsAppMessageFactory


@pytest.mark.django_db
class TestSendRentalConfirmation:
    """Tests for send_rental_confirmation."""

    def test_sends_and_records_message(self, rental, mock_send_message):
        assert send_rental_confirmation(str(rental.id)) is True

        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.message_type == MessageType.RENTAL_CONFIRMATION
        assert message.status == DeliveryStatus.SENT
        assert message.provider_message_id == "SM_test123"
        assert message.phone_number == "+34600111222"
        assert message.attempt_count == 1
        assert message.sent_at is not None
        assert rental.access_code in message.body
        mock_send_message.assert_called_once_with("+34600111222", message.body)

    def test_rerun_does_not_send_twice(self, rental, mock_send_message):
        send_rental_confirmation(str(rental.id))
        assert send_rental_confirmation(str(rental.id)) is True

        mock_send_message.assert_called_once()
        assert WhatsAppMessage.objects.filter(rental=rental).count() == 1

    def test_skips_renter_without_phone(self, rental, mock_send_message):
        rental.user.phone_number = ""
        rental.user.save()

        assert send_rental_confirmation(str(rental.id)) is True

        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.status == DeliveryStatus.SKIPPED
        assert message.skipped_reason == SkipReason.NO_PHONE
        mock_send_message.assert_not_called()

    def test_unknown_rental_returns_false(self, db, mock_send_message):
        assert send_rental_confirmation(str(uuid.uuid4())) is False
        mock_send_message.assert_not_called()

    def test_permanent_failure_marks_failed(self, rental, mock_send_message):
        mock_send_message.side_effect = DeliveryError(
            "Invalid destination", code="invalid_recipient", is_permanent=True
        )

        assert send_rental_confirmation(str(rental.id)) is False

        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.status == DeliveryStatus.FAILED
        assert message.failure_code == "invalid_recipient"
        assert message.is_permanent_failure is True
        assert message.failed_at is not None

    def test_transient_failure_raises_for_retry(self, rental, mock_send_message):
        mock_send_message.side_effect = DeliveryError("Rate limited", code="rate_limited")

        with pytest.raises(DeliveryError):
            send_rental_confirmation(str(rental.id))

        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.status == DeliveryStatus.PENDING
        assert message.failure_code == "rate_limited"
        assert message.attempt_count == 1

    def test_unexpected_error_is_not_raised(self, rental, mock_send_message):
        mock_send_message.side_effect = RuntimeError("boom")

        assert send_rental_confirmation(str(rental.id)) is False

        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.status == DeliveryStatus.FAILED
        assert message.failure_code == "unexpected_error"


@pytest.mark.django_db
class TestDeliverRetries:
    """Tests for retry exhaustion in _deliver."""

    def test_exhausted_retries_mark_failed(self, rental, mock_send_message):
        mock_send_message.side_effect = DeliveryError("Unavailable", code="provider_unavailable")
        task = MagicMock()
        task.request.retries = MAX_RETRIES

        result = _deliver(
            task, str(rental.id), MessageType.RENTAL_CONFIRMATION, render_rental_confirmation
        )

        assert result is False
        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.status == DeliveryStatus.FAILED
        assert message.is_permanent_failure is False

    def test_pending_message_from_earlier_attempt_is_reused(self, rental, mock_send_message):
        WhatsAppMessageFactory(rental=rental, attempt_count=1, failure_code="timeout")

        assert send_rental_confirmation(str(rental.id)) is True

        message = WhatsAppMessage.objects.get(rental=rental)
        assert message.status == DeliveryStatus.SENT
        assert message.attempt_count == 2


@pytest.mark.django_db
class TestSendCancellationNotice:
    """Tests for send_cancellation_notice."""

    def test_sends_deadline(self, cancelled_rental, mock_send_message):
        assert send_cancellation_notice(str(cancelled_rental.id)) is True

        message = WhatsAppMessage.objects.get(rental=cancelled_rental)
        assert message.message_type == MessageType.CANCELLATION_NOTICE
        assert "Fecha límite para vaciar: 15/2/2024" in message.body

    def test_confirmation_and_cancellation_are_separate(self, cancelled_rental, mock_send_message):
        send_rental_confirmation(str(cancelled_rental.id))
        send_cancellation_notice(str(cancelled_rental.id))

        assert mock_send_message.call_count == 2
        assert WhatsAppMessage.objects.filter(rental=cancelled_rental).count() == 2
