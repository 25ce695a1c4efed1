"""
Tests for the webhook handler registry and dispatch.

Tests cover:
- Registration of every reconciled event type
- Unknown event types acknowledged without side effects
- Payload decoding before the handler runs
- Routing to ReconciliationService
"""

from unittest.mock import patch

import pytest

from core.services import ServiceResult
from payments.exceptions import WebhookPayloadError
from payments.tests.factories import (
    WebhookEventFactory,
    checkout_completed_event,
    invoice_event,
    subscription_deleted_event,
)
from payments.webhooks.events import (
    CheckoutSessionPayload,
    InvoicePayload,
    SubscriptionPayload,
)
from payments.webhooks.handlers import WEBHOOK_HANDLERS, dispatch_webhook, register_handler


RECONCILIATION = "payments.webhooks.handlers.ReconciliationService"


def stored(event: dict):
    return WebhookEventFactory(
        stripe_event_id=event["id"], event_type=event["type"], payload=event
    )


class TestRegistry:
    """Tests for handler registration."""

    @pytest.mark.parametrize(
        "event_type,payload_class",
        [
            ("checkout.session.completed", CheckoutSessionPayload),
            ("checkout.session.expired", CheckoutSessionPayload),
            ("invoice.payment_succeeded", InvoicePayload),
            ("invoice.payment_failed", InvoicePayload),
            ("customer.subscription.deleted", SubscriptionPayload),
        ],
    )
    def test_event_types_are_registered(self, event_type, payload_class):
        assert WEBHOOK_HANDLERS[event_type].payload_class is payload_class

    def test_register_handler_adds_registration(self):
        @register_handler("test.custom_event", SubscriptionPayload)
        def handle_custom(webhook_event, payload):
            return ServiceResult.success(payload.subscription_id)

        try:
            registration = WEBHOOK_HANDLERS["test.custom_event"]
            assert registration.handler is handle_custom
            assert registration.payload_class is SubscriptionPayload
        finally:
            del WEBHOOK_HANDLERS["test.custom_event"]


@pytest.mark.django_db
class TestDispatchWebhook:
    """Tests for dispatch_webhook."""

    def test_unknown_event_type_is_acknowledged(self):
        event = WebhookEventFactory(event_type="customer.created")

        with patch(RECONCILIATION) as mock_service:
            result = dispatch_webhook(event)

        assert result.success
        assert result.data is None
        assert mock_service.method_calls == []

    def test_checkout_completed_routes_to_reconcile_checkout(self):
        event = stored(checkout_completed_event(session_id="cs_route"))

        with patch(RECONCILIATION) as mock_service:
            mock_service.reconcile_checkout.return_value = ServiceResult.success(None)
            result = dispatch_webhook(event)

        assert result.success
        session = mock_service.reconcile_checkout.call_args.args[0]
        assert isinstance(session, CheckoutSessionPayload)
        assert session.session_id == "cs_route"

    def test_invoice_paid_routes_to_apply_renewal(self):
        event = stored(invoice_event(invoice_id="in_route"))

        with patch(RECONCILIATION) as mock_service:
            mock_service.apply_renewal.return_value = ServiceResult.success(None)
            dispatch_webhook(event)

        invoice = mock_service.apply_renewal.call_args.args[0]
        assert invoice.invoice_id == "in_route"

    def test_invoice_failed_routes_to_mark_past_due(self):
        event = stored(invoice_event("invoice.payment_failed"))

        with patch(RECONCILIATION) as mock_service:
            mock_service.mark_past_due.return_value = ServiceResult.success(None)
            dispatch_webhook(event)

        mock_service.mark_past_due.assert_called_once()
        mock_service.apply_renewal.assert_not_called()

    def test_subscription_deleted_routes_to_cancel(self):
        event = stored(subscription_deleted_event("sub_route"))

        with patch(RECONCILIATION) as mock_service:
            mock_service.cancel_subscription.return_value = ServiceResult.success(None)
            dispatch_webhook(event)

        payload = mock_service.cancel_subscription.call_args.args[0]
        assert payload.subscription_id == "sub_route"

    def test_checkout_expired_has_no_side_effects(self):
        event = stored(checkout_completed_event())
        event.event_type = "checkout.session.expired"

        with patch(RECONCILIATION) as mock_service:
            result = dispatch_webhook(event)

        assert result.success
        assert mock_service.method_calls == []

    def test_payment_intent_succeeded_is_only_logged(self):
        event = WebhookEventFactory(event_type="payment_intent.succeeded")

        with patch(RECONCILIATION) as mock_service:
            result = dispatch_webhook(event)

        assert result.success
        assert mock_service.method_calls == []

    def test_undecodable_object_raises_before_handler(self):
        event = WebhookEventFactory(
            event_type="invoice.payment_succeeded",
            payload={"id": "evt_bad", "data": {"object": {"object": "invoice"}}},
        )

        with patch(RECONCILIATION) as mock_service:
            with pytest.raises(WebhookPayloadError):
                dispatch_webhook(event)

        mock_service.apply_renewal.assert_not_called()
