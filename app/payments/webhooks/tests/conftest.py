"""
Pytest fixtures for webhook tests.

Provides users and units referenced from checkout metadata, subscription
rentals targeted by invoice events, and mocks for the outbound Stripe and
notification calls reconciliation makes.
"""

from unittest.mock import patch

import pytest

from authentication.tests.factories import UserFactory
from payments.adapters import SubscriptionResult
from rentals.tests.factories import StorageUnitFactory, SubscriptionRentalFactory


WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def webhook_secret(settings):
    """Configure the webhook signing secret."""
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    return WEBHOOK_SECRET


@pytest.fixture
def renter(db):
    return UserFactory(phone_number="+34600111222")


@pytest.fixture
def unit(db):
    return StorageUnitFactory()


@pytest.fixture
def subscription_rental(db):
    """Active subscription rental billed under sub_test_abc."""
    return SubscriptionRentalFactory(stripe_subscription_id="sub_test_abc")


@pytest.fixture
def mock_retrieve_subscription():
    """Patch the Stripe subscription lookup done for subscription checkouts."""
    with patch(
        "payments.services.reconciliation_service.StripeAdapter.retrieve_subscription"
    ) as mock_retrieve:
        mock_retrieve.return_value = SubscriptionResult(
            id="sub_test_abc",
            status="active",
            latest_invoice_id="in_first_001",
            latest_payment_intent_id="pi_first_001",
        )
        yield mock_retrieve


@pytest.fixture
def mock_dispatcher():
    """Patch notification dispatch so no tasks are queued."""
    with patch("payments.services.reconciliation_service.NotificationDispatcher") as mock:
        yield mock
