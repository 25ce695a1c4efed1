"""
Pytest fixtures for notification tests.

Provides rentals to notify about, configured Twilio settings and a fake
Twilio HTTP response.
"""

from unittest.mock import patch

import pytest

from rentals.tests.factories import SingleRentalFactory, SubscriptionRentalFactory


@pytest.fixture
def twilio_settings(settings):
    """Configure Twilio credentials."""
    settings.TWILIO_ACCOUNT_SID = "AC_test"
    settings.TWILIO_AUTH_TOKEN = "token_test"
    settings.TWILIO_WHATSAPP_NUMBER = "+14155238886"
    settings.TWILIO_API_BASE_URL = "https://api.twilio.test/2010-04-01"
    settings.TWILIO_API_TIMEOUT_SECONDS = 5
    return settings


@pytest.fixture
def rental(db):
    """Active single-payment rental whose renter has a phone number."""
    return SingleRentalFactory(user__phone_number="+34600111222")


@pytest.fixture
def cancelled_rental(db):
    """Subscription rental the renter has just cancelled."""
    return SubscriptionRentalFactory(user__phone_number="+34600111333")


@pytest.fixture
def mock_twilio_post():
    """Patch requests.post as used by the WhatsApp client."""
    with patch("notifications.clients.requests.post") as mock_post:
        mock_post.return_value.status_code = 201
        mock_post.return_value.json.return_value = {"sid": "SM_test123"}
        yield mock_post


@pytest.fixture
def mock_send_message():
    """Patch the WhatsApp client used by the delivery tasks."""
    with patch("notifications.tasks.WhatsAppClient.send_message") as mock_send:
        mock_send.return_value = "SM_test123"
        yield mock_send
