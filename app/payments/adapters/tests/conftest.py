"""
Pytest fixtures for Stripe adapter tests.

This module provides fixtures for testing the Stripe adapter, including
mock Stripe API responses, error conditions, and signed webhook bodies.

Sections:
    - Mock Stripe Response Fixtures
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with attribute access like StripeObject."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_subscription():
    """Create a mock Subscription response with an expanded latest invoice."""

    def _create(
        id: str = "sub_test123",
        status: str = "active",
        latest_invoice: Any = "expanded",
    ) -> MockStripeObject:
        if latest_invoice == "expanded":
            latest_invoice = MockStripeObject(
                {"id": "in_test123", "object": "invoice", "payment_intent": "pi_test123"}
            )
        return MockStripeObject(
            {
                "id": id,
                "object": "subscription",
                "status": status,
                "latest_invoice": latest_invoice,
            }
        )

    return _create


@pytest.fixture
def mock_invoice():
    """Create a mock Invoice response."""

    def _create(
        id: str = "in_test123",
        number: str | None = "TRAS-0001",
        status: str = "paid",
        invoice_pdf: str | None = "https://pay.stripe.com/invoice/in_test123/pdf",
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "invoice",
                "number": number,
                "status": status,
                "invoice_pdf": invoice_pdf,
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such subscription: 'sub_missing'",
        param: str | None = "id",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message, param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    """Create a Stripe RateLimitError."""
    return stripe.RateLimitError("Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    """Create a Stripe APIConnectionError."""
    return stripe.APIConnectionError("Could not connect to Stripe.")


@pytest.fixture
def api_error():
    """Create a Stripe APIError."""
    return stripe.APIError("Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    """Create a Stripe AuthenticationError."""
    return stripe.AuthenticationError("Invalid API Key provided.")


# =============================================================================
# Signed Webhook Fixtures
# =============================================================================


@pytest.fixture
def sign_payload():
    """Build a valid Stripe-Signature header for a payload and secret."""

    def _sign(payload: bytes, secret: str, timestamp: int | None = None) -> str:
        timestamp = timestamp or int(time.time())
        signed = f"{timestamp}.".encode() + payload
        digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_stripe_http_client():
    """Mock stripe.RequestsClient so no HTTP session is built."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_subscription(mock_subscription):
    """Mock stripe.Subscription API."""
    with patch("stripe.Subscription") as mock:
        mock.retrieve.return_value = mock_subscription()
        yield mock


@pytest.fixture
def mock_stripe_invoice(mock_invoice):
    """Mock stripe.Invoice API."""
    with patch("stripe.Invoice") as mock:
        mock.retrieve.return_value = mock_invoice()
        yield mock


@pytest.fixture
def mock_stripe_payment_intent():
    """Mock stripe.PaymentIntent API."""
    with patch("stripe.PaymentIntent") as mock:
        mock.retrieve.return_value = MockStripeObject(
            {"id": "pi_test123", "status": "succeeded", "invoice": "in_test123"}
        )
        yield mock


@pytest.fixture
def mock_stripe_checkout_session():
    """Mock stripe.checkout.Session API."""
    with patch("stripe.checkout.Session") as mock:
        mock.create.return_value = MockStripeObject(
            {"id": "cs_test123", "url": "https://checkout.stripe.com/c/pay/cs_test123"}
        )
        yield mock
