"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Payment immutability and WebhookEvent helpers
- test_views.py: Checkout and invoice API endpoint tests

Webhook and service tests live beside their packages in
webhooks/tests/, services/tests/ and adapters/tests/.

Usage:
    pytest payments/tests/
    pytest payments/
"""
