"""
Tests for notifications app.

This package contains test modules for:
- test_clients.py: Twilio WhatsApp client error mapping
- test_messages.py: Message template rendering
- test_tasks.py: WhatsApp delivery task tests
- test_services.py: NotificationDispatcher on-commit submission

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_tasks.py
"""
