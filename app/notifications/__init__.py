"""
Notifications app for WhatsApp messages to renters.

This app provides:
- WhatsAppMessage model tracking one message per rental and type
- WhatsAppClient for the Twilio Messages API
- Celery tasks for async delivery with retry on transient errors
- NotificationDispatcher, which queues tasks after the caller commits

Usage:
    from notifications.services import NotificationDispatcher

    NotificationDispatcher.send_rental_confirmation(rental)
"""
