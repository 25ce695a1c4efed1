"""
Celery configuration for the storage rental billing backend.

Celery runs the out-of-band work that must never block webhook
acknowledgement, such as WhatsApp notification delivery. Redis is used as
both the message broker and result backend, and tasks are auto-discovered
from all installed Django apps.

Usage:
    from notifications.tasks import send_rental_confirmation

    send_rental_confirmation.delay(str(rental.id))
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
