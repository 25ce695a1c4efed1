"""
Authentication application.

Owns the email-identified User model that rentals belong to. Users are
provisioned by the external identity flow; this app stores the rows the
billing backend needs (email for Stripe checkout, phone number for WhatsApp
notifications) and authenticates bearer tokens via simplejwt.

Usage:
    from authentication.models import User
"""
