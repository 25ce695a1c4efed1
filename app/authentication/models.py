"""
Authentication models.

This module defines the User model rentals belong to:
- User: Custom user model with email-based authentication and a WhatsApp
  capable phone number

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.validators import RegexValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from authentication.managers import UserManager


# E.164: leading +, country code, up to 15 digits total
phone_number_validator = RegexValidator(
    regex=r"^\+[1-9]\d{6,14}$",
    message="Phone number must be in E.164 format, e.g. +34600111222.",
)


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    The UUID primary key is what the checkout flow writes into Stripe
    session metadata as userId, so webhook reconciliation can resolve the
    renter without any other lookup.

    Fields:
        email: Primary identifier, unique, used for login and Stripe checkout
        phone_number: E.164 number used as the WhatsApp destination
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    phone_number = models.CharField(
        max_length=16,
        blank=True,
        default="",
        validators=[phone_number_validator],
        help_text="E.164 phone number for WhatsApp notifications",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def can_receive_whatsapp(self) -> bool:
        """Whether a notification destination is on file."""
        return bool(self.phone_number)
