"""
Tests for UserManager.
"""

import pytest

from authentication.models import User


@pytest.mark.django_db
class TestUserManagerCreateUser:
    """Tests for UserManager.create_user() method."""

    def test_creates_user_with_email_and_password(self):
        user = User.objects.create_user(
            email="mgr_create@example.com", password="SecurePass123!"
        )

        assert user.email == "mgr_create@example.com"
        assert user.check_password("SecurePass123!")
        assert user.is_staff is False
        assert user.is_superuser is False

    def test_user_without_password_gets_unusable_password(self):
        """Users provisioned by the identity flow have no local password."""
        user = User.objects.create_user(email="external@example.com")

        assert user.has_usable_password() is False

    def test_normalizes_email_domain(self):
        user = User.objects.create_user(email="Renter@EXAMPLE.COM")

        assert user.email == "Renter@example.com"

    def test_missing_email_raises(self):
        with pytest.raises(ValueError, match="Email"):
            User.objects.create_user(email="")


@pytest.mark.django_db
class TestUserManagerCreateSuperuser:
    """Tests for UserManager.create_superuser() method."""

    def test_creates_superuser_with_flags(self):
        admin = User.objects.create_superuser(
            email="admin@example.com", password="AdminPass123!"
        )

        assert admin.is_staff is True
        assert admin.is_superuser is True

    def test_rejects_superuser_without_staff(self):
        with pytest.raises(ValueError, match="is_staff"):
            User.objects.create_superuser(
                email="admin2@example.com", password="x", is_staff=False
            )
