"""
Tests for the User model.
"""

import uuid

import pytest
from django.core.exceptions import ValidationError

from authentication.tests.factories import UserFactory


@pytest.mark.django_db
class TestUserModel:
    """Tests for User fields and helpers."""

    def test_primary_key_is_uuid(self):
        user = UserFactory()

        assert isinstance(user.pk, uuid.UUID)

    def test_str_is_email(self):
        user = UserFactory(email="str@example.com")

        assert str(user) == "str@example.com"

    def test_can_receive_whatsapp_requires_phone(self):
        assert UserFactory(phone_number="+34600111222").can_receive_whatsapp is True
        assert UserFactory(phone_number="").can_receive_whatsapp is False

    def test_phone_number_must_be_e164(self):
        user = UserFactory.build(email="bad-phone@example.com", phone_number="600111222")

        with pytest.raises(ValidationError) as exc_info:
            user.full_clean()

        assert "phone_number" in exc_info.value.message_dict
