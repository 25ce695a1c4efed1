"""
Tests for ServiceResult and BaseService.
"""

import pytest
from django.db import transaction

from core.exceptions import ConflictError, NotFoundError
from core.services import BaseService, ServiceResult


class TestServiceResult:
    """Tests for the ServiceResult wrapper."""

    def test_success_is_truthy(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error is None

    def test_failure_is_falsy(self):
        result = ServiceResult.failure("Unit is not available", "UNIT_UNAVAILABLE")

        assert not result
        assert result.error == "Unit is not available"
        assert result.error_code == "UNIT_UNAVAILABLE"

    def test_failure_response_uses_error_key(self):
        result = ServiceResult.failure("Missing paymentId", "VALIDATION_ERROR")

        assert result.to_response() == {
            "error": "Missing paymentId",
            "error_code": "VALIDATION_ERROR",
        }

    def test_from_exception_keeps_application_error_code(self):
        exc = NotFoundError("Payment not found", error_code="PAYMENT_NOT_FOUND")

        result = ServiceResult.from_exception(exc)

        assert result.error == "Payment not found"
        assert result.error_code == "PAYMENT_NOT_FOUND"

    def test_from_exception_falls_back_to_class_name(self):
        result = ServiceResult.from_exception(ValueError("bad"))

        assert result.error == "bad"
        assert result.error_code == "VALUEERROR"


class TestBaseApplicationError:
    """Tests for the exception hierarchy's API representation."""

    def test_to_dict_includes_details(self):
        exc = ConflictError("Illegal transition", details={"state": "cancelled"})

        assert exc.to_dict() == {
            "error": "Illegal transition",
            "error_code": "CONFLICT",
            "details": {"state": "cancelled"},
        }

    def test_str_includes_error_code(self):
        assert str(NotFoundError("gone")) == "[NOT_FOUND] gone"


@pytest.mark.django_db
class TestBaseServiceAtomic:
    """BaseService.atomic opens a real transaction."""

    def test_atomic_block_is_in_transaction(self):
        with BaseService.atomic():
            assert transaction.get_connection().in_atomic_block

    def test_logger_named_after_service(self):
        class ExampleService(BaseService):
            pass

        assert ExampleService.get_logger().name.endswith("ExampleService")
