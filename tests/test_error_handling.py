"""
Tests for error envelopes and the marketplace exception hierarchy.
"""

import json
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.services.error_handler import ErrorHandlerService
from app.utils.exceptions import (
    BookedUnitProtectedError,
    ExternalServiceError,
    InsufficientCreditsError,
    NotFoundError,
    PaymentVerificationError,
    RateLimitExceededError,
    StaleVersionError,
)


class TestErrorHandlerService:
    """Rendering of each failure kind into the JSON envelope."""

    def test_format_error_response(self):
        response = ErrorHandlerService.format_error_response(
            error_code="TEST_ERROR",
            message="Test error message",
            details=[{"field": "price", "message": "Invalid"}],
            request_id="abc12345"
        )

        error = response["error"]
        assert error["code"] == "TEST_ERROR"
        assert error["request_id"] == "abc12345"
        assert error["details"][0]["field"] == "price"
        assert error["timestamp"].endswith("Z")

    def test_optional_keys_are_omitted(self):
        error = ErrorHandlerService.format_error_response("X", "y")["error"]
        assert "details" not in error
        assert "request_id" not in error

    def test_handle_api_exception_keeps_headers(self):
        response = ErrorHandlerService.handle_api_exception(RateLimitExceededError(12))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "12"
        body = json.loads(response.body)
        assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert len(body["error"]["request_id"]) == 8

    def test_handle_validation_error(self):
        mock_error = Mock()
        mock_error.errors.return_value = [
            {"loc": ("body", "visit_date"), "msg": "Field required", "type": "missing"},
            {"loc": ("body", "ratings", "checkIn"), "msg": "Input should be less than or equal to 5",
             "type": "less_than_equal"},
        ]

        response = ErrorHandlerService.handle_validation_error(mock_error)

        assert response.status_code == 422
        details = json.loads(response.body)["error"]["details"]
        assert [d["field"] for d in details] == ["visit_date", "ratings.checkIn"]

    def test_integrity_error_is_conflict(self):
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))

        response = ErrorHandlerService.handle_database_error(error)

        assert response.status_code == 409
        body = json.loads(response.body)
        assert body["error"]["code"] == "INTEGRITY_ERROR"
        assert body["error"]["message"] == "Constraint violation: Duplicate value for unique field"

    def test_other_database_errors_are_500(self):
        response = ErrorHandlerService.handle_database_error(OperationalError("SELECT 1", {}, Exception("gone")))

        assert response.status_code == 500
        assert json.loads(response.body)["error"]["code"] == "DATABASE_ERROR"

    def test_handle_unexpected_error_hides_details(self):
        response = ErrorHandlerService.handle_unexpected_error(Exception("secret stack detail"))

        assert response.status_code == 500
        body = json.loads(response.body)
        assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "secret" not in body["error"]["message"]


class TestMarketplaceExceptions:

    def test_stale_version_names_both_versions(self):
        error = StaleVersionError("Project", expected=1, current=3)

        assert error.status_code == 409
        assert "expected version 1, current version 3" in error.detail

    def test_stale_version_without_current(self):
        assert "(expected version 2)" in StaleVersionError("Project", expected=2).detail

    @pytest.mark.parametrize("error, status_code, text", [
        (InsufficientCreditsError("developer"), 403, "Insufficient developer credits"),
        (BookedUnitProtectedError("Tower A - 11A", "delete"), 409, "Cannot delete booked unit Tower A - 11A"),
        (PaymentVerificationError(), 400, "Invalid payment signature"),
        (ExternalServiceError("Razorpay", "timeout"), 502, "Razorpay request failed: timeout"),
        (NotFoundError("Property", "42"), 404, "Property not found with ID: 42"),
    ])
    def test_status_and_message(self, error, status_code, text):
        assert error.status_code == status_code
        assert text in error.detail

    def test_retry_after_is_at_least_one_second(self):
        assert RateLimitExceededError(0).headers["Retry-After"] == "1"
