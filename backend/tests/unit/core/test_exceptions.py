"""
Unit Tests for the error taxonomy and envelope helpers
"""
import pytest

from studentdesk.core.exceptions import (
    DuplicateKeyError,
    ForbiddenError,
    NotFoundError,
    ProfileCompletionRequiredError,
    ProfileNotFoundError,
    UnauthorizedError,
    ValidationFailedError,
    duplicate_key_from_integrity_error,
    error_response,
)
from studentdesk.main import field_path, validation_errors


class _FakeIntegrityError(Exception):
    def __init__(self, orig: str):
        super().__init__(orig)
        self.orig = orig


class TestErrorTaxonomy:
    """Status codes and messages of each error kind"""

    def test_unauthorized_message(self):
        error = UnauthorizedError("no token")

        assert error.status_code == 401
        assert error.message == "Not authorized, no token"

    def test_forbidden_for_role(self):
        error = ForbiddenError.for_role("student")

        assert error.status_code == 403
        assert error.message == "User role student is not authorized to access this route"

    def test_profile_completion_required_is_forbidden(self):
        error = ProfileCompletionRequiredError()

        assert isinstance(error, ForbiddenError)
        assert error.status_code == 403
        assert error_response(error)["requiresProfileCompletion"] is True

    def test_not_found(self):
        assert ProfileNotFoundError().status_code == 404
        assert isinstance(ProfileNotFoundError(), NotFoundError)

    def test_duplicate_key_envelope(self):
        body = error_response(DuplicateKeyError("studentId"))

        assert body == {
            "success": False,
            "message": "studentId already exists. Please use a different value.",
            "code": "DUPLICATE_KEY",
            "field": "studentId",
        }

    def test_validation_envelope_lists_errors(self):
        errors = [{"field": "personalInfo.phone", "message": "Valid 10-digit phone number is required"}]
        body = error_response(ValidationFailedError(errors))

        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert body["errors"] == errors


class TestIntegrityErrorMapping:
    """Unique-constraint violations become DuplicateKeyError"""

    COLUMNS = {"student_id": "studentId", "user_id": "userId"}

    def test_sqlite_message(self):
        error = _FakeIntegrityError("UNIQUE constraint failed: student_profiles.student_id")

        duplicate = duplicate_key_from_integrity_error(error, self.COLUMNS)

        assert duplicate is not None
        assert duplicate.field == "studentId"

    def test_postgres_message(self):
        error = _FakeIntegrityError(
            'duplicate key value violates unique constraint "ix_student_profiles_user_id"'
        )

        assert duplicate_key_from_integrity_error(error, self.COLUMNS).field == "userId"

    def test_other_constraint_is_not_mapped(self):
        error = _FakeIntegrityError("NOT NULL constraint failed: student_profiles.city")

        assert duplicate_key_from_integrity_error(error, self.COLUMNS) is None


class TestValidationErrorShaping:
    """Request validation errors become dotted {field, message} entries"""

    @pytest.mark.parametrize("loc,expected", [
        (("body", "personalInfo", "firstName"), "personalInfo.firstName"),
        (("body", "feeDetails", "paymentHistory", 0, "amount"), "feeDetails.paymentHistory.0.amount"),
        (("query", "limit"), "limit"),
        (("body",), "body"),
    ])
    def test_field_path(self, loc, expected):
        assert field_path(loc) == expected

    def test_known_field_uses_client_message(self):
        errors = validation_errors([
            {"loc": ("body", "academicDetails", "year"), "msg": "Input should be less than or equal to 4", "type": "less_than_equal"},
        ])

        assert errors == [{"field": "academicDetails.year", "message": "Year must be between 1 and 4"}]

    def test_one_entry_per_field(self):
        errors = validation_errors([
            {"loc": ("body", "email"), "msg": "first", "type": "value_error"},
            {"loc": ("body", "email"), "msg": "second", "type": "value_error"},
        ])

        assert len(errors) == 1

    def test_unknown_field_falls_back_to_validator_message(self):
        errors = validation_errors([
            {"loc": ("body", "feeDetails", "paymentHistory", 0, "method"), "msg": "Input should be 'cash'", "type": "enum"},
        ])

        assert errors[0]["message"] == "Input should be 'cash'"
