"""
Custom Exceptions for StudentDesk
=================================

Every domain failure is raised as a subclass of ``StudentDeskError`` and
translated to the API envelope by the handlers registered in ``main.py``:

    {"success": false, "message": "...", "errors": [...]}

Usage:
    from studentdesk.core.exceptions import NotFoundError

    if not profile:
        raise NotFoundError("Profile not found")
"""

from typing import Optional, Any, Dict, List


class StudentDeskError(Exception):
    """Base exception for all StudentDesk errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class UnauthorizedError(StudentDeskError):
    """Missing, invalid or expired token, or the token's user is gone"""

    status_code = 401

    def __init__(self, reason: str = "token failed"):
        super().__init__(f"Not authorized, {reason}", code="UNAUTHORIZED")
        self.reason = reason


class InvalidCredentialsError(StudentDeskError):
    """Unknown email or wrong password"""

    status_code = 401

    def __init__(self):
        super().__init__("Invalid email or password", code="INVALID_CREDENTIALS")


class InvalidTokenError(StudentDeskError):
    """JWT token is malformed, tampered with or expired"""

    status_code = 401

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class ForbiddenError(StudentDeskError):
    """User role not authorized for this route"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="FORBIDDEN")

    @classmethod
    def for_role(cls, role: str) -> "ForbiddenError":
        return cls(f"User role {role} is not authorized to access this route")


class ProfileCompletionRequiredError(ForbiddenError):
    """Student has not completed their profile yet"""

    def __init__(self):
        super().__init__("Please complete your profile first")
        self.code = "PROFILE_INCOMPLETE"
        self.details = {"requiresProfileCompletion": True}


# ============================================
# Validation & Conflict Errors (400-type)
# ============================================

class ValidationFailedError(StudentDeskError):
    """One or more field-level constraint violations"""

    status_code = 400

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message, code="VALIDATION_FAILED", details={"errors": errors})
        self.errors = errors


class DuplicateKeyError(StudentDeskError):
    """Unique constraint collision on email, studentId or userId"""

    status_code = 400

    def __init__(self, field: str):
        super().__init__(
            f"{field} already exists. Please use a different value.",
            code="DUPLICATE_KEY",
            details={"field": field}
        )
        self.field = field


class ProfileAlreadyExistsError(StudentDeskError):
    """A profile already exists for this user"""

    status_code = 400

    def __init__(self):
        super().__init__("Profile already exists for this user", code="PROFILE_EXISTS")


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(StudentDeskError):
    """Requested resource does not exist"""

    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, code="NOT_FOUND")


class ProfileNotFoundError(NotFoundError):

    def __init__(self):
        super().__init__("Profile not found")


class UserNotFoundError(NotFoundError):

    def __init__(self):
        super().__init__("User not found")


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: StudentDeskError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    body: Dict[str, Any] = {
        "success": False,
        "message": error.message,
        "code": error.code,
    }
    if isinstance(error, ValidationFailedError):
        body["errors"] = error.errors
    if isinstance(error, DuplicateKeyError):
        body["field"] = error.field
    if isinstance(error, ProfileCompletionRequiredError):
        body["requiresProfileCompletion"] = True
    return body


def duplicate_key_from_integrity_error(
    error: Exception,
    columns: Dict[str, str],
) -> Optional[DuplicateKeyError]:
    """
    Map a store unique-constraint violation to a DuplicateKeyError.

    ``columns`` maps database column names to the API field names reported
    to the client, checked in order. Returns None when the violation is not
    on one of those columns.
    """
    text = str(getattr(error, "orig", None) or error).lower()
    if "unique" not in text and "duplicate" not in text:
        return None
    for column, field in columns.items():
        if column in text:
            return DuplicateKeyError(field)
    return None
