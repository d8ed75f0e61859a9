# Re-export all models for convenient imports
from studentdesk.models.user import User, UserRole
from studentdesk.models.student_profile import StudentProfile, FeePayment, Gender, PaymentMethod

__all__ = [
    # User
    "User",
    "UserRole",
    # Student profile
    "StudentProfile",
    "FeePayment",
    "Gender",
    "PaymentMethod",
]
