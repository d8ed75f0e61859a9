"""
Student profile schemas.

Wire format is the nested camelCase document (personalInfo / academicDetails /
feeDetails). ``feesPending`` is output only: it is ignored on input and always
derived from ``totalFees - feesPaid`` by the profile service.
"""
from pydantic import Field, StringConstraints, field_validator
from typing import Annotated, Dict, List, Optional
from datetime import date, datetime, timezone

from studentdesk.models.student_profile import Gender, PaymentMethod, StudentProfile
from studentdesk.schemas.auth import UserSummary
from studentdesk.schemas.common import CamelModel, NonBlankStr

PhoneStr = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\d{10}$")]


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Offset-aware timestamps are shifted to UTC and stored without tzinfo"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Client-facing message per failing field, keyed by dotted camelCase path
PROFILE_FIELD_MESSAGES: Dict[str, str] = {
    "personalInfo": "Personal information is required",
    "personalInfo.firstName": "First name is required",
    "personalInfo.lastName": "Last name is required",
    "personalInfo.dateOfBirth": "Valid date of birth is required",
    "personalInfo.gender": "Valid gender is required",
    "personalInfo.phone": "Valid 10-digit phone number is required",
    "personalInfo.address": "Address is required",
    "personalInfo.address.street": "Street address is required",
    "personalInfo.address.city": "City is required",
    "personalInfo.address.state": "State is required",
    "personalInfo.address.postalCode": "Postal code is required",
    "personalInfo.address.country": "Country is required",
    "academicDetails": "Academic details are required",
    "academicDetails.studentId": "Student ID is required",
    "academicDetails.course": "Course is required",
    "academicDetails.department": "Department is required",
    "academicDetails.year": "Year must be between 1 and 4",
    "academicDetails.semester": "Semester must be between 1 and 8",
    "academicDetails.enrollmentDate": "Valid enrollment date is required",
    "academicDetails.gpa": "GPA must be between 0 and 10",
    "feeDetails": "Fee details are required",
    "feeDetails.totalFees": "Total fees must be a positive number",
    "feeDetails.feesPaid": "Fees paid must be a positive number",
    "feeDetails.lastPaymentDate": "Valid last payment date is required",
}


# ==================== Input ====================

class Address(CamelModel):
    street: NonBlankStr
    city: NonBlankStr
    state: NonBlankStr
    postal_code: NonBlankStr
    country: NonBlankStr = "India"


class PersonalInfo(CamelModel):
    first_name: NonBlankStr
    last_name: NonBlankStr
    date_of_birth: date
    gender: Gender
    phone: PhoneStr
    address: Address


class AcademicDetails(CamelModel):
    student_id: NonBlankStr
    course: NonBlankStr
    department: NonBlankStr
    year: int = Field(..., ge=1, le=4)
    semester: int = Field(..., ge=1, le=8)
    enrollment_date: date
    gpa: float = Field(0, ge=0, le=10)


class PaymentEntry(CamelModel):
    amount: float
    date: Optional[datetime] = None  # defaults to record-creation time
    method: PaymentMethod
    transaction_id: Optional[str] = None

    @field_validator("date")
    @classmethod
    def date_as_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class FeeDetails(CamelModel):
    total_fees: float = Field(..., ge=0)
    fees_paid: float = Field(0, ge=0)
    last_payment_date: Optional[datetime] = None
    payment_history: List[PaymentEntry] = Field(default_factory=list)

    @field_validator("last_payment_date")
    @classmethod
    def last_payment_as_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class ProfileCreate(CamelModel):
    personal_info: PersonalInfo
    academic_details: AcademicDetails
    fee_details: FeeDetails


class AddressUpdate(CamelModel):
    street: Optional[NonBlankStr] = None
    city: Optional[NonBlankStr] = None
    state: Optional[NonBlankStr] = None
    postal_code: Optional[NonBlankStr] = None
    country: Optional[NonBlankStr] = None


class PersonalInfoUpdate(CamelModel):
    first_name: Optional[NonBlankStr] = None
    last_name: Optional[NonBlankStr] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[PhoneStr] = None
    address: Optional[AddressUpdate] = None


class AcademicDetailsUpdate(CamelModel):
    student_id: Optional[NonBlankStr] = None
    course: Optional[NonBlankStr] = None
    department: Optional[NonBlankStr] = None
    year: Optional[int] = Field(None, ge=1, le=4)
    semester: Optional[int] = Field(None, ge=1, le=8)
    enrollment_date: Optional[date] = None
    gpa: Optional[float] = Field(None, ge=0, le=10)


class FeeDetailsUpdate(CamelModel):
    total_fees: Optional[float] = Field(None, ge=0)
    fees_paid: Optional[float] = Field(None, ge=0)
    last_payment_date: Optional[datetime] = None
    payment_history: Optional[List[PaymentEntry]] = None

    @field_validator("last_payment_date")
    @classmethod
    def last_payment_as_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class ProfileUpdate(CamelModel):
    """Partial update: only the fields present in the body are applied"""
    personal_info: Optional[PersonalInfoUpdate] = None
    academic_details: Optional[AcademicDetailsUpdate] = None
    fee_details: Optional[FeeDetailsUpdate] = None
    is_active: Optional[bool] = None


# ==================== Output ====================

class AddressOut(CamelModel):
    street: str
    city: str
    state: str
    postal_code: str
    country: str


class PersonalInfoOut(CamelModel):
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender
    phone: str
    address: AddressOut


class AcademicDetailsOut(CamelModel):
    student_id: str
    course: str
    department: str
    year: int
    semester: int
    enrollment_date: date
    gpa: float


class PaymentOut(CamelModel):
    id: str
    amount: float
    date: datetime
    method: PaymentMethod
    transaction_id: Optional[str] = None


class FeeDetailsOut(CamelModel):
    total_fees: float
    fees_paid: float
    fees_pending: float
    last_payment_date: Optional[datetime] = None
    payment_history: List[PaymentOut] = Field(default_factory=list)


class ProfileResponse(CamelModel):
    id: str
    user_id: Optional[UserSummary] = None
    personal_info: PersonalInfoOut
    academic_details: AcademicDetailsOut
    fee_details: FeeDetailsOut
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, profile: StudentProfile) -> "ProfileResponse":
        """Rebuild the nested document from the flattened row"""
        return cls(
            id=str(profile.id),
            user_id=UserSummary.model_validate(profile.user) if profile.user else None,
            personal_info=PersonalInfoOut(
                first_name=profile.first_name,
                last_name=profile.last_name,
                date_of_birth=profile.date_of_birth,
                gender=profile.gender,
                phone=profile.phone,
                address=AddressOut(
                    street=profile.street,
                    city=profile.city,
                    state=profile.state,
                    postal_code=profile.postal_code,
                    country=profile.country,
                ),
            ),
            academic_details=AcademicDetailsOut(
                student_id=profile.student_id,
                course=profile.course,
                department=profile.department,
                year=profile.year,
                semester=profile.semester,
                enrollment_date=profile.enrollment_date,
                gpa=profile.gpa,
            ),
            fee_details=FeeDetailsOut(
                total_fees=profile.total_fees,
                fees_paid=profile.fees_paid,
                fees_pending=profile.fees_pending,
                last_payment_date=profile.last_payment_date,
                payment_history=[PaymentOut.model_validate(p) for p in profile.payments],
            ),
            is_active=profile.is_active,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


# ==================== Dashboard ====================

class FeeStats(CamelModel):
    total_fees: float = 0
    total_paid: float = 0
    total_pending: float = 0


class CourseCount(CamelModel):
    course: str
    count: int


class YearCount(CamelModel):
    year: int
    count: int


class DashboardStats(CamelModel):
    total_students: int
    fee_stats: FeeStats
    course_stats: List[CourseCount]
    year_stats: List[YearCount]
