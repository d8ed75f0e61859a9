from sqlalchemy import (
    Column,
    String,
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from studentdesk.core.database import Base
from studentdesk.core.types import GUID, generate_uuid


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    ONLINE = "online"
    CHEQUE = "cheque"


class StudentProfile(Base):
    """
    Student profile aggregate.

    One row per student identity. The personal, academic and fee
    sub-documents are flattened into prefixed columns; the payment history
    lives in ``fee_payments``. ``user_id`` and ``student_id`` carry unique
    indexes so concurrent duplicate creates are rejected by the store.
    """
    __tablename__ = "student_profiles"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False)

    # Personal info
    first_name = Column(String(100), nullable=False, index=True)
    last_name = Column(String(100), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    phone = Column(String(10), nullable=False)
    street = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False, default="India")

    # Academic details
    student_id = Column(String(50), unique=True, index=True, nullable=False)
    course = Column(String(255), nullable=False, index=True)
    department = Column(String(255), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    semester = Column(Integer, nullable=False)
    enrollment_date = Column(Date, nullable=False)
    gpa = Column(Float, nullable=False, default=0)

    # Fee details - fees_pending is derived, see services.profile_service.recompute_pending
    total_fees = Column(Float, nullable=False)
    fees_paid = Column(Float, nullable=False, default=0)
    fees_pending = Column(Float, nullable=False, default=0)
    last_payment_date = Column(DateTime, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", lazy="joined")
    payments = relationship(
        "FeePayment",
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="FeePayment.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<StudentProfile {self.student_id}>"


class FeePayment(Base):
    """One entry of a profile's payment history"""
    __tablename__ = "fee_payments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    profile_id = Column(GUID, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    method = Column(SQLEnum(PaymentMethod), nullable=False)
    transaction_id = Column(String(100), nullable=True)

    profile = relationship("StudentProfile", back_populates="payments")

    def __repr__(self):
        return f"<FeePayment {self.amount} via {self.method}>"
