"""
Profile Service - business logic for the student profile aggregate

Handles:
- Profile creation (student only, once per identity) and the
  profile-completed flag flip that goes with it
- Lookup of own profile / any profile
- Partial update and delete (admin only)
- The fees-pending invariant: feesPending == totalFees - feesPaid, recomputed
  synchronously before every write
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select
from datetime import datetime
from typing import List, NamedTuple, Optional

from studentdesk.core.exceptions import (
    ProfileAlreadyExistsError,
    ProfileNotFoundError,
    duplicate_key_from_integrity_error,
)
from studentdesk.core.logging_config import get_logger
from studentdesk.core.types import is_valid_uuid
from studentdesk.models.student_profile import FeePayment, StudentProfile
from studentdesk.models.user import User
from studentdesk.schemas.profile import PaymentEntry, ProfileCreate, ProfileUpdate
from studentdesk.services.auth_service import AuthService

logger = get_logger(__name__)

# Unique columns of the aggregate and the field name reported for each
UNIQUE_PROFILE_COLUMNS = {
    "student_id": "studentId",
    "user_id": "userId",
}

# Payload attribute -> StudentProfile column, per sub-document
PERSONAL_COLUMNS = {
    "first_name": "first_name",
    "last_name": "last_name",
    "date_of_birth": "date_of_birth",
    "gender": "gender",
    "phone": "phone",
}
ADDRESS_COLUMNS = {
    "street": "street",
    "city": "city",
    "state": "state",
    "postal_code": "postal_code",
    "country": "country",
}
ACADEMIC_COLUMNS = {
    "student_id": "student_id",
    "course": "course",
    "department": "department",
    "year": "year",
    "semester": "semester",
    "enrollment_date": "enrollment_date",
    "gpa": "gpa",
}


class FeeFigures(NamedTuple):
    total_fees: float
    fees_paid: float
    fees_pending: float = 0


def recompute_pending(fees: FeeFigures) -> FeeFigures:
    """Return the figures with fees_pending derived from total and paid"""
    return fees._replace(fees_pending=fees.total_fees - fees.fees_paid)


def apply_fee_figures(profile: StudentProfile) -> None:
    """Recompute the derived field on a profile about to be written"""
    fees = recompute_pending(FeeFigures(profile.total_fees, profile.fees_paid or 0))
    profile.fees_paid = fees.fees_paid
    profile.fees_pending = fees.fees_pending


def build_payments(entries: List[PaymentEntry], created_at: datetime) -> List[FeePayment]:
    """Payment rows in submitted order; missing dates default to creation time"""
    return [
        FeePayment(
            position=index,
            amount=entry.amount,
            date=entry.date or created_at,
            method=entry.method,
            transaction_id=entry.transaction_id,
        )
        for index, entry in enumerate(entries)
    ]


def latest_payment_date(payments: List[FeePayment]) -> Optional[datetime]:
    dates = [payment.date for payment in payments if payment.date is not None]
    return max(dates) if dates else None


class ProfileService:
    """Service for creating, reading, updating and deleting student profiles"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, profile_id: str) -> Optional[StudentProfile]:
        if not profile_id or not is_valid_uuid(profile_id):
            return None
        result = await self.db.execute(
            select(StudentProfile)
            .where(StudentProfile.id == str(profile_id))
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def _commit_or_raise_duplicate(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            duplicate = duplicate_key_from_integrity_error(e, UNIQUE_PROFILE_COLUMNS)
            if duplicate is None:
                raise
            logger.warning(f"Profile write rejected: duplicate {duplicate.field}")
            raise duplicate from e

    async def find_by_user(self, user_id: str) -> Optional[StudentProfile]:
        result = await self.db.execute(
            select(StudentProfile).where(StudentProfile.user_id == str(user_id))
        )
        return result.unique().scalar_one_or_none()

    async def create(self, user: User, payload: ProfileCreate) -> StudentProfile:
        """
        Create the profile for ``user`` and mark the user's profile completed,
        both in one transaction.

        Raises:
            ProfileAlreadyExistsError: the user already has a profile
            DuplicateKeyError: studentId (or userId, on a race) already taken
        """
        if await self.find_by_user(user.id):
            raise ProfileAlreadyExistsError()

        personal = payload.personal_info
        academic = payload.academic_details
        fees = payload.fee_details
        now = datetime.utcnow()

        profile = StudentProfile(
            user_id=user.id,
            first_name=personal.first_name,
            last_name=personal.last_name,
            date_of_birth=personal.date_of_birth,
            gender=personal.gender,
            phone=personal.phone,
            street=personal.address.street,
            city=personal.address.city,
            state=personal.address.state,
            postal_code=personal.address.postal_code,
            country=personal.address.country,
            student_id=academic.student_id,
            course=academic.course,
            department=academic.department,
            year=academic.year,
            semester=academic.semester,
            enrollment_date=academic.enrollment_date,
            gpa=academic.gpa,
            total_fees=fees.total_fees,
            fees_paid=fees.fees_paid,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        profile.payments = build_payments(fees.payment_history, now)
        profile.last_payment_date = fees.last_payment_date or latest_payment_date(profile.payments)
        apply_fee_figures(profile)

        self.db.add(profile)
        await AuthService(self.db).mark_profile_completed(user.id, commit=False)
        await self._commit_or_raise_duplicate()

        logger.info(f"Created profile {profile.student_id} for user {user.id}")
        return await self._load(profile.id)

    async def get_own(self, user_id: str) -> StudentProfile:
        profile = await self.find_by_user(user_id)
        if not profile:
            raise ProfileNotFoundError()
        return profile

    async def get_by_id(self, profile_id: str) -> StudentProfile:
        profile = await self._load(profile_id)
        if not profile:
            raise ProfileNotFoundError()
        return profile

    async def update(self, profile_id: str, payload: ProfileUpdate) -> StudentProfile:
        """
        Apply a partial update. Only fields present (and not null) in the
        payload are written; fee figures are recomputed before the write.

        Raises:
            ProfileNotFoundError: no profile with that id
            DuplicateKeyError: the new studentId is already taken
        """
        profile = await self.get_by_id(profile_id)

        personal = payload.personal_info
        if personal is not None:
            self._assign(profile, personal.model_dump(exclude_none=True, exclude={"address"}), PERSONAL_COLUMNS)
            if personal.address is not None:
                self._assign(profile, personal.address.model_dump(exclude_none=True), ADDRESS_COLUMNS)

        academic = payload.academic_details
        if academic is not None:
            self._assign(profile, academic.model_dump(exclude_none=True), ACADEMIC_COLUMNS)

        now = datetime.utcnow()
        fees = payload.fee_details
        if fees is not None:
            if fees.total_fees is not None:
                profile.total_fees = fees.total_fees
            if fees.fees_paid is not None:
                profile.fees_paid = fees.fees_paid
            if fees.payment_history is not None:
                profile.payments = build_payments(fees.payment_history, now)
                if fees.last_payment_date is None:
                    profile.last_payment_date = latest_payment_date(profile.payments)
            if fees.last_payment_date is not None:
                profile.last_payment_date = fees.last_payment_date

        if payload.is_active is not None:
            profile.is_active = payload.is_active

        apply_fee_figures(profile)
        profile.updated_at = now

        await self._commit_or_raise_duplicate()

        logger.info(f"Updated profile {profile_id}")
        return await self._load(profile_id)

    async def delete(self, profile_id: str) -> None:
        """
        Remove the profile. The owning user is left untouched, including its
        profile-completed flag.
        """
        profile = await self.get_by_id(profile_id)
        await self.db.delete(profile)
        await self.db.commit()
        logger.info(f"Deleted profile {profile_id}")

    @staticmethod
    def _assign(profile: StudentProfile, values: dict, columns: dict) -> None:
        for attr, value in values.items():
            setattr(profile, columns[attr], value)
