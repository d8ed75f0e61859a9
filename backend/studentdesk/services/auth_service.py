"""
Auth Service - credential store and token issuer

Handles:
- Registration (one identity per email, password stored as bcrypt hash)
- Authentication (email + password -> signed session token)
- Profile-completion flag (flips to true once, never back)
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update
from datetime import datetime
from typing import Optional, Tuple

from studentdesk.core.exceptions import (
    DuplicateKeyError,
    InvalidCredentialsError,
    UserNotFoundError,
    duplicate_key_from_integrity_error,
)
from studentdesk.core.logging_config import get_logger
from studentdesk.core.security import create_identity_token, get_password_hash, verify_password
from studentdesk.core.types import is_valid_uuid
from studentdesk.models.user import User, UserRole

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Service for identities and session tokens"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID, None if it does not resolve"""
        if not user_id or not is_valid_uuid(user_id):
            return None
        result = await self.db.execute(select(User).where(User.id == str(user_id)))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.STUDENT,
    ) -> User:
        """
        Create a new identity.

        Raises:
            DuplicateKeyError: the email is already registered
        """
        email = normalize_email(email)

        if await self.get_user_by_email(email):
            raise DuplicateKeyError("email")

        user = User(
            name=name.strip(),
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
            profile_completed=False,
        )
        self.db.add(user)

        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent registration for the same email
            await self.db.rollback()
            duplicate = duplicate_key_from_integrity_error(e, {"email": "email"})
            if duplicate is None:
                raise
            raise duplicate from e

        await self.db.refresh(user)
        logger.info(f"Registered {role.value} {user.email}")
        return user

    async def authenticate(self, email: str, password: str) -> Tuple[str, User]:
        """
        Check credentials and issue a session token.

        Raises:
            InvalidCredentialsError: unknown email or password mismatch
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            raise InvalidCredentialsError()

        user.last_login = datetime.utcnow()
        await self.db.commit()

        return create_identity_token(user.id), user

    async def mark_profile_completed(self, user_id: str, commit: bool = True) -> None:
        """
        Set the profile-completed flag. Idempotent.

        With ``commit=False`` the change joins the caller's transaction, which
        is how profile creation makes the flag flip part of the same write.
        """
        result = await self.db.execute(
            update(User)
            .where(User.id == str(user_id))
            .values(profile_completed=True, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise UserNotFoundError()
        if commit:
            await self.db.commit()
