"""
StudentDesk - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Callable, Dict
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'

from studentdesk.main import app
from studentdesk.core.database import Database
from studentdesk.core.security import create_identity_token, get_password_hash
from studentdesk.models.user import User, UserRole

fake = Faker()

TEST_PASSWORD = 'testpassword123'


@pytest.fixture(scope='function')
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database file for each test"""
    db = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    await db.create_all()
    yield db
    await db.drop_all()
    await db.disconnect()


@pytest.fixture(scope='function')
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test"""
    async with database.session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the test database"""
    app.state.database = database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    del app.state.database


async def _create_user(db_session: AsyncSession, role: UserRole, profile_completed: bool = False) -> User:
    user = User(
        name=fake.name(),
        email=fake.unique.email().lower(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        profile_completed=profile_completed,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def student_user(db_session: AsyncSession) -> User:
    """Create a student without a profile"""
    return await _create_user(db_session, UserRole.STUDENT)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _create_user(db_session, UserRole.ADMIN)


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory for extra users inside a test"""
    async def _make(role: UserRole = UserRole.STUDENT) -> User:
        return await _create_user(db_session, role)
    return _make


def bearer(user: User) -> Dict[str, str]:
    return {'Authorization': f'Bearer {create_identity_token(user.id)}'}


@pytest.fixture
def auth_headers(student_user: User) -> dict:
    """Authentication headers for the student user"""
    return bearer(student_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Authentication headers for the admin user"""
    return bearer(admin_user)


def profile_payload(
    student_id: str = 'CS2024001',
    first_name: str = 'Jane',
    last_name: str = 'Doe',
    course: str = 'Computer Science',
    department: str = 'Engineering',
    year: int = 2,
    total_fees: float = 100000,
    fees_paid: float = 40000,
) -> dict:
    """Valid create-profile body in wire format"""
    return {
        'personalInfo': {
            'firstName': first_name,
            'lastName': last_name,
            'dateOfBirth': '2003-04-12',
            'gender': 'female',
            'phone': '9876543210',
            'address': {
                'street': '12 College Road',
                'city': 'Pune',
                'state': 'Maharashtra',
                'postalCode': '411001',
            },
        },
        'academicDetails': {
            'studentId': student_id,
            'course': course,
            'department': department,
            'year': year,
            'semester': year * 2,
            'enrollmentDate': '2022-08-01',
            'gpa': 8.2,
        },
        'feeDetails': {
            'totalFees': total_fees,
            'feesPaid': fees_paid,
            'paymentHistory': [
                {'amount': fees_paid, 'date': '2023-08-15T10:00:00', 'method': 'online', 'transactionId': 'TXN0001'},
            ],
        },
    }


@pytest.fixture
def sample_profile() -> dict:
    return profile_payload()


@pytest.fixture
def profile_factory() -> Callable[..., dict]:
    """Build create-profile bodies with overrides"""
    return profile_payload


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    """Bearer headers for any user created inside a test"""
    return bearer
