"""
TutorHub - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'

from app.main import app
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.models import User, UserRole, TeacherProfile, TeacherStatus

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def second_session(db_session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Independent session on the same database, for concurrent-writer tests"""
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, role: UserRole) -> User:
    user = User(
        email=fake.unique.email(),
        full_name=fake.name(),
        role=role,
        is_active=True
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _create_user(db_session, UserRole.ADMIN)


@pytest.fixture
async def teacher_user(db_session: AsyncSession) -> User:
    """Create a teacher test user"""
    return await _create_user(db_session, UserRole.TEACHER)


@pytest.fixture
async def student_user(db_session: AsyncSession) -> User:
    """Create a student test user"""
    return await _create_user(db_session, UserRole.STUDENT)


@pytest.fixture
async def teacher_profile(db_session: AsyncSession, teacher_user: User) -> TeacherProfile:
    """Legacy teacher profile that has never used dynamic profiles"""
    profile = TeacherProfile(
        user_id=teacher_user.id,
        status=TeacherStatus.APPROVED,
        first_name=fake.first_name(),
        last_name=fake.last_name(),
        tagline="Making maths make sense",
        bio=fake.paragraph(),
        subjects=["MATHEMATICS"],
        grades=["10", "11"],
        education_level="OL",
        experience=6,
        experience_level="senior",
        qualifications=["BSc Mathematics"],
        teaching_modes=["online", "home"],
        pricing={"hourlyRate": 2500, "monthlyFee": 8000, "groupClassPrice": 1500},
        location={"city": "Colombo", "district": "Colombo", "province": "Western"},
        contact={"phone": "0771234567", "whatsapp": "0771234567"},
        languages=["English", "Sinhala"],
    )
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


def _headers_for(user: User) -> dict:
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return _headers_for(admin_user)


@pytest.fixture
def teacher_auth_headers(teacher_user: User) -> dict:
    """Generate authentication headers for teacher user"""
    return _headers_for(teacher_user)


@pytest.fixture
def student_auth_headers(student_user: User) -> dict:
    """Generate authentication headers for student user"""
    return _headers_for(student_user)
