import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from typing import AsyncGenerator, Dict, Optional, Tuple  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from edufin.auth.models import User  # noqa: E402
from edufin.auth.services import add_user, issue_access_token  # noqa: E402
from edufin.core.enums import UserRole  # noqa: E402
from edufin.db.schema_check import ensure_tables  # noqa: E402
from edufin.db.session import get_db  # noqa: E402
from edufin.main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test, shared with the app through get_db."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await ensure_tables(engine)
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_user(
    db: AsyncSession,
    role: UserRole,
    email: str,
    *,
    full_name: str = "Test User",
    password: str = "StrongPass123",
    organization_id: Optional[UUID] = None,
) -> Tuple[User, Dict[str, str]]:
    """Create a user directly and return it with bearer auth headers."""
    user = await add_user(
        db,
        full_name=full_name,
        email=email,
        password=password,
        role=role,
        organization_id=organization_id,
    )
    await db.commit()
    return user, {"Authorization": f"Bearer {issue_access_token(user)}"}


@pytest.fixture()
async def parent(db_session: AsyncSession) -> Tuple[User, Dict[str, str]]:
    return await create_user(db_session, UserRole.PARENT, "parent@example.com", full_name="Priya Sharma")


@pytest.fixture()
async def admin(db_session: AsyncSession) -> Tuple[User, Dict[str, str]]:
    return await create_user(db_session, UserRole.PLATFORM_ADMIN, "admin@example.com", full_name="Platform Admin")


def onboarding_payload(**overrides) -> dict:
    """A complete, valid final onboarding submission."""
    payload = {
        "institution_name": "Greenwood High",
        "institution_location": "Bengaluru",
        "institution_board": "CBSE",
        "academic_year": "2026-2027",
        "student_name": "Aarav Sharma",
        "class_stream": "Grade 5",
        "section": "B",
        "roll_number": "42",
        "fee_amount": "120000",
        "fee_type": "Annual Fee",
        "plan_id": "plan-a",
        "parent_full_name": "Priya Sharma",
        "parent_phone": "+919876543210",
        "parent_email": "priya@example.com",
        "parent_pan": "ABCDE1234F",
        "relation_to_student": "Mother",
        "occupation": "Engineer",
        "annual_income": "1800000",
        "address": "12 MG Road, Bengaluru",
        "applicant_pan": "PQRSX6789K",
        "gender": "female",
        "date_of_birth": "1988-04-12",
        "marital_status": "married",
        "email": "priya.sharma@example.com",
        "father_name": "Ramesh Iyer",
        "mother_name": "Lakshmi Iyer",
        "spouse_name": "Vikram Sharma",
        "education_level": "Postgraduate",
        "work_experience": "10 years",
        "company_type": "Private",
        "terms_accepted": True,
        "privacy_accepted": True,
        "credit_check_accepted": True,
    }
    payload.update(overrides)
    return payload


async def submit_application(client: AsyncClient, headers: Dict[str, str], **overrides) -> dict:
    """Run the final onboarding submission and return the created fee application."""
    response = await client.post("/api/v1/parent/onboarding", json=onboarding_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["fee_application"]
