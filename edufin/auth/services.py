from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.auth.models import User
from edufin.auth.schemas import LoginRequest, LoginResponse, SignupRequest, UserInfo
from edufin.auth.security import create_access_token, hash_password, verify_password
from edufin.core.enums import UserRole
from edufin.core.exceptions import ConflictError, ServiceError
from edufin.core.logging import get_logger

logger = get_logger(__name__)


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        name=user.full_name,
        email=user.email,
        role=user.role,
        organization_id=user.organization_id,
    )


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def add_user(
    db: AsyncSession,
    *,
    full_name: str,
    email: str,
    password: str,
    role: UserRole,
    mobile: Optional[str] = None,
    organization_id: Optional[UUID] = None,
) -> User:
    """Stage a new user in the current transaction. Caller commits."""
    if await get_user_by_email(db, email):
        raise ConflictError("Email is already in use")
    user = User(
        full_name=full_name.strip(),
        email=email.strip().lower(),
        mobile=mobile,
        password_hash=hash_password(password),
        role=role.value,
        organization_id=organization_id,
        status="ACTIVE",
    )
    db.add(user)
    await db.flush()
    return user


def issue_access_token(user: User) -> str:
    issued_at = datetime.now(timezone.utc)
    return create_access_token(
        subject={
            "sub": str(user.id),
            "user_id": str(user.id),
            "role": user.role,
            "iat": int(issued_at.timestamp()),
        }
    )


async def register_parent(db: AsyncSession, payload: SignupRequest) -> UserInfo:
    try:
        user = await add_user(
            db,
            full_name=payload.full_name,
            email=payload.email,
            password=payload.password,
            role=UserRole.PARENT,
            mobile=payload.mobile,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Email is already in use") from e
    except ServiceError:
        await db.rollback()
        raise
    logger.info("parent_registered", user_id=str(user.id))
    return _user_info(user)


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    user = await get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)
    if user.status != "ACTIVE":
        raise ServiceError("User is inactive", status.HTTP_403_FORBIDDEN)

    return LoginResponse(
        access_token=issue_access_token(user),
        user=_user_info(user),
        issued_at=datetime.now(timezone.utc),
    )


async def get_me(db: AsyncSession, user_id: UUID) -> UserInfo:
    user = await db.get(User, user_id)
    if not user:
        raise ServiceError("User not found", status.HTTP_404_NOT_FOUND)
    return _user_info(user)
