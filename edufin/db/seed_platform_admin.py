"""
Seed script to create the first PLATFORM_ADMIN user.

Run once (after schema_check) with env set:
  PLATFORM_ADMIN_EMAIL=admin@yourplatform.com
  PLATFORM_ADMIN_PASSWORD=YourSecurePassword

Creates the user if the email is new; otherwise promotes the existing user to
PLATFORM_ADMIN and resets its password.
"""
import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from edufin.auth.models import User
from edufin.auth.security import hash_password
from edufin.auth.services import add_user, get_user_by_email
from edufin.core.config import settings
from edufin.core.enums import UserRole
from edufin.core.logging import configure_logging, get_logger
from edufin.db.session import AsyncSessionLocal

logger = get_logger(__name__)

DEFAULT_PLATFORM_ADMIN_FULL_NAME = "Platform Admin"


async def seed_platform_admin(
    db: AsyncSession,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> Optional[User]:
    email = email or settings.platform_admin_email
    password = password or settings.platform_admin_password
    if not email or not password:
        logger.warning("platform_admin_seed_skipped", reason="PLATFORM_ADMIN_EMAIL/PASSWORD not set")
        return None

    user = await get_user_by_email(db, email)
    if user is None:
        user = await add_user(
            db,
            full_name=DEFAULT_PLATFORM_ADMIN_FULL_NAME,
            email=email,
            password=password,
            role=UserRole.PLATFORM_ADMIN,
        )
        logger.info("platform_admin_created", email=user.email)
    else:
        user.role = UserRole.PLATFORM_ADMIN.value
        user.password_hash = hash_password(password)
        user.status = "ACTIVE"
        logger.info("platform_admin_updated", email=user.email)

    await db.commit()
    return user


async def main() -> None:
    configure_logging()
    async with AsyncSessionLocal() as db:
        try:
            await seed_platform_admin(db)
        except Exception:
            await db.rollback()
            logger.exception("platform_admin_seed_failed")
            raise


if __name__ == "__main__":
    asyncio.run(main())
