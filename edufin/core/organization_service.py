"""
Organization service: organization_code generation and slug handling.

- organization_code is a human-readable public identifier (e.g. SCH-A3K9).
- id (UUID) remains the only primary key and FK target; organization_code
  is never used as a foreign key.
"""
import re
import secrets

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.core.exceptions import ServiceError
from edufin.core.models import Organization


ORG_TYPE_PREFIX_MAP = {
    "school": "SCH",
    "college": "COL",
}
DEFAULT_PREFIX = "ORG"

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, runs of non-alphanumerics collapsed to '-' ("St. Mary's School" -> "st-mary-s-school")."""
    return _SLUG_STRIP.sub("-", name.lower()).strip("-") or "organization"


def generate_organization_code_candidate(organization_type: str) -> str:
    """
    Generate a single candidate organization code (no DB check).
    Uppercase, short, non-guessable: PREFIX-XXXX (4 alphanumeric chars).
    """
    prefix = ORG_TYPE_PREFIX_MAP.get(organization_type, DEFAULT_PREFIX)
    alphabet = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # exclude ambiguous 0/O, 1/I
    suffix = "".join(secrets.choice(alphabet) for _ in range(4))
    return f"{prefix}-{suffix}"


async def generate_organization_code(
    db: AsyncSession,
    organization_type: str,
    max_attempts: int = 20,
) -> str:
    """
    Generate a unique organization_code for the given organization type.
    Retries with a new suffix on collision.
    """
    for _ in range(max_attempts):
        code = generate_organization_code_candidate(organization_type)
        result = await db.execute(
            select(Organization.id).where(Organization.organization_code == code)
        )
        if result.scalar_one_or_none() is None:
            return code
    raise ServiceError(
        "Could not generate unique organization code",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def _available_slug(db: AsyncSession, name: str) -> str:
    base = slugify(name)
    slug = base
    for _ in range(20):
        taken = await db.execute(select(Organization.id).where(Organization.slug == slug))
        if taken.scalar_one_or_none() is None:
            return slug
        slug = f"{base}-{secrets.token_hex(2)}"
    raise ServiceError(
        "Could not generate unique organization slug",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def create_organization(
    db: AsyncSession,
    name: str,
    organization_type: str = "school",
) -> Organization:
    """Stage the tenant row backing a new institution. Caller commits."""
    organization = Organization(
        name=name,
        slug=await _available_slug(db, name),
        organization_code=await generate_organization_code(db, organization_type),
        organization_type=organization_type,
        status="ACTIVE",
    )
    db.add(organization)
    await db.flush()
    return organization
