"""
Create any missing tables for the EMI platform.

Run once against a fresh database (before the seed scripts):
  python -m edufin.db.schema_check
"""
import asyncio
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

# Import all models so every table is registered on Base.metadata
import edufin.core.models  # noqa: F401
from edufin.auth.models import User  # noqa: F401
from edufin.core.logging import configure_logging, get_logger
from edufin.db.session import Base, engine

logger = get_logger(__name__)


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """
    Ensure that all mapped tables exist in the connected database.
    Missing tables are created; existing ones are left untouched. Returns the created names.
    """
    async with db_engine.begin() as conn:
        existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))
        missing = [t.name for t in Base.metadata.sorted_tables if t.name not in existing]
        await conn.run_sync(Base.metadata.create_all)

    if missing:
        logger.info("tables_created", tables=missing)
    else:
        logger.info("tables_present", count=len(Base.metadata.sorted_tables))
    return missing


async def main() -> None:
    configure_logging()
    await ensure_tables(engine)


if __name__ == "__main__":
    asyncio.run(main())
