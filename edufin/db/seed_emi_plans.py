"""
Seed script to populate emi_plans with the zero-interest catalog (3 to 24 months).

Existing rows keep their min/max limits and is_active flag; only name, tenor and
rates are brought back in line with the catalog.
"""
import asyncio
from decimal import Decimal
from typing import Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.core.emi_calculator import catalog
from edufin.core.logging import configure_logging, get_logger
from edufin.core.models import EmiPlan
from edufin.db.session import AsyncSessionLocal

logger = get_logger(__name__)


async def seed_emi_plans(db: AsyncSession) -> Tuple[int, int]:
    created = updated = 0
    for entry in catalog():
        result = await db.execute(select(EmiPlan).where(EmiPlan.plan_key == entry.plan_key))
        plan = result.scalar_one_or_none()
        if plan is None:
            db.add(
                EmiPlan(
                    plan_key=entry.plan_key,
                    name=entry.name,
                    installments=entry.duration_months,
                    interest_rate=entry.interest_rate,
                    processing_fee_rate=entry.processing_fee_rate,
                    min_amount=Decimal("0"),
                    is_active=True,
                )
            )
            created += 1
        else:
            plan.name = entry.name
            plan.installments = entry.duration_months
            plan.interest_rate = entry.interest_rate
            plan.processing_fee_rate = entry.processing_fee_rate
            updated += 1

    await db.commit()
    logger.info("emi_plans_seeded", created=created, updated=updated)
    return created, updated


async def main() -> None:
    configure_logging()
    async with AsyncSessionLocal() as db:
        try:
            await seed_emi_plans(db)
        except Exception:
            await db.rollback()
            logger.exception("emi_plan_seed_failed")
            raise


if __name__ == "__main__":
    asyncio.run(main())
