"""EMI plans service: catalog listing, quotes, plan row resolution for onboarding."""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.core import emi_calculator
from edufin.core.emi_calculator import Amount, PlanQuote
from edufin.core.exceptions import ValidationError
from edufin.core.logging import get_logger
from edufin.core.models import EmiPlan
from edufin.core.schemas import EmiSummary

from .schemas import EmiPlanResponse

logger = get_logger(__name__)


def emi_summary(fee_amount: Amount, quote: PlanQuote) -> EmiSummary:
    return EmiSummary(
        plan_key=quote.plan_key,
        plan_name=emi_calculator.plan_name_for(quote.duration_months),
        duration_months=quote.duration_months,
        fee_amount=emi_calculator.to_amount(fee_amount),
        monthly_installment=quote.monthly_installment,
        processing_fee=quote.processing_fee,
        total_amount=quote.total_amount,
        interest_rate=quote.interest_rate,
    )


async def list_plans(db: AsyncSession) -> List[EmiPlanResponse]:
    """Catalog plans, with limits and availability taken from stored rows where present."""
    result = await db.execute(select(EmiPlan))
    rows = {p.plan_key: p for p in result.scalars().all()}
    plans = []
    for entry in emi_calculator.catalog():
        row = rows.get(entry.plan_key)
        plans.append(
            EmiPlanResponse(
                plan_key=entry.plan_key,
                name=entry.name,
                duration_months=entry.duration_months,
                interest_rate=entry.interest_rate,
                processing_fee_rate=entry.processing_fee_rate,
                min_amount=row.min_amount if row else Decimal("0"),
                max_amount=row.max_amount if row else None,
                is_active=row.is_active if row else True,
            )
        )
    return plans


def quote(fee_amount: Amount, plan_id: Optional[str] = None) -> List[EmiSummary]:
    """One quote for plan_id, or one per catalog duration when no plan is given."""
    if plan_id:
        durations = [emi_calculator.duration_for_plan_key(emi_calculator.normalize_plan_key(plan_id))]
    else:
        durations = list(emi_calculator.CATALOG_DURATIONS)
    return [emi_summary(fee_amount, emi_calculator.compute_plan(fee_amount, d)) for d in durations]


async def resolve_emi_plan(db: AsyncSession, plan_key: str) -> EmiPlan:
    """
    Look up the stored plan row for a canonical key, staging a catalog row when the
    table does not have one yet. Caller commits.
    """
    duration = emi_calculator.duration_for_plan_key(plan_key)
    result = await db.execute(select(EmiPlan).where(EmiPlan.plan_key == plan_key))
    plan = result.scalar_one_or_none()
    if plan is None:
        plan = EmiPlan(
            plan_key=plan_key,
            name=emi_calculator.plan_name_for(duration),
            installments=duration,
            interest_rate=emi_calculator.INTEREST_RATE,
            processing_fee_rate=emi_calculator.processing_fee_rate(duration),
            min_amount=Decimal("0"),
            is_active=True,
        )
        db.add(plan)
        await db.flush()
        logger.info("emi_plan_synthesized", plan_key=plan_key)
    if not plan.is_active:
        raise ValidationError(f"EMI plan {plan_key} is not available", field="plan_id")
    return plan


def check_plan_limits(plan: EmiPlan, fee_amount: Decimal) -> None:
    if plan.min_amount is not None and fee_amount < plan.min_amount:
        raise ValidationError(
            f"Fee amount is below the minimum of {plan.min_amount} for {plan.name}",
            field="fee_amount",
        )
    if plan.max_amount is not None and fee_amount > plan.max_amount:
        raise ValidationError(
            f"Fee amount exceeds the maximum of {plan.max_amount} for {plan.name}",
            field="fee_amount",
        )
