"""EMI plans router: public catalog and quotes."""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.core.exceptions import ServiceError
from edufin.core.schemas import EmiSummary
from edufin.db.session import get_db

from .schemas import EmiPlanResponse
from . import service

router = APIRouter(prefix="/api/v1/emi-plans", tags=["emi-plans"])


@router.get("", response_model=List[EmiPlanResponse])
async def list_plans(db: AsyncSession = Depends(get_db)) -> List[EmiPlanResponse]:
    return await service.list_plans(db)


@router.get("/quote", response_model=List[EmiSummary])
async def quote(
    fee_amount: Decimal = Query(..., description="Fee to finance, in rupees"),
    plan_id: Optional[str] = Query(None, description="Canonical key (9-months) or legacy id (plan-a)"),
) -> List[EmiSummary]:
    try:
        return service.quote(fee_amount, plan_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
