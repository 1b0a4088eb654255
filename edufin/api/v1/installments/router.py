"""Parent installments router."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.auth.rbac import require_role
from edufin.auth.schemas import CurrentUser
from edufin.core.enums import InstallmentStatus, UserRole
from edufin.core.exceptions import ServiceError
from edufin.db.session import get_db

from .schemas import InstallmentPaymentResponse, ParentInstallmentItem
from . import service

router = APIRouter(prefix="/api/v1/parent/installments", tags=["parent-installments"])


@router.get("", response_model=List[ParentInstallmentItem])
async def list_installments(
    status: Optional[InstallmentStatus] = Query(None, description="Filter by pending, paid or overdue"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.PARENT)),
) -> List[ParentInstallmentItem]:
    return await service.list_parent_installments(db, current_user.id, status=status)


@router.post("/{installment_id}/pay", response_model=InstallmentPaymentResponse)
async def pay_installment(
    installment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.PARENT)),
) -> InstallmentPaymentResponse:
    try:
        return await service.pay_installment(db, current_user.id, installment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
