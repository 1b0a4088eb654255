"""Fee applications router: parent dashboard and platform admin review."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.auth.rbac import require_platform_admin, require_role
from edufin.auth.schemas import CurrentUser
from edufin.core.enums import ApplicationStatus, UserRole
from edufin.core.exceptions import ServiceError
from edufin.core.schemas import FeeApplicationResponse, InstallmentResponse
from edufin.db.session import get_db

from .schemas import (
    AdminApplicationItem,
    ApplicationActionRequest,
    ApplicationDetail,
    ApplicationListItem,
    InstitutionPayoutResponse,
)
from . import service

parent_router = APIRouter(prefix="/api/v1/parent/applications", tags=["parent-applications"])
admin_router = APIRouter(prefix="/api/v1/admin/applications", tags=["admin-applications"])


# --- Parent ---
@parent_router.get("", response_model=List[ApplicationListItem])
async def list_my_applications(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.PARENT)),
) -> List[ApplicationListItem]:
    return await service.list_parent_applications(db, current_user.id)


@parent_router.get("/{application_id}", response_model=ApplicationDetail)
async def get_my_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.PARENT)),
) -> ApplicationDetail:
    try:
        return await service.get_parent_application(db, current_user.id, application_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@parent_router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.PARENT)),
) -> None:
    try:
        await service.delete_parent_application(db, current_user.id, application_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Platform admin ---
@admin_router.get("", response_model=List[AdminApplicationItem])
async def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_platform_admin),
) -> List[AdminApplicationItem]:
    return await service.list_admin_applications(db, status=status)


@admin_router.patch("/{application_id}", response_model=FeeApplicationResponse)
async def review_application(
    application_id: UUID,
    payload: ApplicationActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_platform_admin),
) -> FeeApplicationResponse:
    try:
        return await service.review_application(db, application_id, payload, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.post(
    "/{application_id}/installments",
    response_model=List[InstallmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def generate_installments(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_platform_admin),
) -> List[InstallmentResponse]:
    try:
        return await service.generate_installments(db, application_id, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.post("/{application_id}/pay-institution", response_model=InstitutionPayoutResponse)
async def pay_institution(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_platform_admin),
) -> InstitutionPayoutResponse:
    try:
        return await service.pay_institution(db, application_id, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
