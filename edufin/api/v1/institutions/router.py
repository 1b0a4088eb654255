"""Institutions router: admin management, public picker search, institution dashboard."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.auth.rbac import require_platform_admin, require_role
from edufin.auth.schemas import CurrentUser
from edufin.core.enums import ApplicationStatus, UserRole
from edufin.core.exceptions import ServiceError
from edufin.db.session import get_db

from .schemas import (
    InstitutionApplicationItem,
    InstitutionCreate,
    InstitutionPaymentsResponse,
    InstitutionResponse,
    InstitutionSearchItem,
    InstitutionSummaryResponse,
    InstitutionUpdate,
)
from . import service

admin_router = APIRouter(prefix="/api/v1/admin/institutions", tags=["admin-institutions"])
router = APIRouter(prefix="/api/v1", tags=["institutions"])


# --- Platform admin ---
@admin_router.post(
    "",
    response_model=InstitutionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_institution(
    payload: InstitutionCreate,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_platform_admin),
) -> InstitutionResponse:
    try:
        return await service.create_institution(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.get("", response_model=List[InstitutionResponse])
async def list_institutions(
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_platform_admin),
) -> List[InstitutionResponse]:
    return await service.list_institutions(db, search=search)


@admin_router.get("/{institution_id}", response_model=InstitutionResponse)
async def get_institution(
    institution_id: UUID,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_platform_admin),
) -> InstitutionResponse:
    try:
        return await service.get_institution(db, institution_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.patch("/{institution_id}", response_model=InstitutionResponse)
async def update_institution(
    institution_id: UUID,
    payload: InstitutionUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_platform_admin),
) -> InstitutionResponse:
    try:
        return await service.update_institution(db, institution_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.delete("/{institution_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_institution(
    institution_id: UUID,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_platform_admin),
) -> None:
    try:
        await service.delete_institution(db, institution_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Parent wizard picker and institution dashboard ---
@router.get("/institutions", response_model=List[InstitutionSearchItem])
async def search_institutions(
    search: Optional[str] = Query(None, min_length=1),
    city: Optional[str] = Query(None, min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> List[InstitutionSearchItem]:
    return await service.search_institutions(db, search=search, city=city, limit=limit)


@router.get("/institution/summary", response_model=InstitutionSummaryResponse)
async def institution_summary(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.INSTITUTION)),
) -> InstitutionSummaryResponse:
    try:
        return await service.get_institution_summary(db, current_user.organization_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/institution/applications", response_model=List[InstitutionApplicationItem])
async def institution_applications(
    status: Optional[ApplicationStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.INSTITUTION)),
) -> List[InstitutionApplicationItem]:
    try:
        return await service.list_institution_applications(db, current_user.organization_id, status=status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/institution/payments", response_model=InstitutionPaymentsResponse)
async def institution_payments(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.INSTITUTION)),
) -> InstitutionPaymentsResponse:
    try:
        return await service.list_institution_payments(db, current_user.organization_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
