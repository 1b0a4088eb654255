"""Parent onboarding router: final submission, per-step saves, progress."""

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.auth.rbac import require_role
from edufin.auth.schemas import CurrentUser
from edufin.core.enums import UserRole
from edufin.core.exceptions import ServiceError
from edufin.db.session import get_db

from .schemas import (
    OnboardingProgressResponse,
    OnboardingResult,
    OnboardingStatusResponse,
    OnboardingStepPayload,
    OnboardingSubmitRequest,
)
from . import service

router = APIRouter(prefix="/api/v1/parent/onboarding", tags=["parent-onboarding"])

require_parent = require_role(UserRole.PARENT)


@router.get("", response_model=OnboardingStatusResponse)
async def onboarding_status(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_parent),
) -> OnboardingStatusResponse:
    return await service.get_onboarding_status(db, current_user.id)


@router.post(
    "",
    response_model=OnboardingResult,
    status_code=status.HTTP_201_CREATED,
)
async def submit_onboarding(
    payload: OnboardingSubmitRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_parent),
) -> OnboardingResult:
    try:
        return await service.submit_onboarding(db, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/steps", response_model=OnboardingProgressResponse)
async def onboarding_progress(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_parent),
) -> OnboardingProgressResponse:
    return await service.get_onboarding_progress(db, current_user.id)


@router.post("/steps", response_model=OnboardingProgressResponse)
async def save_onboarding_step(
    payload: OnboardingStepPayload = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_parent),
) -> OnboardingProgressResponse:
    try:
        return await service.save_onboarding_step(db, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
