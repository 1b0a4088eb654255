"""Fee application schemas for the parent dashboard and admin review."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from edufin.core.enums import ApplicationAction, StatusTag
from edufin.core.schemas import (
    FeeApplicationResponse,
    InstallmentResponse,
    PaymentResponse,
    StudentResponse,
)


class ApplicationListItem(BaseModel):
    """Parent dashboard row: stored status plus the projected tag, label and action."""

    id: UUID
    student_name: str
    institution_name: str
    status: str
    status_tag: StatusTag
    status_text: str
    action_text: str
    action_url: str
    plan_key: Optional[str] = None
    plan_name: Optional[str] = None
    total_amount: Decimal
    remaining_amount: Decimal
    monthly_installment: Optional[Decimal] = None
    processing_fee: Decimal
    applied_at: datetime
    platform_paid_to_institution: bool


class ApplicationDetail(BaseModel):
    application: FeeApplicationResponse
    student: StudentResponse
    institution_name: str
    plan_key: Optional[str] = None
    plan_name: Optional[str] = None
    status_tag: StatusTag
    status_text: str
    action_text: str
    action_url: str
    installments: List[InstallmentResponse] = []
    paid_installments: int = 0


class AdminApplicationItem(BaseModel):
    id: UUID
    status: str
    parent_name: Optional[str] = None
    parent_email: Optional[str] = None
    student_name: str
    institution_name: str
    plan_key: Optional[str] = None
    total_amount: Decimal
    remaining_amount: Decimal
    monthly_installment: Optional[Decimal] = None
    processing_fee: Decimal
    applied_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    platform_paid_to_institution: bool
    installment_count: int = 0


class ApplicationActionRequest(BaseModel):
    action: ApplicationAction
    rejection_reason: Optional[str] = Field(None, max_length=1000)


class InstitutionPayoutResponse(BaseModel):
    application: FeeApplicationResponse
    payment: PaymentResponse
