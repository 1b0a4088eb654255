"""Institutions schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from edufin.core.enums import InstitutionType
from edufin.core.schemas import FeeApplicationResponse, InstallmentResponse, PaymentResponse


class LocationIn(BaseModel):
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None


class LocationResponse(BaseModel):
    id: UUID
    city: str
    state: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True


class InstitutionCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    type: InstitutionType = InstitutionType.SCHOOL
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    locations: List[LocationIn] = Field(..., min_length=1)
    boards: List[str] = Field(..., min_length=1, description="Boards / curricula, e.g. CBSE, ICSE")
    # Optional institution dashboard login, created in the same transaction
    login_email: Optional[EmailStr] = None
    login_password: Optional[str] = Field(None, min_length=8)


class InstitutionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    type: Optional[InstitutionType] = None
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    # When given, replace the full set
    locations: Optional[List[LocationIn]] = None
    boards: Optional[List[str]] = None
    login_email: Optional[EmailStr] = None
    login_password: Optional[str] = Field(None, min_length=8)


class InstitutionResponse(BaseModel):
    id: UUID
    organization_id: UUID
    name: str
    type: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    locations: List[LocationResponse]
    boards: List[str]
    login_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InstitutionSearchItem(BaseModel):
    """Lightweight row for the parent wizard's institution picker."""

    id: UUID
    name: str
    type: str
    cities: List[str]
    boards: List[str]


class InstitutionSummaryResponse(BaseModel):
    """Institution dashboard: financed fees and platform payouts."""

    institution_id: UUID
    institution_name: str
    total_students: int
    total_applications: int
    pending_review: int
    active_emis: int
    total_financed: Decimal
    amount_received_from_platform: Decimal


class InstitutionApplicationItem(BaseModel):
    """A submitted fee application for one of the institution's students, with its schedule."""

    application: FeeApplicationResponse
    student_id: UUID
    student_name: str
    class_name: Optional[str] = None
    section: Optional[str] = None
    fee_amount: Optional[Decimal] = None
    plan_key: Optional[str] = None
    installments: List[InstallmentResponse]
    paid_installments: int


class PaidApplicationItem(BaseModel):
    application_id: UUID
    student_name: str
    status: str
    total_amount: Decimal
    institution_payment_date: Optional[datetime] = None


class InstitutionPaymentsResponse(BaseModel):
    """Platform payouts received by the institution and the applications they settled."""

    payments: List[PaymentResponse]
    paid_applications: List[PaidApplicationItem]
    total_received: Decimal
