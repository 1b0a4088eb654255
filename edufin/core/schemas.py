"""Response models shared by the onboarding, applications and installments APIs."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class ParentProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    pan_card_number: Optional[str] = None
    relation_to_student: Optional[str] = None
    occupation: Optional[str] = None
    annual_income: Optional[Decimal] = None
    alternate_email: Optional[str] = None
    alternate_phone: Optional[str] = None
    applicant_pan: Optional[str] = None
    applicant_email: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    marital_status: Optional[str] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    spouse_name: Optional[str] = None
    education_level: Optional[str] = None
    work_experience: Optional[str] = None
    company_type: Optional[str] = None
    selected_plan_key: Optional[str] = None
    terms_accepted: bool
    privacy_accepted: bool
    credit_check_accepted: bool
    is_onboarding_completed: bool
    onboarding_completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudentResponse(BaseModel):
    id: UUID
    parent_id: UUID
    institution_id: UUID
    name: str
    roll_number: Optional[str] = None
    class_name: Optional[str] = None
    section: Optional[str] = None
    fee_amount: Optional[Decimal] = None
    fee_type: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeeApplicationResponse(BaseModel):
    id: UUID
    student_id: UUID
    fee_structure_id: UUID
    emi_plan_id: Optional[UUID] = None
    status: str
    total_amount: Decimal
    remaining_amount: Decimal
    monthly_installment: Optional[Decimal] = None
    processing_fee: Decimal
    applied_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    platform_paid_to_institution: bool
    institution_payment_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EmiSummary(BaseModel):
    """Economics of the chosen plan as shown on the terms screen."""

    plan_key: str
    plan_name: str
    duration_months: int
    fee_amount: Decimal
    monthly_installment: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    interest_rate: Decimal


class InstallmentResponse(BaseModel):
    id: UUID
    fee_application_id: UUID
    installment_number: int
    amount: Decimal
    due_date: date
    paid_date: Optional[datetime] = None
    # Stored status with overdue derived on read
    status: str
    payment_id: Optional[UUID] = None


class PaymentResponse(BaseModel):
    id: UUID
    amount: Decimal
    payment_type: str
    payment_method: str
    status: str
    transaction_id: str
    fee_application_id: UUID
    installment_id: Optional[UUID] = None
    institution_id: Optional[UUID] = None
    paid_at: datetime
    notes: Optional[str] = None

    class Config:
        from_attributes = True
