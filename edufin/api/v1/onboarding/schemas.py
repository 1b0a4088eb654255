"""
Parent onboarding schemas.

Fields are optional at the schema level; the service checks required fields and
formats so a missing or malformed field is reported as a 400 naming that field.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Dict, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from edufin.core.schemas import (
    EmiSummary,
    FeeApplicationResponse,
    ParentProfileResponse,
    StudentResponse,
)


class OnboardingSubmitRequest(BaseModel):
    # Student and institution
    institution_name: Optional[str] = None
    institution_location: Optional[str] = None
    institution_board: Optional[str] = None
    academic_year: Optional[str] = None
    student_name: Optional[str] = None
    class_stream: Optional[str] = None
    section: Optional[str] = None
    roll_number: Optional[str] = None
    fee_amount: Optional[Decimal] = None
    fee_type: Optional[str] = None

    # EMI plan: canonical key (9-months) or legacy id (plan-a)
    plan_id: Optional[str] = None

    # Primary earner
    parent_full_name: Optional[str] = None
    parent_phone: Optional[str] = None
    parent_email: Optional[str] = None
    parent_pan: Optional[str] = None
    relation_to_student: Optional[str] = None
    occupation: Optional[str] = None
    annual_income: Optional[Decimal] = None
    address: Optional[str] = None

    # Applicant personal details
    applicant_pan: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    marital_status: Optional[str] = None
    email: Optional[str] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    spouse_name: Optional[str] = None
    education_level: Optional[str] = None
    work_experience: Optional[str] = None
    company_type: Optional[str] = None

    terms_accepted: Optional[bool] = None
    privacy_accepted: Optional[bool] = None
    credit_check_accepted: Optional[bool] = None


class OnboardingResult(BaseModel):
    parent_profile: ParentProfileResponse
    student: StudentResponse
    fee_application: FeeApplicationResponse
    emi_summary: EmiSummary


# --- Per-step saves (tagged on `step`) ---
class StudentDetailsStep(BaseModel):
    step: Literal[1]
    institution_name: Optional[str] = None
    institution_location: Optional[str] = None
    institution_board: Optional[str] = None
    academic_year: Optional[str] = None
    student_first_name: Optional[str] = None
    student_last_name: Optional[str] = None
    class_stream: Optional[str] = None
    roll_number: Optional[str] = None
    fee_amount: Optional[Decimal] = None
    fee_type: Optional[str] = None


class EmiPlanStep(BaseModel):
    step: Literal[2]
    plan_id: Optional[str] = None


class PrimaryEarnerStep(BaseModel):
    step: Literal[3]
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    pan: Optional[str] = None
    relation_to_student: Optional[str] = None
    occupation: Optional[str] = None
    annual_income: Optional[Decimal] = None
    address: Optional[str] = None


class PersonalDetailsStep(BaseModel):
    step: Literal[5]
    applicant_pan: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    marital_status: Optional[str] = None
    email: Optional[str] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    spouse_name: Optional[str] = None
    education_level: Optional[str] = None
    work_experience: Optional[str] = None
    company_type: Optional[str] = None


OnboardingStepPayload = Annotated[
    Union[StudentDetailsStep, EmiPlanStep, PrimaryEarnerStep, PersonalDetailsStep],
    Field(discriminator="step"),
]


class OnboardingProgressResponse(BaseModel):
    next_step: int
    is_completed: bool
    completed_steps: Dict[str, bool]
    parent_profile: Optional[ParentProfileResponse] = None
    student: Optional[StudentResponse] = None
    fee_application_id: Optional[UUID] = None
    emi_summary: Optional[EmiSummary] = None


class OnboardingStatusResponse(BaseModel):
    is_onboarding_completed: bool
    parent_profile: Optional[ParentProfileResponse] = None
    student: Optional[StudentResponse] = None
