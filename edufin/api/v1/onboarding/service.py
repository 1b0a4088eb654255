"""
Parent onboarding: per-step partial saves and the final submission that builds the fee application.

Every step is a lookup-or-create against what is already stored, so re-sending the
same data updates rows in place. Institution, student, fee structure, plan and
application are all resolved inside one session transaction and committed once.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.api.v1.emi_plans.service import check_plan_limits, emi_summary, resolve_emi_plan
from edufin.api.v1.institutions.service import ensure_institution
from edufin.core.audit_service import log_application_audit
from edufin.core.emi_calculator import (
    PlanQuote,
    compute_plan,
    duration_for_plan_key,
    normalize_plan_key,
    to_amount,
)
from edufin.core.enums import ApplicationStatus
from edufin.core.exceptions import ConflictError, ServiceError, ValidationError
from edufin.core.logging import get_logger
from edufin.core.models import (
    EmiPlan,
    FeeApplication,
    FeeStructure,
    Institution,
    ParentProfile,
    Student,
)
from edufin.core.schemas import (
    FeeApplicationResponse,
    ParentProfileResponse,
    StudentResponse,
)
from edufin.core.status_projector import onboarding_progress

from .schemas import (
    EmiPlanStep,
    OnboardingProgressResponse,
    OnboardingResult,
    OnboardingStatusResponse,
    OnboardingSubmitRequest,
    PersonalDetailsStep,
    PrimaryEarnerStep,
    StudentDetailsStep,
)
from .validation import check_consent, check_email, check_pan, require

logger = get_logger(__name__)

DEFAULT_FEE_TYPE = "Annual Fee"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def current_academic_year(today: Optional[date] = None) -> str:
    year = (today or date.today()).year
    return f"{year}-{year + 1}"


def _check_fee(value) -> Decimal:
    require(value, "fee_amount", "Fee amount")
    fee = to_amount(value)
    if fee <= 0:
        raise ValidationError("Fee amount must be greater than zero", field="fee_amount")
    return fee


# ----- Lookups -----

def parent_profile_query(parent_user_id: UUID, for_update: bool = False):
    stmt = select(ParentProfile).where(ParentProfile.user_id == parent_user_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


async def get_parent_profile(
    db: AsyncSession, parent_user_id: UUID, for_update: bool = False
) -> Optional[ParentProfile]:
    result = await db.execute(parent_profile_query(parent_user_id, for_update))
    return result.scalar_one_or_none()


async def get_parent_student(db: AsyncSession, parent_user_id: UUID) -> Optional[Student]:
    """Onboarding keeps a single student per parent, looked up by parent only."""
    result = await db.execute(
        select(Student)
        .where(Student.parent_id == parent_user_id)
        .order_by(Student.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_student_application(db: AsyncSession, student_id: UUID) -> Optional[FeeApplication]:
    result = await db.execute(select(FeeApplication).where(FeeApplication.student_id == student_id))
    return result.scalar_one_or_none()


async def _ensure_profile(db: AsyncSession, parent_user_id: UUID) -> ParentProfile:
    profile = await get_parent_profile(db, parent_user_id)
    if profile is None:
        profile = ParentProfile(user_id=parent_user_id, is_onboarding_completed=False)
        db.add(profile)
        await db.flush()
    return profile


async def _ensure_fee_structure(
    db: AsyncSession,
    institution_id: UUID,
    fee_type: Optional[str],
    amount: Decimal,
    academic_year: Optional[str],
) -> FeeStructure:
    name = _clean(fee_type) or DEFAULT_FEE_TYPE
    result = await db.execute(
        select(FeeStructure)
        .where(FeeStructure.institution_id == institution_id, FeeStructure.name == name)
        .order_by(FeeStructure.created_at)
        .limit(1)
    )
    fee_structure = result.scalar_one_or_none()
    if fee_structure is None:
        fee_structure = FeeStructure(
            institution_id=institution_id,
            name=name,
            description=f"{name} financed through EMI",
            amount=amount,
            academic_year=_clean(academic_year) or current_academic_year(),
            is_recurring=False,
        )
        db.add(fee_structure)
        await db.flush()
    return fee_structure


async def _upsert_student(
    db: AsyncSession,
    parent_user_id: UUID,
    institution: Institution,
    *,
    name: str,
    class_name: Optional[str],
    section: Optional[str],
    roll_number: Optional[str],
    fee_amount: Decimal,
    fee_type: Optional[str],
) -> Student:
    student = await get_parent_student(db, parent_user_id)
    if student is None:
        student = Student(
            parent_id=parent_user_id,
            institution_id=institution.id,
            admission_date=datetime.utcnow(),
            is_active=True,
            name=name,
        )
        db.add(student)
    elif student.institution_id != institution.id:
        logger.warning(
            "student_institution_changed",
            student_id=str(student.id),
            old_institution_id=str(student.institution_id),
            new_institution_id=str(institution.id),
        )
    student.institution_id = institution.id
    student.name = name
    student.class_name = class_name
    student.section = section
    student.roll_number = roll_number
    student.fee_amount = fee_amount
    student.fee_type = _clean(fee_type) or DEFAULT_FEE_TYPE
    await db.flush()
    return student


async def _stage_student_details(
    db: AsyncSession,
    parent_user_id: UUID,
    *,
    institution_name: str,
    location: Optional[str],
    board: Optional[str],
    academic_year: Optional[str],
    student_name: str,
    class_name: Optional[str],
    section: Optional[str],
    roll_number: Optional[str],
    fee_amount: Decimal,
    fee_type: Optional[str],
) -> Tuple[Institution, Student, FeeStructure]:
    institution = await ensure_institution(db, institution_name, location, board)
    student = await _upsert_student(
        db,
        parent_user_id,
        institution,
        name=student_name,
        class_name=class_name,
        section=section,
        roll_number=roll_number,
        fee_amount=fee_amount,
        fee_type=fee_type,
    )
    fee_structure = await _ensure_fee_structure(db, institution.id, fee_type, fee_amount, academic_year)
    return institution, student, fee_structure


def _apply_plan(application: FeeApplication, plan: EmiPlan, quote: PlanQuote) -> None:
    application.emi_plan_id = plan.id
    application.monthly_installment = quote.monthly_installment
    application.processing_fee = quote.processing_fee
    application.total_amount = quote.total_amount
    application.remaining_amount = quote.total_amount


async def _upsert_application(
    db: AsyncSession,
    student: Student,
    fee_structure: FeeStructure,
    fee_amount: Decimal,
    status: str,
) -> Tuple[FeeApplication, Optional[str]]:
    """Insert or update the student's single application; returns it with its previous status."""
    application = await get_student_application(db, student.id)
    old_status = application.status if application else None
    if application is None:
        application = FeeApplication(
            student_id=student.id,
            fee_structure_id=fee_structure.id,
            status=status,
            total_amount=fee_amount,
            remaining_amount=fee_amount,
            processing_fee=Decimal("0"),
            applied_at=datetime.utcnow(),
        )
        db.add(application)
    else:
        application.fee_structure_id = fee_structure.id
        application.status = status
        if application.emi_plan_id is None:
            application.total_amount = fee_amount
            application.remaining_amount = fee_amount
    return application, old_status


async def _load_result(
    db: AsyncSession,
    profile: ParentProfile,
    student: Student,
    application: FeeApplication,
) -> Tuple[ParentProfile, Student, FeeApplication]:
    for obj in (profile, student, application):
        await db.refresh(obj)
    return profile, student, application


# ----- Final submission -----

def _validate_submission(payload: OnboardingSubmitRequest) -> dict:
    """Check every required field before anything is written. Returns normalized values."""
    require(payload.student_name, "student_name", "Student name")
    require(payload.institution_name, "institution_name", "Institution name")
    fee = _check_fee(payload.fee_amount)
    require(payload.plan_id, "plan_id", "EMI plan")
    plan_key = normalize_plan_key(payload.plan_id)

    require(payload.parent_full_name, "parent_full_name", "Parent name")
    parent_pan = check_pan(payload.parent_pan, "parent_pan", "Parent PAN")
    if not _clean(payload.parent_phone) and not _clean(payload.parent_email):
        raise ValidationError("Parent phone or email is required", field="parent_phone")
    parent_email = None
    if _clean(payload.parent_email):
        parent_email = check_email(payload.parent_email, "parent_email", "Parent email")

    applicant_pan = check_pan(payload.applicant_pan, "applicant_pan", "Applicant PAN")
    require(payload.gender, "gender", "Gender")
    require(payload.date_of_birth, "date_of_birth", "Date of birth")
    require(payload.marital_status, "marital_status", "Marital status")
    email = check_email(payload.email, "email")
    require(payload.father_name, "father_name", "Father's name")
    require(payload.mother_name, "mother_name", "Mother's name")

    check_consent(payload.terms_accepted, "terms_accepted", "Terms and conditions")
    check_consent(payload.privacy_accepted, "privacy_accepted", "Privacy policy")
    check_consent(payload.credit_check_accepted, "credit_check_accepted", "Credit check consent")

    return {
        "fee": fee,
        "plan_key": plan_key,
        "parent_pan": parent_pan,
        "parent_email": parent_email,
        "applicant_pan": applicant_pan,
        "email": email,
    }


def _copy_profile_fields(profile: ParentProfile, payload: OnboardingSubmitRequest, cleaned: dict) -> None:
    profile.full_name = payload.parent_full_name.strip()
    profile.phone = _clean(payload.parent_phone)
    profile.address = _clean(payload.address)
    profile.pan_card_number = cleaned["parent_pan"]
    profile.relation_to_student = _clean(payload.relation_to_student)
    profile.occupation = _clean(payload.occupation)
    profile.annual_income = payload.annual_income
    profile.alternate_email = cleaned["parent_email"]
    profile.applicant_pan = cleaned["applicant_pan"]
    profile.applicant_email = cleaned["email"]
    profile.gender = payload.gender.strip()
    profile.date_of_birth = payload.date_of_birth
    profile.marital_status = payload.marital_status.strip()
    profile.father_name = payload.father_name.strip()
    profile.mother_name = payload.mother_name.strip()
    profile.spouse_name = _clean(payload.spouse_name)
    profile.education_level = _clean(payload.education_level)
    profile.work_experience = _clean(payload.work_experience)
    profile.company_type = _clean(payload.company_type)
    profile.selected_plan_key = cleaned["plan_key"]
    profile.terms_accepted = True
    profile.privacy_accepted = True
    profile.credit_check_accepted = True


async def submit_onboarding(
    db: AsyncSession,
    parent_user_id: UUID,
    payload: OnboardingSubmitRequest,
) -> OnboardingResult:
    """
    Finalize onboarding: resolve or create profile, institution, student, fee structure
    and plan, then upsert the fee application in platform_review. One commit.
    """
    existing = await get_parent_profile(db, parent_user_id, for_update=True)
    if existing is not None and existing.is_onboarding_completed:
        raise ConflictError("Onboarding already completed")
    cleaned = _validate_submission(payload)
    fee = cleaned["fee"]

    try:
        profile = await _ensure_profile(db, parent_user_id)
        _, student, fee_structure = await _stage_student_details(
            db,
            parent_user_id,
            institution_name=payload.institution_name.strip(),
            location=payload.institution_location,
            board=payload.institution_board,
            academic_year=payload.academic_year,
            student_name=payload.student_name.strip(),
            class_name=_clean(payload.class_stream),
            section=_clean(payload.section),
            roll_number=_clean(payload.roll_number),
            fee_amount=fee,
            fee_type=payload.fee_type,
        )
        plan = await resolve_emi_plan(db, cleaned["plan_key"])
        check_plan_limits(plan, fee)
        quote = compute_plan(fee, plan.installments)

        application, old_status = await _upsert_application(
            db, student, fee_structure, fee, ApplicationStatus.PLATFORM_REVIEW.value
        )
        _apply_plan(application, plan, quote)

        _copy_profile_fields(profile, payload, cleaned)
        profile.is_onboarding_completed = True
        profile.onboarding_completed_at = datetime.utcnow()
        await db.flush()

        await log_application_audit(
            db,
            reference_table="fee_applications",
            reference_id=application.id,
            action_type="SUBMITTED",
            old_value={"status": old_status} if old_status else None,
            new_value={
                "status": application.status,
                "plan_key": plan.plan_key,
                "total_amount": str(application.total_amount),
            },
            changed_by=parent_user_id,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Onboarding conflicts with an existing record; please retry") from e
    except ServiceError:
        await db.rollback()
        raise

    profile, student, application = await _load_result(db, profile, student, application)
    logger.info(
        "onboarding_submitted",
        parent_user_id=str(parent_user_id),
        application_id=str(application.id),
        plan_key=cleaned["plan_key"],
    )
    return OnboardingResult(
        parent_profile=ParentProfileResponse.model_validate(profile),
        student=StudentResponse.model_validate(student),
        fee_application=FeeApplicationResponse.model_validate(application),
        emi_summary=emi_summary(fee, quote),
    )


# ----- Per-step saves -----

async def _save_student_details(db: AsyncSession, parent_user_id: UUID, step: StudentDetailsStep) -> None:
    require(step.institution_name, "institution_name", "Institution name")
    require(step.student_first_name, "student_first_name", "Student first name")
    fee = _check_fee(step.fee_amount)
    name = " ".join(p for p in (_clean(step.student_first_name), _clean(step.student_last_name)) if p)

    await _ensure_profile(db, parent_user_id)
    _, student, fee_structure = await _stage_student_details(
        db,
        parent_user_id,
        institution_name=step.institution_name.strip(),
        location=step.institution_location,
        board=step.institution_board,
        academic_year=step.academic_year,
        student_name=name,
        class_name=_clean(step.class_stream),
        section=None,
        roll_number=_clean(step.roll_number),
        fee_amount=fee,
        fee_type=step.fee_type,
    )
    application, _ = await _upsert_application(
        db, student, fee_structure, fee, ApplicationStatus.PENDING.value
    )
    if application.emi_plan_id is not None:
        # Fee changed under an already chosen plan: re-price it
        plan = await db.get(EmiPlan, application.emi_plan_id)
        _apply_plan(application, plan, compute_plan(fee, plan.installments))


async def _save_emi_plan(db: AsyncSession, parent_user_id: UUID, step: EmiPlanStep) -> None:
    require(step.plan_id, "plan_id", "EMI plan")
    plan_key = normalize_plan_key(step.plan_id)
    student = await get_parent_student(db, parent_user_id)
    if student is None or not student.fee_amount:
        raise ValidationError("Student details must be saved before choosing a plan", field="step")

    plan = await resolve_emi_plan(db, plan_key)
    fee = to_amount(student.fee_amount)
    check_plan_limits(plan, fee)
    profile = await _ensure_profile(db, parent_user_id)
    profile.selected_plan_key = plan_key

    application = await get_student_application(db, student.id)
    if application is not None:
        _apply_plan(application, plan, compute_plan(fee, plan.installments))


async def _save_primary_earner(db: AsyncSession, parent_user_id: UUID, step: PrimaryEarnerStep) -> None:
    require(step.full_name, "full_name", "Full name")
    pan = check_pan(step.pan, "pan", "PAN")
    if not _clean(step.phone) and not _clean(step.email):
        raise ValidationError("Phone or email is required", field="phone")
    email = check_email(step.email, "email") if _clean(step.email) else None

    profile = await _ensure_profile(db, parent_user_id)
    profile.full_name = step.full_name.strip()
    profile.phone = _clean(step.phone)
    profile.alternate_email = email
    profile.pan_card_number = pan
    profile.relation_to_student = _clean(step.relation_to_student)
    profile.occupation = _clean(step.occupation)
    profile.annual_income = step.annual_income
    profile.address = _clean(step.address)


async def _save_personal_details(db: AsyncSession, parent_user_id: UUID, step: PersonalDetailsStep) -> None:
    pan = check_pan(step.applicant_pan, "applicant_pan", "Applicant PAN")
    require(step.gender, "gender", "Gender")
    require(step.date_of_birth, "date_of_birth", "Date of birth")
    require(step.marital_status, "marital_status", "Marital status")
    email = check_email(step.email, "email")
    require(step.father_name, "father_name", "Father's name")
    require(step.mother_name, "mother_name", "Mother's name")

    profile = await _ensure_profile(db, parent_user_id)
    profile.applicant_pan = pan
    profile.applicant_email = email
    profile.gender = step.gender.strip()
    profile.date_of_birth = step.date_of_birth
    profile.marital_status = step.marital_status.strip()
    profile.father_name = step.father_name.strip()
    profile.mother_name = step.mother_name.strip()
    profile.spouse_name = _clean(step.spouse_name)
    profile.education_level = _clean(step.education_level)
    profile.work_experience = _clean(step.work_experience)
    profile.company_type = _clean(step.company_type)


_STEP_HANDLERS = {
    StudentDetailsStep: _save_student_details,
    EmiPlanStep: _save_emi_plan,
    PrimaryEarnerStep: _save_primary_earner,
    PersonalDetailsStep: _save_personal_details,
}


async def save_onboarding_step(db: AsyncSession, parent_user_id: UUID, payload) -> OnboardingProgressResponse:
    """Persist one wizard step and return the recomputed progress."""
    profile = await get_parent_profile(db, parent_user_id, for_update=True)
    if profile is not None and profile.is_onboarding_completed:
        raise ConflictError("Onboarding already completed")

    handler = _STEP_HANDLERS[type(payload)]
    try:
        await handler(db, parent_user_id, payload)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Step conflicts with an existing record; please retry") from e
    except ServiceError:
        await db.rollback()
        raise

    logger.info("onboarding_step_saved", parent_user_id=str(parent_user_id), step=payload.step)
    return await get_onboarding_progress(db, parent_user_id)


async def get_onboarding_progress(db: AsyncSession, parent_user_id: UUID) -> OnboardingProgressResponse:
    profile = await get_parent_profile(db, parent_user_id)
    student = await get_parent_student(db, parent_user_id)
    progress = onboarding_progress(profile, student)

    application = await get_student_application(db, student.id) if student else None
    summary = None
    if profile is not None and profile.selected_plan_key and student is not None and student.fee_amount:
        duration = duration_for_plan_key(profile.selected_plan_key)
        summary = emi_summary(student.fee_amount, compute_plan(student.fee_amount, duration))

    return OnboardingProgressResponse(
        next_step=int(progress.next_step),
        is_completed=progress.is_completed,
        completed_steps=progress.completed_steps,
        parent_profile=ParentProfileResponse.model_validate(profile) if profile else None,
        student=StudentResponse.model_validate(student) if student else None,
        fee_application_id=application.id if application else None,
        emi_summary=summary,
    )


async def get_onboarding_status(db: AsyncSession, parent_user_id: UUID) -> OnboardingStatusResponse:
    profile = await get_parent_profile(db, parent_user_id)
    student = await get_parent_student(db, parent_user_id)
    return OnboardingStatusResponse(
        is_onboarding_completed=bool(profile and profile.is_onboarding_completed),
        parent_profile=ParentProfileResponse.model_validate(profile) if profile else None,
        student=StudentResponse.model_validate(student) if student else None,
    )
