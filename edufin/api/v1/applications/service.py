"""
Fee application lifecycle.

platform_review -> approved (installments generated once) | rejected
approved | active -> paid_to_institution (platform pays the institution)
approved -> active happens on the first paid installment (installments service).
"""

from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.api.v1.installments.service import installment_to_response, list_application_installments
from edufin.auth.models import User
from edufin.core.audit_service import log_application_audit
from edufin.core.enums import ApplicationAction, ApplicationStatus, InstallmentStatus, PaymentType
from edufin.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ServiceError, ValidationError
from edufin.core.installment_scheduler import build_schedule
from edufin.core.logging import get_logger
from edufin.core.models import (
    EmiPlan,
    FeeApplication,
    Installment,
    Institution,
    ParentProfile,
    Student,
)
from edufin.core.payment_service import record_payment
from edufin.core.schemas import FeeApplicationResponse, InstallmentResponse, PaymentResponse, StudentResponse
from edufin.core.status_projector import StatusProjection, onboarding_progress, project

from .schemas import (
    AdminApplicationItem,
    ApplicationActionRequest,
    ApplicationDetail,
    ApplicationListItem,
    InstitutionPayoutResponse,
)

logger = get_logger(__name__)

# Only drafts that never reached review can be withdrawn by the parent
DELETABLE_STATUSES = {ApplicationStatus.PENDING.value}
PAYOUT_STATUSES = {ApplicationStatus.APPROVED.value, ApplicationStatus.ACTIVE.value}
SCHEDULABLE_STATUSES = {ApplicationStatus.APPROVED.value, ApplicationStatus.ACTIVE.value}


def _application_query():
    return (
        select(FeeApplication, Student, Institution, EmiPlan)
        .join(Student, FeeApplication.student_id == Student.id)
        .join(Institution, Student.institution_id == Institution.id)
        .outerjoin(EmiPlan, FeeApplication.emi_plan_id == EmiPlan.id)
    )


async def _get_application_row(
    db: AsyncSession,
    application_id: UUID,
) -> Tuple[FeeApplication, Student, Institution, Optional[EmiPlan]]:
    row = (await db.execute(_application_query().where(FeeApplication.id == application_id))).first()
    if row is None:
        raise NotFoundError("Application not found")
    return row


async def _get_profile(db: AsyncSession, user_id: UUID) -> Optional[ParentProfile]:
    result = await db.execute(select(ParentProfile).where(ParentProfile.user_id == user_id))
    return result.scalar_one_or_none()


def _projection(
    application: FeeApplication,
    profile: Optional[ParentProfile],
    student: Student,
) -> StatusProjection:
    progress = onboarding_progress(profile, student)
    return project(
        application.status,
        bool(profile and profile.is_onboarding_completed),
        application.emi_plan_id is not None,
        application_id=application.id,
        next_step=progress.next_step,
    )


# ----- Parent -----

async def list_parent_applications(db: AsyncSession, parent_user_id: UUID) -> List[ApplicationListItem]:
    profile = await _get_profile(db, parent_user_id)
    result = await db.execute(
        _application_query()
        .where(Student.parent_id == parent_user_id)
        .order_by(FeeApplication.applied_at.desc())
    )
    items = []
    for application, student, institution, plan in result.all():
        projection = _projection(application, profile, student)
        items.append(
            ApplicationListItem(
                id=application.id,
                student_name=student.name,
                institution_name=institution.name,
                status=application.status,
                status_tag=projection.status_tag,
                status_text=projection.status_text,
                action_text=projection.action_text,
                action_url=projection.action_url,
                plan_key=plan.plan_key if plan else None,
                plan_name=plan.name if plan else None,
                total_amount=application.total_amount,
                remaining_amount=application.remaining_amount,
                monthly_installment=application.monthly_installment,
                processing_fee=application.processing_fee,
                applied_at=application.applied_at,
                platform_paid_to_institution=application.platform_paid_to_institution,
            )
        )
    return items


async def get_parent_application(
    db: AsyncSession,
    parent_user_id: UUID,
    application_id: UUID,
    today: Optional[date] = None,
) -> ApplicationDetail:
    application, student, institution, plan = await _get_application_row(db, application_id)
    if student.parent_id != parent_user_id:
        raise ForbiddenError("This application does not belong to you")

    profile = await _get_profile(db, parent_user_id)
    projection = _projection(application, profile, student)
    installments = [
        installment_to_response(i, today)
        for i in await list_application_installments(db, application.id)
    ]
    return ApplicationDetail(
        application=FeeApplicationResponse.model_validate(application),
        student=StudentResponse.model_validate(student),
        institution_name=institution.name,
        plan_key=plan.plan_key if plan else None,
        plan_name=plan.name if plan else None,
        status_tag=projection.status_tag,
        status_text=projection.status_text,
        action_text=projection.action_text,
        action_url=projection.action_url,
        installments=installments,
        paid_installments=sum(1 for i in installments if i.status == InstallmentStatus.paid.value),
    )


async def delete_parent_application(db: AsyncSession, parent_user_id: UUID, application_id: UUID) -> None:
    """Withdraw a draft application; the student record goes with it."""
    application, student, _, _ = await _get_application_row(db, application_id)
    if student.parent_id != parent_user_id:
        raise ForbiddenError("This application does not belong to you")
    if application.status not in DELETABLE_STATUSES:
        raise ValidationError(
            "Cannot delete applications that are in review, in progress or completed",
            field="status",
        )

    await db.delete(application)
    await db.flush()
    remaining = await db.execute(
        select(func.count(FeeApplication.id)).where(FeeApplication.student_id == student.id)
    )
    if not remaining.scalar():
        await db.delete(student)
    profile = await _get_profile(db, parent_user_id)
    if profile is not None:
        profile.selected_plan_key = None
    await db.commit()
    logger.info("application_deleted", application_id=str(application_id), parent_user_id=str(parent_user_id))


# ----- Platform admin -----

async def list_admin_applications(
    db: AsyncSession,
    status: Optional[ApplicationStatus] = None,
) -> List[AdminApplicationItem]:
    """Submitted applications (plan chosen, past the draft stage), newest first."""
    installment_counts = (
        select(Installment.fee_application_id, func.count(Installment.id).label("n"))
        .group_by(Installment.fee_application_id)
        .subquery()
    )
    stmt = (
        select(
            FeeApplication,
            Student.name,
            Institution.name,
            EmiPlan.plan_key,
            User.full_name,
            User.email,
            ParentProfile.full_name,
            installment_counts.c.n,
        )
        .join(Student, FeeApplication.student_id == Student.id)
        .join(Institution, Student.institution_id == Institution.id)
        .join(EmiPlan, FeeApplication.emi_plan_id == EmiPlan.id)
        .join(User, Student.parent_id == User.id)
        .outerjoin(ParentProfile, ParentProfile.user_id == User.id)
        .outerjoin(installment_counts, installment_counts.c.fee_application_id == FeeApplication.id)
        .where(FeeApplication.status != ApplicationStatus.PENDING.value)
        .order_by(FeeApplication.applied_at.desc())
    )
    if status is not None:
        stmt = stmt.where(FeeApplication.status == status.value)
    result = await db.execute(stmt)

    return [
        AdminApplicationItem(
            id=application.id,
            status=application.status,
            parent_name=profile_name or user_name,
            parent_email=user_email,
            student_name=student_name,
            institution_name=institution_name,
            plan_key=plan_key,
            total_amount=application.total_amount,
            remaining_amount=application.remaining_amount,
            monthly_installment=application.monthly_installment,
            processing_fee=application.processing_fee,
            applied_at=application.applied_at,
            approved_at=application.approved_at,
            rejected_at=application.rejected_at,
            rejection_reason=application.rejection_reason,
            platform_paid_to_institution=application.platform_paid_to_institution,
            installment_count=count or 0,
        )
        for (
            application,
            student_name,
            institution_name,
            plan_key,
            user_name,
            user_email,
            profile_name,
            count,
        ) in result.all()
    ]


async def _stage_installments(
    db: AsyncSession,
    application: FeeApplication,
    plan: Optional[EmiPlan],
    anchor: Optional[date] = None,
) -> List[Installment]:
    """Persist the schedule for an application exactly once. Caller commits."""
    if plan is None or application.emi_plan_id is None:
        raise ValidationError("Application does not have an EMI plan", field="emi_plan_id")
    existing = await db.execute(
        select(func.count(Installment.id)).where(Installment.fee_application_id == application.id)
    )
    if existing.scalar():
        raise ConflictError("Installments already exist for this application")

    anchor = anchor or (application.approved_at or datetime.utcnow()).date()
    rows = [
        Installment(
            fee_application_id=application.id,
            installment_number=s.installment_number,
            amount=s.amount,
            due_date=s.due_date,
            status=s.status,
        )
        for s in build_schedule(application.total_amount, plan.installments, anchor)
    ]
    db.add_all(rows)
    await db.flush()
    logger.info(
        "installments_generated",
        application_id=str(application.id),
        count=len(rows),
        first_due=rows[0].due_date.isoformat(),
    )
    return rows


async def review_application(
    db: AsyncSession,
    application_id: UUID,
    payload: ApplicationActionRequest,
    admin_user_id: UUID,
) -> FeeApplicationResponse:
    """Approve (and schedule installments) or reject an application under platform review."""
    application, _, _, plan = await _get_application_row(db, application_id)
    if application.status != ApplicationStatus.PLATFORM_REVIEW.value:
        raise ConflictError(
            f"Only applications in platform review can be reviewed (current status: {application.status})"
        )

    old_status = application.status
    now = datetime.utcnow()
    try:
        if payload.action == ApplicationAction.APPROVE:
            application.status = ApplicationStatus.APPROVED.value
            application.approved_at = now
            application.approved_by = admin_user_id
            await _stage_installments(db, application, plan, anchor=now.date())
        else:
            application.status = ApplicationStatus.REJECTED.value
            application.rejected_at = now
            application.rejection_reason = payload.rejection_reason
        application.updated_at = now

        await log_application_audit(
            db,
            reference_table="fee_applications",
            reference_id=application.id,
            action_type=payload.action.value.upper(),
            old_value={"status": old_status},
            new_value={"status": application.status, "rejection_reason": application.rejection_reason},
            changed_by=admin_user_id,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Installments already exist for this application") from e
    except ServiceError:
        await db.rollback()
        raise

    logger.info(
        "application_approved" if payload.action == ApplicationAction.APPROVE else "application_rejected",
        application_id=str(application.id),
        admin_user_id=str(admin_user_id),
    )
    return FeeApplicationResponse.model_validate(application)


async def generate_installments(
    db: AsyncSession,
    application_id: UUID,
    admin_user_id: UUID,
) -> List[InstallmentResponse]:
    """Backfill the schedule for an approved application that has none."""
    application, _, _, plan = await _get_application_row(db, application_id)
    if application.status not in SCHEDULABLE_STATUSES:
        raise ConflictError(
            f"Installments can only be generated for approved or active applications (current status: {application.status})"
        )
    try:
        rows = await _stage_installments(db, application, plan)
        await log_application_audit(
            db,
            reference_table="fee_applications",
            reference_id=application.id,
            action_type="INSTALLMENTS_GENERATED",
            old_value=None,
            new_value={"count": len(rows), "total_amount": str(application.total_amount)},
            changed_by=admin_user_id,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Installments already exist for this application") from e
    except ServiceError:
        await db.rollback()
        raise
    return [installment_to_response(r) for r in rows]


async def pay_institution(
    db: AsyncSession,
    application_id: UUID,
    admin_user_id: UUID,
) -> InstitutionPayoutResponse:
    """Record the platform's payout of the financed fee to the institution."""
    application, student, institution, _ = await _get_application_row(db, application_id)
    if application.platform_paid_to_institution:
        raise ConflictError("Institution has already been paid for this application")
    if application.status not in PAYOUT_STATUSES:
        raise ConflictError(
            f"Institution can only be paid for approved or active applications (current status: {application.status})"
        )

    old_status = application.status
    try:
        payment = await record_payment(
            db,
            payment_type=PaymentType.PLATFORM_TO_INSTITUTION,
            amount=student.fee_amount if student.fee_amount is not None else application.total_amount,
            fee_application_id=application.id,
            user_id=admin_user_id,
            institution_id=institution.id,
            notes=f"Fee payout to {institution.name}",
        )
        application.status = ApplicationStatus.PAID_TO_INSTITUTION.value
        application.platform_paid_to_institution = True
        application.institution_payment_date = payment.paid_at
        application.updated_at = payment.paid_at

        await log_application_audit(
            db,
            reference_table="fee_applications",
            reference_id=application.id,
            action_type="PAID_TO_INSTITUTION",
            old_value={"status": old_status},
            new_value={"status": application.status, "payment_id": str(payment.id)},
            changed_by=admin_user_id,
        )
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise

    logger.info(
        "institution_paid",
        application_id=str(application.id),
        institution_id=str(institution.id),
        amount=str(payment.amount),
    )
    return InstitutionPayoutResponse(
        application=FeeApplicationResponse.model_validate(application),
        payment=PaymentResponse.model_validate(payment),
    )
