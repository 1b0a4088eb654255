"""Installments: parent listing with derived overdue status, and paying one installment."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.core.audit_service import log_application_audit
from edufin.core.enums import ApplicationStatus, InstallmentStatus, PaymentType
from edufin.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ServiceError, ValidationError
from edufin.core.installment_scheduler import effective_status
from edufin.core.logging import get_logger
from edufin.core.models import EmiPlan, FeeApplication, Installment, Institution, Student
from edufin.core.payment_service import record_payment
from edufin.core.schemas import InstallmentResponse, PaymentResponse

from .schemas import InstallmentPaymentResponse, ParentInstallmentItem

logger = get_logger(__name__)

# Installments can be paid once the platform has approved the application
PAYABLE_STATUSES = {
    ApplicationStatus.APPROVED.value,
    ApplicationStatus.ACTIVE.value,
    ApplicationStatus.PAID_TO_INSTITUTION.value,
}


def installment_to_response(inst: Installment, today: Optional[date] = None) -> InstallmentResponse:
    return InstallmentResponse(
        id=inst.id,
        fee_application_id=inst.fee_application_id,
        installment_number=inst.installment_number,
        amount=inst.amount,
        due_date=inst.due_date,
        paid_date=inst.paid_date,
        status=effective_status(inst.status, inst.due_date, today),
        payment_id=inst.payment_id,
    )


async def list_application_installments(db: AsyncSession, application_id: UUID) -> List[Installment]:
    result = await db.execute(
        select(Installment)
        .where(Installment.fee_application_id == application_id)
        .order_by(Installment.installment_number)
    )
    return list(result.scalars().all())


async def list_parent_installments(
    db: AsyncSession,
    parent_user_id: UUID,
    status: Optional[InstallmentStatus] = None,
    today: Optional[date] = None,
) -> List[ParentInstallmentItem]:
    """All installments across the parent's applications, earliest due first."""
    stmt = (
        select(Installment, Student.name, Institution.name, EmiPlan.plan_key)
        .join(FeeApplication, Installment.fee_application_id == FeeApplication.id)
        .join(Student, FeeApplication.student_id == Student.id)
        .join(Institution, Student.institution_id == Institution.id)
        .outerjoin(EmiPlan, FeeApplication.emi_plan_id == EmiPlan.id)
        .where(Student.parent_id == parent_user_id)
        .order_by(Installment.due_date, Installment.installment_number)
    )
    result = await db.execute(stmt)

    items = []
    for inst, student_name, institution_name, plan_key in result.all():
        base = installment_to_response(inst, today)
        if status is not None and base.status != status.value:
            continue
        items.append(
            ParentInstallmentItem(
                **base.model_dump(),
                student_name=student_name,
                institution_name=institution_name,
                plan_key=plan_key,
            )
        )
    return items


def installment_for_payment_query(installment_id: UUID):
    # Holds the installment and application rows until commit
    return (
        select(Installment, FeeApplication, Student)
        .join(FeeApplication, Installment.fee_application_id == FeeApplication.id)
        .join(Student, FeeApplication.student_id == Student.id)
        .where(Installment.id == installment_id)
        .with_for_update(of=[Installment, FeeApplication])
        .execution_options(populate_existing=True)
    )


async def pay_installment(
    db: AsyncSession,
    parent_user_id: UUID,
    installment_id: UUID,
) -> InstallmentPaymentResponse:
    """
    Record a simulated EMI payment for one installment.

    pending/overdue -> paid; the application's remaining amount drops by the
    installment amount (never below zero) and the first payment moves an
    approved application to active.
    """
    row = (await db.execute(installment_for_payment_query(installment_id))).first()
    if row is None:
        raise NotFoundError("Installment not found")
    installment, application, student = row
    if student.parent_id != parent_user_id:
        raise ForbiddenError("This installment does not belong to you")
    if installment.status == InstallmentStatus.paid.value:
        raise ConflictError("Installment is already paid")
    if application.status not in PAYABLE_STATUSES:
        raise ValidationError(
            f"Installments cannot be paid while the application is {application.status}",
            field="status",
        )

    old_status = application.status
    old_remaining = application.remaining_amount
    try:
        payment = await record_payment(
            db,
            payment_type=PaymentType.EMI_PAYMENT,
            amount=installment.amount,
            fee_application_id=application.id,
            user_id=parent_user_id,
            installment_id=installment.id,
            notes=f"EMI installment {installment.installment_number}",
        )
        installment.status = InstallmentStatus.paid.value
        installment.paid_date = payment.paid_at
        installment.payment_id = payment.id

        remaining = Decimal(old_remaining) - Decimal(installment.amount)
        application.remaining_amount = max(remaining, Decimal("0"))
        if application.status == ApplicationStatus.APPROVED.value:
            application.status = ApplicationStatus.ACTIVE.value
        application.updated_at = datetime.utcnow()

        await log_application_audit(
            db,
            reference_table="installments",
            reference_id=installment.id,
            action_type="PAID",
            old_value={"status": old_status, "remaining_amount": str(old_remaining)},
            new_value={
                "status": application.status,
                "remaining_amount": str(application.remaining_amount),
                "payment_id": str(payment.id),
            },
            changed_by=parent_user_id,
        )
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise

    logger.info(
        "installment_paid",
        installment_id=str(installment.id),
        application_id=str(application.id),
        amount=str(installment.amount),
        application_status=application.status,
    )
    return InstallmentPaymentResponse(
        installment=installment_to_response(installment),
        payment=PaymentResponse.model_validate(payment),
        application_status=application.status,
        remaining_amount=application.remaining_amount,
    )
