"""
Read-side projection of a fee application into dashboard status, label and action.

Nothing here touches the database; callers pass in the rows they already loaded.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from uuid import UUID

from edufin.core.enums import ApplicationStatus, OnboardingStep, StatusTag

WIZARD_STEP_URL = "/parent/apply/steps/{step}"
APPLICATION_URL = "/parent/dashboard/applications/{application_id}"
INSTALLMENTS_URL = "/parent/dashboard/installments"


@dataclass(frozen=True)
class StatusProjection:
    status_tag: StatusTag
    status_text: str
    action_text: str
    action_url: str


@dataclass(frozen=True)
class OnboardingProgress:
    next_step: OnboardingStep
    is_completed: bool
    completed_steps: Dict[str, bool] = field(default_factory=dict)


def _student_complete(student) -> bool:
    return bool(
        student is not None
        and student.name
        and student.fee_amount
        and student.institution_id
    )


def _personal_details_complete(profile) -> bool:
    return bool(
        profile.applicant_pan
        and profile.gender
        and profile.father_name
        and profile.mother_name
    )


def onboarding_progress(profile, student) -> OnboardingProgress:
    """
    Infer wizard progress from whichever fields are already persisted.

    Steps gate in order: student details, plan choice, primary earner, then the
    intro screen (step 4, no data) and personal details. A finished onboarding
    always points at the final step.
    """
    completed = {
        "step1": False,
        "step2": False,
        "step3": False,
        "step4": False,
        "step5": False,
    }
    if profile is not None and profile.is_onboarding_completed:
        return OnboardingProgress(
            next_step=OnboardingStep.TERMS,
            is_completed=True,
            completed_steps={k: True for k in completed},
        )

    step = OnboardingStep.STUDENT_DETAILS
    if _student_complete(student):
        completed["step1"] = True
        step = OnboardingStep.EMI_PLAN
        if profile is not None and profile.selected_plan_key:
            completed["step2"] = True
            step = OnboardingStep.PRIMARY_EARNER
            if profile.full_name:
                completed["step3"] = True
                completed["step4"] = True
                step = OnboardingStep.PERSONAL_DETAILS
                if _personal_details_complete(profile):
                    completed["step5"] = True
                    step = OnboardingStep.TERMS

    return OnboardingProgress(next_step=step, is_completed=False, completed_steps=completed)


def next_onboarding_step(profile, student) -> OnboardingStep:
    return onboarding_progress(profile, student).next_step


def project(
    status: Optional[str],
    is_onboarding_completed: bool,
    has_emi_plan: bool,
    application_id: Optional[UUID] = None,
    next_step: OnboardingStep = OnboardingStep.STUDENT_DETAILS,
) -> StatusProjection:
    """
    Parent-facing tag, text and action for one application.

    Callers pass the application's fields rather than the row: status is
    application.status (None when there is no application yet), has_emi_plan is
    application.emi_plan_id is not None and application_id is application.id.
    is_onboarding_completed and next_step come from the parent's onboarding progress.
    """
    if not is_onboarding_completed or not has_emi_plan:
        return StatusProjection(
            status_tag=StatusTag.ONBOARDING_PENDING,
            status_text="Please complete your application",
            action_text="Complete Application",
            action_url=WIZARD_STEP_URL.format(step=int(next_step)),
        )

    detail_url = APPLICATION_URL.format(application_id=application_id)

    if status == ApplicationStatus.PLATFORM_REVIEW.value:
        return StatusProjection(
            status_tag=StatusTag.EMI_PROGRESS,
            status_text="Your application is under review",
            action_text="View Details",
            action_url=detail_url,
        )
    if status == ApplicationStatus.APPROVED.value:
        return StatusProjection(
            status_tag=StatusTag.EMI_PROGRESS,
            status_text="Your EMI registration is in progress",
            action_text="View Details",
            action_url=detail_url,
        )
    if status == ApplicationStatus.ACTIVE.value:
        return StatusProjection(
            status_tag=StatusTag.EMI_PROGRESS,
            status_text="EMI plan is active",
            action_text="View Installments",
            action_url=INSTALLMENTS_URL,
        )
    if status == ApplicationStatus.PAID_TO_INSTITUTION.value:
        return StatusProjection(
            status_tag=StatusTag.COMPLETED,
            status_text="Payment completed",
            action_text="View Receipt",
            action_url=detail_url,
        )
    if status == ApplicationStatus.REJECTED.value:
        return StatusProjection(
            status_tag=StatusTag.REJECTED,
            status_text="Application rejected",
            action_text="View Details",
            action_url=detail_url,
        )
    return StatusProjection(
        status_tag=StatusTag.EMI_PENDING,
        status_text="Please complete your EMI form",
        action_text="Complete now",
        action_url=detail_url,
    )
