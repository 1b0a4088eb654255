from enum import Enum, IntEnum


class UserRole(str, Enum):
    PLATFORM_ADMIN = "PLATFORM_ADMIN"
    INSTITUTION = "INSTITUTION"
    PARENT = "PARENT"


class InstitutionType(str, Enum):
    SCHOOL = "school"
    COLLEGE = "college"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    PLATFORM_REVIEW = "platform_review"
    APPROVED = "approved"
    ACTIVE = "active"
    PAID_TO_INSTITUTION = "paid_to_institution"
    REJECTED = "rejected"


class ApplicationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class InstallmentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    overdue = "overdue"


class PaymentType(str, Enum):
    EMI_PAYMENT = "emi_payment"
    PLATFORM_TO_INSTITUTION = "platform_to_institution"


class StatusTag(str, Enum):
    """User-facing application state shown on the parent dashboard."""

    ONBOARDING_PENDING = "onboarding_pending"
    EMI_PENDING = "emi_pending"
    EMI_PROGRESS = "emi_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class OnboardingStep(IntEnum):
    STUDENT_DETAILS = 1
    EMI_PLAN = 2
    PRIMARY_EARNER = 3
    INTRO = 4
    PERSONAL_DETAILS = 5
    TERMS = 6
