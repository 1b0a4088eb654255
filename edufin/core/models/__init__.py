from edufin.core.models.organization import Organization
from edufin.core.models.institution import Institution, InstitutionBoard, InstitutionLocation
from edufin.core.models.fee_structure import FeeStructure
from edufin.core.models.emi_plan import EmiPlan
from edufin.core.models.student import Student
from edufin.core.models.parent_profile import ParentProfile
from edufin.core.models.fee_application import FeeApplication
from edufin.core.models.payment import Payment
from edufin.core.models.installment import Installment
from edufin.core.models.application_audit_log import ApplicationAuditLog

__all__ = [
    "Organization",
    "Institution",
    "InstitutionBoard",
    "InstitutionLocation",
    "FeeStructure",
    "EmiPlan",
    "Student",
    "ParentProfile",
    "FeeApplication",
    "Payment",
    "Installment",
    "ApplicationAuditLog",
]
