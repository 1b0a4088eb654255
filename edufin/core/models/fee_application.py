"""Fee application: a student's request for EMI financing of an institution fee."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class FeeApplication(Base):
    """Central aggregate. One per student; onboarding updates it in place."""

    __tablename__ = "fee_applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), unique=True, nullable=False)
    fee_structure_id = Column(Uuid, ForeignKey("fee_structures.id", ondelete="RESTRICT"), nullable=False)
    # Null until the parent picks a plan
    emi_plan_id = Column(Uuid, ForeignKey("emi_plans.id", ondelete="RESTRICT"), nullable=True)
    # pending, platform_review, approved, active, paid_to_institution, rejected
    status = Column(String(30), nullable=False, default="pending")
    total_amount = Column(Numeric(12, 2), nullable=False)
    remaining_amount = Column(Numeric(12, 2), nullable=False)
    monthly_installment = Column(Numeric(12, 2), nullable=True)
    processing_fee = Column(Numeric(12, 2), nullable=False, default=0)
    applied_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    platform_paid_to_institution = Column(Boolean, nullable=False, default=False)
    institution_payment_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    fee_structure = relationship("FeeStructure")
    emi_plan = relationship("EmiPlan")
    approved_by_user = relationship("User", foreign_keys=[approved_by])
