import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class ParentProfile(Base):
    """
    One-to-one with a parent user. Accumulates fields across onboarding steps;
    is_onboarding_completed gates dashboard access and further onboarding writes.
    """

    __tablename__ = "parent_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    # Primary earner / parent
    full_name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    pan_card_number = Column(String(10), nullable=True)
    relation_to_student = Column(String(50), nullable=True)
    occupation = Column(String(100), nullable=True)
    annual_income = Column(Numeric(14, 2), nullable=True)
    alternate_email = Column(String(255), nullable=True)
    alternate_phone = Column(String(20), nullable=True)

    # Applicant personal details (KYC)
    applicant_pan = Column(String(10), nullable=True)
    applicant_email = Column(String(255), nullable=True)
    gender = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    marital_status = Column(String(20), nullable=True)
    father_name = Column(String(255), nullable=True)
    mother_name = Column(String(255), nullable=True)
    spouse_name = Column(String(255), nullable=True)
    education_level = Column(String(100), nullable=True)
    work_experience = Column(String(100), nullable=True)
    company_type = Column(String(100), nullable=True)

    # Canonical plan key chosen in the EMI step (e.g. 9-months)
    selected_plan_key = Column(String(30), nullable=True)

    terms_accepted = Column(Boolean, nullable=False, default=False)
    privacy_accepted = Column(Boolean, nullable=False, default=False)
    credit_check_accepted = Column(Boolean, nullable=False, default=False)

    is_onboarding_completed = Column(Boolean, nullable=False, default=False)
    onboarding_completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User")
