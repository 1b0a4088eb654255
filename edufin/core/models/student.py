import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class Student(Base):
    """
    Student whose fees are financed. Owned by one parent user and one institution.
    The onboarding flow keeps one student per parent and looks it up by parent_id only.
    """

    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    roll_number = Column(String(50), nullable=True)
    class_name = Column(String(100), nullable=True)
    section = Column(String(50), nullable=True)
    fee_amount = Column(Numeric(12, 2), nullable=True)
    fee_type = Column(String(100), nullable=True)
    admission_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    parent = relationship("User")
    institution = relationship("Institution")
