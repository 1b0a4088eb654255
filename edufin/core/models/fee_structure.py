"""Fee structure: named fee of an institution for an academic year."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class FeeStructure(Base):
    """Memoized per (institution_id, name): the first row found is reused by onboarding."""

    __tablename__ = "fee_structures"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)  # Annual Fee, Tuition Fee, Hostel Fee, ...
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    academic_year = Column(String(20), nullable=False)  # e.g. 2026-2027
    is_recurring = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    institution = relationship("Institution")
