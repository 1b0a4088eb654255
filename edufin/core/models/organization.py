import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class Organization(Base):
    """
    Organization (tenant) that owns an institution.

    - id: Internal primary key (UUID). Used for all FKs and internal logic.
    - organization_code: External/public human-readable identifier (e.g. SCH-A3K9).
      Never used as a foreign key.
    - slug: URL-safe name; unique so two concurrent first-time onboardings for the
      same institution name cannot both create an organization.
    """

    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    organization_code = Column(String(20), unique=True, nullable=False, index=True)
    organization_type = Column(String(50), nullable=False, default="school")
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    institutions = relationship("Institution", back_populates="organization")
