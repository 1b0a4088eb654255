"""Institution with its campus locations and boards/curricula."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class Institution(Base):
    """School or college. Always has at least one location and one board once created."""

    __tablename__ = "institutions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    # Exact-match lookup key during onboarding; unique to close the lookup-or-create race
    name = Column(String(255), unique=True, nullable=False)
    type = Column(String(20), nullable=False, default="school")  # school | college
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="institutions")
    locations = relationship(
        "InstitutionLocation",
        back_populates="institution",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InstitutionLocation.created_at",
    )
    boards = relationship(
        "InstitutionBoard",
        back_populates="institution",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InstitutionBoard.created_at",
    )


class InstitutionLocation(Base):
    __tablename__ = "institution_locations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    institution = relationship("Institution", back_populates="locations")


class InstitutionBoard(Base):
    """Board / curriculum offered by an institution (CBSE, ICSE, State Board, ...)."""

    __tablename__ = "institution_boards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    institution = relationship("Institution", back_populates="boards")
