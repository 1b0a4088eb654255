import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class Installment(Base):
    """One EMI due from the parent. Generated once per application; only status/payment fields change afterwards."""

    __tablename__ = "installments"
    __table_args__ = (
        UniqueConstraint("fee_application_id", "installment_number", name="uq_installment_application_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    fee_application_id = Column(Uuid, ForeignKey("fee_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending, paid, overdue
    payment_id = Column(Uuid, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    fee_application = relationship("FeeApplication")
