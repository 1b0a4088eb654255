"""Payment: simulated money movement for EMI collections and institution payouts."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from edufin.db.session import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_type = Column(String(40), nullable=False)  # emi_payment, platform_to_institution
    payment_method = Column(String(30), nullable=False)  # mock_payment, bank_transfer
    status = Column(String(20), nullable=False)  # completed, failed
    transaction_id = Column(String(100), unique=True, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    fee_application_id = Column(Uuid, ForeignKey("fee_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    # Paid installment for emi_payment rows; installments.payment_id holds the FK
    installment_id = Column(Uuid, nullable=True, index=True)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="SET NULL"), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    fee_application = relationship("FeeApplication")
    user = relationship("User")
