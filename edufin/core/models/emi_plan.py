"""EMI plan catalog row. Zero interest; processing fee grows with tenor."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Uuid

from edufin.db.session import Base


class EmiPlan(Base):
    __tablename__ = "emi_plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_key = Column(String(30), unique=True, nullable=False)  # 3-months, 6-months, ...
    name = Column(String(100), nullable=False)
    installments = Column(Integer, nullable=False)
    interest_rate = Column(Numeric(5, 2), nullable=False, default=0)
    # Fraction of the fee charged once, e.g. 0.0600 for a 9 month plan
    processing_fee_rate = Column(Numeric(6, 4), nullable=False, default=0)
    min_amount = Column(Numeric(12, 2), nullable=False, default=0)
    max_amount = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
