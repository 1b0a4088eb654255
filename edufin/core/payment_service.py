"""
Simulated payments. No gateway is called: every payment is recorded as completed
with a generated transaction id.
"""

import secrets
import time
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from edufin.core.enums import PaymentType
from edufin.core.models import Payment

PAYMENT_METHODS = {
    PaymentType.EMI_PAYMENT: "mock_payment",
    PaymentType.PLATFORM_TO_INSTITUTION: "bank_transfer",
}


def new_transaction_id(prefix: str = "TXN") -> str:
    """e.g. EMI-1760000000000-3FA9C2"""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


async def record_payment(
    db: AsyncSession,
    *,
    payment_type: PaymentType,
    amount: Decimal,
    fee_application_id: UUID,
    user_id: Optional[UUID] = None,
    installment_id: Optional[UUID] = None,
    institution_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> Payment:
    """Stage a completed payment row. Caller commits."""
    prefix = "EMI" if payment_type == PaymentType.EMI_PAYMENT else "PAYOUT"
    payment = Payment(
        amount=amount,
        payment_type=payment_type.value,
        payment_method=PAYMENT_METHODS[payment_type],
        status="completed",
        transaction_id=new_transaction_id(prefix),
        user_id=user_id,
        fee_application_id=fee_application_id,
        installment_id=installment_id,
        institution_id=institution_id,
        paid_at=datetime.utcnow(),
        notes=notes,
    )
    db.add(payment)
    await db.flush()
    return payment
