"""EMI plan catalog schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class EmiPlanResponse(BaseModel):
    plan_key: str
    name: str
    duration_months: int
    interest_rate: Decimal
    processing_fee_rate: Decimal
    min_amount: Decimal = Decimal("0")
    max_amount: Optional[Decimal] = None
    is_active: bool = True
