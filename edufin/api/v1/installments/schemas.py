"""Installment schemas for the parent dashboard."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from edufin.core.schemas import InstallmentResponse, PaymentResponse


class ParentInstallmentItem(InstallmentResponse):
    student_name: str
    institution_name: str
    plan_key: Optional[str] = None


class InstallmentPaymentResponse(BaseModel):
    installment: InstallmentResponse
    payment: PaymentResponse
    application_status: str
    remaining_amount: Decimal
