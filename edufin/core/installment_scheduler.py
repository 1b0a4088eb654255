"""Installment schedule generation and read-time status derivation."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

from dateutil.relativedelta import relativedelta

from edufin.core.emi_calculator import Amount, to_amount
from edufin.core.enums import InstallmentStatus
from edufin.core.exceptions import ValidationError


@dataclass(frozen=True)
class ScheduledInstallment:
    installment_number: int
    amount: Decimal
    due_date: date
    status: str = InstallmentStatus.pending.value


def build_schedule(
    total_amount: Amount,
    installment_count: int,
    anchor: Union[date, datetime],
) -> List[ScheduledInstallment]:
    """
    Split total_amount into installment_count monthly dues.

    Every installment but the last is total / count rounded to whole rupees; the
    last one absorbs the remainder so the schedule sums exactly to total_amount.
    Installment i falls due i calendar months after the anchor (month-end dates
    are clamped, e.g. Jan 31 -> Feb 28).
    """
    total = to_amount(total_amount)
    if total <= 0:
        raise ValidationError("total_amount must be greater than zero", field="total_amount")
    if installment_count < 1:
        raise ValidationError("installment_count must be at least 1", field="installments")

    anchor_date = anchor.date() if isinstance(anchor, datetime) else anchor
    regular = (total / installment_count).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    last = total - regular * (installment_count - 1)
    if last <= 0:
        raise ValidationError(
            f"total_amount {total} is too small to split into {installment_count} installments",
            field="total_amount",
        )

    schedule = []
    for number in range(1, installment_count + 1):
        schedule.append(
            ScheduledInstallment(
                installment_number=number,
                amount=last if number == installment_count else regular,
                due_date=anchor_date + relativedelta(months=number),
            )
        )
    return schedule


def effective_status(status: str, due_date: date, today: Optional[date] = None) -> str:
    """Overdue is derived on read: a pending installment past its due date."""
    today = today or date.today()
    if status == InstallmentStatus.pending.value and due_date < today:
        return InstallmentStatus.overdue.value
    return status
