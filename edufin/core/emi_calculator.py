"""
EMI plan economics. Pure functions, no database access.

Plans are zero interest. A one-time processing fee of 2% is charged per 3-month
block of tenor, so a 9 month plan costs 6% and a 24 month plan 16%.
"""

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

from edufin.core.exceptions import InvalidPlanError, ValidationError

CATALOG_DURATIONS = (3, 6, 9, 12, 18, 24)
BASE_PROCESSING_FEE_RATE = Decimal("0.02")
INTEREST_RATE = Decimal("0")

# Plan ids used by older wizard screens
LEGACY_PLAN_IDS = {
    "plan-a": "9-months",
    "plan-b": "6-months",
    "plan-c": "12-months",
    "plan-d": "18-months",
    "plan-e": "24-months",
}

_CENT = Decimal("0.01")

Amount = Union[Decimal, int, str, float]


@dataclass(frozen=True)
class PlanQuote:
    duration_months: int
    monthly_installment: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    interest_rate: Decimal = INTEREST_RATE

    @property
    def plan_key(self) -> str:
        return plan_key_for(self.duration_months)


@dataclass(frozen=True)
class CatalogPlan:
    plan_key: str
    name: str
    duration_months: int
    interest_rate: Decimal
    processing_fee_rate: Decimal


def to_amount(value: Amount) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as e:
        raise ValidationError(f"Invalid amount: {value!r}", field="fee_amount") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}", field="fee_amount")
    return amount


def _check_duration(duration_months: int) -> int:
    if isinstance(duration_months, bool) or duration_months not in CATALOG_DURATIONS:
        raise InvalidPlanError(duration_months)
    return int(duration_months)


def plan_key_for(duration_months: int) -> str:
    return f"{_check_duration(duration_months)}-months"


def plan_name_for(duration_months: int) -> str:
    return f"{_check_duration(duration_months)} Months"


def processing_fee_rate(duration_months: int) -> Decimal:
    """2% per 3-month block: 3 -> 0.02, 6 -> 0.04, ..., 24 -> 0.16."""
    return BASE_PROCESSING_FEE_RATE * _check_duration(duration_months) / 3


def compute_plan(fee_amount: Amount, duration_months: int) -> PlanQuote:
    """Monthly installment, processing fee and total payable for a fee financed over a catalog duration."""
    fee = to_amount(fee_amount)
    if fee <= 0:
        raise ValidationError("fee_amount must be greater than zero", field="fee_amount")
    duration = _check_duration(duration_months)

    monthly = (fee / duration).to_integral_value(rounding=ROUND_CEILING)
    fee_charge = (fee * processing_fee_rate(duration)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return PlanQuote(
        duration_months=duration,
        monthly_installment=monthly,
        processing_fee=fee_charge,
        total_amount=(fee + fee_charge).quantize(_CENT, rounding=ROUND_HALF_UP),
    )


def normalize_plan_key(plan_id: Optional[str]) -> str:
    """
    Map any accepted plan identifier to its canonical key.

    "plan-a" -> "9-months", "12-months" -> "12-months", " 6-Months " -> "6-months".
    Raises InvalidPlanError for anything outside the catalog.
    """
    key = (plan_id or "").strip().lower()
    key = LEGACY_PLAN_IDS.get(key, key)
    duration_for_plan_key(key)
    return key


def duration_for_plan_key(plan_key: str) -> int:
    prefix, sep, suffix = (plan_key or "").partition("-")
    if sep != "-" or suffix != "months" or not prefix.isdigit():
        raise InvalidPlanError(plan_key)
    duration = int(prefix)
    if duration not in CATALOG_DURATIONS:
        raise InvalidPlanError(plan_key)
    return duration


def catalog() -> List[CatalogPlan]:
    return [
        CatalogPlan(
            plan_key=plan_key_for(d),
            name=plan_name_for(d),
            duration_months=d,
            interest_rate=INTEREST_RATE,
            processing_fee_rate=processing_fee_rate(d),
        )
        for d in CATALOG_DURATIONS
    ]
