from decimal import Decimal

import pytest

from edufin.core.emi_calculator import (
    CATALOG_DURATIONS,
    catalog,
    compute_plan,
    duration_for_plan_key,
    normalize_plan_key,
    processing_fee_rate,
)
from edufin.core.exceptions import InvalidPlanError, ValidationError


def test_nine_month_plan_for_120000() -> None:
    quote = compute_plan(Decimal("120000"), 9)

    assert quote.monthly_installment == Decimal("13334")
    assert quote.processing_fee == Decimal("7200.00")
    assert quote.total_amount == Decimal("127200.00")
    assert quote.interest_rate == Decimal("0")
    assert quote.plan_key == "9-months"


@pytest.mark.parametrize("duration", CATALOG_DURATIONS)
def test_totals_follow_fee_formula(duration: int) -> None:
    fee = Decimal("99999")
    quote = compute_plan(fee, duration)

    expected_fee = (fee * Decimal("0.02") * duration / 3).quantize(Decimal("0.01"))
    assert quote.processing_fee == expected_fee
    assert quote.total_amount == fee + expected_fee
    # Whole-rupee ceiling: never under-collects the fee
    assert quote.monthly_installment * duration >= fee
    assert (quote.monthly_installment - 1) * duration < fee


def test_accepts_string_and_int_amounts() -> None:
    assert compute_plan("60000", 6).monthly_installment == Decimal("10000")
    assert compute_plan(60000, 6).processing_fee == Decimal("2400.00")


@pytest.mark.parametrize("duration", [0, 1, 5, 7, 36, -3])
def test_unknown_duration_is_rejected(duration: int) -> None:
    with pytest.raises(InvalidPlanError):
        compute_plan(Decimal("50000"), duration)


@pytest.mark.parametrize("fee", [Decimal("0"), Decimal("-100"), "0"])
def test_non_positive_fee_is_rejected(fee) -> None:
    with pytest.raises(ValidationError) as exc:
        compute_plan(fee, 6)
    assert exc.value.field == "fee_amount"
    assert exc.value.status_code == 400


def test_garbage_fee_is_rejected() -> None:
    with pytest.raises(ValidationError):
        compute_plan("twelve thousand", 6)


@pytest.mark.parametrize(
    "plan_id, expected",
    [
        ("plan-a", "9-months"),
        ("plan-b", "6-months"),
        ("plan-c", "12-months"),
        ("plan-d", "18-months"),
        ("plan-e", "24-months"),
        ("3-months", "3-months"),
        (" 12-Months ", "12-months"),
    ],
)
def test_normalize_plan_key(plan_id: str, expected: str) -> None:
    assert normalize_plan_key(plan_id) == expected


@pytest.mark.parametrize("plan_id", [None, "", "plan-z", "7-months", "months", "nine-months", "9-month"])
def test_normalize_rejects_unknown_plans(plan_id) -> None:
    with pytest.raises(InvalidPlanError):
        normalize_plan_key(plan_id)


def test_duration_for_plan_key() -> None:
    assert duration_for_plan_key("18-months") == 18
    with pytest.raises(InvalidPlanError):
        duration_for_plan_key("plan-a")


def test_catalog_lists_every_duration_with_rates() -> None:
    plans = catalog()

    assert [p.duration_months for p in plans] == list(CATALOG_DURATIONS)
    assert plans[0].plan_key == "3-months"
    assert plans[0].name == "3 Months"
    assert plans[-1].processing_fee_rate == Decimal("0.16")
    assert all(p.interest_rate == 0 for p in plans)
    assert processing_fee_rate(9) == Decimal("0.06")
