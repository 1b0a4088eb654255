from datetime import date, datetime
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from edufin.core.exceptions import ValidationError
from edufin.core.installment_scheduler import build_schedule, effective_status


def test_100000_over_six_months_sums_exactly() -> None:
    anchor = date(2026, 3, 15)
    schedule = build_schedule(Decimal("100000"), 6, anchor)

    assert len(schedule) == 6
    assert [s.installment_number for s in schedule] == [1, 2, 3, 4, 5, 6]
    assert [s.amount for s in schedule[:5]] == [Decimal("16667")] * 5
    assert schedule[-1].amount == Decimal("16665")
    assert sum(s.amount for s in schedule) == Decimal("100000")
    assert all(s.status == "pending" for s in schedule)
    for i, s in enumerate(schedule, start=1):
        assert s.due_date == anchor + relativedelta(months=i)
    assert schedule[0].due_date == date(2026, 4, 15)


def test_fractional_total_keeps_paise_in_last_installment() -> None:
    schedule = build_schedule(Decimal("127200.00"), 9, date(2026, 1, 1))

    assert schedule[0].amount == Decimal("14133")
    assert sum(s.amount for s in schedule) == Decimal("127200.00")
    assert schedule[-1].amount == Decimal("127200.00") - Decimal("14133") * 8


def test_month_end_anchor_is_clamped() -> None:
    schedule = build_schedule(Decimal("3000"), 3, date(2026, 1, 31))

    assert [s.due_date for s in schedule] == [
        date(2026, 2, 28),
        date(2026, 3, 31),
        date(2026, 4, 30),
    ]


def test_datetime_anchor_uses_its_date() -> None:
    schedule = build_schedule(Decimal("1200"), 12, datetime(2026, 11, 5, 18, 30))

    assert schedule[0].due_date == date(2026, 12, 5)
    assert schedule[-1].due_date == date(2027, 11, 5)
    assert all(s.amount == Decimal("100") for s in schedule)


def test_single_installment_is_the_total() -> None:
    schedule = build_schedule(Decimal("4999.50"), 1, date(2026, 6, 1))

    assert len(schedule) == 1
    assert schedule[0].amount == Decimal("4999.50")


@pytest.mark.parametrize(
    "total, count",
    [(Decimal("0"), 6), (Decimal("-10"), 3), (Decimal("1000"), 0), (Decimal("10"), 12)],
)
def test_invalid_inputs(total: Decimal, count: int) -> None:
    with pytest.raises(ValidationError):
        build_schedule(total, count, date(2026, 1, 1))


def test_effective_status_derives_overdue() -> None:
    today = date(2026, 5, 10)

    assert effective_status("pending", date(2026, 5, 9), today) == "overdue"
    assert effective_status("pending", date(2026, 5, 10), today) == "pending"
    assert effective_status("pending", date(2026, 6, 1), today) == "pending"
    assert effective_status("paid", date(2026, 1, 1), today) == "paid"
