from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import onboarding_payload
from edufin.auth.security import verify_password
from edufin.core.config import settings
from edufin.core.models import EmiPlan
from edufin.db.seed_emi_plans import seed_emi_plans
from edufin.db.seed_platform_admin import seed_platform_admin


@pytest.mark.asyncio
async def test_catalog_listing(client: AsyncClient) -> None:
    response = await client.get("/api/v1/emi-plans")

    assert response.status_code == 200
    plans = response.json()
    assert [p["plan_key"] for p in plans] == [
        "3-months",
        "6-months",
        "9-months",
        "12-months",
        "18-months",
        "24-months",
    ]
    nine = plans[2]
    assert nine["name"] == "9 Months"
    assert nine["duration_months"] == 9
    assert Decimal(nine["processing_fee_rate"]) == Decimal("0.06")
    assert Decimal(nine["interest_rate"]) == Decimal("0")
    assert all(p["is_active"] for p in plans)


@pytest.mark.asyncio
async def test_quote_for_legacy_plan_id(client: AsyncClient) -> None:
    response = await client.get("/api/v1/emi-plans/quote", params={"fee_amount": "120000", "plan_id": "plan-a"})

    assert response.status_code == 200
    [quote] = response.json()
    assert quote["plan_key"] == "9-months"
    assert Decimal(quote["fee_amount"]) == Decimal("120000")
    assert Decimal(quote["monthly_installment"]) == Decimal("13334")
    assert Decimal(quote["processing_fee"]) == Decimal("7200")
    assert Decimal(quote["total_amount"]) == Decimal("127200")


@pytest.mark.asyncio
async def test_quote_for_every_duration(client: AsyncClient) -> None:
    response = await client.get("/api/v1/emi-plans/quote", params={"fee_amount": "60000"})

    assert response.status_code == 200
    quotes = {q["duration_months"]: q for q in response.json()}
    assert sorted(quotes) == [3, 6, 9, 12, 18, 24]
    assert Decimal(quotes[3]["total_amount"]) == Decimal("61200")
    assert Decimal(quotes[24]["processing_fee"]) == Decimal("9600")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"fee_amount": "0"},
        {"fee_amount": "-500"},
        {"fee_amount": "50000", "plan_id": "plan-z"},
        {"fee_amount": "50000", "plan_id": "7-months"},
    ],
)
async def test_bad_quotes_are_rejected(client: AsyncClient, params: dict) -> None:
    response = await client.get("/api/v1/emi-plans/quote", params=params)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_seed_is_idempotent_and_keeps_limits(db_session: AsyncSession) -> None:
    assert await seed_emi_plans(db_session) == (6, 0)

    plan = (await db_session.execute(select(EmiPlan).where(EmiPlan.plan_key == "12-months"))).scalar_one()
    plan.max_amount = Decimal("500000")
    plan.is_active = False
    await db_session.commit()

    assert await seed_emi_plans(db_session) == (0, 6)
    await db_session.refresh(plan)
    assert plan.max_amount == Decimal("500000")
    assert plan.is_active is False
    assert plan.installments == 12


@pytest.mark.asyncio
async def test_inactive_or_limited_plan_blocks_submission(
    client: AsyncClient, db_session: AsyncSession, parent
) -> None:
    _, headers = parent
    await seed_emi_plans(db_session)
    plans = {p.plan_key: p for p in (await db_session.execute(select(EmiPlan))).scalars().all()}
    plans["12-months"].is_active = False
    plans["9-months"].max_amount = Decimal("100000")
    await db_session.commit()

    listing = {p["plan_key"]: p for p in (await client.get("/api/v1/emi-plans")).json()}
    assert listing["12-months"]["is_active"] is False
    assert Decimal(listing["9-months"]["max_amount"]) == Decimal("100000")

    inactive = await client.post(
        "/api/v1/parent/onboarding", json=onboarding_payload(plan_id="plan-c"), headers=headers
    )
    assert inactive.status_code == 400
    assert "not available" in inactive.json()["detail"]

    over_limit = await client.post("/api/v1/parent/onboarding", json=onboarding_payload(), headers=headers)
    assert over_limit.status_code == 400
    assert "maximum" in over_limit.json()["detail"]


@pytest.mark.asyncio
async def test_seed_platform_admin_creates_then_promotes(db_session: AsyncSession, monkeypatch) -> None:
    monkeypatch.setattr(settings, "platform_admin_email", None)
    assert await seed_platform_admin(db_session) is None

    created = await seed_platform_admin(db_session, "ops@example.com", "FirstPass123")
    assert created.role == "PLATFORM_ADMIN"

    again = await seed_platform_admin(db_session, "ops@example.com", "SecondPass123")
    assert again.id == created.id
    assert verify_password("SecondPass123", again.password_hash)
