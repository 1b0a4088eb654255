from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import create_user, submit_application
from edufin.api.v1.installments.service import installment_for_payment_query
from edufin.core.enums import UserRole
from edufin.core.models import FeeApplication, Installment, Payment

INSTALLMENTS_URL = "/api/v1/parent/installments"


async def _approved_application(client: AsyncClient, parent_headers: dict, admin_headers: dict, **overrides) -> str:
    application = await submit_application(client, parent_headers, **overrides)
    response = await client.patch(
        f"/api/v1/admin/applications/{application['id']}",
        json={"action": "approve"},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    return application["id"]


@pytest.mark.asyncio
async def test_paying_first_installment_activates_application(
    client: AsyncClient, db_session: AsyncSession, parent, admin
) -> None:
    _, parent_headers = parent
    _, admin_headers = admin
    await _approved_application(client, parent_headers, admin_headers)

    installments = (await client.get(INSTALLMENTS_URL, headers=parent_headers)).json()
    assert len(installments) == 9
    first = installments[0]
    assert first["installment_number"] == 1
    assert first["student_name"] == "Aarav Sharma"
    assert first["institution_name"] == "Greenwood High"
    assert first["plan_key"] == "9-months"

    response = await client.post(f"{INSTALLMENTS_URL}/{first['id']}/pay", headers=parent_headers)

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["installment"]["status"] == "paid"
    assert data["installment"]["paid_date"] is not None
    assert data["installment"]["payment_id"] == data["payment"]["id"]
    assert data["payment"]["payment_type"] == "emi_payment"
    assert data["payment"]["payment_method"] == "mock_payment"
    assert data["payment"]["status"] == "completed"
    assert data["payment"]["transaction_id"].startswith("EMI-")
    assert data["application_status"] == "active"
    assert Decimal(data["remaining_amount"]) == Decimal("127200") - Decimal(first["amount"])

    application = (await db_session.execute(select(FeeApplication))).scalar_one()
    assert application.status == "active"
    assert application.remaining_amount == Decimal("127200") - Decimal(first["amount"])


@pytest.mark.asyncio
async def test_paying_twice_is_conflict(client: AsyncClient, db_session: AsyncSession, parent, admin) -> None:
    _, parent_headers = parent
    _, admin_headers = admin
    await _approved_application(client, parent_headers, admin_headers)
    first = (await client.get(INSTALLMENTS_URL, headers=parent_headers)).json()[0]
    url = f"{INSTALLMENTS_URL}/{first['id']}/pay"

    assert (await client.post(url, headers=parent_headers)).status_code == 200
    again = await client.post(url, headers=parent_headers)

    assert again.status_code == 409
    payments = (await db_session.execute(select(Payment))).scalars().all()
    assert len(payments) == 1


@pytest.mark.asyncio
async def test_paying_every_installment_clears_balance(
    client: AsyncClient, db_session: AsyncSession, parent, admin
) -> None:
    _, parent_headers = parent
    _, admin_headers = admin
    await _approved_application(client, parent_headers, admin_headers, fee_amount="60000", plan_id="3-months")

    installments = (await client.get(INSTALLMENTS_URL, headers=parent_headers)).json()
    assert len(installments) == 3
    for item in installments:
        response = await client.post(f"{INSTALLMENTS_URL}/{item['id']}/pay", headers=parent_headers)
        assert response.status_code == 200, response.text

    assert Decimal(response.json()["remaining_amount"]) == Decimal("0")
    paid = (await client.get(INSTALLMENTS_URL, params={"status": "paid"}, headers=parent_headers)).json()
    assert len(paid) == 3
    detail = (
        await client.get(f"/api/v1/parent/applications/{installments[0]['fee_application_id']}", headers=parent_headers)
    ).json()
    assert detail["paid_installments"] == 3


@pytest.mark.asyncio
async def test_overdue_is_derived_on_read(client: AsyncClient, db_session: AsyncSession, parent, admin) -> None:
    _, parent_headers = parent
    _, admin_headers = admin
    await _approved_application(client, parent_headers, admin_headers)
    installment = (
        await db_session.execute(select(Installment).where(Installment.installment_number == 1))
    ).scalar_one()
    installment.due_date = date.today() - timedelta(days=3)
    await db_session.commit()

    overdue = (await client.get(INSTALLMENTS_URL, params={"status": "overdue"}, headers=parent_headers)).json()

    assert [i["installment_number"] for i in overdue] == [1]
    await db_session.refresh(installment)
    assert installment.status == "pending"

    pending = (await client.get(INSTALLMENTS_URL, params={"status": "pending"}, headers=parent_headers)).json()
    assert len(pending) == 8

    response = await client.post(f"{INSTALLMENTS_URL}/{installment.id}/pay", headers=parent_headers)
    assert response.status_code == 200
    assert response.json()["installment"]["status"] == "paid"


@pytest.mark.asyncio
async def test_other_parent_cannot_pay(client: AsyncClient, db_session: AsyncSession, parent, admin) -> None:
    _, parent_headers = parent
    _, admin_headers = admin
    _, other_headers = await create_user(db_session, UserRole.PARENT, "not.the.owner@example.com")
    await _approved_application(client, parent_headers, admin_headers)
    first = (await client.get(INSTALLMENTS_URL, headers=parent_headers)).json()[0]

    response = await client.post(f"{INSTALLMENTS_URL}/{first['id']}/pay", headers=other_headers)

    assert response.status_code == 403
    assert (await client.get(INSTALLMENTS_URL, headers=other_headers)).json() == []
    installment = (await db_session.execute(select(Installment).where(Installment.id == UUID(first["id"])))).scalar_one()
    assert installment.status == "pending"


@pytest.mark.asyncio
async def test_unknown_installment_is_not_found(client: AsyncClient, parent) -> None:
    _, headers = parent

    response = await client.post(f"{INSTALLMENTS_URL}/00000000-0000-0000-0000-000000000000/pay", headers=headers)

    assert response.status_code == 404


def test_payment_lookup_locks_installment_and_application() -> None:
    sql = str(installment_for_payment_query(uuid4()).compile(dialect=postgresql.dialect()))

    assert "FOR UPDATE OF" in sql
    locked = sql.split("FOR UPDATE OF", 1)[1]
    assert "installments" in locked
    assert "fee_applications" in locked
    assert "students" not in locked
