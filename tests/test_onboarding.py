from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import create_user, onboarding_payload
from edufin.api.v1.onboarding.service import parent_profile_query
from edufin.api.v1.onboarding.validation import is_valid_pan
from edufin.core.enums import UserRole
from edufin.core.models import (
    ApplicationAuditLog,
    EmiPlan,
    FeeApplication,
    FeeStructure,
    Institution,
    Organization,
    ParentProfile,
    Student,
)

ONBOARDING_URL = "/api/v1/parent/onboarding"
STEPS_URL = "/api/v1/parent/onboarding/steps"

ALL_MODELS = (
    Organization,
    Institution,
    FeeStructure,
    EmiPlan,
    Student,
    ParentProfile,
    FeeApplication,
    ApplicationAuditLog,
)


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _counts(db: AsyncSession) -> dict:
    return {model.__tablename__: await _count(db, model) for model in ALL_MODELS}


STEP_ONE = {
    "step": 1,
    "institution_name": "Greenwood High",
    "institution_location": "Bengaluru",
    "institution_board": "CBSE",
    "student_first_name": "Aarav",
    "student_last_name": "Sharma",
    "class_stream": "Grade 5",
    "roll_number": "42",
    "fee_amount": "120000",
}
STEP_TWO = {"step": 2, "plan_id": "plan-a"}
STEP_THREE = {
    "step": 3,
    "full_name": "Priya Sharma",
    "phone": "+919876543210",
    "pan": "ABCDE1234F",
    "relation_to_student": "Mother",
}
STEP_FIVE = {
    "step": 5,
    "applicant_pan": "PQRSX6789K",
    "gender": "female",
    "date_of_birth": "1988-04-12",
    "marital_status": "married",
    "email": "priya.sharma@example.com",
    "father_name": "Ramesh Iyer",
    "mother_name": "Lakshmi Iyer",
}


@pytest.mark.parametrize(
    "pan, valid",
    [
        ("ABCDE1234F", True),
        ("abcde1234f", False),
        ("ABCDE12345", False),
        ("ABCD1234F", False),
        ("ABCDE1234FG", False),
        ("", False),
        (None, False),
    ],
)
def test_pan_format(pan, valid: bool) -> None:
    assert is_valid_pan(pan) is valid


@pytest.mark.asyncio
async def test_submit_builds_application(client: AsyncClient, db_session: AsyncSession, parent) -> None:
    user, headers = parent

    response = await client.post(ONBOARDING_URL, json=onboarding_payload(), headers=headers)
    assert response.status_code == 201, response.text
    data = response.json()

    summary = data["emi_summary"]
    assert summary["plan_key"] == "9-months"
    assert summary["duration_months"] == 9
    assert Decimal(summary["monthly_installment"]) == Decimal("13334")
    assert Decimal(summary["processing_fee"]) == Decimal("7200")
    assert Decimal(summary["total_amount"]) == Decimal("127200")

    application = data["fee_application"]
    assert application["status"] == "platform_review"
    assert Decimal(application["total_amount"]) == Decimal("127200")
    assert Decimal(application["remaining_amount"]) == Decimal("127200")
    assert Decimal(application["monthly_installment"]) == Decimal("13334")
    assert application["emi_plan_id"] is not None

    profile = data["parent_profile"]
    assert profile["is_onboarding_completed"] is True
    assert profile["pan_card_number"] == "ABCDE1234F"
    assert profile["applicant_pan"] == "PQRSX6789K"
    assert profile["selected_plan_key"] == "9-months"
    assert profile["terms_accepted"] and profile["privacy_accepted"] and profile["credit_check_accepted"]

    assert data["student"]["name"] == "Aarav Sharma"
    assert data["student"]["parent_id"] == str(user.id)

    institution = (await db_session.execute(select(Institution))).scalar_one()
    assert institution.name == "Greenwood High"
    assert institution.type == "school"
    assert [loc.city for loc in institution.locations] == ["Bengaluru"]
    assert [b.name for b in institution.boards] == ["CBSE"]

    fee_structure = (await db_session.execute(select(FeeStructure))).scalar_one()
    assert fee_structure.name == "Annual Fee"
    assert fee_structure.academic_year == "2026-2027"

    plan = (await db_session.execute(select(EmiPlan))).scalar_one()
    assert plan.plan_key == "9-months"
    assert plan.installments == 9

    audit = (await db_session.execute(select(ApplicationAuditLog))).scalar_one()
    assert audit.action_type == "SUBMITTED"
    assert audit.new_value["status"] == "platform_review"


@pytest.mark.asyncio
async def test_resubmission_is_conflict_with_no_writes(
    client: AsyncClient, db_session: AsyncSession, parent
) -> None:
    _, headers = parent
    first = await client.post(ONBOARDING_URL, json=onboarding_payload(), headers=headers)
    assert first.status_code == 201
    application = (await db_session.execute(select(FeeApplication))).scalar_one()
    updated_at = application.updated_at
    before = await _counts(db_session)

    second = await client.post(
        ONBOARDING_URL,
        json=onboarding_payload(institution_name="Another School", fee_amount="90000"),
        headers=headers,
    )

    assert second.status_code == 409
    assert second.json()["detail"] == "Onboarding already completed"
    assert await _counts(db_session) == before
    await db_session.refresh(application)
    assert application.updated_at == updated_at
    assert application.total_amount == Decimal("127200")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field_label",
    [
        ({"parent_pan": "abcde1234f"}, "Parent PAN"),
        ({"applicant_pan": "ABCDE12345"}, "Applicant PAN"),
        ({"student_name": "  "}, "Student name"),
        ({"mother_name": None}, "Mother's name"),
        ({"date_of_birth": None}, "Date of birth"),
        ({"email": "not-an-email"}, "Email"),
        ({"parent_phone": None, "parent_email": None}, "Parent phone or email"),
        ({"credit_check_accepted": False}, "Credit check consent"),
        ({"fee_amount": "0"}, "Fee amount"),
        ({"plan_id": "plan-z"}, "Unknown EMI plan"),
    ],
)
async def test_invalid_submission_is_rejected_before_any_write(
    client: AsyncClient, db_session: AsyncSession, parent, overrides: dict, field_label: str
) -> None:
    _, headers = parent
    before = await _counts(db_session)

    response = await client.post(ONBOARDING_URL, json=onboarding_payload(**overrides), headers=headers)

    assert response.status_code == 400, response.text
    assert field_label in response.json()["detail"]
    assert await _counts(db_session) == before


@pytest.mark.asyncio
async def test_step_saves_are_idempotent(client: AsyncClient, db_session: AsyncSession, parent) -> None:
    _, headers = parent

    for _ in range(2):
        response = await client.post(STEPS_URL, json=STEP_ONE, headers=headers)
        assert response.status_code == 200, response.text
    data = response.json()
    assert data["next_step"] == 2
    assert data["completed_steps"]["step1"] is True
    assert data["student"]["name"] == "Aarav Sharma"

    assert await _count(db_session, Institution) == 1
    assert await _count(db_session, Organization) == 1
    assert await _count(db_session, Student) == 1
    assert await _count(db_session, FeeApplication) == 1

    draft = (await db_session.execute(select(FeeApplication))).scalar_one()
    assert draft.status == "pending"
    assert draft.emi_plan_id is None


@pytest.mark.asyncio
async def test_changing_institution_moves_the_same_student(
    client: AsyncClient, db_session: AsyncSession, parent
) -> None:
    _, headers = parent

    first = await client.post(STEPS_URL, json=STEP_ONE, headers=headers)
    assert first.status_code == 200, first.text
    student_id = first.json()["student"]["id"]

    moved = await client.post(
        STEPS_URL,
        json={**STEP_ONE, "institution_name": "Riverside Academy", "institution_location": "Mysuru"},
        headers=headers,
    )
    assert moved.status_code == 200, moved.text
    assert moved.json()["student"]["id"] == student_id

    assert await _count(db_session, Student) == 1
    assert await _count(db_session, Institution) == 2
    assert await _count(db_session, FeeApplication) == 1
    riverside = (
        await db_session.execute(select(Institution).where(Institution.name == "Riverside Academy"))
    ).scalar_one()
    student = (await db_session.execute(select(Student))).scalar_one()
    assert student.institution_id == riverside.id
    assert moved.json()["student"]["institution_id"] == str(riverside.id)
    draft = (await db_session.execute(select(FeeApplication))).scalar_one()
    fee_structure = await db_session.get(FeeStructure, draft.fee_structure_id)
    assert fee_structure.institution_id == riverside.id


@pytest.mark.asyncio
async def test_wizard_steps_then_submit(client: AsyncClient, db_session: AsyncSession, parent) -> None:
    _, headers = parent

    expected_next = {1: 2, 2: 3, 3: 5, 5: 6}
    for step in (STEP_ONE, STEP_TWO, STEP_THREE, STEP_FIVE):
        response = await client.post(STEPS_URL, json=step, headers=headers)
        assert response.status_code == 200, response.text
        assert response.json()["next_step"] == expected_next[step["step"]]

    progress = (await client.get(STEPS_URL, headers=headers)).json()
    assert progress["is_completed"] is False
    assert progress["emi_summary"]["plan_key"] == "9-months"
    assert Decimal(progress["emi_summary"]["total_amount"]) == Decimal("127200")
    application_id = progress["fee_application_id"]

    draft = (await db_session.execute(select(FeeApplication))).scalar_one()
    assert draft.status == "pending"
    assert draft.monthly_installment == Decimal("13334")

    response = await client.post(ONBOARDING_URL, json=onboarding_payload(), headers=headers)
    assert response.status_code == 201, response.text
    assert response.json()["fee_application"]["id"] == application_id

    assert await _count(db_session, Institution) == 1
    assert await _count(db_session, Student) == 1
    assert await _count(db_session, FeeApplication) == 1

    progress = (await client.get(STEPS_URL, headers=headers)).json()
    assert progress["is_completed"] is True
    assert progress["next_step"] == 6

    status = (await client.get(ONBOARDING_URL, headers=headers)).json()
    assert status["is_onboarding_completed"] is True

    late_step = await client.post(STEPS_URL, json=STEP_THREE, headers=headers)
    assert late_step.status_code == 409


@pytest.mark.asyncio
async def test_plan_step_requires_student_details(client: AsyncClient, parent) -> None:
    _, headers = parent

    response = await client.post(STEPS_URL, json=STEP_TWO, headers=headers)

    assert response.status_code == 400
    assert "Student details" in response.json()["detail"]


@pytest.mark.asyncio
async def test_unknown_step_number_is_unprocessable(client: AsyncClient, parent) -> None:
    _, headers = parent

    response = await client.post(STEPS_URL, json={"step": 4}, headers=headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_second_parent_reuses_institution_by_name(
    client: AsyncClient, db_session: AsyncSession, parent
) -> None:
    _, headers = parent
    _, other_headers = await create_user(db_session, UserRole.PARENT, "other.parent@example.com")

    assert (await client.post(ONBOARDING_URL, json=onboarding_payload(), headers=headers)).status_code == 201
    response = await client.post(
        ONBOARDING_URL,
        json=onboarding_payload(student_name="Diya Rao", parent_full_name="Kiran Rao"),
        headers=other_headers,
    )
    assert response.status_code == 201, response.text

    assert await _count(db_session, Institution) == 1
    assert await _count(db_session, FeeStructure) == 1
    assert await _count(db_session, EmiPlan) == 1
    assert await _count(db_session, Student) == 2
    assert await _count(db_session, FeeApplication) == 2


@pytest.mark.asyncio
async def test_onboarding_requires_parent_role(client: AsyncClient, admin) -> None:
    _, headers = admin

    assert (await client.post(ONBOARDING_URL, json=onboarding_payload(), headers=headers)).status_code == 403
    assert (await client.post(ONBOARDING_URL, json=onboarding_payload())).status_code == 401


def test_completion_check_locks_parent_profile() -> None:
    locked = str(parent_profile_query(uuid4(), for_update=True).compile(dialect=postgresql.dialect()))
    plain = str(parent_profile_query(uuid4()).compile(dialect=postgresql.dialect()))

    assert "parent_profiles" in locked
    assert locked.rstrip().endswith("FOR UPDATE")
    assert "FOR UPDATE" not in plain
