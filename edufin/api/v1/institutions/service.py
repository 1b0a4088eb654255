"""Institutions service: lookup-or-create for onboarding, admin CRUD, institution dashboard."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edufin.api.v1.installments.service import installment_to_response
from edufin.auth.models import User
from edufin.auth.services import add_user
from edufin.core.enums import ApplicationStatus, InstallmentStatus, InstitutionType, PaymentType, UserRole
from edufin.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from edufin.core.logging import get_logger
from edufin.core.models import (
    EmiPlan,
    FeeApplication,
    Installment,
    Institution,
    InstitutionBoard,
    InstitutionLocation,
    Organization,
    Payment,
    Student,
)
from edufin.core.organization_service import create_organization
from edufin.core.schemas import FeeApplicationResponse, PaymentResponse

from .schemas import (
    InstitutionApplicationItem,
    InstitutionCreate,
    InstitutionPaymentsResponse,
    InstitutionResponse,
    InstitutionSearchItem,
    InstitutionSummaryResponse,
    InstitutionUpdate,
    LocationIn,
    LocationResponse,
    PaidApplicationItem,
)

logger = get_logger(__name__)

UNSPECIFIED = "Not specified"


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _institution_to_response(inst: Institution, login_email: Optional[str] = None) -> InstitutionResponse:
    return InstitutionResponse(
        id=inst.id,
        organization_id=inst.organization_id,
        name=inst.name,
        type=inst.type,
        address=inst.address,
        phone=inst.phone,
        email=inst.email,
        website=inst.website,
        locations=[LocationResponse.model_validate(loc) for loc in inst.locations],
        boards=[b.name for b in inst.boards],
        login_email=login_email,
        created_at=inst.created_at,
        updated_at=inst.updated_at,
    )


def _clean_boards(boards: List[str]) -> List[str]:
    cleaned = list(dict.fromkeys(b.strip() for b in boards if b and b.strip()))
    if not cleaned:
        raise ValidationError("At least one board is required", field="boards")
    return cleaned


def _clean_locations(locations: List[LocationIn]) -> List[InstitutionLocation]:
    rows = [
        InstitutionLocation(
            city=loc.city.strip(),
            state=(loc.state or "").strip() or None,
            address=(loc.address or "").strip() or None,
        )
        for loc in locations
        if loc.city and loc.city.strip()
    ]
    if not rows:
        raise ValidationError("At least one location is required", field="locations")
    return rows


async def _load_institution(db: AsyncSession, institution_id: UUID) -> Optional[Institution]:
    result = await db.execute(select(Institution).where(Institution.id == institution_id))
    return result.scalar_one_or_none()


async def _login_email_for(db: AsyncSession, organization_id: UUID) -> Optional[str]:
    result = await db.execute(
        select(User.email)
        .where(User.organization_id == organization_id, User.role == UserRole.INSTITUTION.value)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _add_institution_login(
    db: AsyncSession,
    institution: Institution,
    email: str,
    password: str,
) -> User:
    """Create the institution dashboard user inside the caller's transaction."""
    try:
        return await add_user(
            db,
            full_name=institution.name,
            email=email,
            password=password,
            role=UserRole.INSTITUTION,
            organization_id=institution.organization_id,
        )
    except ServiceError:
        raise
    except Exception as e:
        raise DependencyError("Failed to create institution login", str(e)) from e


# --- Onboarding lookup-or-create ---
async def get_institution_by_name(db: AsyncSession, name: str) -> Optional[Institution]:
    result = await db.execute(select(Institution).where(Institution.name == name))
    return result.scalar_one_or_none()


async def ensure_institution(
    db: AsyncSession,
    name: str,
    location_text: Optional[str] = None,
    board_text: Optional[str] = None,
) -> Institution:
    """
    Exact-name lookup; otherwise stage a new Organization + Institution with one
    location and one board built from the onboarding text. Caller commits.
    """
    name = name.strip()
    existing = await get_institution_by_name(db, name)
    if existing:
        return existing

    location_text = (location_text or "").strip()
    board_text = (board_text or "").strip()
    organization = await create_organization(db, name, InstitutionType.SCHOOL.value)
    institution = Institution(
        organization_id=organization.id,
        name=name,
        type=InstitutionType.SCHOOL.value,
        address=location_text or None,
        locations=[
            InstitutionLocation(
                city=location_text[:100] or UNSPECIFIED,
                address=location_text or None,
            )
        ],
        boards=[InstitutionBoard(name=board_text[:100] or UNSPECIFIED)],
    )
    db.add(institution)
    await db.flush()
    logger.info("institution_created_from_onboarding", institution_id=str(institution.id), name=name)
    return institution


# --- Admin CRUD ---
async def create_institution(db: AsyncSession, payload: InstitutionCreate) -> InstitutionResponse:
    if bool(payload.login_email) != bool(payload.login_password):
        raise ValidationError("login_email and login_password must be given together", field="login_email")
    name = payload.name.strip()
    boards = _clean_boards(payload.boards)
    locations = _clean_locations(payload.locations)

    if await get_institution_by_name(db, name):
        raise ConflictError("An institution with this name already exists")

    try:
        organization = await create_organization(db, name, payload.type.value)
        institution = Institution(
            organization_id=organization.id,
            name=name,
            type=payload.type.value,
            address=payload.address,
            phone=payload.phone,
            email=payload.email,
            website=payload.website,
            locations=locations,
            boards=[InstitutionBoard(name=b) for b in boards],
        )
        db.add(institution)
        await db.flush()
        login_email = None
        if payload.login_email:
            user = await _add_institution_login(db, institution, payload.login_email, payload.login_password)
            login_email = user.email
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("An institution with this name already exists") from e
    except ServiceError:
        await db.rollback()
        raise

    logger.info("institution_created", institution_id=str(institution.id), with_login=bool(login_email))
    institution = await _load_institution(db, institution.id)
    return _institution_to_response(institution, login_email)


async def list_institutions(db: AsyncSession, search: Optional[str] = None) -> List[InstitutionResponse]:
    stmt = select(Institution)
    if search:
        stmt = stmt.where(Institution.name.ilike(f"%{search.strip()}%"))
    stmt = stmt.order_by(Institution.name)
    result = await db.execute(stmt)
    institutions = result.scalars().all()

    org_ids = [i.organization_id for i in institutions]
    logins = {}
    if org_ids:
        rows = await db.execute(
            select(User.organization_id, User.email).where(
                User.organization_id.in_(org_ids),
                User.role == UserRole.INSTITUTION.value,
            )
        )
        for org_id, email in rows.all():
            logins.setdefault(org_id, email)
    return [_institution_to_response(i, logins.get(i.organization_id)) for i in institutions]


async def search_institutions(
    db: AsyncSession,
    search: Optional[str] = None,
    city: Optional[str] = None,
    limit: int = 20,
) -> List[InstitutionSearchItem]:
    stmt = select(Institution)
    if search:
        stmt = stmt.where(Institution.name.ilike(f"%{search.strip()}%"))
    if city:
        stmt = stmt.where(
            Institution.locations.any(InstitutionLocation.city.ilike(f"%{city.strip()}%"))
        )
    stmt = stmt.order_by(Institution.name).limit(limit)
    result = await db.execute(stmt)
    return [
        InstitutionSearchItem(
            id=i.id,
            name=i.name,
            type=i.type,
            cities=[loc.city for loc in i.locations],
            boards=[b.name for b in i.boards],
        )
        for i in result.scalars().all()
    ]


async def get_institution(db: AsyncSession, institution_id: UUID) -> InstitutionResponse:
    institution = await _load_institution(db, institution_id)
    if not institution:
        raise NotFoundError("Institution not found")
    return _institution_to_response(institution, await _login_email_for(db, institution.organization_id))


async def update_institution(
    db: AsyncSession,
    institution_id: UUID,
    payload: InstitutionUpdate,
) -> InstitutionResponse:
    institution = await _load_institution(db, institution_id)
    if not institution:
        raise NotFoundError("Institution not found")
    if bool(payload.login_email) != bool(payload.login_password):
        raise ValidationError("login_email and login_password must be given together", field="login_email")

    data = payload.model_dump(exclude_unset=True, exclude={"locations", "boards", "login_email", "login_password"})
    if "name" in data and data["name"]:
        new_name = data["name"].strip()
        if new_name != institution.name:
            clash = await get_institution_by_name(db, new_name)
            if clash:
                raise ConflictError("An institution with this name already exists")
        data["name"] = new_name
    boards = _clean_boards(payload.boards) if payload.boards is not None else None
    locations = _clean_locations(payload.locations) if payload.locations is not None else None

    try:
        for key, value in data.items():
            if key == "type" and value is not None:
                value = value.value if isinstance(value, InstitutionType) else value
            setattr(institution, key, value)
        if locations is not None:
            institution.locations = locations
        if boards is not None:
            institution.boards = [InstitutionBoard(name=b) for b in boards]

        login_email = await _login_email_for(db, institution.organization_id)
        if payload.login_email:
            if login_email:
                raise ConflictError("This institution already has a login")
            user = await _add_institution_login(db, institution, payload.login_email, payload.login_password)
            login_email = user.email
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("An institution with this name already exists") from e
    except ServiceError:
        await db.rollback()
        raise

    logger.info("institution_updated", institution_id=str(institution_id), fields=sorted(data))
    institution = await _load_institution(db, institution_id)
    return _institution_to_response(institution, login_email)


async def delete_institution(db: AsyncSession, institution_id: UUID) -> None:
    institution = await _load_institution(db, institution_id)
    if not institution:
        raise NotFoundError("Institution not found")
    students = await db.execute(
        select(func.count(Student.id)).where(Student.institution_id == institution_id)
    )
    if students.scalar() or 0:
        raise ConflictError("Institution has students and cannot be deleted")

    organization = await db.get(Organization, institution.organization_id)
    await db.delete(institution)
    if organization:
        await db.flush()
        users = await db.execute(select(User).where(User.organization_id == organization.id))
        for user in users.scalars().all():
            await db.delete(user)
        await db.delete(organization)
    await db.commit()
    logger.info("institution_deleted", institution_id=str(institution_id))


# --- Institution dashboard ---
async def _linked_institution(db: AsyncSession, organization_id: Optional[UUID]) -> Institution:
    if organization_id is None:
        raise NotFoundError("No institution is linked to this account")
    result = await db.execute(select(Institution).where(Institution.organization_id == organization_id))
    institution = result.scalars().first()
    if not institution:
        raise NotFoundError("No institution is linked to this account")
    return institution


async def get_institution_summary(db: AsyncSession, organization_id: Optional[UUID]) -> InstitutionSummaryResponse:
    institution = await _linked_institution(db, organization_id)

    total_students = (
        await db.execute(select(func.count(Student.id)).where(Student.institution_id == institution.id))
    ).scalar() or 0

    apps = (
        await db.execute(
            select(FeeApplication)
            .join(Student, FeeApplication.student_id == Student.id)
            .where(
                Student.institution_id == institution.id,
                FeeApplication.emi_plan_id.is_not(None),
                FeeApplication.status != ApplicationStatus.PENDING.value,
            )
        )
    ).scalars().all()

    received = (
        await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.institution_id == institution.id,
                Payment.payment_type == PaymentType.PLATFORM_TO_INSTITUTION.value,
            )
        )
    ).scalar()

    active_statuses = {ApplicationStatus.APPROVED.value, ApplicationStatus.ACTIVE.value}
    financed = [a for a in apps if a.status != ApplicationStatus.REJECTED.value]
    return InstitutionSummaryResponse(
        institution_id=institution.id,
        institution_name=institution.name,
        total_students=total_students,
        total_applications=len(apps),
        pending_review=sum(1 for a in apps if a.status == ApplicationStatus.PLATFORM_REVIEW.value),
        active_emis=sum(1 for a in apps if a.status in active_statuses),
        total_financed=sum((_to_decimal(a.total_amount) for a in financed), Decimal("0")),
        amount_received_from_platform=_to_decimal(received),
    )


async def list_institution_applications(
    db: AsyncSession,
    organization_id: Optional[UUID],
    status: Optional[ApplicationStatus] = None,
    today: Optional[date] = None,
) -> List[InstitutionApplicationItem]:
    """Submitted applications of the institution's students, newest first, each with its schedule."""
    institution = await _linked_institution(db, organization_id)

    stmt = (
        select(FeeApplication, Student, EmiPlan.plan_key)
        .join(Student, FeeApplication.student_id == Student.id)
        .outerjoin(EmiPlan, FeeApplication.emi_plan_id == EmiPlan.id)
        .where(
            Student.institution_id == institution.id,
            FeeApplication.status != ApplicationStatus.PENDING.value,
        )
        .order_by(FeeApplication.created_at.desc())
    )
    if status is not None:
        stmt = stmt.where(FeeApplication.status == status.value)
    rows = (await db.execute(stmt)).all()

    schedules: Dict[UUID, List[Installment]] = defaultdict(list)
    if rows:
        result = await db.execute(
            select(Installment)
            .where(Installment.fee_application_id.in_([app.id for app, _, _ in rows]))
            .order_by(Installment.installment_number)
        )
        for inst in result.scalars().all():
            schedules[inst.fee_application_id].append(inst)

    items = []
    for application, student, plan_key in rows:
        installments = [installment_to_response(i, today) for i in schedules[application.id]]
        items.append(
            InstitutionApplicationItem(
                application=FeeApplicationResponse.model_validate(application),
                student_id=student.id,
                student_name=student.name,
                class_name=student.class_name,
                section=student.section,
                fee_amount=student.fee_amount,
                plan_key=plan_key,
                installments=installments,
                paid_installments=sum(1 for i in installments if i.status == InstallmentStatus.paid.value),
            )
        )
    return items


async def list_institution_payments(db: AsyncSession, organization_id: Optional[UUID]) -> InstitutionPaymentsResponse:
    institution = await _linked_institution(db, organization_id)

    payments = (
        await db.execute(
            select(Payment)
            .where(
                Payment.institution_id == institution.id,
                Payment.payment_type == PaymentType.PLATFORM_TO_INSTITUTION.value,
            )
            .order_by(Payment.paid_at.desc())
        )
    ).scalars().all()

    paid = (
        await db.execute(
            select(FeeApplication, Student.name)
            .join(Student, FeeApplication.student_id == Student.id)
            .where(
                Student.institution_id == institution.id,
                FeeApplication.platform_paid_to_institution.is_(True),
            )
            .order_by(FeeApplication.institution_payment_date.desc())
        )
    ).all()

    return InstitutionPaymentsResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        paid_applications=[
            PaidApplicationItem(
                application_id=application.id,
                student_name=student_name,
                status=application.status,
                total_amount=application.total_amount,
                institution_payment_date=application.institution_payment_date,
            )
            for application, student_name in paid
        ],
        total_received=sum((_to_decimal(p.amount) for p in payments), Decimal("0")),
    )
