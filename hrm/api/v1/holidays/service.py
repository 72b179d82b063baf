"""Public holidays: CRUD plus the date lookups the attendance and leave engines use."""

from datetime import date
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.core.exceptions import NotFoundError
from hrm.core.models import PublicHoliday

from .schemas import PublicHolidayCreate, PublicHolidayResponse, PublicHolidayUpdate


def _holiday_to_response(h: PublicHoliday) -> PublicHolidayResponse:
    return PublicHolidayResponse(
        id=h.id,
        name=h.name,
        description=h.description,
        date=h.date,
        is_paid=h.is_paid,
        is_mandatory=h.is_mandatory,
        department_id=h.department_id,
        is_active=h.is_active,
        created_at=h.created_at,
        updated_at=h.updated_at,
    )


async def get_holiday_dates(
    db: AsyncSession,
    start: date,
    end: date,
    department_id: Optional[UUID] = None,
    any_department: bool = True,
) -> Set[date]:
    """
    Dates of active holidays in [start, end].
    With any_department=True every active holiday counts, whatever its scope.
    Otherwise only company-wide holidays and those of department_id.
    """
    q = select(PublicHoliday.date).where(
        PublicHoliday.is_active.is_(True),
        PublicHoliday.date >= start,
        PublicHoliday.date <= end,
    )
    if not any_department:
        q = q.where(or_(PublicHoliday.department_id.is_(None), PublicHoliday.department_id == department_id))
    result = await db.execute(q)
    return set(result.scalars().all())


async def list_holidays_in_range(
    db: AsyncSession,
    start: date,
    end: date,
    department_id: Optional[UUID] = None,
) -> List[PublicHoliday]:
    q = select(PublicHoliday).where(
        PublicHoliday.is_active.is_(True),
        PublicHoliday.date >= start,
        PublicHoliday.date <= end,
    )
    if department_id:
        q = q.where(or_(PublicHoliday.department_id.is_(None), PublicHoliday.department_id == department_id))
    result = await db.execute(q.order_by(PublicHoliday.date))
    return list(result.scalars().all())


async def list_holidays(
    db: AsyncSession,
    year: Optional[int] = None,
    department_id: Optional[UUID] = None,
    active_only: bool = True,
) -> List[PublicHolidayResponse]:
    q = select(PublicHoliday)
    if year:
        q = q.where(PublicHoliday.date >= date(year, 1, 1), PublicHoliday.date <= date(year, 12, 31))
    if department_id:
        q = q.where(or_(PublicHoliday.department_id.is_(None), PublicHoliday.department_id == department_id))
    if active_only:
        q = q.where(PublicHoliday.is_active.is_(True))
    result = await db.execute(q.order_by(PublicHoliday.date))
    return [_holiday_to_response(h) for h in result.scalars().all()]


async def get_holiday(db: AsyncSession, holiday_id: UUID) -> PublicHolidayResponse:
    h = await db.get(PublicHoliday, holiday_id)
    if not h:
        raise NotFoundError("Public holiday not found")
    return _holiday_to_response(h)


async def create_holiday(db: AsyncSession, payload: PublicHolidayCreate) -> PublicHolidayResponse:
    h = PublicHoliday(
        name=payload.name.strip(),
        description=payload.description,
        date=payload.date,
        is_paid=payload.is_paid,
        is_mandatory=payload.is_mandatory,
        department_id=payload.department_id,
        is_active=payload.is_active,
    )
    db.add(h)
    await db.commit()
    await db.refresh(h)
    return _holiday_to_response(h)


async def update_holiday(
    db: AsyncSession,
    holiday_id: UUID,
    payload: PublicHolidayUpdate,
) -> PublicHolidayResponse:
    h = await db.get(PublicHoliday, holiday_id)
    if not h:
        raise NotFoundError("Public holiday not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is not None:
            value = value.strip()
        setattr(h, field, value)
    await db.commit()
    await db.refresh(h)
    return _holiday_to_response(h)


async def delete_holiday(db: AsyncSession, holiday_id: UUID) -> None:
    h = await db.get(PublicHoliday, holiday_id)
    if not h:
        raise NotFoundError("Public holiday not found")
    await db.delete(h)
    await db.commit()
