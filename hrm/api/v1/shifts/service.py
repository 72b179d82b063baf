"""Work shifts, shift assignments and per-day schedules; shift resolution for check-in."""

import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.api.v1.holidays.service import get_holiday_dates
from hrm.core.enums import ShiftStatus
from hrm.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from hrm.core.models import Attendance, Employee, EmployeeShiftAssignment, WorkSchedule, WorkShift
from hrm.core.workdays import iter_dates

from .schemas import (
    BulkScheduleCreate,
    BulkScheduleResult,
    ShiftAssignmentCreate,
    ShiftAssignmentResponse,
    ShiftUsageResponse,
    WorkScheduleCreate,
    WorkScheduleResponse,
    WorkShiftCreate,
    WorkShiftResponse,
    WorkShiftUpdate,
)

logger = logging.getLogger(__name__)


def _shift_to_response(s: WorkShift) -> WorkShiftResponse:
    return WorkShiftResponse(
        id=s.id,
        name=s.name,
        code=s.code,
        description=s.description,
        shift_type=s.shift_type,
        start_time=s.start_time,
        end_time=s.end_time,
        break_start_time=s.break_start_time,
        break_end_time=s.break_end_time,
        working_hours=s.working_hours,
        is_night_shift=s.is_night_shift,
        flexible_minutes=s.flexible_minutes,
        allow_overtime=s.allow_overtime,
        max_overtime_hours=s.max_overtime_hours,
        applicable_days=sorted(s.applicable_weekdays),
        status=s.status,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def _get_shift_or_404(db: AsyncSession, shift_id: UUID) -> WorkShift:
    s = await db.get(WorkShift, shift_id)
    if not s:
        raise NotFoundError("Work shift not found")
    return s


async def _ensure_employee(db: AsyncSession, employee_id: UUID) -> Employee:
    emp = await db.get(Employee, employee_id)
    if not emp:
        raise NotFoundError("Employee not found")
    return emp


async def _code_taken(db: AsyncSession, code: str, exclude_id: Optional[UUID] = None) -> bool:
    q = select(WorkShift.id).where(WorkShift.code == code)
    if exclude_id:
        q = q.where(WorkShift.id != exclude_id)
    return (await db.execute(q.limit(1))).scalar_one_or_none() is not None


# ----- Work Shift -----

async def list_shifts(db: AsyncSession, active_only: bool = False) -> List[WorkShiftResponse]:
    q = select(WorkShift)
    if active_only:
        q = q.where(WorkShift.status == ShiftStatus.ACTIVE.value)
    result = await db.execute(q.order_by(WorkShift.name))
    return [_shift_to_response(s) for s in result.scalars().all()]


async def get_shift(db: AsyncSession, shift_id: UUID) -> WorkShiftResponse:
    return _shift_to_response(await _get_shift_or_404(db, shift_id))


async def create_shift(db: AsyncSession, payload: WorkShiftCreate) -> WorkShiftResponse:
    code = payload.code.strip().upper() if payload.code else None
    if code and await _code_taken(db, code):
        raise BusinessRuleError(f"Work shift with code '{code}' already exists")
    s = WorkShift(
        name=payload.name.strip(),
        code=code,
        description=payload.description,
        shift_type=payload.shift_type.value,
        start_time=payload.start_time,
        end_time=payload.end_time,
        break_start_time=payload.break_start_time,
        break_end_time=payload.break_end_time,
        working_hours=payload.working_hours,
        is_night_shift=payload.is_night_shift,
        flexible_minutes=payload.flexible_minutes,
        allow_overtime=payload.allow_overtime,
        max_overtime_hours=payload.max_overtime_hours,
        applicable_days=list(payload.applicable_days),
        status=payload.status.value,
    )
    db.add(s)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Work shift with this code already exists")
    await db.refresh(s)
    return _shift_to_response(s)


async def update_shift(db: AsyncSession, shift_id: UUID, payload: WorkShiftUpdate) -> WorkShiftResponse:
    s = await _get_shift_or_404(db, shift_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("code"):
        new_code = data["code"].strip().upper()
        if new_code != s.code and await _code_taken(db, new_code, exclude_id=s.id):
            raise BusinessRuleError(f"Work shift with code '{new_code}' already exists")
        data["code"] = new_code
    for field in ("shift_type", "status"):
        if data.get(field) is not None:
            data[field] = data[field].value
    if data.get("name"):
        data["name"] = data["name"].strip()
    for field, value in data.items():
        setattr(s, field, value)
    await db.commit()
    await db.refresh(s)
    return _shift_to_response(s)


async def get_shift_usage(db: AsyncSession, shift_id: UUID) -> ShiftUsageResponse:
    """How many assignments, schedules and attendance rows point at this shift."""
    await _get_shift_or_404(db, shift_id)
    assignments = (
        await db.execute(select(func.count()).select_from(EmployeeShiftAssignment).where(EmployeeShiftAssignment.work_shift_id == shift_id))
    ).scalar_one()
    schedules = (
        await db.execute(select(func.count()).select_from(WorkSchedule).where(WorkSchedule.work_shift_id == shift_id))
    ).scalar_one()
    attendances = (
        await db.execute(select(func.count()).select_from(Attendance).where(Attendance.work_shift_id == shift_id))
    ).scalar_one()
    return ShiftUsageResponse(
        shift_id=shift_id,
        is_referenced=bool(assignments or schedules or attendances),
        assignment_count=assignments,
        schedule_count=schedules,
        attendance_count=attendances,
    )


async def is_shift_referenced(db: AsyncSession, shift_id: UUID) -> bool:
    return (await get_shift_usage(db, shift_id)).is_referenced


async def deactivate_shift(db: AsyncSession, shift_id: UUID) -> WorkShiftResponse:
    s = await _get_shift_or_404(db, shift_id)
    s.status = ShiftStatus.INACTIVE.value
    await db.commit()
    await db.refresh(s)
    return _shift_to_response(s)


async def delete_shift(db: AsyncSession, shift_id: UUID) -> None:
    """Hard delete. Referenced shifts must be deactivated instead."""
    s = await _get_shift_or_404(db, shift_id)
    if await is_shift_referenced(db, shift_id):
        raise BusinessRuleError("Work shift is in use; deactivate it instead")
    await db.delete(s)
    await db.commit()


# ----- Assignment -----

def _assignment_to_response(a: EmployeeShiftAssignment) -> ShiftAssignmentResponse:
    return ShiftAssignmentResponse(
        id=a.id,
        employee_id=a.employee_id,
        work_shift_id=a.work_shift_id,
        effective_from=a.effective_from,
        effective_to=a.effective_to,
        is_default_shift=a.is_default_shift,
        rotation_order=a.rotation_order,
        rotation_cycle_days=a.rotation_cycle_days,
        notes=a.notes,
        created_at=a.created_at,
    )


async def create_assignment(db: AsyncSession, payload: ShiftAssignmentCreate) -> ShiftAssignmentResponse:
    """
    Assign a shift from effective_from. Any earlier assignment of the employee
    still open on that date is closed the day before.
    """
    if payload.effective_to and payload.effective_to < payload.effective_from:
        raise BusinessRuleError("effective_to must be on or after effective_from")
    await _ensure_employee(db, payload.employee_id)
    shift = await _get_shift_or_404(db, payload.work_shift_id)
    if shift.status == ShiftStatus.INACTIVE.value:
        raise BusinessRuleError("Cannot assign an inactive work shift")

    open_rows = await db.execute(
        select(EmployeeShiftAssignment).where(
            EmployeeShiftAssignment.employee_id == payload.employee_id,
            EmployeeShiftAssignment.effective_from < payload.effective_from,
            or_(
                EmployeeShiftAssignment.effective_to.is_(None),
                EmployeeShiftAssignment.effective_to >= payload.effective_from,
            ),
        )
    )
    for prev in open_rows.scalars().all():
        prev.effective_to = payload.effective_from - timedelta(days=1)

    a = EmployeeShiftAssignment(
        employee_id=payload.employee_id,
        work_shift_id=payload.work_shift_id,
        effective_from=payload.effective_from,
        effective_to=payload.effective_to,
        is_default_shift=payload.is_default_shift,
        rotation_order=payload.rotation_order,
        rotation_cycle_days=payload.rotation_cycle_days,
        notes=payload.notes,
    )
    db.add(a)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("This shift is already assigned to the employee from that date")
    await db.refresh(a)
    return _assignment_to_response(a)


async def list_assignments(
    db: AsyncSession,
    employee_id: Optional[UUID] = None,
    on_date: Optional[date] = None,
) -> List[ShiftAssignmentResponse]:
    q = select(EmployeeShiftAssignment)
    if employee_id:
        q = q.where(EmployeeShiftAssignment.employee_id == employee_id)
    if on_date:
        q = q.where(
            EmployeeShiftAssignment.effective_from <= on_date,
            or_(EmployeeShiftAssignment.effective_to.is_(None), EmployeeShiftAssignment.effective_to >= on_date),
        )
    result = await db.execute(q.order_by(EmployeeShiftAssignment.effective_from.desc()))
    return [_assignment_to_response(a) for a in result.scalars().all()]


async def delete_assignment(db: AsyncSession, assignment_id: UUID) -> None:
    a = await db.get(EmployeeShiftAssignment, assignment_id)
    if not a:
        raise NotFoundError("Shift assignment not found")
    await db.delete(a)
    await db.commit()


# ----- Schedule -----

def _schedule_to_response(w: WorkSchedule) -> WorkScheduleResponse:
    return WorkScheduleResponse(
        id=w.id,
        employee_id=w.employee_id,
        work_shift_id=w.work_shift_id,
        work_date=w.work_date,
        actual_start_time=w.actual_start_time,
        actual_end_time=w.actual_end_time,
        is_planned=w.is_planned,
        project_id=w.project_id,
        notes=w.notes,
        created_at=w.created_at,
    )


async def create_schedule(db: AsyncSession, payload: WorkScheduleCreate) -> WorkScheduleResponse:
    await _ensure_employee(db, payload.employee_id)
    await _get_shift_or_404(db, payload.work_shift_id)
    existing = (
        await db.execute(
            select(WorkSchedule.id).where(
                WorkSchedule.employee_id == payload.employee_id,
                WorkSchedule.work_date == payload.work_date,
            )
        )
    ).scalar_one_or_none()
    if existing:
        raise BusinessRuleError("Employee already has a schedule for this date")
    w = WorkSchedule(
        employee_id=payload.employee_id,
        work_shift_id=payload.work_shift_id,
        work_date=payload.work_date,
        actual_start_time=payload.actual_start_time,
        actual_end_time=payload.actual_end_time,
        is_planned=payload.is_planned,
        project_id=payload.project_id,
        notes=payload.notes,
    )
    db.add(w)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Employee already has a schedule for this date")
    await db.refresh(w)
    return _schedule_to_response(w)


async def bulk_create_schedules(db: AsyncSession, payload: BulkScheduleCreate) -> BulkScheduleResult:
    """Schedule a shift for each employee on each selected weekday of the range."""
    if payload.end_date < payload.start_date:
        raise BusinessRuleError("end_date must be on or after start_date")
    shift = await _get_shift_or_404(db, payload.work_shift_id)
    weekdays = set(payload.weekdays) if payload.weekdays else shift.applicable_weekdays
    holidays = (
        await get_holiday_dates(db, payload.start_date, payload.end_date) if payload.skip_holidays else set()
    )

    created = skipped_existing = skipped_holidays = 0
    for employee_id in payload.employee_ids:
        await _ensure_employee(db, employee_id)
        taken = await db.execute(
            select(WorkSchedule.work_date).where(
                WorkSchedule.employee_id == employee_id,
                WorkSchedule.work_date >= payload.start_date,
                WorkSchedule.work_date <= payload.end_date,
            )
        )
        taken_dates = set(taken.scalars().all())
        for d in iter_dates(payload.start_date, payload.end_date):
            if d.isoweekday() not in weekdays:
                continue
            if d in holidays:
                skipped_holidays += 1
                continue
            if d in taken_dates:
                skipped_existing += 1
                continue
            db.add(
                WorkSchedule(
                    employee_id=employee_id,
                    work_shift_id=shift.id,
                    work_date=d,
                    is_planned=True,
                    notes=payload.notes,
                )
            )
            created += 1
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A schedule was created concurrently for one of these days; retry")
    logger.info(
        "Bulk schedule for shift %s: created=%s skipped_existing=%s skipped_holidays=%s",
        shift.id, created, skipped_existing, skipped_holidays,
    )
    return BulkScheduleResult(created=created, skipped_existing=skipped_existing, skipped_holidays=skipped_holidays)


async def list_schedules(
    db: AsyncSession,
    employee_id: Optional[UUID] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[WorkScheduleResponse]:
    q = select(WorkSchedule)
    if employee_id:
        q = q.where(WorkSchedule.employee_id == employee_id)
    if start:
        q = q.where(WorkSchedule.work_date >= start)
    if end:
        q = q.where(WorkSchedule.work_date <= end)
    result = await db.execute(q.order_by(WorkSchedule.work_date))
    return [_schedule_to_response(w) for w in result.scalars().all()]


async def delete_schedule(db: AsyncSession, schedule_id: UUID) -> None:
    w = await db.get(WorkSchedule, schedule_id)
    if not w:
        raise NotFoundError("Work schedule not found")
    await db.delete(w)
    await db.commit()


# ----- Resolution -----

async def resolve_shift_for_date(db: AsyncSession, employee_id: UUID, work_date: date) -> Optional[WorkShift]:
    """Explicit schedule for the day wins; otherwise the default assignment covering the day."""
    scheduled = (
        await db.execute(
            select(WorkShift)
            .join(WorkSchedule, WorkSchedule.work_shift_id == WorkShift.id)
            .where(WorkSchedule.employee_id == employee_id, WorkSchedule.work_date == work_date)
        )
    ).scalar_one_or_none()
    if scheduled:
        return scheduled

    assigned = (
        await db.execute(
            select(WorkShift)
            .join(EmployeeShiftAssignment, EmployeeShiftAssignment.work_shift_id == WorkShift.id)
            .where(
                EmployeeShiftAssignment.employee_id == employee_id,
                EmployeeShiftAssignment.is_default_shift.is_(True),
                EmployeeShiftAssignment.effective_from <= work_date,
                or_(
                    EmployeeShiftAssignment.effective_to.is_(None),
                    EmployeeShiftAssignment.effective_to >= work_date,
                ),
            )
            .order_by(EmployeeShiftAssignment.effective_from.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    return assigned
