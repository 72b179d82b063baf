"""Check-in, check-out and break punches evaluated against the employee's shift, plus manager review."""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.api.v1.shifts.service import resolve_shift_for_date
from hrm.auth.schemas import CurrentUser
from hrm.core.enums import AttendanceStatus, PunchType
from hrm.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from hrm.core.models import Attendance, AttendanceDetail, Employee, WorkShift
from hrm.core.workdays import early_leave_minutes, late_minutes, overtime_minutes, shift_window, whole_minutes

from .schemas import (
    AttendanceApproveResult,
    AttendanceDetailResponse,
    AttendanceFilter,
    AttendanceResponse,
    AttendanceReview,
    PunchContext,
    TodayStatusResponse,
)

logger = logging.getLogger(__name__)


def attendance_to_response(a: Attendance) -> AttendanceResponse:
    return AttendanceResponse(
        id=a.id,
        employee_id=a.employee_id,
        attendance_date=a.attendance_date,
        work_shift_id=a.work_shift_id,
        check_in_time=a.check_in_time,
        check_out_time=a.check_out_time,
        break_start_time=a.break_start_time,
        break_end_time=a.break_end_time,
        check_in_location=a.check_in_location,
        check_out_location=a.check_out_location,
        check_in_photo_url=a.check_in_photo_url,
        check_out_photo_url=a.check_out_photo_url,
        total_working_minutes=a.total_working_minutes,
        break_minutes=a.break_minutes,
        late_minutes=a.late_minutes,
        early_leave_minutes=a.early_leave_minutes,
        overtime_minutes=a.overtime_minutes,
        status=a.status,
        computed_status=a.computed_status,
        notes=a.notes,
        manager_notes=a.manager_notes,
        approved_by_id=a.approved_by_id,
        approved_at=a.approved_at,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


def _detail_to_response(d: AttendanceDetail) -> AttendanceDetailResponse:
    return AttendanceDetailResponse(
        id=d.id,
        attendance_id=d.attendance_id,
        punch_type=d.punch_type,
        timestamp=d.timestamp,
        latitude=d.latitude,
        longitude=d.longitude,
        location=d.location,
        device_id=d.device_id,
        device_type=d.device_type,
        ip_address=d.ip_address,
        photo_url=d.photo_url,
        notes=d.notes,
        created_at=d.created_at,
    )


def _add_detail(
    db: AsyncSession,
    attendance_id: UUID,
    punch_type: PunchType,
    at: datetime,
    ctx: Optional[PunchContext],
) -> None:
    ctx = ctx or PunchContext()
    db.add(
        AttendanceDetail(
            attendance_id=attendance_id,
            punch_type=punch_type.value,
            timestamp=at,
            latitude=ctx.latitude,
            longitude=ctx.longitude,
            location=ctx.location,
            device_id=ctx.device_id,
            device_type=ctx.device_type,
            ip_address=ctx.ip_address,
            photo_url=ctx.photo_url,
            notes=ctx.notes,
        )
    )


async def _get_row(db: AsyncSession, employee_id: UUID, day: date) -> Optional[Attendance]:
    result = await db.execute(
        select(Attendance).where(
            Attendance.employee_id == employee_id,
            Attendance.attendance_date == day,
        )
    )
    return result.scalar_one_or_none()


async def _find_open_attendance(db: AsyncSession, employee_id: UUID, at: datetime) -> Optional[Attendance]:
    """
    The row a check-out or break at `at` applies to: the same day's row, or the
    previous day's still-open row when that day was worked on a night shift.
    """
    today = await _get_row(db, employee_id, at.date())
    if today and today.check_in_time:
        return today
    prev = await _get_row(db, employee_id, at.date() - timedelta(days=1))
    if prev and prev.check_in_time and not prev.check_out_time:
        shift = await db.get(WorkShift, prev.work_shift_id)
        if shift and shift.is_night_shift:
            return prev
    return today


async def _get_attendance_or_404(db: AsyncSession, attendance_id: UUID) -> Attendance:
    a = await db.get(Attendance, attendance_id)
    if not a:
        raise NotFoundError("Attendance record not found")
    return a


# ----- Punches -----

async def check_in(
    db: AsyncSession,
    employee_id: UUID,
    at: Optional[datetime] = None,
    ctx: Optional[PunchContext] = None,
) -> AttendanceResponse:
    """Record the day's check-in and classify it ON_TIME or LATE against the resolved shift."""
    at = at or datetime.now()
    work_date = at.date()

    if not await db.get(Employee, employee_id):
        raise NotFoundError("Employee not found")

    row = await _get_row(db, employee_id, work_date)
    if row and row.check_in_time:
        raise BusinessRuleError("Already checked in today")

    shift = await resolve_shift_for_date(db, employee_id, work_date)
    if not shift:
        raise BusinessRuleError("No work schedule or shift assignment found for today")

    expected_start, _ = shift_window(work_date, shift.start_time, shift.end_time, shift.is_night_shift)
    late = late_minutes(at, expected_start, shift.flexible_minutes)
    status_value = AttendanceStatus.LATE.value if late > 0 else AttendanceStatus.ON_TIME.value

    if not row:
        row = Attendance(employee_id=employee_id, attendance_date=work_date)
        db.add(row)
    ctx = ctx or PunchContext()
    row.work_shift_id = shift.id
    row.check_in_time = at
    row.check_in_latitude = ctx.latitude
    row.check_in_longitude = ctx.longitude
    row.check_in_location = ctx.location
    row.check_in_photo_url = ctx.photo_url
    row.notes = ctx.notes
    row.late_minutes = late
    row.status = status_value
    row.computed_status = status_value
    try:
        await db.flush()
        _add_detail(db, row.id, PunchType.CHECK_IN, at, ctx)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Already checked in today")
    await db.refresh(row)
    logger.info("Employee %s checked in at %s (%s, late %s min)", employee_id, at, status_value, late)
    return attendance_to_response(row)


async def check_out(
    db: AsyncSession,
    employee_id: UUID,
    at: Optional[datetime] = None,
    ctx: Optional[PunchContext] = None,
) -> AttendanceResponse:
    """
    Close the open attendance row: working minutes net of break, early leave and
    overtime. A LATE status is kept; OVERTIME only replaces ON_TIME.
    """
    at = at or datetime.now()
    row = await _find_open_attendance(db, employee_id, at)
    if not row or not row.check_in_time:
        raise BusinessRuleError("You must check in first")
    if row.check_out_time:
        raise BusinessRuleError("Already checked out today")
    if at < row.check_in_time:
        raise BusinessRuleError("Check-out time cannot be before check-in time")

    shift = await db.get(WorkShift, row.work_shift_id)
    if not shift:
        raise NotFoundError("Work shift not found")

    total = whole_minutes(at - row.check_in_time)
    if row.break_start_time and row.break_end_time:
        row.break_minutes = whole_minutes(row.break_end_time - row.break_start_time)
        total -= row.break_minutes
    row.total_working_minutes = max(0, total)

    _, expected_end = shift_window(row.attendance_date, shift.start_time, shift.end_time, shift.is_night_shift)

    computed = row.computed_status or AttendanceStatus.ON_TIME.value
    early = early_leave_minutes(at, expected_end, shift.flexible_minutes)
    row.early_leave_minutes = early
    if early > 0 and computed != AttendanceStatus.LATE.value:
        computed = AttendanceStatus.EARLY.value

    row.overtime_minutes = 0
    if shift.allow_overtime and at > expected_end:
        row.overtime_minutes = overtime_minutes(at, expected_end)
        if computed == AttendanceStatus.ON_TIME.value:
            computed = AttendanceStatus.OVERTIME.value

    # a manager's approval is kept; the rule outcome lives in computed_status
    row.computed_status = computed
    if row.status != AttendanceStatus.APPROVED.value:
        row.status = computed

    ctx = ctx or PunchContext()
    row.check_out_time = at
    row.check_out_latitude = ctx.latitude
    row.check_out_longitude = ctx.longitude
    row.check_out_location = ctx.location
    row.check_out_photo_url = ctx.photo_url
    _add_detail(db, row.id, PunchType.CHECK_OUT, at, ctx)
    await db.commit()
    await db.refresh(row)
    logger.info(
        "Employee %s checked out at %s (%s, worked %s min)",
        employee_id, at, row.status, row.total_working_minutes,
    )
    return attendance_to_response(row)


async def record_break(
    db: AsyncSession,
    employee_id: UUID,
    break_type: PunchType,
    at: Optional[datetime] = None,
    ctx: Optional[PunchContext] = None,
) -> AttendanceResponse:
    """One break window per day: BREAK_START once, then BREAK_END once."""
    if break_type not in (PunchType.BREAK_START, PunchType.BREAK_END):
        raise BusinessRuleError("Break type must be BREAK_START or BREAK_END")
    at = at or datetime.now()
    row = await _find_open_attendance(db, employee_id, at)
    if not row or not row.check_in_time:
        raise BusinessRuleError("You must check in first")

    if break_type == PunchType.BREAK_START:
        if row.break_start_time:
            raise BusinessRuleError("Break already started")
        if at < row.check_in_time:
            raise BusinessRuleError("Break cannot start before check-in")
        row.break_start_time = at
    else:
        if not row.break_start_time:
            raise BusinessRuleError("Break has not been started")
        if row.break_end_time:
            raise BusinessRuleError("Break already ended")
        if at < row.break_start_time:
            raise BusinessRuleError("Break cannot end before it starts")
        row.break_end_time = at

    _add_detail(db, row.id, break_type, at, ctx)
    await db.commit()
    await db.refresh(row)
    return attendance_to_response(row)


# ----- Manager actions -----

async def approve_attendances(
    db: AsyncSession,
    attendance_ids: List[UUID],
    actor: CurrentUser,
    notes: Optional[str] = None,
) -> AttendanceApproveResult:
    """Mark each found record APPROVED. computed_status keeps the rule-derived status."""
    result = await db.execute(select(Attendance).where(Attendance.id.in_(attendance_ids)))
    rows = result.scalars().all()
    found = {r.id for r in rows}
    now = datetime.utcnow()
    for r in rows:
        if r.computed_status is None and r.status != AttendanceStatus.APPROVED.value:
            r.computed_status = r.status
        r.status = AttendanceStatus.APPROVED.value
        r.manager_notes = notes
        r.approved_by_id = actor.id
        r.approved_at = now
    await db.commit()
    logger.info("Attendance approved by %s: %s record(s)", actor.id, len(rows))
    return AttendanceApproveResult(
        approved=len(rows),
        not_found=[i for i in attendance_ids if i not in found],
    )


async def review_attendance(
    db: AsyncSession,
    attendance_id: UUID,
    payload: AttendanceReview,
    actor: CurrentUser,
) -> AttendanceResponse:
    a = await _get_attendance_or_404(db, attendance_id)
    a.status = payload.status.value
    a.manager_notes = payload.manager_notes
    a.approved_by_id = actor.id
    a.approved_at = datetime.utcnow()
    await db.commit()
    await db.refresh(a)
    return attendance_to_response(a)


async def delete_attendance(db: AsyncSession, attendance_id: UUID) -> None:
    a = await _get_attendance_or_404(db, attendance_id)
    await db.execute(delete(AttendanceDetail).where(AttendanceDetail.attendance_id == a.id))
    await db.delete(a)
    await db.commit()
    logger.info("Attendance %s deleted", attendance_id)


# ----- Queries -----

async def get_attendance(db: AsyncSession, attendance_id: UUID) -> AttendanceResponse:
    return attendance_to_response(await _get_attendance_or_404(db, attendance_id))


async def get_today_attendance(
    db: AsyncSession,
    employee_id: UUID,
    today: Optional[date] = None,
) -> TodayStatusResponse:
    row = await _get_row(db, employee_id, today or date.today())
    return TodayStatusResponse(
        checked_in=bool(row and row.check_in_time),
        checked_out=bool(row and row.check_out_time),
        attendance=attendance_to_response(row) if row else None,
    )


async def has_checked_in_today(db: AsyncSession, employee_id: UUID, today: Optional[date] = None) -> bool:
    return (await get_today_attendance(db, employee_id, today)).checked_in


async def has_checked_out_today(db: AsyncSession, employee_id: UUID, today: Optional[date] = None) -> bool:
    return (await get_today_attendance(db, employee_id, today)).checked_out


async def list_attendances(db: AsyncSession, flt: AttendanceFilter) -> List[AttendanceResponse]:
    q = select(Attendance)
    if flt.department_id:
        q = q.join(Employee, Employee.id == Attendance.employee_id).where(Employee.department_id == flt.department_id)
    if flt.employee_id:
        q = q.where(Attendance.employee_id == flt.employee_id)
    if flt.start_date:
        q = q.where(Attendance.attendance_date >= flt.start_date)
    if flt.end_date:
        q = q.where(Attendance.attendance_date <= flt.end_date)
    if flt.status:
        q = q.where(Attendance.status == flt.status.value)
    q = q.order_by(Attendance.attendance_date.desc(), Attendance.check_in_time.desc()).offset(flt.offset).limit(flt.limit)
    result = await db.execute(q)
    return [attendance_to_response(a) for a in result.scalars().all()]


async def list_attendance_details(db: AsyncSession, attendance_id: UUID) -> List[AttendanceDetailResponse]:
    await _get_attendance_or_404(db, attendance_id)
    result = await db.execute(
        select(AttendanceDetail)
        .where(AttendanceDetail.attendance_id == attendance_id)
        .order_by(AttendanceDetail.timestamp)
    )
    return [_detail_to_response(d) for d in result.scalars().all()]


async def calculate_attendance_status(db: AsyncSession, attendance_id: UUID) -> str:
    """Status recomputed from minutes: NO_SHOW, then LATE > EARLY > OVERTIME > ON_TIME."""
    a = await db.get(Attendance, attendance_id)
    if not a or not a.check_in_time:
        return AttendanceStatus.NO_SHOW.value
    if (a.late_minutes or 0) > 0:
        return AttendanceStatus.LATE.value
    if (a.early_leave_minutes or 0) > 0:
        return AttendanceStatus.EARLY.value
    if (a.overtime_minutes or 0) > 0:
        return AttendanceStatus.OVERTIME.value
    return AttendanceStatus.ON_TIME.value


async def calculate_working_minutes(db: AsyncSession, attendance_id: UUID) -> int:
    a = await _get_attendance_or_404(db, attendance_id)
    if not a.check_in_time or not a.check_out_time:
        return 0
    total = whole_minutes(a.check_out_time - a.check_in_time)
    if a.break_start_time and a.break_end_time:
        total -= whole_minutes(a.break_end_time - a.break_start_time)
    return max(0, total)
