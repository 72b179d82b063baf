"""Monthly attendance rollups: generation, queries and the Excel export."""

import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from openpyxl import Workbook
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.api.v1.holidays.service import get_holiday_dates
from hrm.core.config import settings
from hrm.core.enums import LeaveStatus, LeaveType
from hrm.core.exceptions import NotFoundError
from hrm.core.models import Attendance, AttendanceSummary, Employee, LeavePolicy, LeaveRequest
from hrm.core.workdays import clip_range, count_requested_days, month_bounds, working_days_in_month

from .schemas import AttendanceSummaryResponse, BatchFailure, BatchResult

logger = logging.getLogger(__name__)

# Approved leave in any of these states counts toward the leave breakdown
TAKEN_LEAVE_STATUSES = (LeaveStatus.APPROVED.value, LeaveStatus.IN_PROGRESS.value, LeaveStatus.COMPLETED.value)

LEAVE_BREAKDOWN_FIELDS = {
    LeaveType.ANNUAL.value: "vacation_days",
    LeaveType.SICK.value: "sick_leave_days",
    LeaveType.PERSONAL.value: "personal_leave_days",
}

EXPORT_HEADERS = (
    "employee_code",
    "full_name",
    "working_days",
    "actual_working_days",
    "absent_days",
    "late_days",
    "early_leave_days",
    "working_hours",
    "standard_hours",
    "overtime_hours",
    "late_minutes",
    "early_leave_minutes",
    "vacation_days",
    "sick_leave_days",
    "personal_leave_days",
)


@dataclass
class AttendanceTotals:
    actual_working_days: int = 0
    late_days: int = 0
    early_leave_days: int = 0
    total_working_minutes: int = 0
    overtime_minutes: int = 0
    late_minutes: int = 0
    early_leave_minutes: int = 0


def summarize_records(records: Iterable[Attendance]) -> AttendanceTotals:
    """Day counts and minute totals over a set of attendance rows."""
    totals = AttendanceTotals()
    for r in records:
        if r.check_in_time:
            totals.actual_working_days += 1
        if (r.late_minutes or 0) > 0:
            totals.late_days += 1
        if (r.early_leave_minutes or 0) > 0:
            totals.early_leave_days += 1
        totals.total_working_minutes += r.total_working_minutes or 0
        totals.overtime_minutes += r.overtime_minutes or 0
        totals.late_minutes += r.late_minutes or 0
        totals.early_leave_minutes += r.early_leave_minutes or 0
    return totals


def _summary_to_response(s: AttendanceSummary) -> AttendanceSummaryResponse:
    return AttendanceSummaryResponse(
        id=s.id,
        employee_id=s.employee_id,
        year=s.year,
        month=s.month,
        total_working_days=s.total_working_days,
        actual_working_days=s.actual_working_days,
        absent_days=s.absent_days,
        late_days=s.late_days,
        early_leave_days=s.early_leave_days,
        total_working_minutes=s.total_working_minutes,
        standard_working_minutes=s.standard_working_minutes,
        overtime_minutes=s.overtime_minutes,
        late_minutes=s.late_minutes,
        early_leave_minutes=s.early_leave_minutes,
        vacation_days=s.vacation_days,
        sick_leave_days=s.sick_leave_days,
        personal_leave_days=s.personal_leave_days,
        updated_at=s.updated_at,
    )


async def _leave_breakdown(
    db: AsyncSession,
    employee_id: UUID,
    month_start: date,
    month_end: date,
) -> Dict[str, int]:
    """Approved leave days inside the month, split into vacation/sick/personal."""
    breakdown = {field: 0 for field in LEAVE_BREAKDOWN_FIELDS.values()}
    result = await db.execute(
        select(LeaveRequest.start_date, LeaveRequest.end_date, LeavePolicy.leave_type)
        .join(LeavePolicy, LeavePolicy.id == LeaveRequest.leave_policy_id)
        .where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status.in_(TAKEN_LEAVE_STATUSES),
            LeaveRequest.start_date <= month_end,
            LeaveRequest.end_date >= month_start,
        )
    )
    rows = result.all()
    if not rows:
        return breakdown
    holidays = await get_holiday_dates(db, month_start, month_end)
    for start, end, leave_type in rows:
        field = LEAVE_BREAKDOWN_FIELDS.get(leave_type)
        clipped = clip_range(start, end, month_start, month_end)
        if not field or not clipped:
            continue
        breakdown[field] += int(count_requested_days(clipped[0], clipped[1], holidays))
    return breakdown


async def _upsert_employee_summary(
    db: AsyncSession,
    employee_id: UUID,
    year: int,
    month: int,
    working_days: int,
) -> bool:
    """Recompute one employee's row. Returns True when a new row was added."""
    month_start, month_end = month_bounds(year, month)
    result = await db.execute(
        select(Attendance).where(
            Attendance.employee_id == employee_id,
            Attendance.attendance_date >= month_start,
            Attendance.attendance_date <= month_end,
        )
    )
    totals = summarize_records(result.scalars().all())
    leave = await _leave_breakdown(db, employee_id, month_start, month_end)

    summary = (
        await db.execute(
            select(AttendanceSummary).where(
                AttendanceSummary.employee_id == employee_id,
                AttendanceSummary.year == year,
                AttendanceSummary.month == month,
            )
        )
    ).scalar_one_or_none()
    created = summary is None
    if created:
        summary = AttendanceSummary(employee_id=employee_id, year=year, month=month)
        db.add(summary)

    summary.total_working_days = working_days
    summary.actual_working_days = totals.actual_working_days
    summary.absent_days = max(0, working_days - totals.actual_working_days)
    summary.late_days = totals.late_days
    summary.early_leave_days = totals.early_leave_days
    summary.total_working_minutes = totals.total_working_minutes
    summary.standard_working_minutes = working_days * settings.standard_work_hours_per_day * 60
    summary.overtime_minutes = totals.overtime_minutes
    summary.late_minutes = totals.late_minutes
    summary.early_leave_minutes = totals.early_leave_minutes
    summary.vacation_days = leave["vacation_days"]
    summary.sick_leave_days = leave["sick_leave_days"]
    summary.personal_leave_days = leave["personal_leave_days"]
    return created


async def generate_monthly_summary(db: AsyncSession, year: int, month: int) -> BatchResult:
    """
    Full recomputation of every employee's AttendanceSummary for (year, month).
    Working days are weekdays only. An employee that fails is logged and
    reported; the rest are still written.
    """
    working_days = working_days_in_month(year, month)
    employee_ids = (await db.execute(select(Employee.id).order_by(Employee.employee_code))).scalars().all()

    outcome = BatchResult()
    for employee_id in employee_ids:
        outcome.processed += 1
        try:
            if await _upsert_employee_summary(db, employee_id, year, month, working_days):
                outcome.created += 1
            else:
                outcome.updated += 1
        except Exception as e:
            logger.exception("Monthly summary %s-%02d failed for employee %s", year, month, employee_id)
            outcome.failures.append(BatchFailure(employee_id=employee_id, error=str(e)))
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Monthly summary %s-%02d could not be saved", year, month)
        raise
    logger.info(
        "Monthly summary %s-%02d: processed=%s created=%s updated=%s failed=%s",
        year, month, outcome.processed, outcome.created, outcome.updated, len(outcome.failures),
    )
    return outcome


async def get_monthly_summary(
    db: AsyncSession,
    employee_id: UUID,
    year: int,
    month: int,
) -> AttendanceSummaryResponse:
    s = (
        await db.execute(
            select(AttendanceSummary).where(
                AttendanceSummary.employee_id == employee_id,
                AttendanceSummary.year == year,
                AttendanceSummary.month == month,
            )
        )
    ).scalar_one_or_none()
    if not s:
        raise NotFoundError("Attendance summary not found for this month")
    return _summary_to_response(s)


async def list_department_summaries(
    db: AsyncSession,
    year: int,
    month: int,
    department_id: Optional[UUID] = None,
) -> List[AttendanceSummaryResponse]:
    q = (
        select(AttendanceSummary)
        .join(Employee, Employee.id == AttendanceSummary.employee_id)
        .where(AttendanceSummary.year == year, AttendanceSummary.month == month)
    )
    if department_id:
        q = q.where(Employee.department_id == department_id)
    result = await db.execute(q.order_by(Employee.employee_code))
    return [_summary_to_response(s) for s in result.scalars().all()]


async def export_monthly_summaries(
    db: AsyncSession,
    year: int,
    month: int,
    department_id: Optional[UUID] = None,
) -> bytes:
    """Workbook with one row per employee for the month. Minutes are shown as hours."""
    q = (
        select(AttendanceSummary, Employee.employee_code, Employee.full_name)
        .join(Employee, Employee.id == AttendanceSummary.employee_id)
        .where(AttendanceSummary.year == year, AttendanceSummary.month == month)
    )
    if department_id:
        q = q.where(Employee.department_id == department_id)
    rows = (await db.execute(q.order_by(Employee.employee_code))).all()

    wb = Workbook()
    ws = wb.active
    ws.title = f"{year}-{month:02d}"
    ws.append(list(EXPORT_HEADERS))
    for s, code, name in rows:
        ws.append([
            code,
            name,
            s.total_working_days,
            s.actual_working_days,
            s.absent_days,
            s.late_days,
            s.early_leave_days,
            round(s.total_working_minutes / 60, 2),
            round(s.standard_working_minutes / 60, 2),
            round(s.overtime_minutes / 60, 2),
            s.late_minutes,
            s.early_leave_minutes,
            s.vacation_days,
            s.sick_leave_days,
            s.personal_leave_days,
        ])

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
