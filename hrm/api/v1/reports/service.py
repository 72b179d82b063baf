"""Read-only reports composed from attendance, leave and holiday data."""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.api.v1.attendance.service import attendance_to_response
from hrm.api.v1.attendance.summary import TAKEN_LEAVE_STATUSES, summarize_records
from hrm.api.v1.holidays.service import list_holidays_in_range
from hrm.api.v1.leaves.balances import balance_to_response
from hrm.api.v1.leaves.service import request_to_response
from hrm.core.enums import EmployeeStatus, LeaveStatus
from hrm.core.exceptions import BusinessRuleError, NotFoundError
from hrm.core.models import Attendance, Employee, EmployeeLeaveBalance, LeavePolicy, LeaveRequest
from hrm.core.workdays import count_weekdays, is_weekend, iter_dates

from .schemas import (
    AttendanceHistorySummary,
    CalendarDay,
    CalendarLeaveEntry,
    DailyReportResponse,
    DepartmentBalanceRow,
    EmployeeAttendanceHistory,
    EmployeeLeaveHistory,
)

# Requests that show up on the calendar; PENDING only when asked for
CALENDAR_STATUSES = TAKEN_LEAVE_STATUSES


async def _ensure_employee(db: AsyncSession, employee_id: UUID) -> Employee:
    emp = await db.get(Employee, employee_id)
    if not emp:
        raise NotFoundError("Employee not found")
    return emp


async def daily_report(
    db: AsyncSession,
    day: date,
    department_id: Optional[UUID] = None,
) -> DailyReportResponse:
    """Present/absent/late/early counts for one day plus the day's records."""
    emp_q = select(Employee.id).where(Employee.status.in_([EmployeeStatus.ACTIVE.value, EmployeeStatus.ON_LEAVE.value]))
    if department_id:
        emp_q = emp_q.where(Employee.department_id == department_id)
    employee_ids = set((await db.execute(emp_q)).scalars().all())

    rec_q = select(Attendance).join(Employee, Employee.id == Attendance.employee_id).where(Attendance.attendance_date == day)
    if department_id:
        rec_q = rec_q.where(Employee.department_id == department_id)
    records = (await db.execute(rec_q.order_by(Attendance.check_in_time))).scalars().all()

    leave_q = (
        select(LeaveRequest.employee_id)
        .join(Employee, Employee.id == LeaveRequest.employee_id)
        .where(
            LeaveRequest.status.in_(TAKEN_LEAVE_STATUSES),
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        )
    )
    if department_id:
        leave_q = leave_q.where(Employee.department_id == department_id)
    on_leave = set((await db.execute(leave_q)).scalars().all())

    present = {r.employee_id for r in records if r.check_in_time}
    return DailyReportResponse(
        date=day,
        department_id=department_id,
        total_employees=len(employee_ids),
        present=len(present),
        absent=len(employee_ids - present - on_leave),
        late=sum(1 for r in records if (r.late_minutes or 0) > 0),
        early_leave=sum(1 for r in records if (r.early_leave_minutes or 0) > 0),
        on_leave=len(on_leave & employee_ids),
        records=[attendance_to_response(r) for r in records],
    )


async def employee_attendance_history(
    db: AsyncSession,
    employee_id: UUID,
    start: date,
    end: date,
) -> EmployeeAttendanceHistory:
    await _ensure_employee(db, employee_id)
    if end < start:
        raise BusinessRuleError("end_date must be on or after start_date")
    records = (
        await db.execute(
            select(Attendance)
            .where(
                Attendance.employee_id == employee_id,
                Attendance.attendance_date >= start,
                Attendance.attendance_date <= end,
            )
            .order_by(Attendance.attendance_date)
        )
    ).scalars().all()
    totals = summarize_records(records)
    working_days = count_weekdays(start, end)
    return EmployeeAttendanceHistory(
        employee_id=employee_id,
        start_date=start,
        end_date=end,
        records=[attendance_to_response(r) for r in records],
        summary=AttendanceHistorySummary(
            working_days=working_days,
            actual_working_days=totals.actual_working_days,
            absent_days=max(0, working_days - totals.actual_working_days),
            late_days=totals.late_days,
            early_leave_days=totals.early_leave_days,
            total_working_minutes=totals.total_working_minutes,
            overtime_minutes=totals.overtime_minutes,
            late_minutes=totals.late_minutes,
            early_leave_minutes=totals.early_leave_minutes,
            attendance_rate=round(totals.actual_working_days / working_days * 100, 2) if working_days else 0.0,
        ),
    )


async def department_leave_balances(
    db: AsyncSession,
    year: int,
    department_id: Optional[UUID] = None,
) -> List[DepartmentBalanceRow]:
    q = (
        select(EmployeeLeaveBalance, Employee, LeavePolicy)
        .join(Employee, Employee.id == EmployeeLeaveBalance.employee_id)
        .join(LeavePolicy, LeavePolicy.id == EmployeeLeaveBalance.leave_policy_id)
        .where(EmployeeLeaveBalance.year == year)
    )
    if department_id:
        q = q.where(Employee.department_id == department_id)
    rows = (await db.execute(q.order_by(Employee.employee_code, LeavePolicy.leave_type))).all()
    return [
        DepartmentBalanceRow(
            employee_id=e.id,
            employee_code=e.employee_code,
            full_name=e.full_name,
            leave_policy_id=p.id,
            policy_name=p.name,
            leave_type=p.leave_type,
            year=b.year,
            allocated_days=b.allocated_days,
            used_days=b.used_days,
            carried_forward_days=b.carried_forward_days,
            adjustment_days=b.adjustment_days,
            remaining_days=b.remaining_days,
        )
        for b, e, p in rows
    ]


async def leave_calendar(
    db: AsyncSession,
    start: date,
    end: date,
    department_id: Optional[UUID] = None,
    include_pending: bool = False,
) -> List[CalendarDay]:
    """One entry per day in [start, end] with the holidays and leave that fall on it."""
    if end < start:
        raise BusinessRuleError("end_date must be on or after start_date")
    holidays: Dict[date, List[str]] = {}
    for h in await list_holidays_in_range(db, start, end, department_id=department_id):
        holidays.setdefault(h.date, []).append(h.name)

    statuses = list(CALENDAR_STATUSES)
    if include_pending:
        statuses.append(LeaveStatus.PENDING.value)
    q = (
        select(LeaveRequest, Employee.full_name, LeavePolicy.leave_type)
        .join(Employee, Employee.id == LeaveRequest.employee_id)
        .join(LeavePolicy, LeavePolicy.id == LeaveRequest.leave_policy_id)
        .where(
            LeaveRequest.status.in_(statuses),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
    )
    if department_id:
        q = q.where(Employee.department_id == department_id)
    requests = (await db.execute(q.order_by(Employee.full_name))).all()

    calendar: List[CalendarDay] = []
    for d in iter_dates(start, end):
        calendar.append(
            CalendarDay(
                date=d,
                is_weekend=is_weekend(d),
                holidays=holidays.get(d, []),
                leaves=[
                    CalendarLeaveEntry(
                        leave_request_id=r.id,
                        employee_id=r.employee_id,
                        full_name=name,
                        leave_type=leave_type,
                        status=r.status,
                    )
                    for r, name, leave_type in requests
                    if r.start_date <= d <= r.end_date
                ],
            )
        )
    return calendar


async def employee_leave_history(
    db: AsyncSession,
    employee_id: UUID,
    year: Optional[int] = None,
) -> EmployeeLeaveHistory:
    await _ensure_employee(db, employee_id)
    q = select(LeaveRequest).where(LeaveRequest.employee_id == employee_id)
    b_q = select(EmployeeLeaveBalance).where(EmployeeLeaveBalance.employee_id == employee_id)
    if year:
        year_start, year_end = date(year, 1, 1), date(year, 12, 31)
        q = q.where(or_(LeaveRequest.start_date.between(year_start, year_end), LeaveRequest.end_date.between(year_start, year_end)))
        b_q = b_q.where(EmployeeLeaveBalance.year == year)
    requests = (await db.execute(q.order_by(LeaveRequest.start_date.desc()))).scalars().all()
    balances = (await db.execute(b_q.order_by(EmployeeLeaveBalance.year.desc()))).scalars().all()
    taken = sum(
        (Decimal(r.requested_days) for r in requests if r.status in TAKEN_LEAVE_STATUSES),
        Decimal("0"),
    )
    return EmployeeLeaveHistory(
        employee_id=employee_id,
        year=year,
        requests=[request_to_response(r) for r in requests],
        balances=[balance_to_response(b) for b in balances],
        total_days_taken=taken,
    )
