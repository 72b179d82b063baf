from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.auth.dependencies import get_current_user
from hrm.auth.rbac import APPROVERS, require_roles
from hrm.auth.schemas import CurrentUser
from hrm.core.exceptions import ServiceError
from hrm.db.session import get_db

from .schemas import (
    CalendarDay,
    DailyReportResponse,
    DepartmentBalanceRow,
    EmployeeAttendanceHistory,
    EmployeeLeaveHistory,
)
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _check_self_or_approver(employee_id: UUID, current_user: CurrentUser) -> None:
    if employee_id != current_user.id and current_user.role not in ("MANAGER", "HR_MANAGER", "ADMIN"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")


@router.get(
    "/attendance/daily",
    response_model=DailyReportResponse,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def daily_report(
    day: date = Query(..., alias="date"),
    department_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
) -> DailyReportResponse:
    return await service.daily_report(db, day, department_id=department_id)


@router.get("/attendance/employees/{employee_id}", response_model=EmployeeAttendanceHistory)
async def employee_attendance_history(
    employee_id: UUID,
    start_date: date,
    end_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EmployeeAttendanceHistory:
    """Records and a summary computed over the range."""
    _check_self_or_approver(employee_id, current_user)
    try:
        return await service.employee_attendance_history(db, employee_id, start_date, end_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/leaves/balances",
    response_model=List[DepartmentBalanceRow],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def department_leave_balances(
    year: int = Query(..., ge=2000, le=2100),
    department_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
) -> List[DepartmentBalanceRow]:
    return await service.department_leave_balances(db, year, department_id=department_id)


@router.get("/leaves/calendar", response_model=List[CalendarDay])
async def leave_calendar(
    start_date: date,
    end_date: date,
    department_id: Optional[UUID] = None,
    include_pending: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[CalendarDay]:
    """Day-by-day holidays and leave for the range."""
    try:
        return await service.leave_calendar(
            db, start_date, end_date, department_id=department_id, include_pending=include_pending
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/leaves/employees/{employee_id}", response_model=EmployeeLeaveHistory)
async def employee_leave_history(
    employee_id: UUID,
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EmployeeLeaveHistory:
    _check_self_or_approver(employee_id, current_user)
    try:
        return await service.employee_leave_history(db, employee_id, year=year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
