import datetime as dt
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from hrm.api.v1.attendance.schemas import AttendanceResponse
from hrm.api.v1.leaves.schemas import LeaveBalanceResponse, LeaveRequestResponse


class DailyReportResponse(BaseModel):
    date: dt.date
    department_id: Optional[UUID] = None
    total_employees: int
    present: int
    absent: int
    late: int
    early_leave: int
    on_leave: int
    records: List[AttendanceResponse]


class AttendanceHistorySummary(BaseModel):
    """Computed over the requested range; independent of the stored monthly summaries."""

    working_days: int
    actual_working_days: int
    absent_days: int
    late_days: int
    early_leave_days: int
    total_working_minutes: int
    overtime_minutes: int
    late_minutes: int
    early_leave_minutes: int
    attendance_rate: float


class EmployeeAttendanceHistory(BaseModel):
    employee_id: UUID
    start_date: dt.date
    end_date: dt.date
    records: List[AttendanceResponse]
    summary: AttendanceHistorySummary


class DepartmentBalanceRow(BaseModel):
    employee_id: UUID
    employee_code: str
    full_name: str
    leave_policy_id: UUID
    policy_name: str
    leave_type: str
    year: int
    allocated_days: Decimal
    used_days: Decimal
    carried_forward_days: Decimal
    adjustment_days: Decimal
    remaining_days: Decimal


class CalendarLeaveEntry(BaseModel):
    leave_request_id: UUID
    employee_id: UUID
    full_name: str
    leave_type: str
    status: str


class CalendarDay(BaseModel):
    date: dt.date
    is_weekend: bool
    holidays: List[str]
    leaves: List[CalendarLeaveEntry]


class EmployeeLeaveHistory(BaseModel):
    employee_id: UUID
    year: Optional[int] = None
    requests: List[LeaveRequestResponse]
    balances: List[LeaveBalanceResponse]
    total_days_taken: Decimal
