from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hrm.core.enums import AttendanceStatus


# ----- Punches -----
class PunchContext(BaseModel):
    """Where and how a punch was made. Photo is an object storage path, never bytes."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    location: Optional[str] = Field(None, max_length=500)
    photo_url: Optional[str] = Field(None, max_length=500)
    device_id: Optional[str] = Field(None, max_length=100)
    device_type: Optional[str] = Field(None, max_length=100)
    ip_address: Optional[str] = Field(None, max_length=45)
    notes: Optional[str] = Field(None, max_length=500)


class CheckInRequest(PunchContext):
    time: Optional[datetime] = Field(None, description="Defaults to server time")


class CheckOutRequest(PunchContext):
    time: Optional[datetime] = Field(None, description="Defaults to server time")


class BreakRequest(PunchContext):
    type: Literal["BREAK_START", "BREAK_END"]
    time: Optional[datetime] = Field(None, description="Defaults to server time")


# ----- Records -----
class AttendanceResponse(BaseModel):
    id: UUID
    employee_id: UUID
    attendance_date: date
    work_shift_id: UUID
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    break_start_time: Optional[datetime] = None
    break_end_time: Optional[datetime] = None
    check_in_location: Optional[str] = None
    check_out_location: Optional[str] = None
    check_in_photo_url: Optional[str] = None
    check_out_photo_url: Optional[str] = None
    total_working_minutes: Optional[int] = None
    break_minutes: Optional[int] = None
    late_minutes: Optional[int] = None
    early_leave_minutes: Optional[int] = None
    overtime_minutes: Optional[int] = None
    status: Optional[str] = None
    computed_status: Optional[str] = None
    notes: Optional[str] = None
    manager_notes: Optional[str] = None
    approved_by_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AttendanceDetailResponse(BaseModel):
    id: UUID
    attendance_id: UUID
    punch_type: str
    timestamp: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location: Optional[str] = None
    device_id: Optional[str] = None
    device_type: Optional[str] = None
    ip_address: Optional[str] = None
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AttendanceFilter(BaseModel):
    employee_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[AttendanceStatus] = None
    limit: int = Field(100, ge=1, le=1000)
    offset: int = Field(0, ge=0)


class AttendanceApprove(BaseModel):
    attendance_ids: List[UUID] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceReview(BaseModel):
    """Single-record status override by a manager."""

    status: AttendanceStatus
    manager_notes: Optional[str] = Field(None, max_length=1000)


class AttendanceApproveResult(BaseModel):
    approved: int
    not_found: List[UUID] = []


class TodayStatusResponse(BaseModel):
    checked_in: bool
    checked_out: bool
    attendance: Optional[AttendanceResponse] = None


class AttendanceStatusResponse(BaseModel):
    attendance_id: UUID
    status: str


class WorkingMinutesResponse(BaseModel):
    attendance_id: UUID
    total_working_minutes: int


# ----- Monthly summary -----
class AttendanceSummaryResponse(BaseModel):
    id: UUID
    employee_id: UUID
    year: int
    month: int
    total_working_days: int
    actual_working_days: int
    absent_days: int
    late_days: int
    early_leave_days: int
    total_working_minutes: int
    standard_working_minutes: int
    overtime_minutes: int
    late_minutes: int
    early_leave_minutes: int
    vacation_days: int
    sick_leave_days: int
    personal_leave_days: int
    updated_at: datetime

    class Config:
        from_attributes = True


class GenerateSummaryRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class BatchFailure(BaseModel):
    employee_id: UUID
    error: str


class BatchResult(BaseModel):
    """Outcome of a per-employee batch run. Failures do not abort the batch."""

    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failures: List[BatchFailure] = []

    @property
    def ok(self) -> bool:
        return not self.failures
