from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from hrm.core.enums import ShiftStatus, ShiftType


def _validate_weekdays(v: Optional[List[int]]) -> Optional[List[int]]:
    if v is None:
        return v
    for d in v:
        if d < 1 or d > 7:
            raise ValueError("applicable_days must be ISO weekday numbers 1 (Mon) .. 7 (Sun)")
    return sorted(set(v))


# ----- Work Shift -----
class WorkShiftCreate(BaseModel):
    name: str = Field(..., max_length=100)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, max_length=500)
    shift_type: ShiftType = ShiftType.FIXED
    start_time: time
    end_time: time
    break_start_time: Optional[time] = None
    break_end_time: Optional[time] = None
    working_hours: int = Field(8, ge=0, le=24)
    is_night_shift: bool = False
    flexible_minutes: Optional[int] = Field(None, ge=0)
    allow_overtime: bool = True
    max_overtime_hours: Optional[int] = Field(None, ge=0)
    applicable_days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5, 6, 7])
    status: ShiftStatus = ShiftStatus.ACTIVE

    _days = field_validator("applicable_days")(_validate_weekdays)


class WorkShiftUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, max_length=500)
    shift_type: Optional[ShiftType] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    break_start_time: Optional[time] = None
    break_end_time: Optional[time] = None
    working_hours: Optional[int] = Field(None, ge=0, le=24)
    is_night_shift: Optional[bool] = None
    flexible_minutes: Optional[int] = Field(None, ge=0)
    allow_overtime: Optional[bool] = None
    max_overtime_hours: Optional[int] = Field(None, ge=0)
    applicable_days: Optional[List[int]] = None
    status: Optional[ShiftStatus] = None

    _days = field_validator("applicable_days")(_validate_weekdays)


class WorkShiftResponse(BaseModel):
    id: UUID
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    shift_type: str
    start_time: time
    end_time: time
    break_start_time: Optional[time] = None
    break_end_time: Optional[time] = None
    working_hours: int
    is_night_shift: bool
    flexible_minutes: Optional[int] = None
    allow_overtime: bool
    max_overtime_hours: Optional[int] = None
    applicable_days: List[int]
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ShiftUsageResponse(BaseModel):
    """Returned before removing a shift so the caller can choose deactivate vs delete."""

    shift_id: UUID
    is_referenced: bool
    assignment_count: int
    schedule_count: int
    attendance_count: int


# ----- Assignment -----
class ShiftAssignmentCreate(BaseModel):
    employee_id: UUID
    work_shift_id: UUID
    effective_from: date
    effective_to: Optional[date] = None
    is_default_shift: bool = True
    rotation_order: Optional[int] = None
    rotation_cycle_days: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=500)


class ShiftAssignmentResponse(BaseModel):
    id: UUID
    employee_id: UUID
    work_shift_id: UUID
    effective_from: date
    effective_to: Optional[date] = None
    is_default_shift: bool
    rotation_order: Optional[int] = None
    rotation_cycle_days: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ----- Schedule -----
class WorkScheduleCreate(BaseModel):
    employee_id: UUID
    work_shift_id: UUID
    work_date: date
    actual_start_time: Optional[time] = None
    actual_end_time: Optional[time] = None
    is_planned: bool = True
    project_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=500)


class BulkScheduleCreate(BaseModel):
    """Schedule one shift for several employees over a date range."""

    employee_ids: List[UUID] = Field(..., min_length=1)
    work_shift_id: UUID
    start_date: date
    end_date: date
    weekdays: Optional[List[int]] = Field(None, description="ISO weekdays; defaults to the shift's applicable days")
    skip_holidays: bool = True
    notes: Optional[str] = Field(None, max_length=500)

    _days = field_validator("weekdays")(_validate_weekdays)


class WorkScheduleResponse(BaseModel):
    id: UUID
    employee_id: UUID
    work_shift_id: UUID
    work_date: date
    actual_start_time: Optional[time] = None
    actual_end_time: Optional[time] = None
    is_planned: bool
    project_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BulkScheduleResult(BaseModel):
    created: int
    skipped_existing: int
    skipped_holidays: int
