"""Work shifts, shift assignments and per-day schedules."""

import uuid
from datetime import datetime
from typing import Set

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from hrm.core.enums import ShiftStatus, ShiftType
from hrm.db.session import Base

ALL_WEEKDAYS = [1, 2, 3, 4, 5, 6, 7]  # ISO weekday numbers, Monday=1


class WorkShift(Base):
    __tablename__ = "work_shifts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=True, unique=True)
    description = Column(String(500), nullable=True)
    shift_type = Column(String(20), nullable=False, default=ShiftType.FIXED.value)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    break_start_time = Column(Time, nullable=True)
    break_end_time = Column(Time, nullable=True)
    working_hours = Column(Integer, nullable=False, default=8)
    # Ends on the following calendar day
    is_night_shift = Column(Boolean, nullable=False, default=False)
    # Grace period applied to both check-in and check-out
    flexible_minutes = Column(Integer, nullable=True)
    allow_overtime = Column(Boolean, nullable=False, default=True)
    max_overtime_hours = Column(Integer, nullable=True)
    applicable_days = Column(JSON, nullable=False, default=lambda: list(ALL_WEEKDAYS))
    status = Column(String(20), nullable=False, default=ShiftStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def applicable_weekdays(self) -> Set[int]:
        return set(self.applicable_days or ALL_WEEKDAYS)


class EmployeeShiftAssignment(Base):
    """Links an employee to a shift for an effective range. is_default_shift is the check-in fallback."""

    __tablename__ = "employee_shift_assignments"
    __table_args__ = (
        UniqueConstraint("employee_id", "work_shift_id", "effective_from", name="uq_shift_assignment_employee_shift_from"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    work_shift_id = Column(UUID(as_uuid=True), ForeignKey("work_shifts.id", ondelete="RESTRICT"), nullable=False)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)
    is_default_shift = Column(Boolean, nullable=False, default=False)
    rotation_order = Column(Integer, nullable=True)
    rotation_cycle_days = Column(Integer, nullable=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class WorkSchedule(Base):
    """Planned work date for an employee. One row per (employee, work_date)."""

    __tablename__ = "work_schedules"
    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_work_schedule_employee_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    work_shift_id = Column(UUID(as_uuid=True), ForeignKey("work_shifts.id", ondelete="RESTRICT"), nullable=False)
    work_date = Column(Date, nullable=False)
    actual_start_time = Column(Time, nullable=True)
    actual_end_time = Column(Time, nullable=True)
    is_planned = Column(Boolean, nullable=False, default=True)
    project_id = Column(UUID(as_uuid=True), nullable=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
