"""Daily attendance rows, their punch audit trail, and monthly rollups."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from hrm.db.session import Base


class Attendance(Base):
    """One row per employee per calendar date."""

    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)
    work_shift_id = Column(UUID(as_uuid=True), ForeignKey("work_shifts.id", ondelete="RESTRICT"), nullable=False)

    # Wall-clock timestamps, compared against the shift's time of day
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    break_start_time = Column(DateTime, nullable=True)
    break_end_time = Column(DateTime, nullable=True)

    check_in_latitude = Column(Float, nullable=True)
    check_in_longitude = Column(Float, nullable=True)
    check_out_latitude = Column(Float, nullable=True)
    check_out_longitude = Column(Float, nullable=True)
    check_in_location = Column(String(500), nullable=True)
    check_out_location = Column(String(500), nullable=True)
    # Object storage paths
    check_in_photo_url = Column(String(500), nullable=True)
    check_out_photo_url = Column(String(500), nullable=True)

    total_working_minutes = Column(Integer, nullable=True)
    break_minutes = Column(Integer, nullable=True)
    late_minutes = Column(Integer, nullable=True)
    early_leave_minutes = Column(Integer, nullable=True)
    overtime_minutes = Column(Integer, nullable=True)

    # ON_TIME, LATE, EARLY, OVERTIME, NO_SHOW, APPROVED
    status = Column(String(20), nullable=True)
    # Rule-derived status; survives a manager approval overwriting status
    computed_status = Column(String(20), nullable=True)

    notes = Column(String(1000), nullable=True)
    manager_notes = Column(String(1000), nullable=True)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AttendanceDetail(Base):
    """Append-only punch event. Never updated after insert."""

    __tablename__ = "attendance_details"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    attendance_id = Column(
        UUID(as_uuid=True),
        ForeignKey("attendances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    punch_type = Column(String(20), nullable=False)  # CHECK_IN, CHECK_OUT, BREAK_START, BREAK_END
    timestamp = Column(DateTime, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location = Column(String(500), nullable=True)
    device_id = Column(String(100), nullable=True)
    device_type = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)
    photo_url = Column(String(500), nullable=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class AttendanceSummary(Base):
    """Monthly rollup, regenerated wholesale by the summary batch."""

    __tablename__ = "attendance_summaries"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", "month", name="uq_attendance_summary_employee_month"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    total_working_days = Column(Integer, nullable=False, default=0)
    actual_working_days = Column(Integer, nullable=False, default=0)
    absent_days = Column(Integer, nullable=False, default=0)
    late_days = Column(Integer, nullable=False, default=0)
    early_leave_days = Column(Integer, nullable=False, default=0)

    total_working_minutes = Column(Integer, nullable=False, default=0)
    standard_working_minutes = Column(Integer, nullable=False, default=0)
    overtime_minutes = Column(Integer, nullable=False, default=0)
    late_minutes = Column(Integer, nullable=False, default=0)
    early_leave_minutes = Column(Integer, nullable=False, default=0)

    vacation_days = Column(Integer, nullable=False, default=0)
    sick_leave_days = Column(Integer, nullable=False, default=0)
    personal_leave_days = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
