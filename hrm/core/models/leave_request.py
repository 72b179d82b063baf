"""Leave requests and their ordered approval steps."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from hrm.core.enums import LeaveStatus
from hrm.db.session import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_policy_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leave_policies.id", ondelete="RESTRICT"),
        nullable=False,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    requested_days = Column(Numeric(6, 2), nullable=False)
    reason = Column(Text, nullable=False)
    # Object storage path of the supporting document
    attachment_url = Column(String(500), nullable=True)
    attachment_file_name = Column(String(100), nullable=True)
    cover_employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    cover_notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=LeaveStatus.PENDING.value, index=True)
    manager_comments = Column(Text, nullable=True)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    emergency_contact_phone = Column(String(20), nullable=True)
    emergency_contact_address = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class LeaveApprovalWorkflow(Base):
    """One approver step. Steps are processed strictly in ascending step_order."""

    __tablename__ = "leave_approval_workflows"
    __table_args__ = (
        UniqueConstraint("leave_request_id", "step_order", name="uq_leave_workflow_request_order"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    leave_request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    approver_employee_id = Column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_order = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=LeaveStatus.PENDING.value)
    comments = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
