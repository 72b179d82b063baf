"""Leave policies and per-year employee balances."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from hrm.db.session import Base


class LeavePolicy(Base):
    """Rules for one leave type. department_id / position_id null means the policy applies to all."""

    __tablename__ = "leave_policies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    leave_type = Column(String(30), nullable=False)
    annual_allowance_days = Column(Integer, nullable=False)
    max_carry_forward_days = Column(Integer, nullable=False, default=0)
    max_consecutive_days = Column(Integer, nullable=False, default=365)
    min_advance_notice_days = Column(Integer, nullable=False, default=1)
    requires_documentation = Column(Boolean, nullable=False, default=False)
    is_paid = Column(Boolean, nullable=False, default=True)
    department_id = Column(UUID(as_uuid=True), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    position_id = Column(UUID(as_uuid=True), ForeignKey("positions.id", ondelete="SET NULL"), nullable=True)
    min_tenure_months = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class EmployeeLeaveBalance(Base):
    """One row per (employee, policy, year). remaining_days is derived, never stored."""

    __tablename__ = "employee_leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_policy_id", "year", name="uq_leave_balance_employee_policy_year"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_policy_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leave_policies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    year = Column(Integer, nullable=False)
    allocated_days = Column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    used_days = Column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    carried_forward_days = Column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    adjustment_days = Column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def remaining_days(self) -> Decimal:
        return (
            Decimal(self.allocated_days or 0)
            + Decimal(self.carried_forward_days or 0)
            + Decimal(self.adjustment_days or 0)
            - Decimal(self.used_days or 0)
        )
