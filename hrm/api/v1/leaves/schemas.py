from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hrm.core.enums import LeaveStatus, LeaveType


# ----- Leave Policy -----
class LeavePolicyCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    leave_type: LeaveType
    annual_allowance_days: int = Field(..., ge=0)
    max_carry_forward_days: int = Field(0, ge=0)
    max_consecutive_days: int = Field(365, ge=1)
    min_advance_notice_days: int = Field(1, ge=0)
    requires_documentation: bool = False
    is_paid: bool = True
    department_id: Optional[UUID] = Field(None, description="Null applies to every department")
    position_id: Optional[UUID] = Field(None, description="Null applies to every position")
    min_tenure_months: int = Field(0, ge=0)
    is_active: bool = True
    effective_from: date
    effective_to: Optional[date] = None


class LeavePolicyUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    annual_allowance_days: Optional[int] = Field(None, ge=0)
    max_carry_forward_days: Optional[int] = Field(None, ge=0)
    max_consecutive_days: Optional[int] = Field(None, ge=1)
    min_advance_notice_days: Optional[int] = Field(None, ge=0)
    requires_documentation: Optional[bool] = None
    is_paid: Optional[bool] = None
    department_id: Optional[UUID] = None
    position_id: Optional[UUID] = None
    min_tenure_months: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None


class LeavePolicyResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    leave_type: str
    annual_allowance_days: int
    max_carry_forward_days: int
    max_consecutive_days: int
    min_advance_notice_days: int
    requires_documentation: bool
    is_paid: bool
    department_id: Optional[UUID] = None
    position_id: Optional[UUID] = None
    min_tenure_months: int
    is_active: bool
    effective_from: date
    effective_to: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PolicyUsageResponse(BaseModel):
    policy_id: UUID
    is_referenced: bool
    balance_count: int
    request_count: int


# ----- Balances -----
class LeaveBalanceResponse(BaseModel):
    id: UUID
    employee_id: UUID
    leave_policy_id: UUID
    year: int
    allocated_days: Decimal
    used_days: Decimal
    carried_forward_days: Decimal
    adjustment_days: Decimal
    remaining_days: Decimal

    class Config:
        from_attributes = True


class BalanceAdjust(BaseModel):
    employee_id: UUID
    leave_policy_id: UUID
    year: int = Field(..., ge=2000, le=2100)
    delta_days: Decimal = Field(..., description="May be negative")


class InitBalancesRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)


# ----- Leave Request -----
class LeaveRequestCreate(BaseModel):
    """Requested days are always recomputed server-side from the dates."""

    leave_policy_id: UUID
    start_date: date
    end_date: date
    reason: str = Field(..., min_length=1, max_length=2000)
    attachment_url: Optional[str] = Field(None, max_length=500, description="Object storage path")
    attachment_file_name: Optional[str] = Field(None, max_length=100)
    cover_employee_id: Optional[UUID] = None
    cover_notes: Optional[str] = Field(None, max_length=2000)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)
    emergency_contact_address: Optional[str] = Field(None, max_length=500)


class LeaveRequestUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=2000)
    attachment_url: Optional[str] = Field(None, max_length=500)
    attachment_file_name: Optional[str] = Field(None, max_length=100)
    cover_employee_id: Optional[UUID] = None
    cover_notes: Optional[str] = Field(None, max_length=2000)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)
    emergency_contact_address: Optional[str] = Field(None, max_length=500)


class LeaveRequestResponse(BaseModel):
    id: UUID
    employee_id: UUID
    leave_policy_id: UUID
    start_date: date
    end_date: date
    requested_days: Decimal
    reason: str
    attachment_url: Optional[str] = None
    attachment_file_name: Optional[str] = None
    cover_employee_id: Optional[UUID] = None
    cover_notes: Optional[str] = None
    status: str
    manager_comments: Optional[str] = None
    approved_by_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeaveRequestFilter(BaseModel):
    employee_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    status: Optional[LeaveStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class LeaveEligibilityResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    requested_days: Decimal


class RequestedDaysResponse(BaseModel):
    start_date: date
    end_date: date
    include_weekends: bool
    requested_days: Decimal


# ----- Approval -----
class LeaveCancel(BaseModel):
    remarks: Optional[str] = Field(None, max_length=2000)


class LeaveDecision(BaseModel):
    decision: Literal["APPROVED", "REJECTED"]
    comments: Optional[str] = Field(None, max_length=2000)


class WorkflowSetup(BaseModel):
    """Ordered approvers; step_order follows list position starting at 1."""

    approver_ids: List[UUID] = Field(..., min_length=1)


class WorkflowStepResponse(BaseModel):
    id: UUID
    leave_request_id: UUID
    approver_employee_id: UUID
    step_order: int
    status: str
    comments: Optional[str] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeaveAuditLogResponse(BaseModel):
    id: UUID
    leave_request_id: UUID
    action: str
    performed_by: Optional[UUID] = None
    performed_by_role: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LeaveProgressResult(BaseModel):
    started: int
    completed: int
