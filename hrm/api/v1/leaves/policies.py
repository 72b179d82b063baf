"""Leave policy CRUD and the scope rules that decide which employees a policy covers."""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.core.exceptions import BusinessRuleError, NotFoundError
from hrm.core.models import Employee, EmployeeLeaveBalance, LeavePolicy, LeaveRequest
from hrm.core.workdays import tenure_months_on

from .schemas import LeavePolicyCreate, LeavePolicyResponse, LeavePolicyUpdate, PolicyUsageResponse

logger = logging.getLogger(__name__)


def _policy_to_response(p: LeavePolicy) -> LeavePolicyResponse:
    return LeavePolicyResponse(
        id=p.id,
        name=p.name,
        description=p.description,
        leave_type=p.leave_type,
        annual_allowance_days=p.annual_allowance_days,
        max_carry_forward_days=p.max_carry_forward_days,
        max_consecutive_days=p.max_consecutive_days,
        min_advance_notice_days=p.min_advance_notice_days,
        requires_documentation=p.requires_documentation,
        is_paid=p.is_paid,
        department_id=p.department_id,
        position_id=p.position_id,
        min_tenure_months=p.min_tenure_months,
        is_active=p.is_active,
        effective_from=p.effective_from,
        effective_to=p.effective_to,
        created_at=p.created_at,
    )


def policy_in_scope(policy: LeavePolicy, employee: Employee) -> bool:
    """Null department/position on the policy means it applies to everyone."""
    if policy.department_id and policy.department_id != employee.department_id:
        return False
    if policy.position_id and policy.position_id != employee.position_id:
        return False
    return True


def policy_effective_during(policy: LeavePolicy, start: date, end: date) -> bool:
    if policy.effective_from > end:
        return False
    if policy.effective_to and policy.effective_to < start:
        return False
    return True


async def get_policy_or_404(db: AsyncSession, policy_id: UUID) -> LeavePolicy:
    p = await db.get(LeavePolicy, policy_id)
    if not p:
        raise NotFoundError("Leave policy not found")
    return p


async def list_policies(db: AsyncSession, active_only: bool = False) -> List[LeavePolicyResponse]:
    q = select(LeavePolicy)
    if active_only:
        q = q.where(LeavePolicy.is_active.is_(True))
    result = await db.execute(q.order_by(LeavePolicy.leave_type, LeavePolicy.name))
    return [_policy_to_response(p) for p in result.scalars().all()]


async def get_policy(db: AsyncSession, policy_id: UUID) -> LeavePolicyResponse:
    return _policy_to_response(await get_policy_or_404(db, policy_id))


async def list_applicable_policies(
    db: AsyncSession,
    employee_id: UUID,
    on: Optional[date] = None,
) -> List[LeavePolicyResponse]:
    """Active policies covering the employee's department, position and tenure on the given day."""
    on = on or date.today()
    employee = await db.get(Employee, employee_id)
    if not employee:
        raise NotFoundError("Employee not found")
    result = await db.execute(
        select(LeavePolicy).where(
            LeavePolicy.is_active.is_(True),
            LeavePolicy.effective_from <= on,
            or_(LeavePolicy.effective_to.is_(None), LeavePolicy.effective_to >= on),
        ).order_by(LeavePolicy.leave_type, LeavePolicy.name)
    )
    tenure = tenure_months_on(employee.hire_date, on)
    return [
        _policy_to_response(p)
        for p in result.scalars().all()
        if policy_in_scope(p, employee) and tenure >= p.min_tenure_months
    ]


async def create_policy(db: AsyncSession, payload: LeavePolicyCreate) -> LeavePolicyResponse:
    if payload.effective_to and payload.effective_to < payload.effective_from:
        raise BusinessRuleError("effective_to must be on or after effective_from")
    p = LeavePolicy(
        name=payload.name.strip(),
        description=payload.description,
        leave_type=payload.leave_type.value,
        annual_allowance_days=payload.annual_allowance_days,
        max_carry_forward_days=payload.max_carry_forward_days,
        max_consecutive_days=payload.max_consecutive_days,
        min_advance_notice_days=payload.min_advance_notice_days,
        requires_documentation=payload.requires_documentation,
        is_paid=payload.is_paid,
        department_id=payload.department_id,
        position_id=payload.position_id,
        min_tenure_months=payload.min_tenure_months,
        is_active=payload.is_active,
        effective_from=payload.effective_from,
        effective_to=payload.effective_to,
    )
    db.add(p)
    await db.commit()
    await db.refresh(p)
    return _policy_to_response(p)


async def update_policy(db: AsyncSession, policy_id: UUID, payload: LeavePolicyUpdate) -> LeavePolicyResponse:
    p = await get_policy_or_404(db, policy_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        data["name"] = data["name"].strip()
    for field, value in data.items():
        setattr(p, field, value)
    if p.effective_to and p.effective_to < p.effective_from:
        raise BusinessRuleError("effective_to must be on or after effective_from")
    await db.commit()
    await db.refresh(p)
    return _policy_to_response(p)


async def get_policy_usage(db: AsyncSession, policy_id: UUID) -> PolicyUsageResponse:
    await get_policy_or_404(db, policy_id)
    balances = (
        await db.execute(
            select(func.count()).select_from(EmployeeLeaveBalance).where(EmployeeLeaveBalance.leave_policy_id == policy_id)
        )
    ).scalar_one()
    requests = (
        await db.execute(select(func.count()).select_from(LeaveRequest).where(LeaveRequest.leave_policy_id == policy_id))
    ).scalar_one()
    return PolicyUsageResponse(
        policy_id=policy_id,
        is_referenced=bool(balances or requests),
        balance_count=balances,
        request_count=requests,
    )


async def deactivate_policy(db: AsyncSession, policy_id: UUID) -> LeavePolicyResponse:
    p = await get_policy_or_404(db, policy_id)
    p.is_active = False
    await db.commit()
    await db.refresh(p)
    return _policy_to_response(p)


async def delete_policy(db: AsyncSession, policy_id: UUID) -> None:
    """Hard delete. Policies with balances or requests must be deactivated instead."""
    p = await get_policy_or_404(db, policy_id)
    if (await get_policy_usage(db, policy_id)).is_referenced:
        raise BusinessRuleError("Leave policy is in use; deactivate it instead")
    await db.delete(p)
    await db.commit()
    logger.info("Leave policy %s deleted", policy_id)
