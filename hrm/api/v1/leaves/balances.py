"""Leave balances: yearly initialization with carry-forward, adjustments and usage bookkeeping."""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.api.v1.attendance.schemas import BatchFailure, BatchResult
from hrm.core.enums import EmployeeStatus
from hrm.core.exceptions import ConflictError, NotFoundError
from hrm.core.models import Employee, EmployeeLeaveBalance, LeavePolicy, LeaveRequest
from hrm.core.workdays import tenure_months_for_year

from .policies import policy_effective_during, policy_in_scope
from .schemas import LeaveBalanceResponse

logger = logging.getLogger(__name__)


def balance_to_response(b: EmployeeLeaveBalance) -> LeaveBalanceResponse:
    return LeaveBalanceResponse(
        id=b.id,
        employee_id=b.employee_id,
        leave_policy_id=b.leave_policy_id,
        year=b.year,
        allocated_days=b.allocated_days,
        used_days=b.used_days,
        carried_forward_days=b.carried_forward_days,
        adjustment_days=b.adjustment_days,
        remaining_days=b.remaining_days,
    )


async def get_balance(
    db: AsyncSession,
    employee_id: UUID,
    policy_id: UUID,
    year: int,
) -> Optional[EmployeeLeaveBalance]:
    result = await db.execute(
        select(EmployeeLeaveBalance).where(
            EmployeeLeaveBalance.employee_id == employee_id,
            EmployeeLeaveBalance.leave_policy_id == policy_id,
            EmployeeLeaveBalance.year == year,
        )
    )
    return result.scalar_one_or_none()


async def list_employee_balances(
    db: AsyncSession,
    employee_id: UUID,
    year: Optional[int] = None,
) -> List[LeaveBalanceResponse]:
    if not await db.get(Employee, employee_id):
        raise NotFoundError("Employee not found")
    q = select(EmployeeLeaveBalance).where(EmployeeLeaveBalance.employee_id == employee_id)
    if year:
        q = q.where(EmployeeLeaveBalance.year == year)
    result = await db.execute(q.order_by(EmployeeLeaveBalance.year.desc()))
    return [balance_to_response(b) for b in result.scalars().all()]


async def adjust_leave_balance(
    db: AsyncSession,
    employee_id: UUID,
    policy_id: UUID,
    year: int,
    delta_days: Decimal,
) -> LeaveBalanceResponse:
    """Add delta (possibly negative) to adjustment_days of an existing balance."""
    balance = await get_balance(db, employee_id, policy_id, year)
    if not balance:
        raise NotFoundError("Leave balance not found for this employee, policy and year")
    balance.adjustment_days = (balance.adjustment_days or Decimal("0")) + Decimal(delta_days)
    await db.commit()
    await db.refresh(balance)
    logger.info(
        "Leave balance adjusted: employee=%s policy=%s year=%s delta=%s",
        employee_id, policy_id, year, delta_days,
    )
    return balance_to_response(balance)


async def book_used_days(db: AsyncSession, request: LeaveRequest, sign: int = 1) -> bool:
    """
    Move the request's days into (sign=1) or out of (sign=-1) used_days on the
    balance for the request's start year. Does not commit.
    """
    year = request.start_date.year
    balance = await get_balance(db, request.employee_id, request.leave_policy_id, year)
    if not balance:
        logger.warning(
            "No leave balance for employee=%s policy=%s year=%s; used days not booked for request %s",
            request.employee_id, request.leave_policy_id, year, request.id,
        )
        return False
    balance.used_days = (balance.used_days or Decimal("0")) + sign * Decimal(request.requested_days)
    return True


def _carry_forward(previous: Optional[EmployeeLeaveBalance], cap: int) -> Decimal:
    if not previous:
        return Decimal("0")
    return min(previous.remaining_days, Decimal(cap))


async def initialize_leave_balances_for_year(db: AsyncSession, year: int) -> BatchResult:
    """
    Create missing balance rows for every active employee and every policy that
    applies to them in `year`. Existing rows are left untouched, so reruns only
    fill gaps. Carry-forward is the previous year's remaining days, capped by the
    policy.
    """
    year_start, year_end = date(year, 1, 1), date(year, 12, 31)
    employees = (
        await db.execute(select(Employee).where(Employee.status == EmployeeStatus.ACTIVE.value).order_by(Employee.employee_code))
    ).scalars().all()
    policies = [
        p for p in (await db.execute(select(LeavePolicy).where(LeavePolicy.is_active.is_(True)))).scalars().all()
        if policy_effective_during(p, year_start, year_end)
    ]

    existing_rows = await db.execute(
        select(EmployeeLeaveBalance.employee_id, EmployeeLeaveBalance.leave_policy_id).where(
            EmployeeLeaveBalance.year == year
        )
    )
    existing = {(e, p) for e, p in existing_rows.all()}
    previous_rows = await db.execute(select(EmployeeLeaveBalance).where(EmployeeLeaveBalance.year == year - 1))
    previous: Dict[Tuple[UUID, UUID], EmployeeLeaveBalance] = {
        (b.employee_id, b.leave_policy_id): b for b in previous_rows.scalars().all()
    }

    outcome = BatchResult()
    for employee in employees:
        outcome.processed += 1
        try:
            tenure = tenure_months_for_year(employee.hire_date, year)
            for policy in policies:
                if not policy_in_scope(policy, employee) or tenure < policy.min_tenure_months:
                    continue
                if (employee.id, policy.id) in existing:
                    outcome.skipped += 1
                    continue
                db.add(
                    EmployeeLeaveBalance(
                        employee_id=employee.id,
                        leave_policy_id=policy.id,
                        year=year,
                        allocated_days=Decimal(policy.annual_allowance_days),
                        used_days=Decimal("0"),
                        carried_forward_days=_carry_forward(
                            previous.get((employee.id, policy.id)), policy.max_carry_forward_days
                        ),
                        adjustment_days=Decimal("0"),
                    )
                )
                existing.add((employee.id, policy.id))
                outcome.created += 1
        except Exception as e:
            logger.exception("Balance initialization for %s failed for employee %s", year, employee.id)
            outcome.failures.append(BatchFailure(employee_id=employee.id, error=str(e)))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Leave balances were initialized concurrently; retry")
    logger.info(
        "Leave balances %s: employees=%s created=%s skipped=%s failed=%s",
        year, outcome.processed, outcome.created, outcome.skipped, len(outcome.failures),
    )
    return outcome
