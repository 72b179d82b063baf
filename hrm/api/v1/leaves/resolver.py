"""
Resolve who approves a new leave request.

Direct manager first. An employee without one (or whose manager has left)
falls back to the first active HR manager, so the request is never created
with an empty workflow while HR exists.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.core.enums import EmployeeStatus, Role
from hrm.core.models import Employee

logger = logging.getLogger(__name__)


async def resolve_leave_approver(db: AsyncSession, employee: Employee) -> Optional[UUID]:
    """Return the approver's employee id, or None when nobody can be assigned."""
    if employee.direct_manager_id:
        manager = await db.get(Employee, employee.direct_manager_id)
        if manager and manager.status != EmployeeStatus.TERMINATED.value:
            return manager.id
        logger.info("Direct manager of employee %s is unavailable; using HR fallback", employee.id)

    r = await db.execute(
        select(Employee.id)
        .where(
            Employee.role == Role.HR_MANAGER.value,
            Employee.status == EmployeeStatus.ACTIVE.value,
            Employee.id != employee.id,
        )
        .order_by(Employee.employee_code)
        .limit(1)
    )
    return r.scalar_one_or_none()
