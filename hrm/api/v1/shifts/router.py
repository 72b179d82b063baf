from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.auth.dependencies import get_current_user
from hrm.auth.rbac import APPROVERS, HR_ONLY, require_roles
from hrm.auth.schemas import CurrentUser
from hrm.core.exceptions import ServiceError
from hrm.db.session import get_db

from .schemas import (
    BulkScheduleCreate,
    BulkScheduleResult,
    ShiftAssignmentCreate,
    ShiftAssignmentResponse,
    ShiftUsageResponse,
    WorkScheduleCreate,
    WorkScheduleResponse,
    WorkShiftCreate,
    WorkShiftResponse,
    WorkShiftUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/shifts", tags=["shifts"])


@router.get("", response_model=List[WorkShiftResponse])
async def list_shifts(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[WorkShiftResponse]:
    return await service.list_shifts(db, active_only=active_only)


@router.post(
    "",
    response_model=WorkShiftResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def create_shift(
    payload: WorkShiftCreate,
    db: AsyncSession = Depends(get_db),
) -> WorkShiftResponse:
    try:
        return await service.create_shift(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# Assignment and schedule routes are declared before "/{shift_id}" so the path
# parameter does not swallow them.
@router.get(
    "/assignments",
    response_model=List[ShiftAssignmentResponse],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def list_assignments(
    employee_id: Optional[UUID] = None,
    on_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
) -> List[ShiftAssignmentResponse]:
    return await service.list_assignments(db, employee_id=employee_id, on_date=on_date)


@router.post(
    "/assignments",
    response_model=ShiftAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def create_assignment(
    payload: ShiftAssignmentCreate,
    db: AsyncSession = Depends(get_db),
) -> ShiftAssignmentResponse:
    """Assign a shift; the employee's previous open default assignment is closed the day before."""
    try:
        return await service.create_assignment(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def delete_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await service.delete_assignment(db, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/schedules", response_model=List[WorkScheduleResponse])
async def list_schedules(
    employee_id: Optional[UUID] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[WorkScheduleResponse]:
    """Employees see their own schedule; approvers may pass employee_id."""
    if current_user.role not in ("MANAGER", "HR_MANAGER", "ADMIN"):
        employee_id = current_user.id
    return await service.list_schedules(db, employee_id=employee_id, start=start, end=end)


@router.post(
    "/schedules",
    response_model=WorkScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def create_schedule(
    payload: WorkScheduleCreate,
    db: AsyncSession = Depends(get_db),
) -> WorkScheduleResponse:
    try:
        return await service.create_schedule(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/schedules/bulk",
    response_model=BulkScheduleResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def bulk_create_schedules(
    payload: BulkScheduleCreate,
    db: AsyncSession = Depends(get_db),
) -> BulkScheduleResult:
    try:
        return await service.bulk_create_schedules(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/schedules/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def delete_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await service.delete_schedule(db, schedule_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{shift_id}", response_model=WorkShiftResponse)
async def get_shift(
    shift_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WorkShiftResponse:
    try:
        return await service.get_shift(db, shift_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{shift_id}",
    response_model=WorkShiftResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def update_shift(
    shift_id: UUID,
    payload: WorkShiftUpdate,
    db: AsyncSession = Depends(get_db),
) -> WorkShiftResponse:
    try:
        return await service.update_shift(db, shift_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{shift_id}/usage",
    response_model=ShiftUsageResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def get_shift_usage(
    shift_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ShiftUsageResponse:
    """Whether the shift is referenced; use it to choose deactivate vs delete."""
    try:
        return await service.get_shift_usage(db, shift_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{shift_id}/deactivate",
    response_model=WorkShiftResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def deactivate_shift(
    shift_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> WorkShiftResponse:
    try:
        return await service.deactivate_shift(db, shift_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{shift_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def delete_shift(
    shift_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await service.delete_shift(db, shift_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
