from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.api.v1.attendance.schemas import BatchResult
from hrm.auth.dependencies import get_current_user
from hrm.auth.rbac import APPROVERS, HR_ONLY, require_roles
from hrm.auth.schemas import CurrentUser
from hrm.core.enums import LeaveStatus
from hrm.core.exceptions import ServiceError
from hrm.db.session import get_db

from .schemas import (
    BalanceAdjust,
    InitBalancesRequest,
    LeaveCancel,
    LeaveAuditLogResponse,
    LeaveBalanceResponse,
    LeaveDecision,
    LeaveEligibilityResponse,
    LeavePolicyCreate,
    LeavePolicyResponse,
    LeavePolicyUpdate,
    LeaveProgressResult,
    LeaveRequestCreate,
    LeaveRequestFilter,
    LeaveRequestResponse,
    LeaveRequestUpdate,
    PolicyUsageResponse,
    RequestedDaysResponse,
    WorkflowSetup,
    WorkflowStepResponse,
)
from . import balances, policies, service

router = APIRouter(prefix="/api/v1/leaves", tags=["leaves"])


def _is_approver(user: CurrentUser) -> bool:
    return user.role in ("MANAGER", "HR_MANAGER", "ADMIN")


# ----- Policies -----

@router.get("/policies", response_model=List[LeavePolicyResponse])
async def list_policies(
    active_only: bool = True,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[LeavePolicyResponse]:
    return await policies.list_policies(db, active_only=active_only)


@router.get("/policies/applicable", response_model=List[LeavePolicyResponse])
async def list_applicable_policies(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[LeavePolicyResponse]:
    """Policies the current employee can request leave under today."""
    try:
        return await policies.list_applicable_policies(db, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/policies",
    response_model=LeavePolicyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def create_policy(
    payload: LeavePolicyCreate,
    db: AsyncSession = Depends(get_db),
) -> LeavePolicyResponse:
    try:
        return await policies.create_policy(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/policies/{policy_id}", response_model=LeavePolicyResponse)
async def get_policy(
    policy_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeavePolicyResponse:
    try:
        return await policies.get_policy(db, policy_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/policies/{policy_id}",
    response_model=LeavePolicyResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def update_policy(
    policy_id: UUID,
    payload: LeavePolicyUpdate,
    db: AsyncSession = Depends(get_db),
) -> LeavePolicyResponse:
    try:
        return await policies.update_policy(db, policy_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/policies/{policy_id}/usage",
    response_model=PolicyUsageResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def get_policy_usage(
    policy_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> PolicyUsageResponse:
    try:
        return await policies.get_policy_usage(db, policy_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/policies/{policy_id}/deactivate",
    response_model=LeavePolicyResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def deactivate_policy(
    policy_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> LeavePolicyResponse:
    try:
        return await policies.deactivate_policy(db, policy_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/policies/{policy_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def delete_policy(
    policy_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await policies.delete_policy(db, policy_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----- Balances -----

@router.get("/balances", response_model=List[LeaveBalanceResponse])
async def list_my_balances(
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[LeaveBalanceResponse]:
    try:
        return await balances.list_employee_balances(db, current_user.id, year=year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/balances/initialize",
    response_model=BatchResult,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def initialize_balances(
    payload: InitBalancesRequest,
    db: AsyncSession = Depends(get_db),
) -> BatchResult:
    """Fill missing balances for the year. Safe to rerun."""
    try:
        return await balances.initialize_leave_balances_for_year(db, payload.year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/balances/adjust",
    response_model=LeaveBalanceResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def adjust_balance(
    payload: BalanceAdjust,
    db: AsyncSession = Depends(get_db),
) -> LeaveBalanceResponse:
    try:
        return await balances.adjust_leave_balance(
            db, payload.employee_id, payload.leave_policy_id, payload.year, payload.delta_days
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/balances/{employee_id}",
    response_model=List[LeaveBalanceResponse],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def list_employee_balances(
    employee_id: UUID,
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
) -> List[LeaveBalanceResponse]:
    try:
        return await balances.list_employee_balances(db, employee_id, year=year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Rules -----

@router.get("/eligibility", response_model=LeaveEligibilityResponse)
async def check_eligibility(
    leave_policy_id: UUID,
    start_date: date,
    end_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeaveEligibilityResponse:
    """Whether the current employee may request this leave, and why not."""
    return await service.check_leave_eligibility(db, current_user.id, leave_policy_id, start_date, end_date)


@router.get("/requested-days", response_model=RequestedDaysResponse)
async def calculate_requested_days(
    start_date: date,
    end_date: date,
    include_weekends: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RequestedDaysResponse:
    days = await service.calculate_requested_days(db, start_date, end_date, include_weekends=include_weekends)
    return RequestedDaysResponse(
        start_date=start_date,
        end_date=end_date,
        include_weekends=include_weekends,
        requested_days=days,
    )


@router.post(
    "/sync-progress",
    response_model=LeaveProgressResult,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def sync_leave_progress(
    db: AsyncSession = Depends(get_db),
) -> LeaveProgressResult:
    return await service.sync_leave_progress(db)


# ----- Requests -----

@router.post("/requests", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    payload: LeaveRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeaveRequestResponse:
    """Apply for leave. Days are computed from the dates; the approver is resolved server-side."""
    try:
        return await service.create_leave_request(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/requests/my", response_model=List[LeaveRequestResponse])
async def list_my_leave_requests(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[LeaveRequestResponse]:
    return await service.list_leave_requests(
        db, LeaveRequestFilter(employee_id=current_user.id, status=status_filter)
    )


@router.get(
    "/requests/pending",
    response_model=List[LeaveRequestResponse],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def list_pending_approvals(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[LeaveRequestResponse]:
    """Requests waiting on the current user's approval step."""
    return await service.list_pending_approvals(db, current_user.id)


@router.get(
    "/requests",
    response_model=List[LeaveRequestResponse],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def list_leave_requests(
    employee_id: Optional[UUID] = None,
    department_id: Optional[UUID] = None,
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
) -> List[LeaveRequestResponse]:
    flt = LeaveRequestFilter(
        employee_id=employee_id,
        department_id=department_id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
    )
    return await service.list_leave_requests(db, flt)


@router.get("/requests/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeaveRequestResponse:
    try:
        req = await service.get_leave_request(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if req.employee_id != current_user.id and not _is_approver(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return req


@router.put("/requests/{request_id}", response_model=LeaveRequestResponse)
async def update_leave_request(
    request_id: UUID,
    payload: LeaveRequestUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeaveRequestResponse:
    try:
        return await service.update_leave_request(db, current_user, request_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/requests/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: UUID,
    payload: LeaveCancel,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeaveRequestResponse:
    try:
        return await service.cancel_leave_request(db, current_user, request_id, remarks=payload.remarks)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    try:
        await service.delete_leave_request(db, current_user, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/requests/{request_id}/decision",
    response_model=LeaveRequestResponse,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def process_leave_approval(
    request_id: UUID,
    payload: LeaveDecision,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LeaveRequestResponse:
    """Approve or reject the current user's pending step."""
    try:
        return await service.process_leave_approval(
            db, current_user, request_id, LeaveStatus(payload.decision), payload.comments
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/requests/{request_id}/workflow", response_model=List[WorkflowStepResponse])
async def list_workflow_steps(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[WorkflowStepResponse]:
    try:
        return await service.list_workflow_steps(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/requests/{request_id}/workflow",
    response_model=List[WorkflowStepResponse],
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def setup_approval_workflow(
    request_id: UUID,
    payload: WorkflowSetup,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[WorkflowStepResponse]:
    """Replace the approver chain of a request nobody has acted on."""
    try:
        return await service.setup_approval_workflow(db, current_user, request_id, payload.approver_ids)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/requests/{request_id}/audit",
    response_model=List[LeaveAuditLogResponse],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def list_audit_log(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[LeaveAuditLogResponse]:
    try:
        return await service.list_audit_log(db, request_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
