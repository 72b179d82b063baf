"""Leave requests: eligibility, conflicts, sequential approval workflow, cancel/delete and audit."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from hrm.api.v1.holidays.service import get_holiday_dates
from hrm.auth.schemas import CurrentUser
from hrm.core.enums import ACTIVE_LEAVE_STATUSES, DELETABLE_LEAVE_STATUSES, LeaveStatus
from hrm.core.exceptions import (
    OPERATION_FAILED_MESSAGE,
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from hrm.core.models import Employee, LeaveApprovalWorkflow, LeaveAuditLog, LeavePolicy, LeaveRequest
from hrm.core.workdays import count_requested_days

from .balances import book_used_days, get_balance
from .resolver import resolve_leave_approver
from .schemas import (
    LeaveAuditLogResponse,
    LeaveEligibilityResponse,
    LeaveProgressResult,
    LeaveRequestCreate,
    LeaveRequestFilter,
    LeaveRequestResponse,
    LeaveRequestUpdate,
    WorkflowStepResponse,
)

logger = logging.getLogger(__name__)

AUDIT_APPLIED = "APPLIED"
AUDIT_UPDATED = "UPDATED"
AUDIT_WORKFLOW_SET = "WORKFLOW_SET"
AUDIT_STEP_APPROVED = "STEP_APPROVED"
AUDIT_APPROVED = "APPROVED"
AUDIT_REJECTED = "REJECTED"
AUDIT_CANCELLED = "CANCELLED"


def request_to_response(r: LeaveRequest) -> LeaveRequestResponse:
    return LeaveRequestResponse(
        id=r.id,
        employee_id=r.employee_id,
        leave_policy_id=r.leave_policy_id,
        start_date=r.start_date,
        end_date=r.end_date,
        requested_days=r.requested_days,
        reason=r.reason,
        attachment_url=r.attachment_url,
        attachment_file_name=r.attachment_file_name,
        cover_employee_id=r.cover_employee_id,
        cover_notes=r.cover_notes,
        status=r.status,
        manager_comments=r.manager_comments,
        approved_by_id=r.approved_by_id,
        approved_at=r.approved_at,
        emergency_contact_phone=r.emergency_contact_phone,
        emergency_contact_address=r.emergency_contact_address,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _step_to_response(s: LeaveApprovalWorkflow) -> WorkflowStepResponse:
    return WorkflowStepResponse(
        id=s.id,
        leave_request_id=s.leave_request_id,
        approver_employee_id=s.approver_employee_id,
        step_order=s.step_order,
        status=s.status,
        comments=s.comments,
        processed_at=s.processed_at,
    )


async def _log_leave_audit(
    db: AsyncSession,
    leave_request_id: UUID,
    action: str,
    actor: Optional[CurrentUser],
    remarks: Optional[str] = None,
) -> None:
    entry = LeaveAuditLog(
        leave_request_id=leave_request_id,
        action=action,
        performed_by=actor.id if actor else None,
        performed_by_role=actor.role if actor else None,
        remarks=remarks,
    )
    db.add(entry)


async def _get_request_or_404(db: AsyncSession, request_id: UUID) -> LeaveRequest:
    req = await db.get(LeaveRequest, request_id)
    if not req:
        raise NotFoundError("Leave request not found")
    return req


# ----- Rules -----

async def calculate_requested_days(
    db: AsyncSession,
    start: date,
    end: date,
    include_weekends: bool = False,
) -> Decimal:
    """Days in [start, end] excluding weekends (unless included) and every active public holiday."""
    if start > end:
        return Decimal("0")
    holidays = await get_holiday_dates(db, start, end)
    return count_requested_days(start, end, holidays, include_weekends=include_weekends)


async def check_leave_eligibility(
    db: AsyncSession,
    employee_id: UUID,
    policy_id: UUID,
    start: date,
    end: date,
    today: Optional[date] = None,
) -> LeaveEligibilityResponse:
    """
    Checks, in order: policy active, employee exists, advance notice, max
    consecutive days, balance for the start year. The first failure wins.
    """
    today = today or date.today()
    requested = Decimal("0")

    def _deny(reason: str) -> LeaveEligibilityResponse:
        return LeaveEligibilityResponse(allowed=False, reason=reason, requested_days=requested)

    policy = await db.get(LeavePolicy, policy_id)
    if not policy or not policy.is_active:
        return _deny("Leave policy not found or inactive")
    if not await db.get(Employee, employee_id):
        return _deny("Employee not found")
    if end < start:
        return _deny("end_date must be on or after start_date")
    if (start - today).days < policy.min_advance_notice_days:
        return _deny(f"Leave must be requested at least {policy.min_advance_notice_days} day(s) in advance")

    requested = await calculate_requested_days(db, start, end)
    if requested > policy.max_consecutive_days:
        return _deny(f"Requested {requested} day(s) exceeds the maximum of {policy.max_consecutive_days} consecutive days")

    balance = await get_balance(db, employee_id, policy_id, start.year)
    if not balance:
        return _deny(f"No leave balance for {start.year}")
    if balance.remaining_days < requested:
        return _deny(f"Insufficient leave balance: {balance.remaining_days} remaining, {requested} requested")
    return LeaveEligibilityResponse(allowed=True, reason=None, requested_days=requested)


async def can_request_leave(
    db: AsyncSession,
    employee_id: UUID,
    policy_id: UUID,
    start: date,
    end: date,
    today: Optional[date] = None,
) -> bool:
    return (await check_leave_eligibility(db, employee_id, policy_id, start, end, today)).allowed


async def has_leave_conflict(
    db: AsyncSession,
    employee_id: UUID,
    start: date,
    end: date,
    exclude_id: Optional[UUID] = None,
) -> bool:
    """Any PENDING/APPROVED/IN_PROGRESS request of the employee overlapping [start, end] inclusive."""
    q = select(LeaveRequest.id).where(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_([s.value for s in ACTIVE_LEAVE_STATUSES]),
        LeaveRequest.start_date <= end,
        LeaveRequest.end_date >= start,
    )
    if exclude_id:
        q = q.where(LeaveRequest.id != exclude_id)
    return (await db.execute(q.limit(1))).scalar_one_or_none() is not None


# ----- Requests -----

async def create_leave_request(
    db: AsyncSession,
    actor: CurrentUser,
    payload: LeaveRequestCreate,
    employee_id: Optional[UUID] = None,
    today: Optional[date] = None,
) -> LeaveRequestResponse:
    """Validate, insert as PENDING and seed the approval workflow with the resolved approver."""
    employee_id = employee_id or actor.id
    eligibility = await check_leave_eligibility(
        db, employee_id, payload.leave_policy_id, payload.start_date, payload.end_date, today
    )
    if not eligibility.allowed:
        raise BusinessRuleError(f"Leave request cannot be processed: {eligibility.reason}")
    if await has_leave_conflict(db, employee_id, payload.start_date, payload.end_date):
        raise BusinessRuleError("Leave request conflicts with an existing leave request")

    employee = await db.get(Employee, employee_id)
    req = LeaveRequest(
        employee_id=employee_id,
        leave_policy_id=payload.leave_policy_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        requested_days=eligibility.requested_days,
        reason=payload.reason.strip(),
        attachment_url=payload.attachment_url,
        attachment_file_name=payload.attachment_file_name,
        cover_employee_id=payload.cover_employee_id,
        cover_notes=payload.cover_notes,
        status=LeaveStatus.PENDING.value,
        emergency_contact_phone=payload.emergency_contact_phone,
        emergency_contact_address=payload.emergency_contact_address,
    )
    db.add(req)
    await db.flush()

    approver_id = await resolve_leave_approver(db, employee)
    if approver_id:
        db.add(
            LeaveApprovalWorkflow(
                leave_request_id=req.id,
                approver_employee_id=approver_id,
                step_order=1,
                status=LeaveStatus.PENDING.value,
            )
        )
    else:
        logger.warning("Leave request %s has no approver; an approval workflow must be set up", req.id)

    await _log_leave_audit(db, req.id, AUDIT_APPLIED, actor)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Leave request conflicts with an existing leave request") from e
    except Exception as e:
        await db.rollback()
        logger.exception("Creating leave request for employee %s failed", employee_id)
        raise ServiceError(OPERATION_FAILED_MESSAGE) from e
    await db.refresh(req)
    logger.info("Leave request %s created for employee %s (%s days)", req.id, employee_id, req.requested_days)
    return request_to_response(req)


async def update_leave_request(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
    payload: LeaveRequestUpdate,
    today: Optional[date] = None,
) -> LeaveRequestResponse:
    """
    Owner edits a PENDING request. Changed dates go through the same eligibility
    and conflict checks as a new request and are re-counted.
    """
    req = await _get_request_or_404(db, request_id)
    if req.employee_id != actor.id:
        raise PermissionDeniedError("Only the requester can update this leave request")
    if req.status != LeaveStatus.PENDING.value:
        raise BusinessRuleError("Only PENDING leave requests can be updated")

    data = payload.model_dump(exclude_unset=True)
    start = data.pop("start_date", None) or req.start_date
    end = data.pop("end_date", None) or req.end_date
    if end < start:
        raise BusinessRuleError("end_date must be on or after start_date")
    if (start, end) != (req.start_date, req.end_date):
        # PENDING days are not booked yet, so the balance is checked as is
        eligibility = await check_leave_eligibility(db, req.employee_id, req.leave_policy_id, start, end, today)
        if not eligibility.allowed:
            raise BusinessRuleError(f"Leave request cannot be processed: {eligibility.reason}")
        if await has_leave_conflict(db, req.employee_id, start, end, exclude_id=req.id):
            raise BusinessRuleError("Leave request conflicts with an existing leave request")
        req.start_date = start
        req.end_date = end
        req.requested_days = eligibility.requested_days
    if data.get("reason"):
        data["reason"] = data["reason"].strip()
    for field, value in data.items():
        setattr(req, field, value)

    await _log_leave_audit(db, req.id, AUDIT_UPDATED, actor)
    await db.commit()
    await db.refresh(req)
    return request_to_response(req)


async def get_leave_request(db: AsyncSession, request_id: UUID) -> LeaveRequestResponse:
    return request_to_response(await _get_request_or_404(db, request_id))


async def list_leave_requests(db: AsyncSession, flt: LeaveRequestFilter) -> List[LeaveRequestResponse]:
    q = select(LeaveRequest)
    if flt.department_id:
        q = q.join(Employee, Employee.id == LeaveRequest.employee_id).where(Employee.department_id == flt.department_id)
    if flt.employee_id:
        q = q.where(LeaveRequest.employee_id == flt.employee_id)
    if flt.status:
        q = q.where(LeaveRequest.status == flt.status.value)
    if flt.start_date:
        q = q.where(LeaveRequest.end_date >= flt.start_date)
    if flt.end_date:
        q = q.where(LeaveRequest.start_date <= flt.end_date)
    result = await db.execute(q.order_by(LeaveRequest.start_date.desc()))
    return [request_to_response(r) for r in result.scalars().all()]


async def cancel_leave_request(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
    remarks: Optional[str] = None,
) -> LeaveRequestResponse:
    """
    Requester cancels anything not COMPLETED. Days already booked by an APPROVED
    or IN_PROGRESS request go back to the balance; open steps are closed.
    """
    req = await _get_request_or_404(db, request_id)
    if req.employee_id != actor.id:
        raise PermissionDeniedError("Only the requester can cancel this leave request")
    if req.status == LeaveStatus.COMPLETED.value:
        raise BusinessRuleError("Completed leave cannot be cancelled")
    if req.status == LeaveStatus.CANCELLED.value:
        raise BusinessRuleError("Leave request is already cancelled")

    if req.status in (LeaveStatus.APPROVED.value, LeaveStatus.IN_PROGRESS.value):
        await book_used_days(db, req, sign=-1)
    await db.execute(
        update(LeaveApprovalWorkflow)
        .where(
            LeaveApprovalWorkflow.leave_request_id == req.id,
            LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
        )
        .values(status=LeaveStatus.CANCELLED.value, processed_at=datetime.utcnow())
    )
    req.status = LeaveStatus.CANCELLED.value
    await _log_leave_audit(db, req.id, AUDIT_CANCELLED, actor, remarks=remarks)
    await db.commit()
    await db.refresh(req)
    logger.info("Leave request %s cancelled by %s", req.id, actor.id)
    return request_to_response(req)


async def delete_leave_request(db: AsyncSession, actor: CurrentUser, request_id: UUID) -> None:
    """Only PENDING, REJECTED or CANCELLED requests are removed; others keep their history."""
    req = await _get_request_or_404(db, request_id)
    if req.employee_id != actor.id and not actor.is_hr:
        raise PermissionDeniedError("Only the requester or HR can delete this leave request")
    if req.status not in [s.value for s in DELETABLE_LEAVE_STATUSES]:
        raise BusinessRuleError(f"Leave request with status {req.status} cannot be deleted")
    await db.execute(delete(LeaveApprovalWorkflow).where(LeaveApprovalWorkflow.leave_request_id == req.id))
    await db.execute(delete(LeaveAuditLog).where(LeaveAuditLog.leave_request_id == req.id))
    await db.delete(req)
    await db.commit()
    logger.info("Leave request %s deleted by %s", request_id, actor.id)


# ----- Workflow -----

async def list_workflow_steps(db: AsyncSession, request_id: UUID) -> List[WorkflowStepResponse]:
    await _get_request_or_404(db, request_id)
    result = await db.execute(
        select(LeaveApprovalWorkflow)
        .where(LeaveApprovalWorkflow.leave_request_id == request_id)
        .order_by(LeaveApprovalWorkflow.step_order)
    )
    return [_step_to_response(s) for s in result.scalars().all()]


async def setup_approval_workflow(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
    approver_ids: List[UUID],
) -> List[WorkflowStepResponse]:
    """Replace the steps of a PENDING request nobody has acted on yet."""
    req = await _get_request_or_404(db, request_id)
    if req.status != LeaveStatus.PENDING.value:
        raise BusinessRuleError("Approval workflow can only be set on PENDING leave requests")
    if len(set(approver_ids)) != len(approver_ids):
        raise BusinessRuleError("An approver may appear only once in the workflow")
    processed = await db.execute(
        select(LeaveApprovalWorkflow.id).where(
            LeaveApprovalWorkflow.leave_request_id == req.id,
            LeaveApprovalWorkflow.status != LeaveStatus.PENDING.value,
        ).limit(1)
    )
    if processed.scalar_one_or_none():
        raise BusinessRuleError("Approval workflow has already been acted on")
    for approver_id in approver_ids:
        if not await db.get(Employee, approver_id):
            raise NotFoundError(f"Approver {approver_id} not found")

    await db.execute(delete(LeaveApprovalWorkflow).where(LeaveApprovalWorkflow.leave_request_id == req.id))
    for order, approver_id in enumerate(approver_ids, start=1):
        db.add(
            LeaveApprovalWorkflow(
                leave_request_id=req.id,
                approver_employee_id=approver_id,
                step_order=order,
                status=LeaveStatus.PENDING.value,
            )
        )
    await _log_leave_audit(db, req.id, AUDIT_WORKFLOW_SET, actor, remarks=f"{len(approver_ids)} step(s)")
    await db.commit()
    return await list_workflow_steps(db, req.id)


async def _current_step(db: AsyncSession, request_id: UUID) -> Optional[LeaveApprovalWorkflow]:
    result = await db.execute(
        select(LeaveApprovalWorkflow)
        .where(
            LeaveApprovalWorkflow.leave_request_id == request_id,
            LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
        )
        .order_by(LeaveApprovalWorkflow.step_order)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def process_leave_approval(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
    decision: LeaveStatus,
    comments: Optional[str] = None,
) -> LeaveRequestResponse:
    """
    Act on the approver's PENDING step. Steps run strictly in order; the step is
    claimed with a conditional update so two decisions cannot both land.
    Rejection ends the workflow. The last approval books the days on the balance.
    """
    if decision not in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
        raise BusinessRuleError("Decision must be APPROVED or REJECTED")
    req = await _get_request_or_404(db, request_id)

    step = (
        await db.execute(
            select(LeaveApprovalWorkflow).where(
                LeaveApprovalWorkflow.leave_request_id == request_id,
                LeaveApprovalWorkflow.approver_employee_id == actor.id,
                LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
            )
        )
    ).scalars().first()
    if not step:
        raise NotFoundError("Approval step not found or already processed")
    if req.status != LeaveStatus.PENDING.value:
        raise BusinessRuleError(f"Leave request is {req.status} and can no longer be processed")
    current = await _current_step(db, request_id)
    if current is None or current.id != step.id:
        raise BusinessRuleError("An earlier approval step is still pending")

    now = datetime.utcnow()
    step_order = step.step_order
    claimed = await db.execute(
        update(LeaveApprovalWorkflow)
        .where(
            LeaveApprovalWorkflow.id == step.id,
            LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
        )
        .values(status=decision.value, comments=comments, processed_at=now)
    )
    if claimed.rowcount != 1:
        await db.rollback()
        raise ConflictError("Approval step was processed concurrently")

    if decision == LeaveStatus.REJECTED:
        await db.execute(
            update(LeaveApprovalWorkflow)
            .where(
                LeaveApprovalWorkflow.leave_request_id == req.id,
                LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
            )
            .values(status=LeaveStatus.CANCELLED.value, processed_at=now)
        )
        req.status = LeaveStatus.REJECTED.value
        req.manager_comments = comments
        req.approved_by_id = actor.id
        req.approved_at = now
        await _log_leave_audit(db, req.id, AUDIT_REJECTED, actor, remarks=comments)
    else:
        next_step = (
            await db.execute(
                select(LeaveApprovalWorkflow.id).where(
                    LeaveApprovalWorkflow.leave_request_id == req.id,
                    LeaveApprovalWorkflow.step_order > step_order,
                    LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
                ).limit(1)
            )
        ).scalar_one_or_none()
        if next_step:
            await _log_leave_audit(db, req.id, AUDIT_STEP_APPROVED, actor, remarks=comments)
        else:
            req.status = LeaveStatus.APPROVED.value
            req.manager_comments = comments
            req.approved_by_id = actor.id
            req.approved_at = now
            await book_used_days(db, req, sign=1)
            await _log_leave_audit(db, req.id, AUDIT_APPROVED, actor, remarks=comments)

    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("Processing approval step %s of leave request %s failed", step_order, req.id)
        raise ServiceError(OPERATION_FAILED_MESSAGE) from e
    await db.refresh(req)
    logger.info("Leave request %s: step %s %s by %s; request now %s", req.id, step_order, decision.value, actor.id, req.status)
    return request_to_response(req)


async def list_pending_approvals(db: AsyncSession, approver_id: UUID) -> List[LeaveRequestResponse]:
    """PENDING requests whose current (lowest pending) step belongs to the approver."""
    earlier = aliased(LeaveApprovalWorkflow)
    earlier_pending = (
        select(earlier.id)
        .where(
            earlier.leave_request_id == LeaveApprovalWorkflow.leave_request_id,
            earlier.status == LeaveStatus.PENDING.value,
            earlier.step_order < LeaveApprovalWorkflow.step_order,
        )
        .exists()
    )
    result = await db.execute(
        select(LeaveRequest)
        .join(LeaveApprovalWorkflow, LeaveApprovalWorkflow.leave_request_id == LeaveRequest.id)
        .where(
            LeaveRequest.status == LeaveStatus.PENDING.value,
            LeaveApprovalWorkflow.approver_employee_id == approver_id,
            LeaveApprovalWorkflow.status == LeaveStatus.PENDING.value,
            ~earlier_pending,
        )
        .order_by(LeaveRequest.start_date)
    )
    return [request_to_response(r) for r in result.scalars().all()]


async def list_audit_log(db: AsyncSession, request_id: UUID) -> List[LeaveAuditLogResponse]:
    await _get_request_or_404(db, request_id)
    result = await db.execute(
        select(LeaveAuditLog)
        .where(LeaveAuditLog.leave_request_id == request_id)
        .order_by(LeaveAuditLog.created_at)
    )
    return [LeaveAuditLogResponse.model_validate(e) for e in result.scalars().all()]


# ----- Lifecycle -----

async def sync_leave_progress(db: AsyncSession, today: Optional[date] = None) -> LeaveProgressResult:
    """APPROVED requests that have started become IN_PROGRESS; those that have ended become COMPLETED."""
    today = today or date.today()
    completed = await db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.status.in_([LeaveStatus.APPROVED.value, LeaveStatus.IN_PROGRESS.value]),
            LeaveRequest.end_date < today,
        )
        .values(status=LeaveStatus.COMPLETED.value)
    )
    started = await db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.status == LeaveStatus.APPROVED.value,
            LeaveRequest.start_date <= today,
            LeaveRequest.end_date >= today,
        )
        .values(status=LeaveStatus.IN_PROGRESS.value)
    )
    await db.commit()
    result = LeaveProgressResult(started=started.rowcount, completed=completed.rowcount)
    logger.info("Leave progress synced for %s: started=%s completed=%s", today, result.started, result.completed)
    return result
