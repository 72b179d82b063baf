from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.auth.dependencies import get_current_user
from hrm.auth.rbac import APPROVERS, HR_ONLY, require_roles
from hrm.auth.schemas import CurrentUser
from hrm.core.enums import AttendanceStatus, PunchType
from hrm.core.exceptions import ServiceError
from hrm.db.session import get_db

from .schemas import (
    AttendanceApprove,
    AttendanceApproveResult,
    AttendanceDetailResponse,
    AttendanceFilter,
    AttendanceResponse,
    AttendanceReview,
    AttendanceStatusResponse,
    AttendanceSummaryResponse,
    BatchResult,
    BreakRequest,
    CheckInRequest,
    CheckOutRequest,
    GenerateSummaryRequest,
    PunchContext,
    TodayStatusResponse,
    WorkingMinutesResponse,
)
from . import service, summary

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


def _punch_context(payload: PunchContext) -> PunchContext:
    return PunchContext(**payload.model_dump(include=set(PunchContext.model_fields)))


def _is_approver(user: CurrentUser) -> bool:
    return user.role in ("MANAGER", "HR_MANAGER", "ADMIN")


# ----- Punches (current employee) -----

@router.post("/check-in", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def check_in(
    payload: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    try:
        return await service.check_in(db, current_user.id, payload.time, _punch_context(payload))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/check-out", response_model=AttendanceResponse)
async def check_out(
    payload: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    try:
        return await service.check_out(db, current_user.id, payload.time, _punch_context(payload))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/break", response_model=AttendanceResponse)
async def record_break(
    payload: BreakRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    try:
        return await service.record_break(
            db, current_user.id, PunchType(payload.type), payload.time, _punch_context(payload)
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/today", response_model=TodayStatusResponse)
async def get_today(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TodayStatusResponse:
    return await service.get_today_attendance(db, current_user.id)


# ----- Records -----

@router.get("", response_model=List[AttendanceResponse])
async def list_attendances(
    employee_id: Optional[UUID] = None,
    department_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status_filter: Optional[AttendanceStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AttendanceResponse]:
    """Approvers see any employee; others only their own records."""
    if not _is_approver(current_user):
        employee_id = current_user.id
        department_id = None
    flt = AttendanceFilter(
        employee_id=employee_id,
        department_id=department_id,
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return await service.list_attendances(db, flt)


@router.post(
    "/approve",
    response_model=AttendanceApproveResult,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def approve_attendances(
    payload: AttendanceApprove,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceApproveResult:
    return await service.approve_attendances(db, payload.attendance_ids, current_user, payload.notes)


# ----- Monthly summaries -----

@router.post(
    "/summaries/generate",
    response_model=BatchResult,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def generate_monthly_summary(
    payload: GenerateSummaryRequest,
    db: AsyncSession = Depends(get_db),
) -> BatchResult:
    return await summary.generate_monthly_summary(db, payload.year, payload.month)


@router.get(
    "/summaries",
    response_model=List[AttendanceSummaryResponse],
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def list_department_summaries(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    department_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
) -> List[AttendanceSummaryResponse]:
    return await summary.list_department_summaries(db, year, month, department_id=department_id)


@router.get(
    "/summaries/export",
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def export_monthly_summaries(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    department_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the month's summaries as an Excel workbook."""
    content = await summary.export_monthly_summaries(db, year, month, department_id=department_id)
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=attendance_summary_{year}_{month:02d}.xlsx"},
    )


@router.get("/summaries/{employee_id}", response_model=AttendanceSummaryResponse)
async def get_monthly_summary(
    employee_id: UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceSummaryResponse:
    if employee_id != current_user.id and not _is_approver(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    try:
        return await summary.get_monthly_summary(db, employee_id, year, month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Single record -----

async def _load_visible(db: AsyncSession, attendance_id: UUID, current_user: CurrentUser) -> AttendanceResponse:
    try:
        record = await service.get_attendance(db, attendance_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if record.employee_id != current_user.id and not _is_approver(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return record


@router.get("/{attendance_id}", response_model=AttendanceResponse)
async def get_attendance(
    attendance_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    return await _load_visible(db, attendance_id, current_user)


@router.get("/{attendance_id}/details", response_model=List[AttendanceDetailResponse])
async def list_attendance_details(
    attendance_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AttendanceDetailResponse]:
    """Punch audit trail for one day."""
    await _load_visible(db, attendance_id, current_user)
    return await service.list_attendance_details(db, attendance_id)


@router.get(
    "/{attendance_id}/status",
    response_model=AttendanceStatusResponse,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def calculate_attendance_status(
    attendance_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> AttendanceStatusResponse:
    value = await service.calculate_attendance_status(db, attendance_id)
    return AttendanceStatusResponse(attendance_id=attendance_id, status=value)


@router.get("/{attendance_id}/working-minutes", response_model=WorkingMinutesResponse)
async def calculate_working_minutes(
    attendance_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WorkingMinutesResponse:
    await _load_visible(db, attendance_id, current_user)
    minutes = await service.calculate_working_minutes(db, attendance_id)
    return WorkingMinutesResponse(attendance_id=attendance_id, total_working_minutes=minutes)


@router.put(
    "/{attendance_id}/review",
    response_model=AttendanceResponse,
    dependencies=[Depends(require_roles(*APPROVERS))],
)
async def review_attendance(
    attendance_id: UUID,
    payload: AttendanceReview,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    try:
        return await service.review_attendance(db, attendance_id, payload, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{attendance_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles())],
)
async def delete_attendance(
    attendance_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Admin only."""
    try:
        await service.delete_attendance(db, attendance_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
