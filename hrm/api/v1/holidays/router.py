from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.auth.dependencies import get_current_user
from hrm.auth.rbac import HR_ONLY, require_roles
from hrm.auth.schemas import CurrentUser
from hrm.core.exceptions import ServiceError
from hrm.db.session import get_db

from .schemas import PublicHolidayCreate, PublicHolidayResponse, PublicHolidayUpdate
from . import service

router = APIRouter(prefix="/api/v1/holidays", tags=["holidays"])


@router.get("", response_model=List[PublicHolidayResponse])
async def list_holidays(
    year: Optional[int] = None,
    department_id: Optional[UUID] = None,
    active_only: bool = True,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[PublicHolidayResponse]:
    """Holidays for a year; with department_id, company-wide plus that department's."""
    return await service.list_holidays(db, year=year, department_id=department_id, active_only=active_only)


@router.get("/{holiday_id}", response_model=PublicHolidayResponse)
async def get_holiday(
    holiday_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PublicHolidayResponse:
    try:
        return await service.get_holiday(db, holiday_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=PublicHolidayResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def create_holiday(
    payload: PublicHolidayCreate,
    db: AsyncSession = Depends(get_db),
) -> PublicHolidayResponse:
    try:
        return await service.create_holiday(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{holiday_id}",
    response_model=PublicHolidayResponse,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def update_holiday(
    holiday_id: UUID,
    payload: PublicHolidayUpdate,
    db: AsyncSession = Depends(get_db),
) -> PublicHolidayResponse:
    try:
        return await service.update_holiday(db, holiday_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{holiday_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*HR_ONLY))],
)
async def delete_holiday(
    holiday_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await service.delete_holiday(db, holiday_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
