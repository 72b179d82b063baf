import datetime as dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PublicHolidayCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    date: dt.date
    is_paid: bool = True
    is_mandatory: bool = True
    department_id: Optional[UUID] = Field(None, description="Null applies to every department")
    is_active: bool = True


class PublicHolidayUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    date: Optional[dt.date] = None
    is_paid: Optional[bool] = None
    is_mandatory: Optional[bool] = None
    department_id: Optional[UUID] = None
    is_active: Optional[bool] = None


class PublicHolidayResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    date: dt.date
    is_paid: bool
    is_mandatory: bool
    department_id: Optional[UUID] = None
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True
