"""Shift catalogue, assignments, schedules and per-day shift resolution."""

from datetime import date, time

import pytest
from pydantic import ValidationError

from hrm.api.v1.attendance import service as attendance_service
from hrm.api.v1.shifts import service
from hrm.api.v1.shifts.schemas import (
    BulkScheduleCreate,
    ShiftAssignmentCreate,
    WorkScheduleCreate,
    WorkShiftCreate,
)
from hrm.core.enums import ShiftStatus
from hrm.core.exceptions import BusinessRuleError, NotFoundError


@pytest.mark.asyncio
async def test_create_shift_normalizes_code(db_session) -> None:
    shift = await service.create_shift(
        db_session,
        WorkShiftCreate(name="Day", code="day", start_time=time(9, 0), end_time=time(18, 0), applicable_days=[5, 1, 1]),
    )
    assert shift.code == "DAY"
    assert shift.applicable_days == [1, 5]

    with pytest.raises(BusinessRuleError):
        await service.create_shift(
            db_session, WorkShiftCreate(name="Day 2", code="DAY", start_time=time(8, 0), end_time=time(17, 0))
        )


def test_applicable_days_must_be_iso_weekdays() -> None:
    with pytest.raises(ValidationError):
        WorkShiftCreate(name="Bad", start_time=time(9, 0), end_time=time(18, 0), applicable_days=[0, 8])


@pytest.mark.asyncio
async def test_schedule_overrides_default_assignment(db_session, seed) -> None:
    emp = await seed.employee()
    day_shift = await seed.shift()
    late_shift = await seed.shift(start=time(13, 0), end=time(22, 0))
    await seed.assign(emp, day_shift)
    await service.create_schedule(
        db_session, WorkScheduleCreate(employee_id=emp.id, work_shift_id=late_shift.id, work_date=date(2025, 3, 5))
    )

    assert (await service.resolve_shift_for_date(db_session, emp.id, date(2025, 3, 4))).id == day_shift.id
    assert (await service.resolve_shift_for_date(db_session, emp.id, date(2025, 3, 5))).id == late_shift.id

    with pytest.raises(BusinessRuleError, match="already has a schedule"):
        await service.create_schedule(
            db_session, WorkScheduleCreate(employee_id=emp.id, work_shift_id=day_shift.id, work_date=date(2025, 3, 5))
        )


@pytest.mark.asyncio
async def test_no_shift_before_assignment_starts(db_session, seed) -> None:
    emp = await seed.employee()
    await seed.assign(emp, await seed.shift(), effective_from=date(2025, 3, 10))
    assert await service.resolve_shift_for_date(db_session, emp.id, date(2025, 3, 7)) is None


@pytest.mark.asyncio
async def test_new_default_assignment_closes_previous(db_session, seed) -> None:
    emp = await seed.employee()
    old = await seed.shift()
    new = await seed.shift(start=time(7, 0), end=time(16, 0))
    first = await service.create_assignment(
        db_session, ShiftAssignmentCreate(employee_id=emp.id, work_shift_id=old.id, effective_from=date(2025, 1, 1))
    )
    await service.create_assignment(
        db_session, ShiftAssignmentCreate(employee_id=emp.id, work_shift_id=new.id, effective_from=date(2025, 3, 1))
    )

    rows = {a.id: a for a in await service.list_assignments(db_session, employee_id=emp.id)}
    assert rows[first.id].effective_to == date(2025, 2, 28)
    assert (await service.resolve_shift_for_date(db_session, emp.id, date(2025, 2, 28))).id == old.id
    assert (await service.resolve_shift_for_date(db_session, emp.id, date(2025, 3, 3))).id == new.id


@pytest.mark.asyncio
async def test_new_assignment_closes_overlapping_rotation(db_session, seed) -> None:
    emp = await seed.employee()
    rotation = await seed.shift()
    fixed = await seed.shift(start=time(7, 0), end=time(16, 0))
    first = await service.create_assignment(
        db_session,
        ShiftAssignmentCreate(
            employee_id=emp.id,
            work_shift_id=rotation.id,
            effective_from=date(2025, 1, 1),
            is_default_shift=False,
            rotation_order=1,
        ),
    )
    await service.create_assignment(
        db_session, ShiftAssignmentCreate(employee_id=emp.id, work_shift_id=fixed.id, effective_from=date(2025, 4, 1))
    )

    rows = {a.id: a for a in await service.list_assignments(db_session, employee_id=emp.id)}
    assert rows[first.id].effective_to == date(2025, 3, 31)


@pytest.mark.asyncio
async def test_inactive_shift_cannot_be_assigned(db_session, seed) -> None:
    emp = await seed.employee()
    shift = await seed.shift()
    await service.deactivate_shift(db_session, shift.id)
    with pytest.raises(BusinessRuleError, match="inactive"):
        await service.create_assignment(
            db_session, ShiftAssignmentCreate(employee_id=emp.id, work_shift_id=shift.id, effective_from=date(2025, 1, 1))
        )


@pytest.mark.asyncio
async def test_bulk_schedule_skips_holidays_and_existing(db_session, seed) -> None:
    a = await seed.employee()
    b = await seed.employee()
    shift = await seed.shift()
    await seed.holiday(date(2025, 3, 12))
    await service.create_schedule(
        db_session, WorkScheduleCreate(employee_id=a.id, work_shift_id=shift.id, work_date=date(2025, 3, 10))
    )

    result = await service.bulk_create_schedules(
        db_session,
        BulkScheduleCreate(
            employee_ids=[a.id, b.id],
            work_shift_id=shift.id,
            start_date=date(2025, 3, 10),
            end_date=date(2025, 3, 16),
        ),
    )
    # 2 employees x 5 weekdays, less the Wednesday holiday for each and a's existing Monday
    assert result.skipped_holidays == 2
    assert result.skipped_existing == 1
    assert result.created == 7
    assert len(await service.list_schedules(db_session, employee_id=b.id)) == 4


@pytest.mark.asyncio
async def test_referenced_shift_cannot_be_deleted(db_session, seed) -> None:
    emp = await seed.employee()
    shift = await seed.shift()
    await seed.assign(emp, shift)
    await attendance_service.check_in(db_session, emp.id, None)

    usage = await service.get_shift_usage(db_session, shift.id)
    assert usage.is_referenced
    assert usage.assignment_count == 1
    assert usage.attendance_count == 1
    with pytest.raises(BusinessRuleError):
        await service.delete_shift(db_session, shift.id)

    deactivated = await service.deactivate_shift(db_session, shift.id)
    assert deactivated.status == ShiftStatus.INACTIVE.value


@pytest.mark.asyncio
async def test_unreferenced_shift_is_deleted(db_session, seed) -> None:
    shift = await seed.shift()
    assert not await service.is_shift_referenced(db_session, shift.id)
    await service.delete_shift(db_session, shift.id)
    with pytest.raises(NotFoundError):
        await service.get_shift(db_session, shift.id)


@pytest.mark.asyncio
async def test_shift_routes_require_hr(client, seed, auth_headers) -> None:
    emp = await seed.employee()
    payload = {"name": "Night", "code": "night", "start_time": "22:00:00", "end_time": "06:00:00", "is_night_shift": True}
    denied = await client.post("/api/v1/shifts", json=payload, headers=auth_headers(emp))
    assert denied.status_code == 403

    created = await client.post("/api/v1/shifts", json=payload, headers=auth_headers(emp, role="HR_MANAGER"))
    assert created.status_code == 201
    assert created.json()["code"] == "NIGHT"

    listed = await client.get("/api/v1/shifts", headers=auth_headers(emp))
    assert [s["code"] for s in listed.json()] == ["NIGHT"]
