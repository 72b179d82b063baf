"""Read-only attendance and leave reports."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from hrm.api.v1.attendance import service as attendance_service
from hrm.api.v1.reports import service
from hrm.core.enums import LeaveStatus, LeaveType, Role
from hrm.core.exceptions import BusinessRuleError, NotFoundError
from hrm.core.models import LeaveRequest

MONDAY = date(2025, 3, 3)


def _leave(employee, policy, start: date, end: date, days: str, status: LeaveStatus) -> LeaveRequest:
    return LeaveRequest(
        employee_id=employee.id,
        leave_policy_id=policy.id,
        start_date=start,
        end_date=end,
        requested_days=Decimal(days),
        reason="r",
        status=status.value,
    )


@pytest.fixture()
async def office(seed, db_session):
    dept = await seed.department()
    shift = await seed.shift()
    on_time = await seed.employee(department=dept, name="Ana")
    late = await seed.employee(department=dept, name="Ben")
    away = await seed.employee(department=dept, name="Cy")
    missing = await seed.employee(department=dept, name="Di")
    for emp in (on_time, late, away, missing):
        await seed.assign(emp, shift)
    policy = await seed.policy(leave_type=LeaveType.SICK)

    await attendance_service.check_in(db_session, on_time.id, datetime(2025, 3, 3, 9, 0))
    await attendance_service.check_out(db_session, on_time.id, datetime(2025, 3, 3, 18, 0))
    await attendance_service.check_in(db_session, late.id, datetime(2025, 3, 3, 9, 40))
    await attendance_service.check_out(db_session, late.id, datetime(2025, 3, 3, 17, 0))
    db_session.add(_leave(away, policy, date(2025, 3, 3), date(2025, 3, 4), "2", LeaveStatus.APPROVED))
    await db_session.commit()
    return {"dept": dept, "on_time": on_time, "late": late, "away": away, "missing": missing, "policy": policy}


@pytest.mark.asyncio
async def test_daily_report_counts(db_session, office) -> None:
    report = await service.daily_report(db_session, MONDAY, department_id=office["dept"].id)
    assert report.total_employees == 4
    assert report.present == 2
    assert report.on_leave == 1
    assert report.absent == 1
    assert report.late == 1
    assert report.early_leave == 1
    assert len(report.records) == 2


@pytest.mark.asyncio
async def test_attendance_history_summary(db_session, office) -> None:
    history = await service.employee_attendance_history(db_session, office["late"].id, MONDAY, date(2025, 3, 7))
    assert len(history.records) == 1
    assert history.summary.working_days == 5
    assert history.summary.actual_working_days == 1
    assert history.summary.absent_days == 4
    assert history.summary.late_minutes == 30
    assert history.summary.early_leave_minutes == 50
    assert history.summary.attendance_rate == 20.0

    with pytest.raises(BusinessRuleError):
        await service.employee_attendance_history(db_session, office["late"].id, date(2025, 3, 7), MONDAY)


@pytest.mark.asyncio
async def test_leave_calendar(db_session, seed, office) -> None:
    await seed.holiday(date(2025, 3, 5), name="Founders Day")
    db_session.add(
        _leave(office["missing"], office["policy"], date(2025, 3, 4), date(2025, 3, 4), "1", LeaveStatus.PENDING)
    )
    await db_session.commit()

    days = await service.leave_calendar(db_session, MONDAY, date(2025, 3, 9))
    assert len(days) == 7
    assert [e.employee_id for e in days[0].leaves] == [office["away"].id]
    assert days[2].holidays == ["Founders Day"]
    assert days[5].is_weekend

    with_pending = await service.leave_calendar(db_session, MONDAY, date(2025, 3, 9), include_pending=True)
    assert {e.employee_id for e in with_pending[1].leaves} == {office["away"].id, office["missing"].id}


@pytest.mark.asyncio
async def test_leave_history_and_balances(db_session, seed, office) -> None:
    await seed.balance(office["away"], office["policy"], 2025, allocated="10", used="2")
    db_session.add(
        _leave(office["away"], office["policy"], date(2025, 4, 7), date(2025, 4, 7), "1", LeaveStatus.REJECTED)
    )
    await db_session.commit()

    history = await service.employee_leave_history(db_session, office["away"].id, 2025)
    assert len(history.requests) == 2
    assert history.total_days_taken == Decimal("2")
    assert history.balances[0].remaining_days == Decimal("8")

    rows = await service.department_leave_balances(db_session, 2025, department_id=office["dept"].id)
    assert [(r.full_name, r.remaining_days) for r in rows] == [("Cy", Decimal("8"))]

    with pytest.raises(NotFoundError):
        await service.employee_leave_history(db_session, uuid4())


@pytest.mark.asyncio
async def test_daily_report_requires_approver(client, office, auth_headers) -> None:
    denied = await client.get(
        "/api/v1/reports/attendance/daily", params={"date": "2025-03-03"}, headers=auth_headers(office["late"])
    )
    assert denied.status_code == 403

    allowed = await client.get(
        "/api/v1/reports/attendance/daily",
        params={"date": "2025-03-03"},
        headers=auth_headers(office["late"], role=Role.MANAGER.value),
    )
    assert allowed.status_code == 200
    assert allowed.json()["present"] == 2
