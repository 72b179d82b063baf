"""Leave engine: day counting, eligibility, approval workflow, balances and lifecycle."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from hrm.api.v1.leaves import balances, policies, service
from hrm.api.v1.leaves.schemas import LeaveRequestCreate, LeaveRequestUpdate
from hrm.core.enums import EmployeeStatus, LeaveStatus, LeaveType, Role
from hrm.core.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from hrm.core.models import EmployeeLeaveBalance, LeaveRequest

TODAY = date(2025, 3, 3)  # Monday


def leave(policy, start: date, end: date, reason: str = "Family trip") -> LeaveRequestCreate:
    return LeaveRequestCreate(leave_policy_id=policy.id, start_date=start, end_date=end, reason=reason)


@pytest.fixture()
async def team(seed):
    """Employee reporting to a manager, plus an HR manager and an annual policy with a 2025 balance."""
    hr = await seed.employee(role=Role.HR_MANAGER, name="Hana HR")
    manager = await seed.employee(role=Role.MANAGER, name="Mo Manager")
    employee = await seed.employee(manager=manager, name="Eve Employee")
    policy = await seed.policy(max_consecutive_days=10, min_advance_notice_days=1)
    balance = await seed.balance(employee, policy, 2025, allocated="12")
    return {"hr": hr, "manager": manager, "employee": employee, "policy": policy, "balance": balance}


async def _balance(db, employee, policy, year=2025) -> EmployeeLeaveBalance:
    b = await balances.get_balance(db, employee.id, policy.id, year)
    await db.refresh(b)
    return b


# ----- Day counting and eligibility -----

@pytest.mark.asyncio
async def test_requested_days_skip_midweek_holiday(db_session, seed) -> None:
    await seed.holiday(date(2025, 3, 12))
    days = await service.calculate_requested_days(db_session, date(2025, 3, 10), date(2025, 3, 14))
    assert days == Decimal("4")


@pytest.mark.asyncio
async def test_department_holiday_also_excluded(db_session, seed) -> None:
    dept = await seed.department()
    await seed.holiday(date(2025, 3, 11), department=dept)
    days = await service.calculate_requested_days(db_session, date(2025, 3, 10), date(2025, 3, 14))
    assert days == Decimal("4")


@pytest.mark.asyncio
async def test_insufficient_balance_denied(db_session, seed) -> None:
    employee = await seed.employee()
    policy = await seed.policy(max_consecutive_days=5, min_advance_notice_days=2, annual_allowance_days=12)
    await seed.balance(employee, policy, 2025, allocated="12", used="9")

    result = await service.check_leave_eligibility(
        db_session, employee.id, policy.id, date(2025, 3, 6), date(2025, 3, 11), today=TODAY
    )
    assert result.requested_days == Decimal("4")
    assert not result.allowed
    assert "Insufficient leave balance" in result.reason
    assert not await service.can_request_leave(
        db_session, employee.id, policy.id, date(2025, 3, 6), date(2025, 3, 11), today=TODAY
    )


@pytest.mark.asyncio
async def test_advance_notice_denied(db_session, seed) -> None:
    employee = await seed.employee()
    policy = await seed.policy(min_advance_notice_days=2)
    await seed.balance(employee, policy, 2025)
    result = await service.check_leave_eligibility(
        db_session, employee.id, policy.id, date(2025, 3, 4), date(2025, 3, 4), today=TODAY
    )
    assert not result.allowed
    assert "in advance" in result.reason


@pytest.mark.asyncio
async def test_max_consecutive_denied(db_session, seed) -> None:
    employee = await seed.employee()
    policy = await seed.policy(max_consecutive_days=3)
    await seed.balance(employee, policy, 2025)
    result = await service.check_leave_eligibility(
        db_session, employee.id, policy.id, date(2025, 3, 10), date(2025, 3, 13), today=TODAY
    )
    assert not result.allowed
    assert "maximum of 3" in result.reason


@pytest.mark.asyncio
async def test_missing_balance_and_inactive_policy_denied(db_session, seed) -> None:
    employee = await seed.employee()
    policy = await seed.policy()
    result = await service.check_leave_eligibility(
        db_session, employee.id, policy.id, date(2025, 3, 10), date(2025, 3, 11), today=TODAY
    )
    assert not result.allowed
    assert result.reason == "No leave balance for 2025"

    await policies.deactivate_policy(db_session, policy.id)
    result = await service.check_leave_eligibility(
        db_session, employee.id, policy.id, date(2025, 3, 10), date(2025, 3, 11), today=TODAY
    )
    assert result.reason == "Leave policy not found or inactive"


# ----- Requests -----

@pytest.mark.asyncio
async def test_create_request_seeds_manager_step(db_session, team, as_user) -> None:
    req = await service.create_leave_request(
        db_session, as_user(team["employee"]), leave(team["policy"], date(2025, 3, 10), date(2025, 3, 12)), today=TODAY
    )
    assert req.status == LeaveStatus.PENDING.value
    assert req.requested_days == Decimal("3")

    steps = await service.list_workflow_steps(db_session, req.id)
    assert [(s.approver_employee_id, s.step_order) for s in steps] == [(team["manager"].id, 1)]
    audit = await service.list_audit_log(db_session, req.id)
    assert [a.action for a in audit] == [service.AUDIT_APPLIED]


@pytest.mark.asyncio
async def test_create_request_falls_back_to_hr(db_session, seed, as_user) -> None:
    hr = await seed.employee(role=Role.HR_MANAGER)
    loner = await seed.employee()
    policy = await seed.policy()
    await seed.balance(loner, policy, 2025)
    req = await service.create_leave_request(
        db_session, as_user(loner), leave(policy, date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    steps = await service.list_workflow_steps(db_session, req.id)
    assert [s.approver_employee_id for s in steps] == [hr.id]


@pytest.mark.asyncio
async def test_terminated_manager_falls_back_to_hr(db_session, seed, as_user) -> None:
    hr = await seed.employee(role=Role.HR_MANAGER)
    gone = await seed.employee(role=Role.MANAGER, status=EmployeeStatus.TERMINATED)
    employee = await seed.employee(manager=gone)
    policy = await seed.policy()
    await seed.balance(employee, policy, 2025)
    req = await service.create_leave_request(
        db_session, as_user(employee), leave(policy, date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    steps = await service.list_workflow_steps(db_session, req.id)
    assert [s.approver_employee_id for s in steps] == [hr.id]


@pytest.mark.asyncio
async def test_no_approver_creates_empty_workflow(db_session, seed, as_user) -> None:
    loner = await seed.employee()
    policy = await seed.policy()
    await seed.balance(loner, policy, 2025)
    req = await service.create_leave_request(
        db_session, as_user(loner), leave(policy, date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    assert req.status == LeaveStatus.PENDING.value
    assert await service.list_workflow_steps(db_session, req.id) == []


@pytest.mark.asyncio
async def test_ineligible_request_rejected(db_session, team, as_user) -> None:
    with pytest.raises(BusinessRuleError, match="Leave request cannot be processed"):
        await service.create_leave_request(
            db_session, as_user(team["employee"]), leave(team["policy"], date(2025, 3, 3), date(2025, 3, 3)), today=TODAY
        )


@pytest.mark.asyncio
async def test_overlapping_request_conflicts(db_session, team, as_user) -> None:
    actor = as_user(team["employee"])
    first = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2025, 3, 10), date(2025, 3, 12)), today=TODAY
    )
    assert await service.has_leave_conflict(db_session, team["employee"].id, date(2025, 3, 12), date(2025, 3, 14))
    assert not await service.has_leave_conflict(
        db_session, team["employee"].id, date(2025, 3, 12), date(2025, 3, 14), exclude_id=first.id
    )
    with pytest.raises(BusinessRuleError, match="conflicts with an existing leave request"):
        await service.create_leave_request(
            db_session, actor, leave(team["policy"], date(2025, 3, 12), date(2025, 3, 14)), today=TODAY
        )


@pytest.mark.asyncio
async def test_update_pending_request_recounts_days(db_session, team, as_user) -> None:
    actor = as_user(team["employee"])
    req = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    updated = await service.update_leave_request(
        db_session,
        actor,
        req.id,
        LeaveRequestUpdate(end_date=date(2025, 3, 11), reason="  longer trip "),
        today=TODAY,
    )
    assert updated.requested_days == Decimal("2")
    assert updated.reason == "longer trip"

    with pytest.raises(PermissionDeniedError):
        await service.update_leave_request(
            db_session, as_user(team["manager"]), req.id, LeaveRequestUpdate(reason="x")
        )


@pytest.mark.asyncio
async def test_update_rechecks_eligibility(db_session, seed, team, as_user) -> None:
    actor = as_user(team["employee"])
    short = await seed.policy(leave_type=LeaveType.PERSONAL, max_consecutive_days=3)
    await seed.balance(team["employee"], short, 2025, allocated="3")
    req = await service.create_leave_request(
        db_session, actor, leave(short, date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )

    with pytest.raises(BusinessRuleError, match="maximum of 3"):
        await service.update_leave_request(
            db_session, actor, req.id, LeaveRequestUpdate(end_date=date(2025, 3, 21)), today=TODAY
        )
    with pytest.raises(BusinessRuleError, match="in advance"):
        await service.update_leave_request(
            db_session, actor, req.id, LeaveRequestUpdate(start_date=TODAY, end_date=TODAY), today=TODAY
        )

    await seed.balance(team["employee"], team["policy"], 2026, allocated="2")
    annual = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2026, 1, 5), date(2026, 1, 5)), today=TODAY
    )
    with pytest.raises(BusinessRuleError, match="Insufficient leave balance"):
        await service.update_leave_request(
            db_session, actor, annual.id, LeaveRequestUpdate(end_date=date(2026, 1, 7)), today=TODAY
        )

    unchanged = await service.get_leave_request(db_session, req.id)
    assert (unchanged.start_date, unchanged.end_date) == (date(2025, 3, 10), date(2025, 3, 10))
    assert unchanged.requested_days == Decimal("1")


# ----- Approval workflow -----

@pytest.mark.asyncio
async def test_two_step_approval_books_days_once(db_session, team, as_user) -> None:
    hr_actor = as_user(team["hr"])
    req = await service.create_leave_request(
        db_session, as_user(team["employee"]), leave(team["policy"], date(2025, 3, 10), date(2025, 3, 13)), today=TODAY
    )
    steps = await service.setup_approval_workflow(
        db_session, hr_actor, req.id, [team["manager"].id, team["hr"].id]
    )
    assert [s.step_order for s in steps] == [1, 2]

    after_manager = await service.process_leave_approval(
        db_session, as_user(team["manager"]), req.id, LeaveStatus.APPROVED, "ok"
    )
    assert after_manager.status == LeaveStatus.PENDING.value
    assert (await _balance(db_session, team["employee"], team["policy"])).used_days == Decimal("0")

    final = await service.process_leave_approval(db_session, hr_actor, req.id, LeaveStatus.APPROVED, "enjoy")
    assert final.status == LeaveStatus.APPROVED.value
    assert final.approved_by_id == team["hr"].id
    balance = await _balance(db_session, team["employee"], team["policy"])
    assert balance.used_days == Decimal("4")
    assert balance.remaining_days == Decimal("8")

    with pytest.raises(NotFoundError, match="already processed"):
        await service.process_leave_approval(db_session, hr_actor, req.id, LeaveStatus.APPROVED)

    actions = [a.action for a in await service.list_audit_log(db_session, req.id)]
    assert actions == [
        service.AUDIT_APPLIED,
        service.AUDIT_WORKFLOW_SET,
        service.AUDIT_STEP_APPROVED,
        service.AUDIT_APPROVED,
    ]


@pytest.mark.asyncio
async def test_later_step_cannot_act_first(db_session, team, as_user) -> None:
    hr_actor = as_user(team["hr"])
    req = await service.create_leave_request(
        db_session, as_user(team["employee"]), leave(team["policy"], date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    await service.setup_approval_workflow(db_session, hr_actor, req.id, [team["manager"].id, team["hr"].id])

    with pytest.raises(BusinessRuleError, match="earlier approval step is still pending"):
        await service.process_leave_approval(db_session, hr_actor, req.id, LeaveStatus.APPROVED)

    assert [r.id for r in await service.list_pending_approvals(db_session, team["manager"].id)] == [req.id]
    assert await service.list_pending_approvals(db_session, team["hr"].id) == []

    await service.process_leave_approval(db_session, as_user(team["manager"]), req.id, LeaveStatus.APPROVED)
    assert [r.id for r in await service.list_pending_approvals(db_session, team["hr"].id)] == [req.id]


@pytest.mark.asyncio
async def test_rejection_ends_workflow(db_session, team, as_user) -> None:
    hr_actor = as_user(team["hr"])
    req = await service.create_leave_request(
        db_session, as_user(team["employee"]), leave(team["policy"], date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    await service.setup_approval_workflow(db_session, hr_actor, req.id, [team["manager"].id, team["hr"].id])
    rejected = await service.process_leave_approval(
        db_session, as_user(team["manager"]), req.id, LeaveStatus.REJECTED, "short staffed"
    )
    assert rejected.status == LeaveStatus.REJECTED.value
    assert rejected.manager_comments == "short staffed"

    steps = await service.list_workflow_steps(db_session, req.id)
    assert [s.status for s in steps] == [LeaveStatus.REJECTED.value, LeaveStatus.CANCELLED.value]
    assert (await _balance(db_session, team["employee"], team["policy"])).used_days == Decimal("0")
    with pytest.raises(NotFoundError):
        await service.process_leave_approval(db_session, hr_actor, req.id, LeaveStatus.APPROVED)


@pytest.mark.asyncio
async def test_workflow_setup_rejects_duplicates(db_session, team, as_user) -> None:
    req = await service.create_leave_request(
        db_session, as_user(team["employee"]), leave(team["policy"], date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    with pytest.raises(BusinessRuleError, match="only once"):
        await service.setup_approval_workflow(
            db_session, as_user(team["hr"]), req.id, [team["hr"].id, team["hr"].id]
        )


# ----- Cancel / delete -----

@pytest.mark.asyncio
async def test_cancel_approved_request_restores_balance(db_session, team, as_user) -> None:
    actor = as_user(team["employee"])
    req = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2025, 3, 10), date(2025, 3, 11)), today=TODAY
    )
    await service.process_leave_approval(db_session, as_user(team["manager"]), req.id, LeaveStatus.APPROVED)
    assert (await _balance(db_session, team["employee"], team["policy"])).used_days == Decimal("2")

    cancelled = await service.cancel_leave_request(db_session, actor, req.id, remarks="plans changed")
    assert cancelled.status == LeaveStatus.CANCELLED.value
    assert (await _balance(db_session, team["employee"], team["policy"])).used_days == Decimal("0")

    with pytest.raises(BusinessRuleError, match="already cancelled"):
        await service.cancel_leave_request(db_session, actor, req.id)


@pytest.mark.asyncio
async def test_cancel_pending_closes_open_steps(db_session, team, as_user) -> None:
    actor = as_user(team["employee"])
    req = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    with pytest.raises(PermissionDeniedError):
        await service.cancel_leave_request(db_session, as_user(team["manager"]), req.id)
    await service.cancel_leave_request(db_session, actor, req.id)
    steps = await service.list_workflow_steps(db_session, req.id)
    assert [s.status for s in steps] == [LeaveStatus.CANCELLED.value]
    assert await service.list_pending_approvals(db_session, team["manager"].id) == []


@pytest.mark.asyncio
async def test_delete_rules(db_session, team, as_user) -> None:
    actor = as_user(team["employee"])
    approved = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2025, 3, 10), date(2025, 3, 10)), today=TODAY
    )
    await service.process_leave_approval(db_session, as_user(team["manager"]), approved.id, LeaveStatus.APPROVED)
    with pytest.raises(BusinessRuleError, match="cannot be deleted"):
        await service.delete_leave_request(db_session, actor, approved.id)

    pending = await service.create_leave_request(
        db_session, actor, leave(team["policy"], date(2025, 3, 17), date(2025, 3, 17)), today=TODAY
    )
    with pytest.raises(PermissionDeniedError):
        await service.delete_leave_request(db_session, as_user(team["manager"]), pending.id)
    await service.delete_leave_request(db_session, as_user(team["hr"]), pending.id)
    with pytest.raises(NotFoundError):
        await service.get_leave_request(db_session, pending.id)


# ----- Balances -----

@pytest.mark.asyncio
async def test_initialize_balances_caps_carry_forward(db_session, seed) -> None:
    employee = await seed.employee(hire_date=date(2020, 1, 15))
    policy = await seed.policy(annual_allowance_days=12, max_carry_forward_days=5)
    await seed.balance(employee, policy, 2024, allocated="12", used="2")

    result = await balances.initialize_leave_balances_for_year(db_session, 2025)
    assert result.ok
    assert result.created == 1

    b = await _balance(db_session, employee, policy)
    assert b.allocated_days == Decimal("12")
    assert b.carried_forward_days == Decimal("5")
    assert b.used_days == Decimal("0")
    assert b.remaining_days == Decimal("17")


@pytest.mark.asyncio
async def test_initialize_balances_carries_overdrawn_deficit(db_session, seed) -> None:
    employee = await seed.employee()
    policy = await seed.policy(annual_allowance_days=12, max_carry_forward_days=5)
    await seed.balance(employee, policy, 2024, allocated="12", used="15")

    await balances.initialize_leave_balances_for_year(db_session, 2025)

    b = await _balance(db_session, employee, policy)
    assert b.carried_forward_days == Decimal("-3")
    assert b.remaining_days == Decimal("9")


@pytest.mark.asyncio
async def test_initialize_balances_is_idempotent(db_session, seed) -> None:
    employee = await seed.employee()
    await seed.employee(status=EmployeeStatus.TERMINATED)
    policy = await seed.policy()

    first = await balances.initialize_leave_balances_for_year(db_session, 2025)
    assert first.created == 1
    assert first.processed == 1

    await balances.adjust_leave_balance(db_session, employee.id, policy.id, 2025, Decimal("1.5"))
    second = await balances.initialize_leave_balances_for_year(db_session, 2025)
    assert second.created == 0
    assert second.skipped == 1

    rows = (await db_session.execute(select(EmployeeLeaveBalance))).scalars().all()
    assert len(rows) == 1
    assert rows[0].adjustment_days == Decimal("1.5")


@pytest.mark.asyncio
async def test_initialize_balances_respects_tenure_and_scope(db_session, seed) -> None:
    sales = await seed.department(code="SAL", name="Sales")
    newcomer = await seed.employee(hire_date=date(2024, 6, 1))
    await seed.policy(leave_type=LeaveType.STUDY, min_tenure_months=24)
    await seed.policy(leave_type=LeaveType.BUSINESS, department=sales)
    await seed.policy(leave_type=LeaveType.SICK, effective_from=date(2026, 1, 1))

    result = await balances.initialize_leave_balances_for_year(db_session, 2025)
    assert result.created == 0
    assert await balances.list_employee_balances(db_session, newcomer.id) == []


@pytest.mark.asyncio
async def test_adjust_missing_balance_not_found(db_session, seed) -> None:
    employee = await seed.employee()
    policy = await seed.policy()
    with pytest.raises(NotFoundError):
        await balances.adjust_leave_balance(db_session, employee.id, policy.id, 2025, Decimal("2"))


@pytest.mark.asyncio
async def test_delete_referenced_policy_rejected(db_session, team) -> None:
    usage = await policies.get_policy_usage(db_session, team["policy"].id)
    assert usage.is_referenced
    assert usage.balance_count == 1
    with pytest.raises(BusinessRuleError, match="deactivate it instead"):
        await policies.delete_policy(db_session, team["policy"].id)


@pytest.mark.asyncio
async def test_applicable_policies_filter_by_scope(db_session, seed) -> None:
    eng = await seed.department()
    employee = await seed.employee(department=eng, hire_date=date(2024, 6, 1))
    general = await seed.policy()
    mine = await seed.policy(leave_type=LeaveType.STUDY, department=eng)
    await seed.policy(leave_type=LeaveType.BUSINESS, department=await seed.department(code="SAL", name="Sales"))
    await seed.policy(leave_type=LeaveType.MARRIAGE, min_tenure_months=24)

    found = await policies.list_applicable_policies(db_session, employee.id, on=TODAY)
    assert {p.id for p in found} == {general.id, mine.id}


# ----- Lifecycle -----

@pytest.mark.asyncio
async def test_sync_leave_progress(db_session, team, as_user) -> None:
    def approved(start: date, end: date) -> LeaveRequest:
        return LeaveRequest(
            employee_id=team["employee"].id,
            leave_policy_id=team["policy"].id,
            start_date=start,
            end_date=end,
            requested_days=Decimal("1"),
            reason="r",
            status=LeaveStatus.APPROVED.value,
        )

    past = approved(date(2025, 2, 24), date(2025, 2, 28))
    current = approved(date(2025, 3, 5), date(2025, 3, 7))
    future = approved(date(2025, 3, 20), date(2025, 3, 21))
    db_session.add_all([past, current, future])
    await db_session.commit()

    result = await service.sync_leave_progress(db_session, today=date(2025, 3, 6))
    assert result.completed == 1
    assert result.started == 1
    for r in (past, current, future):
        await db_session.refresh(r)
    assert past.status == LeaveStatus.COMPLETED.value
    assert current.status == LeaveStatus.IN_PROGRESS.value
    assert future.status == LeaveStatus.APPROVED.value

    with pytest.raises(BusinessRuleError, match="Completed leave cannot be cancelled"):
        await service.cancel_leave_request(db_session, as_user(team["employee"]), past.id)


# ----- HTTP -----

def _next_monday(from_day: date, weeks_ahead: int = 3) -> date:
    return from_day + timedelta(days=(7 - from_day.weekday()) + 7 * (weeks_ahead - 1))


@pytest.mark.asyncio
async def test_apply_and_approve_over_http(client, seed, auth_headers) -> None:
    manager = await seed.employee(role=Role.MANAGER)
    employee = await seed.employee(manager=manager)
    policy = await seed.policy()
    start = _next_monday(date.today())
    await seed.balance(employee, policy, start.year)

    resp = await client.post(
        "/api/v1/leaves/requests",
        json={
            "leave_policy_id": str(policy.id),
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=1)).isoformat(),
            "reason": "Dentist",
        },
        headers=auth_headers(employee),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert Decimal(str(body["requested_days"])) == Decimal("2")

    forbidden = await client.post(
        f"/api/v1/leaves/requests/{body['id']}/decision",
        json={"decision": "APPROVED"},
        headers=auth_headers(employee),
    )
    assert forbidden.status_code == 403

    pending = await client.get("/api/v1/leaves/requests/pending", headers=auth_headers(manager))
    assert [r["id"] for r in pending.json()] == [body["id"]]

    decided = await client.post(
        f"/api/v1/leaves/requests/{body['id']}/decision",
        json={"decision": "APPROVED", "comments": "fine"},
        headers=auth_headers(manager),
    )
    assert decided.status_code == 200
    assert decided.json()["status"] == "APPROVED"

    mine = await client.get(f"/api/v1/leaves/balances?year={start.year}", headers=auth_headers(employee))
    assert Decimal(str(mine.json()[0]["used_days"])) == Decimal("2")


@pytest.mark.asyncio
async def test_requested_days_endpoint(client, seed, auth_headers) -> None:
    employee = await seed.employee()
    await seed.holiday(date(2025, 3, 12))
    resp = await client.get(
        "/api/v1/leaves/requested-days",
        params={"start_date": "2025-03-10", "end_date": "2025-03-14"},
        headers=auth_headers(employee),
    )
    assert resp.status_code == 200
    assert Decimal(str(resp.json()["requested_days"])) == Decimal("4")
