import os
from datetime import date, time
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import hrm.core.models  # noqa: F401  (registers tables on Base.metadata)
from hrm.auth.schemas import CurrentUser
from hrm.auth.security import create_access_token
from hrm.core.enums import EmployeeStatus, LeaveType, Role
from hrm.core.models import (
    Department,
    Employee,
    EmployeeLeaveBalance,
    EmployeeShiftAssignment,
    LeavePolicy,
    PublicHoliday,
    WorkShift,
)
from hrm.db.session import Base, get_db
from hrm.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; the app's get_db yields the same session."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def auth_headers():
    """Bearer header for an employee, optionally with a different role claim."""

    def _make(employee: Employee, role: Optional[str] = None) -> Dict[str, str]:
        token = create_access_token(subject={"sub": str(employee.id), "role": role or employee.role})
        return {"Authorization": f"Bearer {token}"}

    return _make


class Seed:
    """Inserts reference rows straight through the ORM."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._seq = 0

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def department(self, code: str = "ENG", name: str = "Engineering") -> Department:
        return await self._save(Department(code=code, name=name))

    async def employee(
        self,
        role: Role = Role.EMPLOYEE,
        department: Optional[Department] = None,
        manager: Optional[Employee] = None,
        hire_date: date = date(2020, 1, 15),
        status: EmployeeStatus = EmployeeStatus.ACTIVE,
        name: Optional[str] = None,
    ) -> Employee:
        self._seq += 1
        return await self._save(
            Employee(
                employee_code=f"E{self._seq:04d}",
                full_name=name or f"Employee {self._seq}",
                department_id=department.id if department else None,
                direct_manager_id=manager.id if manager else None,
                role=role.value,
                hire_date=hire_date,
                status=status.value,
            )
        )

    async def shift(
        self,
        start: time = time(9, 0),
        end: time = time(18, 0),
        flexible_minutes: Optional[int] = 10,
        allow_overtime: bool = True,
        is_night_shift: bool = False,
        code: Optional[str] = None,
    ) -> WorkShift:
        self._seq += 1
        return await self._save(
            WorkShift(
                name=f"Shift {self._seq}",
                code=code or f"S{self._seq}",
                start_time=start,
                end_time=end,
                flexible_minutes=flexible_minutes,
                allow_overtime=allow_overtime,
                is_night_shift=is_night_shift,
                applicable_days=[1, 2, 3, 4, 5],
            )
        )

    async def assign(
        self,
        employee: Employee,
        shift: WorkShift,
        effective_from: date = date(2020, 1, 1),
        effective_to: Optional[date] = None,
    ) -> EmployeeShiftAssignment:
        return await self._save(
            EmployeeShiftAssignment(
                employee_id=employee.id,
                work_shift_id=shift.id,
                effective_from=effective_from,
                effective_to=effective_to,
                is_default_shift=True,
            )
        )

    async def policy(
        self,
        leave_type: LeaveType = LeaveType.ANNUAL,
        annual_allowance_days: int = 12,
        max_carry_forward_days: int = 0,
        max_consecutive_days: int = 10,
        min_advance_notice_days: int = 1,
        min_tenure_months: int = 0,
        department: Optional[Department] = None,
        effective_from: date = date(2020, 1, 1),
        effective_to: Optional[date] = None,
    ) -> LeavePolicy:
        return await self._save(
            LeavePolicy(
                name=f"{leave_type.value.title()} leave",
                leave_type=leave_type.value,
                annual_allowance_days=annual_allowance_days,
                max_carry_forward_days=max_carry_forward_days,
                max_consecutive_days=max_consecutive_days,
                min_advance_notice_days=min_advance_notice_days,
                min_tenure_months=min_tenure_months,
                department_id=department.id if department else None,
                effective_from=effective_from,
                effective_to=effective_to,
            )
        )

    async def balance(
        self,
        employee: Employee,
        policy: LeavePolicy,
        year: int,
        allocated: str = "12",
        used: str = "0",
        carried: str = "0",
    ) -> EmployeeLeaveBalance:
        return await self._save(
            EmployeeLeaveBalance(
                employee_id=employee.id,
                leave_policy_id=policy.id,
                year=year,
                allocated_days=Decimal(allocated),
                used_days=Decimal(used),
                carried_forward_days=Decimal(carried),
                adjustment_days=Decimal("0"),
            )
        )

    async def holiday(self, day: date, name: str = "Holiday", department: Optional[Department] = None) -> PublicHoliday:
        return await self._save(
            PublicHoliday(name=name, date=day, department_id=department.id if department else None)
        )

    async def holidays(self, days: List[date]) -> List[PublicHoliday]:
        return [await self.holiday(d) for d in days]


@pytest.fixture()
def seed(db_session: AsyncSession) -> Seed:
    return Seed(db_session)


@pytest.fixture()
def as_user():
    """Build the CurrentUser an operation runs as."""
    def _make(employee: Employee, role: Optional[Role] = None) -> CurrentUser:
        return CurrentUser(
            id=employee.id,
            role=(role.value if role else employee.role),
            department_id=employee.department_id,
        )

    return _make
