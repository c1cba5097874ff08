"""Pytest fixtures for payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, time
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hris_payroll.calculators.defaults import default_configuration
from hris_payroll.calculators.rate_config import ConfigSnapshot, RateConfigurationStore
from hris_payroll.models import (
    AttendanceRecord,
    Base,
    Contract,
    DeductionType,
    Department,
    Employee,
    LeaveBalance,
    LeaveType,
    RateConfiguration,
)

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PERIOD_START = date(2025, 3, 1)
PERIOD_END = date(2025, 3, 15)


@pytest.fixture
def config_store() -> RateConfigurationStore:
    """Baseline configuration, effective from 2025-01-01."""
    return RateConfigurationStore(default_configuration())


@pytest.fixture
def config(config_store: RateConfigurationStore) -> ConfigSnapshot:
    return config_store.snapshot(PERIOD_END)


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def seeded_config(session: AsyncSession) -> list[RateConfiguration]:
    """Write the baseline configuration rows."""
    rows = [
        RateConfiguration(
            config_type=entry.config_type,
            config_key=entry.config_key,
            value=entry.value,
            effective_date=entry.effective_date,
            description=entry.description,
            is_active=True,
        )
        for entry in default_configuration()
    ]
    session.add_all(rows)
    await session.flush()
    return rows


@pytest_asyncio.fixture
async def test_department(session: AsyncSession) -> Department:
    department = Department(name="Operations")
    session.add(department)
    await session.flush()
    return department


@pytest_asyncio.fixture
async def test_employees(
    session: AsyncSession, test_department: Department
) -> dict[str, Employee]:
    """A regular monthly-rated employee, a contractual daily-rated one and one with no contract."""
    regular = Employee(
        employee_id="E001",
        first_name="Maria",
        last_name="Santos",
        department_id=test_department.department_id,
        status="active",
        employment_type="Regular",
    )
    contractual = Employee(
        employee_id="E002",
        first_name="Jose",
        last_name="Reyes",
        department_id=test_department.department_id,
        status="active",
        employment_type="Contractual",
    )
    no_contract = Employee(
        employee_id="E003",
        first_name="Ana",
        last_name="Cruz",
        department_id=test_department.department_id,
        status="active",
        employment_type="Regular",
    )
    session.add_all([regular, contractual, no_contract])
    await session.flush()

    session.add_all([
        Contract(
            employee_id="E001",
            rate=Decimal("22000"),
            rate_type="monthly",
            start_date=date(2024, 1, 1),
        ),
        Contract(
            employee_id="E002",
            rate=Decimal("800"),
            rate_type="daily",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
        ),
    ])
    await session.flush()
    return {"E001": regular, "E002": contractual, "E003": no_contract}


@pytest_asyncio.fixture
async def test_leave_types(session: AsyncSession) -> dict[str, LeaveType]:
    vacation = LeaveType(name="Vacation", is_paid=True, pay_percentage=Decimal("100"))
    unpaid = LeaveType(name="Unpaid", is_paid=False, pay_percentage=Decimal("0"))
    session.add_all([vacation, unpaid])
    await session.flush()
    return {"vacation": vacation, "unpaid": unpaid}


@pytest_asyncio.fixture
async def vacation_balance(
    session: AsyncSession,
    test_employees: dict[str, Employee],
    test_leave_types: dict[str, LeaveType],
) -> LeaveBalance:
    balance = LeaveBalance(
        employee_id="E001",
        leave_type_id=test_leave_types["vacation"].leave_type_id,
        balance=Decimal("10"),
    )
    session.add(balance)
    await session.flush()
    return balance


@pytest_asyncio.fixture
async def salary_loan_type(session: AsyncSession) -> DeductionType:
    loan_type = DeductionType(name="Salary Loan")
    session.add(loan_type)
    await session.flush()
    return loan_type


def make_attendance(
    employee_id: str,
    work_date: date,
    start: time | None = time(8, 0),
    end: time | None = time(17, 0),
    **flags,
) -> AttendanceRecord:
    """A present day on an 08:00-17:00 schedule with a 12:00-13:00 break."""
    values = {
        "employee_id": employee_id,
        "work_date": work_date,
        "is_present": True,
        "scheduled_start": time(8, 0),
        "scheduled_end": time(17, 0),
        "break_start": time(12, 0),
        "break_end": time(13, 0),
    }
    if start is not None and end is not None:
        values["time_in"] = datetime.combine(work_date, start)
        values["time_out"] = datetime.combine(work_date, end)
    values.update(flags)
    return AttendanceRecord(**values)


@pytest.fixture
def attendance_factory():
    return make_attendance
