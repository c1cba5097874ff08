"""API test fixtures: the app wired to the per-test SQLite session."""

from collections.abc import AsyncGenerator
from datetime import date, timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.api.app import create_app
from hris_payroll.api.dependencies import get_db_session, get_today
from hris_payroll.models import LeaveRequest

TODAY = date(2025, 3, 1)


@pytest_asyncio.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests share the test session."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_today] = lambda: TODAY

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def seeded_db(
    session: AsyncSession,
    seeded_config,
    test_employees,
    test_leave_types,
    vacation_balance,
    salary_loan_type,
    attendance_factory,
) -> AsyncSession:
    """Configuration, employees and a worked period, committed."""
    for offset in range(5):
        session.add(attendance_factory("E001", date(2025, 3, 3) + timedelta(days=offset)))
    for offset in range(2):
        session.add(attendance_factory("E002", date(2025, 3, 3) + timedelta(days=offset)))
    session.add(
        LeaveRequest(
            leave_request_id=1,
            employee_id="E001",
            leave_type_id=test_leave_types["vacation"].leave_type_id,
            start_date=date(2025, 3, 20),
            end_date=date(2025, 3, 21),
            status="pending",
        )
    )
    await session.commit()
    return session
