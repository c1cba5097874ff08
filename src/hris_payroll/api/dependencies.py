"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from datetime import date
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.config import local_today
from hris_payroll.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit their own writes; anything left uncommitted is rolled
    back when the session closes.
    """
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_today() -> date:
    """Today's date in the payroll timezone."""
    return local_today()


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Today = Annotated[date, Depends(get_today)]
