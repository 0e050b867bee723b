"""Request-scoped database sessions."""
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from hangout.infra.db import base


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield one AsyncSession per request."""
    if base.AsyncSessionLocal is None:
        raise RuntimeError("Database is not configured")
    async with base.AsyncSessionLocal() as session:
        yield session
