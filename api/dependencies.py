"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session from the factory created at application startup"""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session
