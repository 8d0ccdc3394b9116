"""Database utility functions."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from brightchoice.db.session import async_session_factory, engine
from brightchoice.models import Base


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create any missing tables for the pipeline models."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_database_health() -> dict:
    """Check if database is accessible and responsive.

    Returns:
        dict with 'healthy' boolean and optional 'error' message
    """
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
