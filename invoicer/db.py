# invoicer/db.py
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine


class Database:
    """Direct Postgres connection, used for health checks only."""

    def __init__(self, url: Optional[str]):
        self.url = url
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None

    def _ensure_engine(self) -> None:
        if self._engine is None:
            if not self.url:
                # defer failure until a DB-using endpoint is called
                raise RuntimeError("SUPABASE_DB_URL is not set")
            url = self.url
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            self._engine = create_async_engine(url, echo=False, pool_size=5, max_overflow=10)
            self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    async def ping(self) -> int:
        self._ensure_engine()
        async with self._sessions() as session:
            result = await session.execute(text("select 1"))
            return result.scalar_one()

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
