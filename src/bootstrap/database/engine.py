from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.bootstrap.config import Settings
from src.bootstrap.database.base_model import Base
from src.bootstrap.logging import get_logger

logger = get_logger(__name__)


class Database:
    """
    Owns the async engine & session factory for the activity and exception tables.

    The engine connects lazily, so constructing a Database never touches the
    network; `create_tables()` / `dispose()` are called from the app lifespan.
    """

    def __init__(self, settings: Settings, *, database_url: Optional[str] = None) -> None:
        url = database_url or settings.database_url
        kwargs: Dict[str, Any] = {"echo": settings.debug and not settings.is_prod}

        if settings.is_testing:
            kwargs["poolclass"] = NullPool
        elif url.startswith("postgresql"):
            kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_timeout=30,
                pool_recycle=3600,
                pool_pre_ping=True,
                connect_args={
                    "server_settings": {
                        "application_name": f"{settings.app_name}-{settings.environment}",
                        "statement_timeout": "30000",  # 30s
                    }
                },
            )

        self.engine: AsyncEngine = create_async_engine(url, **kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        # registers the ORM models on Base.metadata
        from src.bootstrap.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
