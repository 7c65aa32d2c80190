import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

import asyncpg
from asyncpg.pool import Pool
from asyncpg import Connection
from fastapi import Depends
from starlette.requests import HTTPConnection

from app.core.config import Settings
from app.db.realtime import RealtimeHub

logger = logging.getLogger(__name__)


class BackendClient:
    """Explicit handle on the hosted store: a connection pool plus the realtime hub.

    Constructed once in the application lifespan and handed to request handlers
    through ``get_backend``.
    """

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10, timeout: float = 30,
                 realtime: Optional[RealtimeHub] = None):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.pool: Pool | None = None
        self.realtime = realtime or RealtimeHub(dsn)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendClient":
        return cls(
            dsn=settings.BACKEND_URL,
            min_size=settings.DB_POOL_MIN_SIZE,
            max_size=settings.DB_POOL_MAX_SIZE,
            timeout=settings.DB_POOL_TIMEOUT,
        )

    async def connect(self) -> None:
        if self.pool is not None:
            return
        try:
            self.pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                timeout=self.timeout,
            )
            logger.info("Backend connection pool created.")
        except Exception as e:
            logger.error("Error connecting to backend: %s", e)
            raise
        await self.realtime.start()

    async def close(self) -> None:
        await self.realtime.stop()
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Backend connection pool closed.")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Connection]:
        if self.pool is None:
            raise RuntimeError("Backend pool is not initialized.")
        async with self.pool.acquire() as connection:
            yield connection


def get_backend(connection: HTTPConnection) -> BackendClient:
    return connection.app.state.backend


async def get_db_connection(backend: BackendClient = Depends(get_backend)) -> AsyncGenerator[Connection, None]:
    async with backend.acquire() as connection:
        yield connection
