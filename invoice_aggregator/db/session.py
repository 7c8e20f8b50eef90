import logging
from typing import Optional

import asyncpg

from invoice_aggregator.core.config import settings

logger = logging.getLogger(__name__)

class Database:
    def __init__(self):
        self.dsn = (
            f"postgresql://{settings.POSTGRES_USER}:{settings.POSTGRES_PASSWORD}@"
            f"{settings.POSTGRES_SERVER}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
        )
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool is not initialised; call connect() first")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self):
        if self._pool is not None:
            return
        logger.info(
            f"Creating database pool for {settings.POSTGRES_SERVER}/{settings.POSTGRES_DB} "
            f"(min={settings.DB_POOL_MIN_SIZE}, max={settings.DB_POOL_MAX_SIZE})"
        )
        self._pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=settings.DB_POOL_MIN_SIZE,
            max_size=settings.DB_POOL_MAX_SIZE,
        )

    async def disconnect(self):
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        try:
            await pool.close()
        finally:
            logger.info("Database pool closed")

# Global database instance
db = Database()
