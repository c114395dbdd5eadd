import asyncpg
from contextlib import asynccontextmanager
from app.config import settings
import logging

logger = logging.getLogger(__name__)

class DatabasePool:
    """Process-wide asyncpg pool, created lazily on first use"""
    _pool = None

    @classmethod
    def describe(cls) -> str:
        """Connection target for log lines (never includes the password)"""
        if settings.database_url:
            return settings.database_url.rsplit("@", 1)[-1]
        return f"{settings.db_name}@{settings.db_host}:{settings.db_port}"

    @classmethod
    async def create_pool(cls):
        if cls._pool is None:
            try:
                cls._pool = await asyncpg.create_pool(
                    **settings.db_connection_params,
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    max_inactive_connection_lifetime=300,
                    command_timeout=60,
                    timeout=30
                )
                logger.info(f"Database pool created: {cls.describe()}")
            except Exception as e:
                logger.error(f"Failed to create database pool for {cls.describe()}: {e}")
                raise
        return cls._pool

    @classmethod
    async def close_pool(cls):
        if cls._pool:
            await cls._pool.close()
            cls._pool = None
            logger.info("Database pool closed")

@asynccontextmanager
async def get_db_connection(use_transaction: bool = True):
    """
    Borrow a pooled connection.

    Writes go through a transaction so a multi-statement change lands whole;
    pass use_transaction=False for plain reads.

        async with get_db_connection(use_transaction=False) as conn:
            raw = await conn.fetchval("SELECT value::text FROM kv_store WHERE key = $1::text[]", key)
    """
    pool = await DatabasePool.create_pool()
    async with pool.acquire() as connection:
        if use_transaction:
            async with connection.transaction():
                yield connection
        else:
            yield connection
