"""
PostgreSQL client wrapper with async support
"""

from typing import Optional, List, Dict, Any, AsyncIterator
from contextlib import asynccontextmanager
import asyncpg
from asyncpg import Pool, Connection

from ..config.settings import settings
from .logger import get_logger

logger = get_logger(__name__)


class DatabaseClient:
    """
    Async PostgreSQL client backed by an asyncpg pool
    """

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize database client

        Args:
            database_url: PostgreSQL connection URL (uses settings if not provided)
        """
        self.database_url = database_url or settings.database_url
        self._pool: Optional[Pool] = None

    async def connect(
        self,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None
    ) -> None:
        """
        Establish database connection pool

        Args:
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        min_size = min_size or settings.db_pool_min
        max_size = max_size or settings.db_pool_max
        try:
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=min_size,
                max_size=max_size,
                command_timeout=60
            )
            logger.info("database_connected", min_size=min_size, max_size=max_size)
        except Exception as e:
            logger.error("database_connection_failed", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close database connection pool"""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("database_disconnected")

    @property
    def pool(self) -> Pool:
        """Get connection pool"""
        if not self._pool:
            raise RuntimeError("Database client not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Connection]:
        """
        Acquire a connection from the pool

        Usage:
            async with client.acquire() as conn:
                result = await conn.fetch("SELECT * FROM stocks")
        """
        async with self.pool.acquire() as connection:
            yield connection

    # =============================================
    # QUERY OPERATIONS
    # =============================================

    async def execute(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None
    ) -> str:
        """
        Execute a query without returning results

        Returns:
            Status message (e.g. "INSERT 0 1")
        """
        try:
            async with self.acquire() as conn:
                result = await conn.execute(query, *args, timeout=timeout)
                logger.debug("query_executed", query=query[:100], result=result)
                return result
        except Exception as e:
            logger.error("query_execution_error", query=query[:100], error=str(e))
            raise

    async def fetch(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        """Fetch multiple rows as dictionaries"""
        try:
            async with self.acquire() as conn:
                rows = await conn.fetch(query, *args, timeout=timeout)
                return [dict(row) for row in rows]
        except Exception as e:
            logger.error("query_fetch_error", query=query[:100], error=str(e))
            raise

    async def fetchrow(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None
    ) -> Optional[Dict[str, Any]]:
        """Fetch a single row as dictionary or None"""
        try:
            async with self.acquire() as conn:
                row = await conn.fetchrow(query, *args, timeout=timeout)
                return dict(row) if row else None
        except Exception as e:
            logger.error("query_fetchrow_error", query=query[:100], error=str(e))
            raise

    async def fetchval(
        self,
        query: str,
        *args,
        column: int = 0,
        timeout: Optional[float] = None
    ) -> Any:
        """Fetch a single value"""
        try:
            async with self.acquire() as conn:
                return await conn.fetchval(query, *args, column=column, timeout=timeout)
        except Exception as e:
            logger.error("query_fetchval_error", query=query[:100], error=str(e))
            raise

    # =============================================
    # HEALTH CHECK
    # =============================================

    async def health_check(self) -> bool:
        """Check if database is healthy"""
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return False
