"""
Read-only access to the monitored PostgreSQL server.

A DataSource owns one asyncpg pool. It is constructed explicitly and handed
to the report collectors, so tests can swap in any object with the same
``fetch``/``fetchrow``/``ping`` coroutines.
"""

import asyncio
import contextlib
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urlparse

import asyncpg
import asyncpg.exceptions

from pgmonitor.config import Settings
from pgmonitor.errors import (
    DataSourceError,
    DataSourceUnavailable,
    OptionalFeatureMissing,
    QueryFailed,
)
from pgmonitor.logger import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]

# Errors that mean "no usable connection", as opposed to a rejected query.
_UNAVAILABLE_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.InvalidAuthorizationSpecificationError,
    asyncpg.exceptions.InvalidCatalogNameError,
)

# Server errors raised when an optional extension or view is absent.
_MISSING_FEATURE_ERRORS = (
    asyncpg.exceptions.UndefinedTableError,
    asyncpg.exceptions.UndefinedFunctionError,
    asyncpg.exceptions.UndefinedColumnError,
    asyncpg.exceptions.ObjectNotInPrerequisiteStateError,
    asyncpg.exceptions.InsufficientPrivilegeError,
)


def translate_error(exc: BaseException) -> DataSourceError:
    """Map a driver exception onto the pgmonitor error taxonomy."""
    if isinstance(exc, DataSourceError):
        return exc
    if isinstance(exc, _UNAVAILABLE_ERRORS):
        return DataSourceUnavailable(f"database unavailable: {exc}" if str(exc) else "database unavailable")
    if isinstance(exc, _MISSING_FEATURE_ERRORS):
        return OptionalFeatureMissing(str(exc))
    return QueryFailed(str(exc))


class DataSource:
    """
    Lazily created asyncpg pool with bounded size, acquisition timeout and
    idle-connection eviction.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: Optional[asyncpg.Pool] = None
        self._connecting: Optional[asyncio.Future] = None

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def _create_pool(self) -> asyncpg.Pool:
        timeout = self._settings.DATABASE_CONNECT_TIMEOUT
        parsed = urlparse(self._settings.asyncpg_dsn)
        logger.info(f"Connecting to database: {parsed.hostname}:{parsed.port}/{parsed.path.lstrip('/')}")
        self._pool = await asyncio.wait_for(
            asyncpg.create_pool(
                self._settings.asyncpg_dsn,
                min_size=self._settings.DATABASE_POOL_MIN_SIZE,
                max_size=self._settings.DATABASE_POOL_SIZE,
                max_inactive_connection_lifetime=self._settings.DATABASE_POOL_IDLE_TIMEOUT,
                command_timeout=self._settings.DATABASE_COMMAND_TIMEOUT,
                timeout=timeout,
            ),
            timeout=timeout,
        )
        return self._pool

    async def connect(self) -> asyncpg.Pool:
        """
        Create the pool on first use.

        Concurrent callers share one creation attempt, bounded by
        DATABASE_CONNECT_TIMEOUT. A failed attempt is not cached; the next
        call tries again.
        """
        if self._pool is not None:
            return self._pool

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._create_pool())
        attempt = self._connecting
        try:
            return await asyncio.shield(attempt)
        except Exception as e:
            raise translate_error(e) from e
        finally:
            if attempt.done() and self._connecting is attempt:
                self._connecting = None

    async def close(self) -> None:
        """Close the pool, terminating connections that do not close in time."""
        if self._connecting is not None:
            self._connecting.cancel()
            self._connecting = None
        pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            await asyncio.wait_for(pool.close(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Pool close timed out after 5 seconds - terminating connections")
            pool.terminate()

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        pool = await self.connect()
        try:
            conn = await pool.acquire(timeout=self._settings.DATABASE_POOL_TIMEOUT)
        except Exception as e:
            raise translate_error(e) from e
        try:
            yield conn
        finally:
            await pool.release(conn)

    async def fetch(self, sql: str, *args: Any) -> List[Row]:
        """Run a read-only query and return its rows as plain dicts."""
        async with self.acquire() as conn:
            try:
                records = await conn.fetch(sql, *args)
            except Exception as e:
                raise translate_error(e) from e
        return [dict(record) for record in records]

    async def fetchrow(self, sql: str, *args: Any) -> Row:
        """Run a single-row query; an empty result is an empty snapshot."""
        rows = await self.fetch(sql, *args)
        return rows[0] if rows else {}

    async def ping(self) -> None:
        await self.fetch("SELECT 1")
