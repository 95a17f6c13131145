"""Postgres pool shared by the profile endpoints."""

from collections.abc import AsyncIterator

from fastapi import HTTPException
import psycopg
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from .config import settings

pool: AsyncConnectionPool | None = None


async def init_db_pool() -> None:
    global pool

    # Conversations and conversation starters work without a database.
    if not settings.database_url:
        return

    pool = AsyncConnectionPool(
        conninfo=settings.database_url,
        open=False,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )
    await pool.open()


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None


async def database_status() -> str:
    """Return `ok`, `unconfigured` or `unavailable` for the health probe."""
    if pool is None:
        return "unconfigured"

    try:
        async with pool.connection() as connection:
            await connection.execute("SELECT 1")
    except (psycopg.Error, PoolTimeout):
        return "unavailable"
    return "ok"


async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    if pool is None:
        raise HTTPException(
            status_code=503,
            detail="Profile storage is unavailable because DATABASE_URL is not configured.",
        )

    async with pool.connection() as connection:
        yield connection
