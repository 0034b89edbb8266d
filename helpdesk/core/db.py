"""Process-wide psycopg connection pool with scoped per-request checkout."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg
from psycopg_pool import ConnectionPool

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

_pool: ConnectionPool | None = None


def init_pool(settings: Settings | None = None) -> ConnectionPool:
    """Open the shared pool once; later calls return the existing pool."""

    global _pool
    if _pool is not None:
        return _pool
    settings = settings or get_settings()
    pool = ConnectionPool(
        settings.database_url,
        min_size=settings.db_pool_size,
        max_size=settings.db_pool_size,
        open=False,
        name="helpdesk",
    )
    pool.open()
    logger.info("Opened database pool with %d connections", settings.db_pool_size)
    _pool = pool
    return pool


def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    _pool.close()
    logger.info("Closed database pool")
    _pool = None


def get_pool() -> ConnectionPool:
    if _pool is None:
        raise RuntimeError("Database pool is not initialised")
    return _pool


@contextmanager
def connection() -> Iterator[psycopg.Connection]:
    """Check out one pooled connection for the duration of a request.

    The block runs inside a single transaction: it is committed when the
    block exits normally and rolled back when it raises. The connection is
    returned to the pool on every exit path.
    """

    with get_pool().connection() as conn:
        yield conn
