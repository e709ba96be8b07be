"""
Per-context database connections.

A transaction binds one asyncpg connection to the running task through a
ContextVar; repositories pick it up with DatabaseManager.get_current_connection()
instead of taking it as an argument. Every statement sent through
DatabaseOperations is logged at DEBUG and, while tracking is on, captured in
the context's QueryTracker.
"""

import logging
import traceback
from collections.abc import Iterator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import wraps
from typing import Any, ClassVar

import asyncpg

logger = logging.getLogger(__name__)

_connection_var: ContextVar[asyncpg.Connection | None] = ContextVar(
    "post_service_connection", default=None
)
_tracker_var: ContextVar["QueryTracker | None"] = ContextVar(
    "post_service_query_tracker", default=None
)


@dataclass
class QueryLog:
    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None


@dataclass
class QueryTracker:
    """SQL statements captured while the tracker is enabled"""

    queries: list[QueryLog] = field(default_factory=list)
    enabled: bool = False

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False

    def is_enabled(self) -> bool:
        return self.enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        if self.enabled:
            self.queries.append(QueryLog(query, list(params), stack_trace=stack_trace))

    def get_queries(self) -> list[QueryLog]:
        return list(self.queries)

    def clear(self):
        self.queries.clear()

    def count(self) -> int:
        return len(self.queries)


def _caller_stack() -> str:
    # Drop this helper, DatabaseManager.log_query and the DatabaseOperations frame
    return "".join(traceback.format_list(traceback.extract_stack()[:-3]))


@contextmanager
def _bound[V](var: ContextVar[V], value: V) -> Iterator[V]:
    token = var.set(value)
    try:
        yield value
    finally:
        var.reset(token)


class DatabaseManager:
    """Registry of named asyncpg pools and the connection of the current context"""

    _pools: ClassVar[dict[str, asyncpg.Pool]] = {}

    @classmethod
    async def add_pool(cls, name: str, pool: asyncpg.Pool):
        cls._pools[name] = pool

    @classmethod
    async def create_pool(
        cls, name: str, dsn: str, min_size: int = 1, max_size: int = 10
    ) -> asyncpg.Pool:
        """Open a pool for `dsn` and register it under `name`"""
        pool = await asyncpg.create_pool(dsn, min_size=min_size, max_size=max_size)
        await cls.add_pool(name, pool)
        logger.info("Registered database pool '%s' (%d-%d connections)", name, min_size, max_size)
        return pool

    @classmethod
    async def get_pool(cls, name: str = "default") -> asyncpg.Pool:
        pool = cls._pools.get(name)
        if pool is None:
            raise ValueError(f"Database pool '{name}' not found")
        return pool

    @classmethod
    async def close_pool(cls, name: str = "default"):
        """Unregister and close a pool; unknown names are ignored"""
        pool = cls._pools.pop(name, None)
        if pool is None:
            return
        await pool.close()
        logger.info("Closed database pool '%s'", name)

    @classmethod
    def get_current_connection(cls) -> asyncpg.Connection | None:
        return _connection_var.get()

    @classmethod
    def get_query_tracker(cls) -> QueryTracker | None:
        return _tracker_var.get()

    @classmethod
    def log_query(cls, query: str, params: list[Any]):
        logger.debug("SQL: %s | params: %r", query, params)
        tracker = _tracker_var.get()
        if tracker is not None and tracker.is_enabled():
            tracker.log_query(query, params, _caller_stack())

    @classmethod
    @asynccontextmanager
    async def transaction(cls, db_name: str = "default", track_queries: bool = False):
        """Bind a connection of pool `db_name` to the block, inside a transaction.

        Nested calls reuse the bound connection and open a savepoint, so an
        inner failure only rolls back the inner block. The pooled connection
        is released when the outermost block exits.

        Args:
            db_name: Name of the database pool to use
            track_queries: Capture the block's SQL in a new QueryTracker
        """
        conn = _connection_var.get()
        if conn is not None:
            async with conn.transaction():
                yield conn
            return

        pool = await cls.get_pool(db_name)
        async with pool.acquire() as conn, conn.transaction():
            with _bound(_connection_var, conn):
                if track_queries and _tracker_var.get() is None:
                    with _bound(_tracker_var, QueryTracker(enabled=True)):
                        yield conn
                else:
                    yield conn

    @classmethod
    @asynccontextmanager
    async def track_queries(cls):
        """Capture the SQL of the block and yield the tracker.

        async with DatabaseManager.transaction():
            async with DatabaseManager.track_queries() as tracker:
                await post_repository.find_many(descriptor)
            assert tracker.count() == 2  # COUNT(*) and SELECT
        """
        tracker = _tracker_var.get()
        if tracker is None:
            with _bound(_tracker_var, QueryTracker(enabled=True)) as new_tracker:
                yield new_tracker
            return

        was_enabled = tracker.is_enabled()
        tracker.enable()
        try:
            yield tracker
        finally:
            if not was_enabled:
                tracker.disable()


def transactional(db_name: str = "default", query_logs: bool = False):
    """Run the decorated coroutine function in DatabaseManager.transaction().

    Example:
        @transactional(query_logs=True)
        async def list_posts(params):
            return await post_service.find_all(params)
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            async with DatabaseManager.transaction(db_name, track_queries=query_logs):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
