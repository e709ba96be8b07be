import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from post_service.db_context import DatabaseManager

POSTS_TABLE = """
    id UUID PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    content TEXT NOT NULL,
    images TEXT[] NOT NULL DEFAULT '{}',
    created_by TEXT,
    updated_by TEXT,
    deleted_by TEXT,
    is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
    deleted_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ
"""


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    with PostgresContainer("postgres:17") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def postgres_dsn(postgres_container):
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return (
        f"postgresql://{postgres_container.username}:{postgres_container.password}"
        f"@{host}:{port}/{postgres_container.dbname}"
    )


@pytest_asyncio.fixture(autouse=True)
async def test_db_pool(postgres_dsn):
    """Create a pool registered as "test" for each test."""
    # A new pool per test avoids event loop issues
    pool = await asyncpg.create_pool(postgres_dsn, min_size=1, max_size=5)

    async with pool.acquire() as conn:
        await conn.execute(f"CREATE TABLE IF NOT EXISTS posts ({POSTS_TABLE});")
        await conn.execute(
            """
            CREATE SCHEMA IF NOT EXISTS app;
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL
            );
            """
        )
        await conn.execute(f"CREATE TABLE IF NOT EXISTS app.posts ({POSTS_TABLE});")

    await DatabaseManager.add_pool("test", pool)

    yield pool

    async with pool.acquire() as conn:
        await conn.execute("TRUNCATE TABLE posts, users, app.posts;")

    await DatabaseManager.close_pool("test")
