import logging
from typing import Any

from post_service.config import Settings
from post_service.db_context import DatabaseManager
from post_service.post_repository import PostRepository

logger = logging.getLogger(__name__)


class DatabaseService:
    """Owns the asyncpg pool for the configured database.

    Usage:
        database = DatabaseService(get_settings())
        await database.connect()
        async with database.transaction():
            posts = await database.post_repository.where("created_by", "u1").get()
        await database.disconnect()
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pool_name = settings.DB_POOL_NAME
        self.post_repository = PostRepository(db_schema=settings.DB_SCHEMA)

    async def connect(self) -> None:
        try:
            await DatabaseManager.create_pool(
                self.pool_name,
                self.settings.DATABASE_URL,
                min_size=self.settings.DB_POOL_MIN_SIZE,
                max_size=self.settings.DB_POOL_MAX_SIZE,
            )
        except Exception:
            logger.exception("Failed to connect to database")
            raise
        logger.info("Database connection established")

    async def disconnect(self) -> None:
        try:
            await DatabaseManager.close_pool(self.pool_name)
            logger.info("Database connection closed")
        except Exception:
            logger.exception("Error while closing database connection")

    def transaction(self):
        """Transaction on this service's pool"""
        return DatabaseManager.transaction(
            self.pool_name, track_queries=self.settings.QUERY_LOG_ENABLED
        )

    async def is_healthy(self) -> dict[str, Any]:
        try:
            async with self.transaction():
                await self.post_repository.count()
        except Exception as e:
            logger.error("Database health check failed: %s", e)
            return {"database": {"status": "down", "connection": "failed", "error": str(e)}}
        return {"database": {"status": "up", "connection": "active"}}
