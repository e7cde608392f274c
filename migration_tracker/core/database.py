"""
Database configuration with connection pooling and index management.

This module provides:
- A process-wide MongoDB client with connection pooling
- Index creation for the migrations collection
- Database health monitoring utilities
"""
from datetime import timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import OperationFailure, PyMongoError

from migration_tracker.core.config import settings
from migration_tracker.core.exceptions import StoreConnectionError
from migration_tracker.log.logging import logger


class DatabaseManager:
    """
    Manages the MongoDB connection and the migrations collection indexes.

    The client is opened lazily and shared by every store built from it; the
    surrounding application owns its lifecycle through ``init_database`` and
    ``close_database``.
    """

    _instance: Optional["DatabaseManager"] = None
    _client: Optional[AsyncIOMotorClient] = None
    _database: Optional[AsyncIOMotorDatabase] = None
    _indexes_created: bool = False

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def client(self) -> AsyncIOMotorClient:
        """Get or create the MongoDB client with connection pooling."""
        if self._client is None:
            self._client = AsyncIOMotorClient(
                settings.mongodb,
                # Connection pool settings
                maxPoolSize=settings.mongo_max_pool_size,
                minPoolSize=settings.mongo_min_pool_size,
                maxIdleTimeMS=settings.mongo_max_idle_time_ms,
                # Timeouts
                connectTimeoutMS=settings.mongo_connect_timeout_ms,
                serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
                socketTimeoutMS=settings.mongo_socket_timeout_ms,
                # Return aware datetimes so stored timestamps compare with now(utc)
                tz_aware=True,
                tzinfo=timezone.utc,
                retryReads=True,
            )
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """Get the configured database."""
        if self._database is None:
            self._database = self.client[settings.mongodb_database]
        return self._database

    @property
    def migrations_collection(self) -> AsyncIOMotorCollection:
        """Collection holding one document per tracked migration."""
        return self.database[settings.migrations_collection]

    async def create_indexes(self) -> None:
        """
        Create indexes for the migrations collection.

        The unique index on ``name`` is what rejects duplicate registrations.
        Idempotent within a process.
        """
        if self._indexes_created:
            return

        indexes = [
            IndexModel([("name", ASCENDING)], name="idx_name_unique", unique=True),
            IndexModel([("status", ASCENDING)], name="idx_status"),
            IndexModel(
                [("script_author", ASCENDING), ("status", ASCENDING)],
                name="idx_author_status",
            ),
            IndexModel([("changed_by", ASCENDING)], name="idx_changed_by"),
            IndexModel([("date_changed", DESCENDING)], name="idx_date_changed"),
        ]

        try:
            await self.migrations_collection.create_indexes(indexes)
        except OperationFailure as e:
            logger.error("Failed to create indexes: {error}", error=str(e), event_type="index_creation_failed")
            raise

        self._indexes_created = True
        logger.info(
            "Created indexes for {collection} collection",
            collection=settings.migrations_collection,
            event_type="indexes_created",
        )

    async def ping(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise.
        """
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error("Database ping failed: {error}", error=str(e), event_type="database_ping_failed")
            return False

    async def close(self) -> None:
        """Close the database connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            self._indexes_created = False
            logger.info("Database connection closed", event_type="database_closed")


# Singleton instance
db_manager = DatabaseManager()


async def init_database() -> None:
    """
    Initialize database connection and create indexes.

    Call this during application startup.
    """
    logger.info("Initializing database connection...", event_type="database_init")

    if await db_manager.ping():
        logger.info("Database connection established", event_type="database_connected")
    else:
        raise StoreConnectionError("Failed to connect to database")

    await db_manager.create_indexes()


async def close_database() -> None:
    """
    Close database connection.

    Call this during application shutdown.
    """
    await db_manager.close()
