"""Tests for DatabaseManager."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from migration_tracker.core import database
from migration_tracker.core.config import settings
from migration_tracker.core.database import DatabaseManager, close_database, init_database
from migration_tracker.core.exceptions import StoreConnectionError


@pytest.fixture
def manager():
    """Singleton manager wired to a mocked client, reset afterwards."""
    db_manager = DatabaseManager()
    client = MagicMock()
    collection = MagicMock()
    collection.create_indexes = AsyncMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.__getitem__.return_value.__getitem__.return_value = collection

    db_manager._client = client
    db_manager._database = None
    db_manager._indexes_created = False
    yield db_manager, client, collection

    db_manager._client = None
    db_manager._database = None
    db_manager._indexes_created = False


class TestDatabaseManager:
    def test_singleton(self):
        assert DatabaseManager() is DatabaseManager()
        assert database.db_manager is DatabaseManager()

    def test_client_is_created_once_with_pool_settings(self):
        db_manager = DatabaseManager()
        db_manager._client = None
        try:
            with patch("migration_tracker.core.database.AsyncIOMotorClient") as mock_client:
                first = db_manager.client
                second = db_manager.client

            assert first is second
            mock_client.assert_called_once()
            args, kwargs = mock_client.call_args
            assert args == (settings.mongodb,)
            assert kwargs["maxPoolSize"] == settings.mongo_max_pool_size
            assert kwargs["tz_aware"] is True
        finally:
            db_manager._client = None
            db_manager._database = None

    def test_migrations_collection(self, manager):
        db_manager, client, collection = manager

        assert db_manager.migrations_collection is collection
        client.__getitem__.assert_called_with(settings.mongodb_database)
        client.__getitem__.return_value.__getitem__.assert_called_with(
            settings.migrations_collection
        )

    @pytest.mark.asyncio
    async def test_create_indexes_has_unique_name(self, manager):
        db_manager, _, collection = manager

        await db_manager.create_indexes()

        [indexes] = collection.create_indexes.call_args.args
        documents = {index.document["name"]: index.document for index in indexes}
        assert documents["idx_name_unique"]["unique"] is True
        assert dict(documents["idx_name_unique"]["key"]) == {"name": 1}
        assert {"idx_status", "idx_author_status", "idx_changed_by", "idx_date_changed"} <= set(
            documents
        )

    @pytest.mark.asyncio
    async def test_create_indexes_once(self, manager):
        db_manager, _, collection = manager

        await db_manager.create_indexes()
        await db_manager.create_indexes()

        collection.create_indexes.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_indexes_failure_propagates(self, manager):
        db_manager, _, collection = manager
        collection.create_indexes.side_effect = OperationFailure("not authorized")

        with pytest.raises(OperationFailure):
            await db_manager.create_indexes()

        assert db_manager._indexes_created is False

    @pytest.mark.asyncio
    async def test_ping(self, manager):
        db_manager, client, _ = manager

        assert await db_manager.ping() is True
        client.admin.command.assert_awaited_once_with("ping")

    @pytest.mark.asyncio
    async def test_ping_failure(self, manager):
        db_manager, client, _ = manager
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        assert await db_manager.ping() is False

    @pytest.mark.asyncio
    async def test_close(self, manager):
        db_manager, client, _ = manager

        await close_database()

        client.close.assert_called_once()
        assert db_manager._client is None


class TestInitDatabase:
    @pytest.mark.asyncio
    async def test_init_creates_indexes(self, manager):
        _, _, collection = manager

        await init_database()

        collection.create_indexes.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_init_unreachable(self, manager):
        _, client, collection = manager
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        with pytest.raises(StoreConnectionError):
            await init_database()

        collection.create_indexes.assert_not_called()
