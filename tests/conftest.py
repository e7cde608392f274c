import copy
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.results import InsertOneResult, UpdateResult

from migration_tracker.tracking.store import InMemoryMigrationStore, MongoMigrationStore


class AsyncIterator:
    """Stand-in for a motor cursor."""

    def __init__(self, docs):
        self.docs = docs
        self.index = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.index >= len(self.docs):
            raise StopAsyncIteration
        doc = self.docs[self.index]
        self.index += 1
        return doc

    def sort(self, key, direction=1):
        self.docs = sorted(self.docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self


class FakeMotorCollection:
    """
    Motor collection double with no indexes.

    Implements the document semantics the store relies on: equality
    filters, ``$set``/``$push``/``$setOnInsert`` and upserts. Like a real
    collection without a unique index, ``insert_one`` accepts repeated names.
    """

    def __init__(self):
        self.docs: list[dict] = []

    def _matching(self, filter):
        return [d for d in self.docs if all(d.get(k) == v for k, v in filter.items())]

    async def insert_one(self, doc):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return InsertOneResult(stored["_id"], True)

    async def update_one(self, filter, update, upsert=False):
        matches = self._matching(filter)
        if matches:
            doc = matches[0]
            doc.update(copy.deepcopy(update.get("$set", {})))
            for key, value in update.get("$push", {}).items():
                doc.setdefault(key, []).append(copy.deepcopy(value))
            return UpdateResult({"n": 1, "nModified": 1}, True)
        if not upsert:
            return UpdateResult({"n": 0, "nModified": 0}, True)

        doc = dict(filter)
        doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        doc.update(copy.deepcopy(update.get("$set", {})))
        doc["_id"] = ObjectId()
        self.docs.append(doc)
        return UpdateResult({"n": 1, "nModified": 0, "upserted": doc["_id"]}, True)

    def find(self, filter):
        return AsyncIterator([copy.deepcopy(d) for d in self._matching(filter)])


@pytest.fixture
def async_cursor():
    """Factory building async cursors over a list of documents."""
    return AsyncIterator


@pytest.fixture
def memory_store():
    """Fresh in-memory migration store."""
    return InMemoryMigrationStore()


@pytest.fixture
def mock_collection():
    """Mock motor collection. Async methods are AsyncMocks, cursors are configured per test."""
    collection = MagicMock()
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    return collection


@pytest.fixture
def mongo_store(mock_collection):
    """MongoMigrationStore over the mock collection."""
    return MongoMigrationStore(mock_collection, timeout=1.0)


@pytest.fixture
def fake_collection():
    """Index-less motor collection double."""
    return FakeMotorCollection()


@pytest.fixture
def fake_mongo_store(fake_collection):
    """MongoMigrationStore over the index-less collection double."""
    return MongoMigrationStore(fake_collection, timeout=1.0)


@pytest.fixture
def sample_document():
    """A stored migration that has been applied once."""
    return {
        "_id": "65a0c0ffee",
        "name": "20240101120000_add_users",
        "status": "completed",
        "script_author": "alice",
        "date_added": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        "changed_by": "bob",
        "date_changed": datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc),
        "history": [
            {
                "status": "completed",
                "changed_by": "bob",
                "date_changed": datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc),
                "script_checksum": "ab" * 32,
            }
        ],
    }
