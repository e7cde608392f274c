"""
Document store backends for migration records.

The tracking layer only needs four primitives from a store: insert one
document, update one document, find by equality filter and fetch the latest
document per migration name. ``MongoMigrationStore`` provides them on top of a
motor collection; ``InMemoryMigrationStore`` keeps documents in a dict.
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    ExecutionTimeout,
    NetworkTimeout,
    PyMongoError,
    WTimeoutError,
)

from migration_tracker.core.config import settings
from migration_tracker.core.exceptions import (
    DuplicateMigrationError,
    StoreConnectionError,
    StoreError,
    StoreTimeoutError,
)
from migration_tracker.log.logging import logger

# Latest document per name, ordered by name. A document that was never
# transitioned counts from its date_added.
LATEST_PER_NAME_PIPELINE = [
    {"$addFields": {"_last_event": {"$ifNull": ["$date_changed", "$date_added"]}}},
    {"$sort": {"name": 1, "_last_event": -1}},
    {"$group": {"_id": "$name", "doc": {"$first": "$$ROOT"}}},
    {"$replaceRoot": {"newRoot": "$doc"}},
    {"$project": {"_last_event": 0}},
    {"$sort": {"name": 1}},
]


class MigrationStore(ABC):
    """Storage primitives used by MigrationInstance and MigrationReports."""

    @abstractmethod
    async def insert_one(self, doc: dict, timeout: Optional[float] = None) -> None:
        """
        Insert a new migration document.

        Raises:
            DuplicateMigrationError: If a document with the same name exists.
        """
        pass

    @abstractmethod
    async def update_one(
        self, filter: dict, update: dict, timeout: Optional[float] = None
    ) -> int:
        """Apply an update to the first matching document and return the modified count."""
        pass

    @abstractmethod
    async def find(self, filter: dict, timeout: Optional[float] = None) -> list[dict]:
        """Return every document matching the equality filter, ordered by name."""
        pass

    @abstractmethod
    async def find_latest(self, timeout: Optional[float] = None) -> list[dict]:
        """Return the most recently changed document for each name, ordered by name."""
        pass


class MongoMigrationStore(MigrationStore):
    """
    Motor-backed store.

    Every call runs under a deadline: the per-call ``timeout`` when given,
    otherwise the store default. Driver errors are translated into the
    tracker's store error kinds and never retried.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the store.

        Args:
            collection: Collection holding one document per migration.
            timeout: Default deadline in seconds for each call.
        """
        self._collection = collection
        self._timeout = timeout if timeout is not None else settings.store_timeout_seconds

    async def _run(self, operation: str, awaitable, timeout: Optional[float]) -> Any:
        deadline = self._timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(awaitable, deadline)
        except DuplicateKeyError:
            raise
        except (asyncio.TimeoutError, NetworkTimeout, ExecutionTimeout, WTimeoutError) as e:
            logger.debug(
                "Store {operation} timed out after {deadline}s",
                operation=operation,
                deadline=deadline,
                event_type="store_timeout",
            )
            raise StoreTimeoutError(f"{operation} timed out after {deadline}s") from e
        except ConnectionFailure as e:
            logger.debug(
                "Store {operation} failed to reach MongoDB: {error}",
                operation=operation,
                error=str(e),
                event_type="store_connection_error",
            )
            raise StoreConnectionError(f"{operation} failed: {e}") from e
        except PyMongoError as e:
            logger.debug(
                "Store {operation} failed: {error}",
                operation=operation,
                error=str(e),
                event_type="store_error",
            )
            raise StoreError(f"{operation} failed: {e}") from e

    @staticmethod
    async def _collect(cursor) -> list[dict]:
        docs = []
        async for doc in cursor:
            docs.append(doc)
        return docs

    async def insert_one(self, doc: dict, timeout: Optional[float] = None) -> None:
        """
        Insert ``doc`` unless a document with the same name already exists.

        Runs as an upsert with ``$setOnInsert`` so the name stays unique even
        on a collection without the ``idx_name_unique`` index. With the index
        in place, a concurrent insert of the same name surfaces as
        ``DuplicateKeyError`` and is reported the same way.
        """
        name = doc["name"]
        try:
            result = await self._run(
                "insert_one",
                self._collection.update_one(
                    {"name": name}, {"$setOnInsert": doc}, upsert=True
                ),
                timeout,
            )
        except DuplicateKeyError as e:
            raise DuplicateMigrationError(name) from e

        if result.upserted_id is None:
            raise DuplicateMigrationError(name)

        logger.debug(
            "Inserted migration document {name}",
            name=doc["name"],
            event_type="store_insert",
        )

    async def update_one(
        self, filter: dict, update: dict, timeout: Optional[float] = None
    ) -> int:
        result = await self._run(
            "update_one", self._collection.update_one(filter, update), timeout
        )
        logger.debug(
            "Updated migration documents",
            filter=filter,
            modified_count=result.modified_count,
            event_type="store_update",
        )
        return result.modified_count

    async def find(self, filter: dict, timeout: Optional[float] = None) -> list[dict]:
        cursor = self._collection.find(filter).sort("name", 1)
        docs = await self._run("find", self._collect(cursor), timeout)
        logger.debug(
            "Found {count} migration documents",
            count=len(docs),
            filter=filter,
            event_type="store_find",
        )
        return docs

    async def find_latest(self, timeout: Optional[float] = None) -> list[dict]:
        cursor = self._collection.aggregate(LATEST_PER_NAME_PIPELINE)
        return await self._run("find_latest", self._collect(cursor), timeout)


class InMemoryMigrationStore(MigrationStore):
    """
    Dict-backed store keyed by migration name.

    Supports the ``$set`` and ``$push`` update operators used by the tracking
    layer. Calls never block, so deadlines are accepted and ignored.
    """

    def __init__(self):
        self._docs: dict[str, dict] = {}

    @staticmethod
    def _matches(doc: dict, filter: dict) -> bool:
        return all(doc.get(key) == value for key, value in filter.items())

    async def insert_one(self, doc: dict, timeout: Optional[float] = None) -> None:
        await asyncio.sleep(0)
        if doc["name"] in self._docs:
            raise DuplicateMigrationError(doc["name"])
        self._docs[doc["name"]] = copy.deepcopy(doc)

    async def update_one(
        self, filter: dict, update: dict, timeout: Optional[float] = None
    ) -> int:
        await asyncio.sleep(0)
        unsupported = set(update) - {"$set", "$push"}
        if unsupported:
            raise ValueError(f"Unsupported update operators: {sorted(unsupported)}")

        for doc in self._docs.values():
            if not self._matches(doc, filter):
                continue
            doc.update(copy.deepcopy(update.get("$set", {})))
            for key, value in update.get("$push", {}).items():
                doc.setdefault(key, []).append(copy.deepcopy(value))
            return 1
        return 0

    async def find(self, filter: dict, timeout: Optional[float] = None) -> list[dict]:
        await asyncio.sleep(0)
        return [
            copy.deepcopy(self._docs[name])
            for name in sorted(self._docs)
            if self._matches(self._docs[name], filter)
        ]

    async def find_latest(self, timeout: Optional[float] = None) -> list[dict]:
        # One document per name, so the latest is the only one
        return await self.find({}, timeout=timeout)
