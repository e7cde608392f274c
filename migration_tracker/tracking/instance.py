"""
Lifecycle operations for a single named migration.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from migration_tracker.core.exceptions import NotFoundError, ValidationError
from migration_tracker.tracking.models import (
    MigrationRecord,
    MigrationStatus,
    StatusChange,
    TransitionResult,
    script_checksum,
)
from migration_tracker.tracking.store import MigrationStore


def _require_text(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    return value


class MigrationInstance:
    """
    Handle bound to one migration name.

    Every operation touches exactly one document through a single atomic
    insert or update, so concurrent handles on different names never
    interfere. Concurrent transitions on the same name are last-write-wins.

    Usage:
        migration = MigrationInstance("20240101120000_add_users", store)
        await migration.add("alice")
        result = await migration.apply(script, "bob")
        result.raise_if_not_found()
    """

    def __init__(self, name: str, store: MigrationStore):
        """
        Args:
            name: Unique migration name.
            store: Backend holding migration records.
        """
        self.name = _require_text(name, "name")
        self._store = store

    def __repr__(self) -> str:
        return f"MigrationInstance(name={self.name!r})"

    async def add(self, author_name: str, *, timeout: Optional[float] = None) -> MigrationRecord:
        """
        Register the migration in the PENDING state.

        Args:
            author_name: Author of the migration script.
            timeout: Deadline in seconds, defaults to the store's.

        Returns:
            The created record.

        Raises:
            DuplicateMigrationError: If the name is already registered.
        """
        record = MigrationRecord(
            name=self.name,
            status=MigrationStatus.PENDING,
            script_author=_require_text(author_name, "script_author"),
            date_added=datetime.now(timezone.utc),
        )
        await self._store.insert_one(record.to_dict(), timeout=timeout)
        return record

    async def apply(
        self,
        script_content: Optional[str],
        acting_user: str,
        *,
        timeout: Optional[float] = None,
    ) -> TransitionResult:
        """
        Mark the migration COMPLETED.

        The script content is only hashed into the audit trail; records are
        matched by name alone.
        """
        return await self._transition(
            MigrationStatus.COMPLETED,
            acting_user,
            checksum=script_checksum(script_content),
            timeout=timeout,
        )

    async def update_status(
        self,
        new_status: Union[MigrationStatus, str],
        acting_user: str,
        *,
        timeout: Optional[float] = None,
    ) -> TransitionResult:
        """
        Move the migration to an explicit status.

        Raises:
            ValidationError: If ``new_status`` is not a known status.
        """
        return await self._transition(
            MigrationStatus.parse(new_status), acting_user, timeout=timeout
        )

    async def get(self, *, timeout: Optional[float] = None) -> MigrationRecord:
        """
        Read back the bound record.

        Raises:
            NotFoundError: If the migration was never added.
        """
        docs = await self._store.find({"name": self.name}, timeout=timeout)
        if not docs:
            raise NotFoundError(self.name)
        return MigrationRecord.from_dict(docs[0])

    async def _transition(
        self,
        status: MigrationStatus,
        acting_user: str,
        checksum: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> TransitionResult:
        change = StatusChange(
            status=status,
            changed_by=_require_text(acting_user, "changed_by"),
            date_changed=datetime.now(timezone.utc),
            script_checksum=checksum,
        )
        modified = await self._store.update_one(
            {"name": self.name},
            {
                "$set": {
                    "status": status.value,
                    "changed_by": change.changed_by,
                    "date_changed": change.date_changed,
                },
                "$push": {"history": change.to_dict()},
            },
            timeout=timeout,
        )
        return TransitionResult(name=self.name, modified_count=modified)
