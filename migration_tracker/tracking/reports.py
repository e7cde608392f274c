"""
Read-only reporting over all migration records.
"""

from collections.abc import Mapping
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from migration_tracker.core.exceptions import ValidationError
from migration_tracker.tracking.models import MigrationFilter, MigrationRecord, MigrationStatus
from migration_tracker.tracking.store import MigrationStore

FilterLike = Union[MigrationFilter, Mapping, None]


def build_filter(filter: FilterLike = None, **fields) -> MigrationFilter:
    """
    Normalize a filter given as a model, a mapping and/or keyword fields.

    Keyword fields override mapping entries of the same name.

    Raises:
        ValidationError: On unknown keys or an unrecognized status.
    """
    if isinstance(filter, MigrationFilter) and not fields:
        return filter

    if isinstance(filter, MigrationFilter):
        values = filter.model_dump(exclude_none=True)
    else:
        values = dict(filter or {})
    values.update({k: v for k, v in fields.items() if v is not None})

    if values.get("status") is not None:
        values["status"] = MigrationStatus.parse(values["status"])

    try:
        return MigrationFilter(**values)
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise ValidationError(f"Invalid report filter: {error['msg']}", field=field) from e


class MigrationReports:
    """
    Query facade over the migration collection.

    Results are snapshots ordered by migration name and are never truncated.
    """

    def __init__(self, store: MigrationStore):
        self._store = store

    async def get_current(self, *, timeout: Optional[float] = None) -> list[MigrationRecord]:
        """Latest status of every known migration, one entry per name."""
        docs = await self._store.find_latest(timeout=timeout)
        return [MigrationRecord.from_dict(doc) for doc in docs]

    async def get(
        self,
        filter: FilterLike = None,
        *,
        timeout: Optional[float] = None,
        **fields,
    ) -> list[MigrationRecord]:
        """
        Records matching every given field of {status, script_author, changed_by}.

        Examples:
            await reports.get(status=MigrationStatus.FAILED)
            await reports.get({"script_author": "alice", "status": "completed"})
        """
        query = build_filter(filter, **fields).to_query()
        docs = await self._store.find(query, timeout=timeout)
        return [MigrationRecord.from_dict(doc) for doc in docs]

    async def summary(self, *, timeout: Optional[float] = None) -> dict[str, int]:
        """Number of migrations currently in each status."""
        counts = {status.value: 0 for status in MigrationStatus}
        for record in await self.get_current(timeout=timeout):
            counts[record.status.value] += 1
        return counts
