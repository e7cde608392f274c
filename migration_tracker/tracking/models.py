"""
Migration record data models and status tracking.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from migration_tracker.core.exceptions import NotFoundError, ValidationError


class MigrationStatus(str, Enum):
    """Status of a tracked migration."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value: Any) -> "MigrationStatus":
        """
        Coerce a status member, value ("failed") or name ("FAILED").

        Raises:
            ValidationError: If the value is not a known status.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        allowed = ", ".join(s.value for s in cls)
        raise ValidationError(
            f"Unrecognized migration status {value!r} (expected one of: {allowed})",
            field="status",
        )


def script_checksum(script_content: Optional[str]) -> Optional[str]:
    """SHA256 hex digest of a migration script, None when no script was given."""
    if script_content is None:
        return None
    return hashlib.sha256(script_content.encode("utf-8")).hexdigest()


@dataclass
class StatusChange:
    """
    One entry of a record's audit trail.

    Attributes:
        status: Status the migration moved to.
        changed_by: User who performed the transition.
        date_changed: When the transition happened.
        script_checksum: Hash of the script content supplied to ``apply``.
    """

    status: MigrationStatus
    changed_by: str
    date_changed: datetime
    script_checksum: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for MongoDB storage."""
        return {
            "status": self.status.value,
            "changed_by": self.changed_by,
            "date_changed": self.date_changed,
            "script_checksum": self.script_checksum,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StatusChange":
        """Create from an embedded MongoDB document."""
        return cls(
            status=MigrationStatus.parse(data["status"]),
            changed_by=data["changed_by"],
            date_changed=data["date_changed"],
            script_checksum=data.get("script_checksum"),
        )


@dataclass
class MigrationRecord:
    """
    Record of a migration stored in the database.

    ``changed_by`` and ``date_changed`` stay None until the first transition
    and are left out of the stored document until then.
    """

    name: str
    status: MigrationStatus
    script_author: str
    date_added: datetime
    changed_by: Optional[str] = None
    date_changed: Optional[datetime] = None
    history: list[StatusChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for MongoDB storage."""
        doc = {
            "name": self.name,
            "status": self.status.value,
            "script_author": self.script_author,
            "date_added": self.date_added,
            "history": [change.to_dict() for change in self.history],
        }
        if self.changed_by is not None:
            doc["changed_by"] = self.changed_by
        if self.date_changed is not None:
            doc["date_changed"] = self.date_changed
        return doc

    @classmethod
    def from_dict(cls, data: dict) -> "MigrationRecord":
        """Create from MongoDB document."""
        return cls(
            name=data["name"],
            status=MigrationStatus.parse(data["status"]),
            script_author=data["script_author"],
            date_added=data["date_added"],
            changed_by=data.get("changed_by"),
            date_changed=data.get("date_changed"),
            history=[StatusChange.from_dict(h) for h in data.get("history", [])],
        )


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a status transition.

    A ``modified_count`` of 0 means no record carries the name. The store does
    not raise for this, callers decide via ``raise_if_not_found``.
    """

    name: str
    modified_count: int

    @property
    def found(self) -> bool:
        return self.modified_count > 0

    def raise_if_not_found(self) -> "TransitionResult":
        """
        Raises:
            NotFoundError: If the transition matched no record.
        """
        if not self.found:
            raise NotFoundError(self.name)
        return self


class MigrationFilter(BaseModel):
    """Conjunctive report filter. Omitted fields are unconstrained."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: Optional[MigrationStatus] = None
    script_author: Optional[str] = None
    changed_by: Optional[str] = None

    def to_query(self) -> dict:
        """Build the MongoDB equality query for the fields that were set."""
        query = self.model_dump(exclude_none=True)
        if self.status is not None:
            query["status"] = self.status.value
        return query
