"""
Migration status tracking.

Records when migrations are added, applied, failed or deleted in MongoDB and
answers queries about their history. Migrations themselves run elsewhere.
"""

from migration_tracker.tracking.instance import MigrationInstance
from migration_tracker.tracking.models import (
    MigrationFilter,
    MigrationRecord,
    MigrationStatus,
    StatusChange,
    TransitionResult,
)
from migration_tracker.tracking.reports import MigrationReports
from migration_tracker.tracking.store import (
    InMemoryMigrationStore,
    MigrationStore,
    MongoMigrationStore,
)

__all__ = [
    "MigrationInstance",
    "MigrationReports",
    "MigrationFilter",
    "MigrationRecord",
    "MigrationStatus",
    "StatusChange",
    "TransitionResult",
    "MigrationStore",
    "MongoMigrationStore",
    "InMemoryMigrationStore",
]
