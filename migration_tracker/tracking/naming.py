"""Timestamp-prefixed migration names."""

import re
from datetime import datetime, timezone

from migration_tracker.core.exceptions import ValidationError

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def now_as_string(now: datetime | None = None) -> str:
    """Current UTC time as ``YYYYMMDDHHMMSS``."""
    return (now or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)


def new_migration_name(description: str, now: datetime | None = None) -> str:
    """
    Build a sortable migration name such as ``20240101120000_add_user_index``.

    Raises:
        ValidationError: If the description has no usable characters.
    """
    slug = re.sub(r"[^a-z0-9]+", "_", description.lower()).strip("_")
    if not slug:
        raise ValidationError("Migration description must contain letters or digits", field="description")
    return f"{now_as_string(now)}_{slug}"
