# TimeAudit - Local Cache Bucket Model

import json
from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class CacheBucket(Base, TimestampMixin):
    """
    One named bucket of the local cache.

    Each entity kind (projects, tasks, timesheets, users, time off
    requests) lives in its own bucket as a JSON array. A bucket is always
    read and written as a full collection snapshot; there is no per-row
    storage for entities in the local cache.

    Bucket keys look like "timeaudit_projects".
    """

    __tablename__ = "cache_buckets"

    bucket_key: Mapped[str] = mapped_column(
        String(100),
        primary_key=True
    )

    # JSON array of camelCase records
    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="[]"
    )

    def __repr__(self) -> str:
        return f"<CacheBucket {self.bucket_key} ({len(self.records)} records)>"

    @property
    def records(self) -> list[dict[str, Any]]:
        """Decode the stored snapshot."""
        return json.loads(self.payload or "[]")

    @records.setter
    def records(self, value: list[dict[str, Any]]) -> None:
        self.payload = json.dumps(value)
