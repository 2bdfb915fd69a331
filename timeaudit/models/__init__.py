# TimeAudit - SQLAlchemy Models
# The local cache is a single table of JSON snapshot buckets

from .base import Base, TimestampMixin
from .cache_bucket import CacheBucket

__all__ = [
    "Base",
    "TimestampMixin",
    "CacheBucket",
]
