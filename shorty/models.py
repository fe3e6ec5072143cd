from dataclasses import dataclass, field
from datetime import datetime, UTC


# fmt: off
@dataclass(frozen=True)
class S3Credentials:
    access: str                          # Access key id scoped to a single short URL
    secret: str = field(repr=False)      # Secret access key (never printed)


@dataclass(frozen=True)
class ShortURLModel:
    target: str                          # Destination URL or object storage URL
    shortcode: str                       # Unique short identifier of shortened URL
    object_name: str | None = None       # Derived object key ('' when not object-backed, None when unknown)
    expires_at: datetime | None = None   # TTL as Python datetime, after which this record is expired

    @property
    def is_object_backed(self) -> bool:
        return bool(self.object_name)

    @property
    def ttl(self) -> int | None:
        """Remaining lifetime in whole seconds (None when the record never expires)"""
        if self.expires_at is None:
            return None
        return max(0, int((self.expires_at - datetime.now(UTC)).total_seconds()))


@dataclass(frozen=True)
class StoredObject:
    name: str                            # Object key inside the bucket
    size: int = 0                        # Object size in bytes
    last_modified: datetime | None = None


@dataclass
class ReconcileReport:
    """Outcome of a single reconciliation pass."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    live_objects: set[str] = field(default_factory=set)
    deleted_objects: list[str] = field(default_factory=list)
    removed_cache_entries: list[str] = field(default_factory=list)
    refreshed_cache_entries: list[str] = field(default_factory=list)
    skipped_recent_objects: list[str] = field(default_factory=list)
    errors: int = 0
    aborted: bool = False
# fmt: on
