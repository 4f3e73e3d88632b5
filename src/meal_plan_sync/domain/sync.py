"""Domain states for cache synchronization."""

from enum import Enum


class SyncStatus(Enum):
    """Persistence status of the latest edit for a week."""

    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"


class FetchState(Enum):
    """What the cache knows about the backing store copy of a week."""

    UNKNOWN = "unknown"
    LOADING = "loading"
    FOUND = "found"
    NOT_FOUND = "not_found"


class ViewMode(Enum):
    """Calendar views that can display a week's plan."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
