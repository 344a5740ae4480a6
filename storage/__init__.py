"""Content Pack persistence."""

from .content_pack_store import (
    ContentPackRecord,
    ContentPackStore,
    ContentPackStoreError,
    FileContentPackStore,
    InMemoryContentPackStore,
)

__all__ = [
    "ContentPackRecord",
    "ContentPackStore",
    "ContentPackStoreError",
    "FileContentPackStore",
    "InMemoryContentPackStore",
]
