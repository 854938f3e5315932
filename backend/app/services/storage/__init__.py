"""Storage backend factory: filesystem storage built once from settings."""
from functools import lru_cache

from app.core.config import get_settings
from app.services.storage.base import ObjectStream, StorageBackend
from app.services.storage.local import FsStorage

__all__ = ["FsStorage", "ObjectStream", "StorageBackend", "get_storage"]


@lru_cache
def get_storage() -> StorageBackend:
    """Return the configured storage backend. Configuration errors surface here, at startup."""
    return FsStorage.from_settings(get_settings())
