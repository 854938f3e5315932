"""Shared constants for storage and signed URLs."""
from enum import IntEnum

# Query parameter carrying RequestContext.shard_key in signed URLs
SHARD_KEY_NAME = "shardkey"

# Used when a validity window is configured as 0
DEFAULT_URL_EXPIRES_SECONDS = 31536000  # one year


class UrlType(IntEnum):
    """Signed URL kinds. SESSION URLs live as long as an editing session."""

    SESSION = 0
    TEMPORARY = 1
