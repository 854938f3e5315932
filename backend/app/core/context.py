"""Per-call context passed into storage operations."""
from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Caller context. shard_key, when set, is propagated into signed URLs for downstream routing."""

    shard_key: str | None = None
