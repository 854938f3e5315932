"""Storage backend interface: object CRUD, listing and signed URLs. Implementation: local/network filesystem."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator

from app.core.constants import UrlType
from app.core.context import RequestContext

STREAM_CHUNK_SIZE = 64 * 1024


@dataclass
class ObjectStream:
    """Open object stream owned by the caller: consume it fully or close it (async with)."""

    content_length: int
    stream: Any  # async file object (aiofiles)

    async def read(self, size: int = -1) -> bytes:
        return await self.stream.read(size)

    async def aclose(self) -> None:
        await self.stream.close()

    async def __aenter__(self) -> ObjectStream:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.stream.read(STREAM_CHUNK_SIZE)
            if not chunk:
                return
            yield chunk


class StorageBackend(ABC):
    """Abstract object storage addressed by slash-delimited keys."""

    @abstractmethod
    async def head_object(self, storage_key: str) -> dict:
        """Return metadata: content_length (int). Raise FileNotFoundError if missing."""
        ...

    @abstractmethod
    async def get_object(self, storage_key: str) -> bytes:
        ...

    @abstractmethod
    async def create_read_stream(self, storage_key: str) -> ObjectStream:
        ...

    @abstractmethod
    async def put_object(self, storage_key: str, data: Any, content_length: int | None = None) -> None:
        """Create or overwrite storage_key. data is bytes or a byte stream (async/sync iterable or file-like)."""
        ...

    @abstractmethod
    async def upload_object(self, storage_key: str, local_path: str) -> None:
        """Copy a local file or directory tree to storage_key."""
        ...

    @abstractmethod
    async def copy_object(self, source_key: str, destination_key: str) -> None:
        ...

    @abstractmethod
    async def list_objects(self, prefix: str) -> list[str]:
        """Return keys of all objects under prefix, recursively, with "/" separators."""
        ...

    @abstractmethod
    async def delete_object(self, storage_key: str) -> None:
        """Delete storage_key. Missing objects are not an error."""
        ...

    @abstractmethod
    async def delete_path(self, prefix: str) -> None:
        """Delete everything under prefix. Missing prefixes are not an error."""
        ...

    @abstractmethod
    def get_signed_url(
        self,
        ctx: RequestContext,
        base_url: str,
        storage_key: str,
        url_type: UrlType,
        filename: str | None = None,
        creation_date: datetime | None = None,
    ) -> str:
        """Return a time-limited download URL for storage_key. Does not check that the object exists."""
        ...
