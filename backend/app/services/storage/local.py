"""Filesystem storage: objects are plain files under storage_folder_path; signed URLs are served by the fronting proxy."""
from __future__ import annotations

import asyncio
import errno
import inspect
import logging
import os
import re
import shutil
import stat
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Iterator

import aiofiles
import aiofiles.os

from app.core.config import Settings
from app.core.constants import UrlType
from app.core.context import RequestContext
from app.core.metrics import record_signed_url_mint, track_operation
from app.core.structured_logging import log_event
from app.services.storage.base import STREAM_CHUNK_SIZE, ObjectStream, StorageBackend
from app.services.storage.errors import IncompleteWriteError, InvalidStorageKeyError
from app.services.storage.paths import PathResolver
from app.services.storage.signing import SignedUrlConfig, SignedUrlIssuer

logger = logging.getLogger("app.storage")

# In-flight put_object temp files: ".<name>.upload-<hex>.part"
_PARTIAL_RE = re.compile(r"^\..*\.upload-[0-9a-f]{32}\.part$")


def _partial_path(path: Path) -> Path:
    return path.with_name(f".{path.name}.upload-{uuid.uuid4().hex}.part")


def _copy(source: Path, destination: Path) -> None:
    """Recursive copy that overwrites existing files, like `cp -rf`. Missing sources create nothing."""
    st = source.stat()
    if stat.S_ISDIR(st.st_mode):
        shutil.copytree(source, destination, dirs_exist_ok=True)
    else:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)


def _ignore_missing(func, path, exc) -> None:
    # rmtree error hook; onerror passes exc_info, onexc the exception
    if isinstance(exc, tuple):
        exc = exc[1]
    if not isinstance(exc, FileNotFoundError):
        raise exc


def _remove(path: Path) -> None:
    """Recursive delete like `rm -rf`: entries removed concurrently by someone else are not an error."""
    try:
        if path.is_dir() and not path.is_symlink():
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=_ignore_missing)
            else:
                shutil.rmtree(path, onerror=_ignore_missing)
        else:
            path.unlink(missing_ok=True)
    except FileNotFoundError:
        pass


def _walk_files(path: Path) -> list[str]:
    if path.is_file():
        return [str(path)]
    files = []
    for dirpath, _, filenames in os.walk(path):
        for fn in filenames:
            if not _PARTIAL_RE.match(fn):
                files.append(os.path.join(dirpath, fn))
    return files


async def _iter_chunks(data: Any) -> AsyncIterator[bytes]:
    if isinstance(data, str):
        raise TypeError("put_object expects bytes or a byte stream, not str")
    if hasattr(data, "read"):
        while True:
            if inspect.iscoroutinefunction(data.read):
                chunk = await data.read(STREAM_CHUNK_SIZE)
            else:
                chunk = await asyncio.to_thread(data.read, STREAM_CHUNK_SIZE)
            if not chunk:
                return
            yield chunk
    elif hasattr(data, "__aiter__"):
        async for chunk in data:
            yield chunk
    else:
        for chunk in data:
            yield chunk


async def _write_all(out: Any, data: Any) -> int:
    if isinstance(data, (bytes, bytearray, memoryview)):
        await out.write(data)
        return memoryview(data).nbytes
    written = 0
    async for chunk in _iter_chunks(data):
        await out.write(chunk)
        written += len(chunk)
    return written


class FsStorage(StorageBackend):
    """Object storage over a local or network-mounted directory."""

    def __init__(self, resolver: PathResolver, signer: SignedUrlIssuer) -> None:
        self._resolver = resolver
        self._signer = signer

    @classmethod
    def from_settings(cls, settings: Settings) -> FsStorage:
        return cls(
            PathResolver(settings.storage_folder_path),
            SignedUrlIssuer(SignedUrlConfig.from_settings(settings)),
        )

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    @contextmanager
    def _observe(self, operation: str, storage_key: str) -> Iterator[None]:
        try:
            with track_operation(operation):
                yield
        except FileNotFoundError as e:
            log_event(logger, logging.DEBUG, "storage_not_found", operation=operation, key=storage_key, error=str(e))
            raise
        except OSError as e:
            log_event(logger, logging.WARNING, "storage_error", operation=operation, key=storage_key, error=repr(e))
            raise

    async def _stat_object(self, storage_key: str) -> tuple[Path, os.stat_result]:
        """Resolve and stat; anything but a regular file is "Object not found"."""
        path = self._resolver.resolve(storage_key)
        st = await aiofiles.os.stat(path)
        if not stat.S_ISREG(st.st_mode):
            raise FileNotFoundError(errno.ENOENT, f"Object not found: {storage_key}", str(path))
        return path, st

    async def head_object(self, storage_key: str) -> dict:
        with self._observe("head_object", storage_key):
            _, st = await self._stat_object(storage_key)
        return {"content_length": st.st_size}

    async def get_object(self, storage_key: str) -> bytes:
        with self._observe("get_object", storage_key):
            path, _ = await self._stat_object(storage_key)
            async with aiofiles.open(path, "rb") as f:
                return await f.read()

    async def create_read_stream(self, storage_key: str) -> ObjectStream:
        with self._observe("create_read_stream", storage_key):
            path, st = await self._stat_object(storage_key)
            f = await aiofiles.open(path, "rb")
        return ObjectStream(content_length=st.st_size, stream=f)

    async def put_object(self, storage_key: str, data: Any, content_length: int | None = None) -> None:
        with self._observe("put_object", storage_key):
            path = self._resolver.resolve(storage_key)
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            partial = _partial_path(path)
            try:
                async with aiofiles.open(partial, "wb") as out:
                    written = await _write_all(out, data)
                if content_length is not None and written != content_length:
                    raise IncompleteWriteError(
                        errno.EIO, f"Wrote {written} of {content_length} bytes", str(path)
                    )
                await aiofiles.os.replace(partial, path)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise
        log_event(logger, logging.DEBUG, "put_object", key=storage_key, content_length=written)

    async def upload_object(self, storage_key: str, local_path: str) -> None:
        with self._observe("upload_object", storage_key):
            path = self._resolver.resolve(storage_key)
            await asyncio.to_thread(_copy, Path(local_path), path)

    async def copy_object(self, source_key: str, destination_key: str) -> None:
        with self._observe("copy_object", f"{source_key} -> {destination_key}"):
            source = self._resolver.resolve(source_key)
            destination = self._resolver.resolve(destination_key)
            await asyncio.to_thread(_copy, source, destination)

    async def list_objects(self, prefix: str) -> list[str]:
        with self._observe("list_objects", prefix):
            path = self._resolver.resolve(prefix)
            files = await asyncio.to_thread(_walk_files, path)
        return sorted(self._resolver.to_logical(f) for f in files)

    async def delete_object(self, storage_key: str) -> None:
        await self._delete("delete_object", storage_key)

    async def delete_path(self, prefix: str) -> None:
        await self._delete("delete_path", prefix)

    async def _delete(self, operation: str, storage_key: str) -> None:
        with self._observe(operation, storage_key):
            path = self._resolver.resolve(storage_key)
            if path == self._resolver.root:
                raise InvalidStorageKeyError("Refusing to delete the storage root")
            await asyncio.to_thread(_remove, path)
        log_event(logger, logging.INFO, operation, key=storage_key)

    def get_signed_url(
        self,
        ctx: RequestContext,
        base_url: str,
        storage_key: str,
        url_type: UrlType,
        filename: str | None = None,
        creation_date: datetime | int | None = None,
    ) -> str:
        url_type = UrlType(url_type)
        url = self._signer.sign(ctx, base_url, storage_key, url_type, filename, creation_date)
        url_type_name = url_type.name.lower()
        record_signed_url_mint(url_type_name)
        log_event(logger, logging.DEBUG, "signed_url", key=storage_key, url_type=url_type_name, url=url)
        return url
