"""Storage key <-> filesystem path mapping under a fixed root."""
import os
import re
from pathlib import Path

from app.services.storage.errors import InvalidStorageKeyError

_SEPARATORS = re.compile(r"[\\/]+")


def normalize_key(key: str) -> str:
    """Return key with "/" separators and no empty or "." segments. Raise InvalidStorageKeyError on traversal."""
    if "\x00" in key:
        raise InvalidStorageKeyError(f"Invalid storage key: {key!r}")
    parts = [p for p in _SEPARATORS.split(key) if p and p != "."]
    if ".." in parts:
        raise InvalidStorageKeyError(f"Storage key escapes root: {key!r}")
    return "/".join(parts)


class PathResolver:
    """Maps logical keys to paths under root and back. Paths are computed per call, never cached."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(os.path.abspath(root))

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, key: str) -> Path:
        normalized = normalize_key(key)
        path = self._root.joinpath(*normalized.split("/")) if normalized else self._root
        # Symlinks inside root are allowed; only the lexical path is checked.
        if os.path.commonpath([self._root, os.path.normpath(path)]) != str(self._root):
            raise InvalidStorageKeyError(f"Storage key escapes root: {key!r}")
        return path

    def to_logical(self, path: str | os.PathLike[str]) -> str:
        rel = os.path.relpath(os.path.abspath(path), self._root)
        return rel.replace(os.sep, "/").replace("\\", "/")
