"""Key <-> path mapping and traversal rejection."""
import os
from pathlib import Path

import pytest

from app.services.storage.errors import InvalidStorageKeyError
from app.services.storage.paths import PathResolver, normalize_key


def test_resolve_joins_under_root(tmp_path):
    resolver = PathResolver(tmp_path)
    assert resolver.resolve("a/b/c.bin") == tmp_path / "a" / "b" / "c.bin"


def test_resolve_relative_root_is_made_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    resolver = PathResolver("App_Data")
    assert resolver.root == tmp_path / "App_Data"
    assert resolver.resolve("x") == tmp_path / "App_Data" / "x"


def test_resolve_empty_key_is_root(tmp_path):
    resolver = PathResolver(tmp_path)
    assert resolver.resolve("") == tmp_path


@pytest.mark.parametrize(
    "key,expected",
    [
        ("a/b", "a/b"),
        ("/a/b", "a/b"),
        ("a//b/", "a/b"),
        ("./a/./b", "a/b"),
        ("a\\b", "a/b"),
        ("..a/b..", "..a/b.."),
    ],
)
def test_normalize_key(key, expected):
    assert normalize_key(key) == expected


@pytest.mark.parametrize("key", ["..", "../x", "a/../../x", "a/b/..", "a\\..\\x", "a\x00b"])
def test_normalize_key_rejects_traversal(key):
    with pytest.raises(InvalidStorageKeyError):
        normalize_key(key)


def test_invalid_key_error_is_value_error():
    assert issubclass(InvalidStorageKeyError, ValueError)


def test_to_logical_strips_root_and_uses_forward_slashes(tmp_path):
    resolver = PathResolver(tmp_path)
    physical = os.path.join(str(tmp_path), "docs", "abc", "Editor.bin")
    assert resolver.to_logical(physical) == "docs/abc/Editor.bin"
    assert resolver.to_logical(Path(physical)) == "docs/abc/Editor.bin"


def test_resolve_to_logical_round_trip(tmp_path):
    resolver = PathResolver(tmp_path)
    for key in ["one", "a/b/c", "with space/and%percent.txt"]:
        assert resolver.to_logical(resolver.resolve(key)) == key
