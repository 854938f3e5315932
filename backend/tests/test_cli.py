"""CLI: fs-storage subcommands against a tmp storage folder."""
import json
from urllib.parse import urlsplit

import pytest

from app.cli import main


@pytest.fixture
def root(tmp_path, monkeypatch, clear_settings_cache):
    monkeypatch.setenv("STORAGE_SECRET_STRING", "cli-secret")
    return tmp_path / "storage"


def test_put_head_get_ls_rm(root, tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_bytes(b"hello storage")
    out = tmp_path / "out.txt"

    assert main(["--root", str(root), "put", "docs/1/in.txt", str(src)]) == 0
    assert json.loads(capsys.readouterr().out) == {"key": "docs/1/in.txt", "content_length": 13}

    assert main(["--root", str(root), "head", "docs/1/in.txt"]) == 0
    assert json.loads(capsys.readouterr().out) == {"content_length": 13}

    assert main(["--root", str(root), "get", "docs/1/in.txt", "-o", str(out)]) == 0
    assert out.read_bytes() == b"hello storage"

    assert main(["--root", str(root), "copy", "docs/1", "docs/2"]) == 0
    capsys.readouterr()
    assert main(["--root", str(root), "ls", "docs"]) == 0
    assert capsys.readouterr().out.split() == ["docs/1/in.txt", "docs/2/in.txt"]

    assert main(["--root", str(root), "rm", "docs/1"]) == 0
    assert main(["--root", str(root), "rm", "docs/1"]) == 0
    capsys.readouterr()
    assert main(["--root", str(root), "ls", "docs"]) == 0
    assert capsys.readouterr().out.split() == ["docs/2/in.txt"]


def test_upload_directory(root, tmp_path, capsys):
    tree = tmp_path / "tree"
    (tree / "media").mkdir(parents=True)
    (tree / "Editor.bin").write_bytes(b"e")
    (tree / "media" / "image1.png").write_bytes(b"i")
    assert main(["--root", str(root), "upload", "doc", str(tree)]) == 0
    assert json.loads(capsys.readouterr().out) == ["doc/Editor.bin", "doc/media/image1.png"]


def test_sign(root, capsys):
    code = main([
        "--root", str(root), "sign", "doc/Editor.bin",
        "--base-url", "http://files_host", "--type", "session",
        "--filename", "My Doc.docx", "--shard-key", "s1",
    ])
    assert code == 0
    url = capsys.readouterr().out.strip()
    parts = urlsplit(url)
    assert url.startswith("http://files%5fhost/cache/files/doc/Editor.bin/My%20Doc.docx?md5=")
    assert "&shardkey=s1&filename=My%20Doc.docx" in parts.query


def test_missing_object_returns_error(root, capsys):
    assert main(["--root", str(root), "head", "missing.bin"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_traversal_key_returns_error(root, capsys):
    assert main(["--root", str(root), "rm", "../outside"]) == 1
    assert "escapes root" in capsys.readouterr().err
