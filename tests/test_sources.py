from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from convertatxt.ingest.sources import SourceFile, collect_sources


def test_collect_sources_walks_directories_in_order(tmp_path: Path) -> None:
    root = tmp_path / "inbox"
    (root / "sub").mkdir(parents=True)
    (root / "b.txt").write_text("b", encoding="utf-8")
    (root / "a.txt").write_text("a", encoding="utf-8")
    (root / "sub" / "c.pdf").write_bytes(b"%PDF-1.4")

    sources = collect_sources([root])

    assert [source.relative_path for source in sources] == [
        "inbox/a.txt",
        "inbox/b.txt",
        "inbox/sub/c.pdf",
    ]
    assert sources[0].read() == b"a"
    assert sources[0].size_bytes == 1
    assert sources[0].modified_at is not None
    assert sources[2].declared_media_type == "application/pdf"


def test_single_file_uses_its_name(tmp_path: Path) -> None:
    path = tmp_path / "note.txt"
    path.write_text("hello", encoding="utf-8")

    [source] = collect_sources([path])

    assert source.relative_path == "note.txt"
    assert source.declared_media_type.startswith("text/")


def test_unknown_extension_is_sniffed(tmp_path: Path) -> None:
    path = tmp_path / "scan.upload"
    Image.new("RGB", (4, 4)).save(path, "PNG")

    source = SourceFile.from_path(path)

    assert source.declared_media_type == "image/png"


def test_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        collect_sources([tmp_path / "missing.txt"])


def test_from_bytes_defaults() -> None:
    source = SourceFile.from_bytes(name="a.txt", data=b"abc")

    assert source.relative_path == "a.txt"
    assert source.declared_media_type == ""
    assert source.size_bytes == 3
    assert source.modified_at is None
