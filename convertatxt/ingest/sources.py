from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from convertatxt.utils.files import guess_mimetype, sniff_mimetype

_SNIFF_BYTES = 262


@dataclass(slots=True, frozen=True)
class SourceFile:
    """Read-only handle on an input file and its metadata."""

    name: str
    relative_path: str
    declared_media_type: str = ""
    size_bytes: int = 0
    modified_at: datetime | None = None
    _reader: Callable[[], bytes] = field(default=lambda: b"", repr=False, compare=False)

    def read(self) -> bytes:
        return self._reader()

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        relative_path: str | None = None,
        media_type: str | None = None,
        modified_at: datetime | None = None,
    ) -> SourceFile:
        return cls(
            name=name,
            relative_path=relative_path or name,
            declared_media_type=media_type or "",
            size_bytes=len(data),
            modified_at=modified_at,
            _reader=lambda: data,
        )

    @classmethod
    def from_path(cls, path: Path, root: Path | None = None) -> SourceFile:
        """Build a handle for ``path``; ``root`` anchors the relative path.

        The relative path starts with the name of ``root`` itself, like a
        browser folder selection does.
        """

        stat = path.stat()
        if root is None:
            relative = path.name
        else:
            relative = (Path(root.resolve().name) / path.relative_to(root)).as_posix()
        return cls(
            name=path.name,
            relative_path=relative,
            declared_media_type=_declared_media_type(path),
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime),
            _reader=path.read_bytes,
        )


def collect_sources(paths: Iterable[Path]) -> list[SourceFile]:
    """Expand files and directory trees into an ordered list of sources."""

    sources: list[SourceFile] = []
    for path in paths:
        if path.is_dir():
            for child in sorted(candidate for candidate in path.rglob("*") if candidate.is_file()):
                sources.append(SourceFile.from_path(child, root=path))
        elif path.is_file():
            sources.append(SourceFile.from_path(path))
        else:
            msg = f"{path} is neither a file nor a directory"
            raise FileNotFoundError(msg)
    return sources


def _declared_media_type(path: Path) -> str:
    guessed = guess_mimetype(path, fallback="")
    if guessed:
        return guessed
    try:
        with path.open("rb") as handle:
            head = handle.read(_SNIFF_BYTES)
    except OSError:
        return ""
    return sniff_mimetype(head) or ""


__all__ = ["SourceFile", "collect_sources"]
