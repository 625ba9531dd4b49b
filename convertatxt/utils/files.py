from __future__ import annotations

import mimetypes
import re
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import filetype

_OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def timestamped_stem(prefix: str) -> str:
    """Return a safe stem combining prefix, timestamp and a random suffix."""

    now = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S")
    return f"{prefix}-{now}-{uuid4().hex[:8]}"


def guess_mimetype(path: Path | str, fallback: str = "application/octet-stream") -> str:
    """Guess mimetype from the file name using Python's mimetypes library."""

    guess, _ = mimetypes.guess_type(str(path))
    return guess or fallback


def sniff_mimetype(head: bytes) -> str | None:
    """Guess mimetype from the leading bytes of a file."""

    kind = filetype.guess(head)
    return kind.mime if kind else None


def is_ole_container(data: bytes) -> bool:
    """Return True for legacy OLE2 compound documents (.doc, .xls, .ppt)."""

    return data[: len(_OLE_SIGNATURE)] == _OLE_SIGNATURE


def safe_relative_path(relative_path: str) -> str:
    """Return a POSIX relative path that stays inside the directory it is unpacked in.

    Backslashes become slashes; drive letters and empty, ``.`` and ``..``
    segments are dropped.
    """

    normalized = _DRIVE_RE.sub("", relative_path.replace("\\", "/"))
    return "/".join(part for part in normalized.split("/") if part not in {"", ".", ".."})


def text_output_name(relative_path: str) -> str:
    """Replace the last extension of a sanitized relative path with ``.txt``."""

    safe = safe_relative_path(relative_path) or "untitled"
    return _EXTENSION_RE.sub("", safe) + ".txt"


def write_payload(destination: Path, data: bytes) -> Path:
    """Persist an export payload to the destination path."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(data)
    return destination


__all__ = [
    "guess_mimetype",
    "is_ole_container",
    "safe_relative_path",
    "sniff_mimetype",
    "text_output_name",
    "timestamped_stem",
    "write_payload",
]
