from __future__ import annotations


def extract_text(data: bytes) -> str:
    """Decode plain text content, dropping a UTF-8 byte order mark."""

    return data.decode("utf-8-sig", errors="replace")


__all__ = ["extract_text"]
