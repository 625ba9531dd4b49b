from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from convertatxt.utils.files import timestamped_stem


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    if isinstance(value, str | int | float | bool) or value is None:
        return value
    return str(value)


@dataclass(slots=True)
class AuditEvent:
    level: str
    event: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "event": self.event,
            "details": _jsonable(self.details),
        }


class AuditTrail:
    """Collect batch events and persist them to JSONL.

    A trail created without ``log_dir`` keeps its events in memory only.
    """

    def __init__(self, log_dir: Path | None = None, prefix: str = "batch") -> None:
        self.path: Path | None = None
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            self.path = log_dir / f"{timestamped_stem(prefix)}.jsonl"
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    def record(self, level: str, event: str, **details: Any) -> AuditEvent:
        audit_event = AuditEvent(level=level, event=event, details=details)
        with self._lock:
            self._events.append(audit_event)
            if self.path is not None:
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(audit_event.to_dict(), ensure_ascii=False) + "\n")
        return audit_event

    @property
    def events(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._events)


__all__ = ["AuditEvent", "AuditTrail"]
