"""Structured logging and observability helpers."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO


@dataclass(slots=True)
class StructuredLogger:
    """Collects pipeline records in memory, optionally echoing them as JSON lines.

    Each record carries a monotonic ``timestamp_ns`` and a ``sequence`` number so
    consumers can check the relative order of lifecycle events.
    """

    records: list[dict[str, Any]] = field(default_factory=list)
    stream: TextIO | None = None

    def log(
        self,
        *,
        operation: str,
        platform: str | None,
        state: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "sequence": len(self.records),
            "timestamp_ns": time.monotonic_ns(),
            "level": level,
            "operation": operation,
            "platform": platform,
            "state": state,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.stream is not None:
            self.stream.write(json.dumps(record, sort_keys=True, default=str) + "\n")
            self.stream.flush()

    def records_for_platform(self, platform: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("platform") == platform]

    def first(self, operation: str) -> dict[str, Any] | None:
        for record in self.records:
            if record.get("operation") == operation:
                return record
        return None

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True, default=str) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
