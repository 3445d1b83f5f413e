"""Structured logging and progress reporting helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, TextIO

Level = Literal["step", "ok", "warning", "detail"]

_MARKERS: dict[str, str] = {
    "step": "[step] ",
    "ok": "[ok] ",
    "warning": "[warn] ",
    "detail": "  ",
}


@dataclass(slots=True)
class StructuredLogger:
    """Collects structured records and optionally echoes progress markers."""

    records: list[dict[str, Any]] = field(default_factory=list)
    stream: TextIO | None = None

    def log(
        self,
        *,
        operation: str,
        stage: str | None,
        message: str,
        level: Level = "step",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "stage": stage,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.stream is not None:
            print(f"{_MARKERS[level]}{message}", file=self.stream)

    def records_for_stage(self, stage: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("stage") == stage]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True, default=str) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
