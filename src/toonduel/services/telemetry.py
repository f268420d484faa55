from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class TelemetryService:
    """Append-only JSON-lines log of match lifecycle events."""

    path: Path
    clock: Callable[[], datetime] = field(default=_utcnow)

    def log(self, event_type: str, payload: Mapping[str, object], *, match_id: str | None = None) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec: dict[str, object] = {
            "ts": self.clock().isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        if match_id is not None:
            rec["match_id"] = match_id
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")

    def read(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        records: list[dict[str, object]] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if line.strip():
                records.append(json.loads(line))
        return records
