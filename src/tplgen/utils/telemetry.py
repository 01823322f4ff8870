"""Local run log: one JSON line per CLI run, disabled with ``TPLGEN_TELEMETRY=0``."""

from __future__ import annotations

import json
import os
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from importlib import resources
from typing import Any, Dict, Iterable, List, Optional

import jsonschema

from tplgen.settings import RuntimeSettings

TELEMETRY_ENV = "TPLGEN_TELEMETRY"

_OFF_VALUES = {"0", "false", "no", "off"}
_STATUS_LEVEL = {"success": "info", "ok": "info", "partial": "warn", "fatal": "error"}

_validator: Optional[jsonschema.Draft202012Validator] = None


@dataclass(frozen=True)
class RunEvent:
    """Outcome of one CLI run."""

    event: str
    status: str
    template: str
    counts: Dict[str, int] = field(default_factory=dict)
    duration_ms: Optional[float] = None

    @property
    def level(self) -> str:
        return _STATUS_LEVEL.get(self.status, "info")

    def to_record(self, version: str) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "ts": time.time(),
            "event": self.event,
            "level": self.level,
            "status": self.status,
            "version": version,
            "payload": {"template": self.template, **self.counts},
        }
        if self.duration_ms is not None:
            record["durationMs"] = round(self.duration_ms, 3)
        return record


def enabled() -> bool:
    return os.getenv(TELEMETRY_ENV, "1").strip().lower() not in _OFF_VALUES


def record_run(settings: RuntimeSettings, run: RunEvent) -> None:
    """Validate ``run`` against the packaged schema and append it to the log."""

    if not enabled():
        return
    record = run.to_record(settings.cli_version)
    _schema_validator().validate(record)
    path = settings.telemetry_file
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def read_events(settings: RuntimeSettings, limit: int = 0) -> List[Dict[str, Any]]:
    """Logged events, oldest first.

    A positive ``limit`` keeps only the newest ``limit`` events. Lines that
    are not JSON are skipped.
    """

    path = settings.telemetry_file
    if not path.exists():
        return []
    events: deque[Dict[str, Any]] = deque(maxlen=limit if limit > 0 else None)
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if not line.strip():
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return list(events)


def summarize(events: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    events = list(events)
    return {
        "total": len(events),
        "by_event": dict(Counter(evt.get("event", "unknown") for evt in events)),
        "by_status": dict(Counter(evt.get("status", "unknown") for evt in events)),
    }


def clear(settings: RuntimeSettings) -> None:
    settings.telemetry_file.unlink(missing_ok=True)


def _schema_validator() -> jsonschema.Draft202012Validator:
    global _validator
    if _validator is None:
        schema = json.loads((resources.files("tplgen.resources") / "telemetry.schema.json").read_text(encoding="utf-8"))
        _validator = jsonschema.Draft202012Validator(schema)
    return _validator


__all__ = ["RunEvent", "clear", "enabled", "read_events", "record_run", "summarize"]
