"""Diagnostic value objects shared by the template engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class LogLevel(IntEnum):
    """Severity of a diagnostic. ``NONE`` disables output entirely."""

    VERBOSE = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    NONE = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: str | int | "LogLevel") -> "LogLevel":
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip().upper()
        if text == "WARN":
            text = "WARNING"
        try:
            return cls[text]
        except KeyError as exc:
            raise ValueError(f"Unknown log level '{value}'") from exc


@dataclass(frozen=True)
class Diagnostic:
    """A single leveled message, optionally tied to a source position."""

    level: LogLevel
    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def location(self) -> str | None:
        if self.file is None:
            return None
        if self.line is None:
            return self.file
        if self.column is None:
            return f"{self.file} ({self.line})"
        return f"{self.file} ({self.line},{self.column})"

    def format(self) -> str:
        location = self.location
        if location is None:
            return self.message
        return f"{location}: {self.message}"

    def as_dict(self) -> dict[str, object]:
        return {
            "level": self.level.label,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "column": self.column,
        }


class GeneratorError(RuntimeError):
    """Raised by a diagnostic sink configured to fail on errors."""

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.format())
        self.diagnostic = diagnostic


__all__ = ["Diagnostic", "GeneratorError", "LogLevel"]
