"""Leveled diagnostic sink used by every tplgen run."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional, TextIO

from tplgen.domain.diagnostics import Diagnostic, GeneratorError, LogLevel

_LABEL_WIDTH = len("[Warning] ")


class DiagnosticSink:
    """Collects diagnostics and prints those at or above ``level``.

    With ``raise_on_error`` set, a diagnostic at ``ERROR`` or above raises
    :class:`GeneratorError` instead of being recorded or printed.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        *,
        writer: Optional[TextIO] = None,
        raise_on_error: bool = True,
    ) -> None:
        self.level = level
        self.raise_on_error = raise_on_error
        self.records: List[Diagnostic] = []
        self._writer = writer

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        file: str | Path | None = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            level=level,
            message=message,
            file=str(file) if file is not None else None,
            line=line,
            column=column,
        )
        if level >= LogLevel.ERROR and self.raise_on_error:
            raise GeneratorError(diagnostic)
        self.records.append(diagnostic)
        if self.level != LogLevel.NONE and level >= self.level:
            self._emit(diagnostic)
        return diagnostic

    @property
    def error_count(self) -> int:
        return sum(1 for record in self.records if record.level >= LogLevel.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for record in self.records if record.level == LogLevel.WARNING)

    def _emit(self, diagnostic: Diagnostic) -> None:
        writer = self._writer or sys.stdout
        label = f"[{diagnostic.level.label}]".ljust(_LABEL_WIDTH)
        writer.write(f"{label}{diagnostic.format()}\n")


__all__ = ["DiagnosticSink"]
