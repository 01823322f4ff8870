"""Token substitution engine for ``{{ ... }}`` placeholders.

Text is scanned left to right. ``{{`` opens a token and the first following
``}}`` closes it; the trimmed text in between is either a built-in function
(``#newGuid``, ``#year``) or the name of a declared variable. Every
diagnostic carries the 1-based line and column of the opening ``{{`` in the
document being rendered.

The renderer itself is backend agnostic. A :class:`TokenResolver` decides
what built-ins and variables expand to: :class:`ScaffoldResolver` produces
final values for direct generation, :class:`IdeExportResolver` produces IDE
template parameters and owns the per-run GUID counter.
"""

from __future__ import annotations

import re
import uuid
from abc import ABC, abstractmethod
from bisect import bisect_right
from datetime import date
from enum import Enum
from typing import Callable, Optional, Protocol

from .diagnostics import Diagnostic, LogLevel
from .variables import Variable, VariableStore

OPEN = "{{"
CLOSE = "}}"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

SEMANTIC_PLACEHOLDERS = {
    "projectName": "safeprojectname",
    "organization": "registeredorganization",
}


class DiagnosticReporter(Protocol):
    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        file: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> Diagnostic: ...


class UnresolvedPolicy(str, Enum):
    """What a render does after reporting a reference to an undeclared variable."""

    EMPTY = "empty"
    SKIP_FILE = "skip-file"


class RenderError(RuntimeError):
    """Raised when a render cannot produce output. The diagnostic was already reported."""

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.format())
        self.diagnostic = diagnostic


class UnknownSemanticError(ValueError):
    """Raised for a variable semantic with no IDE placeholder."""


class TokenResolver(ABC):
    @abstractmethod
    def function(self, name: str) -> Optional[str]:
        """Expand built-in ``#name``; ``None`` means the function is unknown."""

    @abstractmethod
    def variable(self, variable: Variable) -> str:
        """Expand a declared variable."""

    def substitutes(self, variable: Variable) -> bool:
        """Whether the variable expands to something other than its own value."""

        return False


class ScaffoldResolver(TokenResolver):
    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today

    def function(self, name: str) -> Optional[str]:
        if name == "newGuid":
            return str(uuid.uuid4())
        if name == "year":
            return str(self._today().year)
        return None

    def variable(self, variable: Variable) -> str:
        return variable.value


class IdeExportResolver(TokenResolver):
    """Maps built-ins and semantic variables to IDE template parameters.

    One instance lives for one export run; GUID placeholders are numbered in
    the order they are encountered, starting at 1.
    """

    def __init__(self, start: int = 1) -> None:
        self.next_guid = start

    def function(self, name: str) -> Optional[str]:
        if name == "newGuid":
            placeholder = f"$guid{self.next_guid}$"
            self.next_guid += 1
            return placeholder
        if name == "year":
            return "$year$"
        return None

    def variable(self, variable: Variable) -> str:
        if not variable.has_semantic:
            return variable.value
        reserved = SEMANTIC_PLACEHOLDERS.get(variable.semantic or "")
        if reserved is None:
            raise UnknownSemanticError(f"Unknown variable semantic '{variable.semantic}'.")
        return f"${reserved}$"

    def substitutes(self, variable: Variable) -> bool:
        return variable.has_semantic


class _LineIndex:
    def __init__(self, text: str) -> None:
        self._starts = [0] + [match.end() for match in _LINE_BREAK.finditer(text)]

    def position(self, index: int) -> tuple[int, int]:
        row = bisect_right(self._starts, index) - 1
        return row + 1, index - self._starts[row] + 1


class TokenRenderer:
    def __init__(
        self,
        variables: VariableStore,
        reporter: DiagnosticReporter,
        resolver: TokenResolver,
        *,
        unresolved: UnresolvedPolicy = UnresolvedPolicy.EMPTY,
    ) -> None:
        self.variables = variables
        self.resolver = resolver
        self.unresolved = UnresolvedPolicy(unresolved)
        self._reporter = reporter

    def render(self, text: str, *, file: Optional[str] = None, line: int = 1, column: int = 1) -> str:
        """Expand every token in ``text``.

        ``line``/``column`` give the document position of the first character
        of ``text`` when it is a fragment of a larger document, such as an
        attribute value inside the template description.
        """

        if OPEN not in text:
            return text

        index = _LineIndex(text)
        parts: list[str] = []
        cursor = 0
        while True:
            start = text.find(OPEN, cursor)
            if start < 0:
                parts.append(text[cursor:])
                break
            parts.append(text[cursor:start])
            row, col = index.position(start)
            at_line = line + row - 1
            at_column = column + col - 1 if row == 1 else col
            end = text.find(CLOSE, start + len(OPEN))
            if end < 0:
                diagnostic = self._reporter.log(
                    LogLevel.ERROR, "No matching block end.", file=file, line=at_line, column=at_column
                )
                raise RenderError(diagnostic)
            token = text[start + len(OPEN) : end].strip()
            parts.append(self._expand(token, file, at_line, at_column))
            cursor = end + len(CLOSE)
        return "".join(parts)

    def _expand(self, token: str, file: Optional[str], line: int, column: int) -> str:
        if token.startswith("#"):
            expansion = self.resolver.function(token[1:])
            if expansion is None:
                self._reporter.log(LogLevel.WARNING, f"Unknown function '{token}'.", file=file, line=line, column=column)
                return ""
            self._reporter.log(
                LogLevel.VERBOSE, f"Expanded '{token}' to '{expansion}'.", file=file, line=line, column=column
            )
            return expansion

        variable = self.variables.get(token) if token else None
        if variable is None:
            message = "Empty token." if not token else f"Variable '{token}' does not exist."
            diagnostic = self._reporter.log(LogLevel.ERROR, message, file=file, line=line, column=column)
            if self.unresolved is UnresolvedPolicy.SKIP_FILE:
                raise RenderError(diagnostic)
            return ""

        if not variable.value and not self.resolver.substitutes(variable):
            self._reporter.log(LogLevel.WARNING, f"Variable '{token}' not set.", file=file, line=line, column=column)
            return ""

        try:
            value = self.resolver.variable(variable)
        except UnknownSemanticError as exc:
            diagnostic = self._reporter.log(LogLevel.ERROR, str(exc), file=file, line=line, column=column)
            raise RenderError(diagnostic) from exc
        self._reporter.log(
            LogLevel.VERBOSE, f"Replaced variable '{token}' with '{value}'.", file=file, line=line, column=column
        )
        return value


__all__ = [
    "CLOSE",
    "DiagnosticReporter",
    "IdeExportResolver",
    "OPEN",
    "RenderError",
    "SEMANTIC_PLACEHOLDERS",
    "ScaffoldResolver",
    "TokenRenderer",
    "TokenResolver",
    "UnknownSemanticError",
    "UnresolvedPolicy",
]
