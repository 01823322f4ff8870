"""Port definitions for solution assembly."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Tuple


class SolutionError(RuntimeError):
    """Raised when a solution cannot be read, updated or written."""


class SolutionAssembler(ABC):
    """Registers generated project files in a solution artifact.

    One assembler handles one solution at a time: :meth:`load_or_create`
    selects it, :meth:`add_project` mutates it in memory and :meth:`save`
    persists it.
    """

    project_extensions: Tuple[str, ...] = ()

    @abstractmethod
    def load_or_create(self, path: Path) -> bool:
        """Open the solution at ``path`` or start a new one. Returns ``True`` when created."""

    @abstractmethod
    def add_project(self, project: Path) -> bool:
        """Register ``project``. Returns ``False`` when it was already present."""

    @abstractmethod
    def save(self) -> Path:
        """Write the solution and return its location."""

    def is_project(self, path: Path) -> bool:
        return path.suffix.lower() in self.project_extensions
