"""Port definitions for loading template descriptions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from tplgen.domain.template import Template
from tplgen.domain.tokens import DiagnosticReporter


class TemplateLoadError(RuntimeError):
    """Raised when a template description cannot be turned into a model."""


class TemplateLoader(ABC):
    @abstractmethod
    def load(self, path: Path, reporter: DiagnosticReporter) -> Template:
        """Parse the description at ``path`` reporting problems through ``reporter``."""
