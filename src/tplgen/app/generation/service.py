"""Direct project generation from a template."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO, Tuple

from tplgen.app.backend import TemplateBackend
from tplgen.domain.diagnostics import Diagnostic, LogLevel
from tplgen.domain.template import FileEntry, SourceLanguage, Template, is_rooted
from tplgen.domain.tokens import RenderError, ScaffoldResolver, TokenRenderer
from tplgen.domain.vfs import VfsError, split_relative
from tplgen.ports.solution import SolutionAssembler, SolutionError
from tplgen.ports.template_repo import TemplateLoader
from tplgen.settings import GeneratorSettings
from tplgen.utils.diagnostics import DiagnosticSink


class RunStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FATAL = "fatal"


@dataclass(frozen=True)
class FileWritten:
    source: Path
    destination: Path


@dataclass(frozen=True)
class GenerationRequest:
    destination: Path
    solution: Optional[Path] = None
    variables: Dict[str, str] = field(default_factory=dict)
    language: SourceLanguage = SourceLanguage.CSHARP


@dataclass(frozen=True)
class GenerationResult:
    status: RunStatus
    diagnostics: Tuple[Diagnostic, ...]
    written: Tuple[FileWritten, ...] = ()
    projects: Tuple[Path, ...] = ()
    solution: Optional[Path] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "written": [str(item.destination) for item in self.written],
            "projects": [str(path) for path in self.projects],
            "solution": str(self.solution) if self.solution else None,
            "errors": sum(1 for item in self.diagnostics if item.level >= LogLevel.ERROR),
            "warnings": sum(1 for item in self.diagnostics if item.level == LogLevel.WARNING),
        }


FileObserver = Callable[[FileWritten], None]


def _destination_parts(relative: str) -> Optional[List[str]]:
    """Path parts of a rendered destination, or ``None`` when it is empty, rooted or climbs out with ``..``."""

    if is_rooted(relative):
        return None
    try:
        return split_relative(relative)
    except VfsError:
        return None


def run_status(sink: DiagnosticSink) -> RunStatus:
    """PARTIAL once any error was recorded, SUCCESS otherwise."""

    if sink.error_count:
        return RunStatus.PARTIAL
    return RunStatus.SUCCESS


class GenerationService(TemplateBackend):
    """Materializes a template into a destination directory.

    Entries are processed in declaration order: each project entry, then its
    file entries. Failures are reported and the entry skipped; the run keeps
    going unless the sink raises on errors.
    """

    def __init__(
        self,
        loader: TemplateLoader,
        assembler: Optional[SolutionAssembler] = None,
        settings: Optional[GeneratorSettings] = None,
        *,
        writer: Optional[TextIO] = None,
    ) -> None:
        super().__init__(loader, settings, writer=writer)
        self._assembler = assembler
        self._observers: List[FileObserver] = []

    def add_observer(self, observer: FileObserver) -> None:
        self._observers.append(observer)

    def generate(self, template_path: Path, request: GenerationRequest) -> GenerationResult:
        sink = self._new_sink()
        destination = Path(request.destination).resolve()
        if not self._guard(destination, sink):
            return GenerationResult(RunStatus.FATAL, tuple(sink.records))
        template = self._load(template_path, sink)
        if template is None:
            return GenerationResult(RunStatus.FATAL, tuple(sink.records))

        variables = self._variables(template, request.variables, request.language)
        renderer = self._renderer(variables, sink, ScaffoldResolver())

        destination.mkdir(parents=True, exist_ok=True)
        written: List[FileWritten] = []
        projects: List[Path] = []
        for project in template.projects:
            for entry in project.entries():
                event = self._render_entry(template, entry, destination, renderer, sink)
                if event is None:
                    continue
                kind = "project" if entry is project else "file"
                sink.log(LogLevel.INFO, f"Rendered {kind} '{event.source}' to '{event.destination}'.")
                written.append(event)
                if self._assembler is not None and self._assembler.is_project(event.destination):
                    projects.append(event.destination)

        solution = None
        if request.solution is not None:
            solution = self._update_solution(Path(request.solution), projects, sink)

        return GenerationResult(
            status=run_status(sink),
            diagnostics=tuple(sink.records),
            written=tuple(written),
            projects=tuple(projects),
            solution=solution,
        )

    def _render_entry(
        self,
        template: Template,
        entry: FileEntry,
        root: Path,
        renderer: TokenRenderer,
        sink: DiagnosticSink,
    ) -> Optional[FileWritten]:
        resolved = self._resolve_source(template, entry, renderer, sink)
        if resolved is None:
            return None
        source, _ = resolved
        try:
            relative = renderer.render(entry.destination, file=str(template.path), line=entry.line, column=entry.column)
            parts = _destination_parts(relative)
            if parts is None:
                sink.log(
                    LogLevel.ERROR,
                    f"Destination '{relative}' must be a relative path inside the destination directory.",
                    file=str(template.path),
                    line=entry.line,
                    column=entry.column,
                )
                return None
            target = root.joinpath(*parts)
            if target.exists():
                sink.log(
                    LogLevel.WARNING,
                    f"Tried to render file to '{target}', but file exists. "
                    "Check the template file for duplicate dst attributes.",
                    file=str(template.path),
                    line=entry.line,
                    column=entry.column,
                )
                return None
            target.parent.mkdir(parents=True, exist_ok=True)
            self._materialize(entry, source, target, renderer, sink)
        except RenderError:
            sink.log(LogLevel.WARNING, f"Skipped '{source}' because it could not be rendered.")
            return None
        except (OSError, UnicodeDecodeError) as exc:
            sink.log(LogLevel.ERROR, f"Error rendering '{source}':\n        {exc}")
            return None

        event = FileWritten(source=source, destination=target)
        for observer in self._observers:
            observer(event)
        return event

    def _update_solution(self, path: Path, projects: List[Path], sink: DiagnosticSink) -> Optional[Path]:
        if self._assembler is None:
            sink.log(LogLevel.ERROR, f"No solution assembler configured for '{path}'.")
            return None
        try:
            if self._assembler.load_or_create(path):
                sink.log(LogLevel.INFO, f"Created solution '{path.name}'.")
            for project in projects:
                if self._assembler.add_project(project):
                    sink.log(LogLevel.INFO, f"Added project '{project.name}' to solution '{path.name}'.")
                else:
                    sink.log(LogLevel.INFO, f"Project '{project.name}' is already part of solution '{path.name}'.")
            return self._assembler.save()
        except SolutionError as exc:
            sink.log(LogLevel.ERROR, str(exc))
            return None


__all__ = [
    "FileObserver",
    "FileWritten",
    "GenerationRequest",
    "GenerationResult",
    "GenerationService",
    "RunStatus",
    "run_status",
]
