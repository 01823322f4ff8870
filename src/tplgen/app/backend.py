"""Capabilities shared by every backend that materializes a template."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Mapping, Optional, TextIO, Tuple

from tplgen.domain.diagnostics import LogLevel
from tplgen.domain.template import SOURCE_EXTENSION_VARIABLE, FileEntry, SourceLanguage, Template
from tplgen.domain.tokens import RenderError, TokenRenderer, TokenResolver
from tplgen.domain.variables import VariableStore
from tplgen.ports.template_repo import TemplateLoader, TemplateLoadError
from tplgen.settings import GeneratorSettings
from tplgen.utils.diagnostics import DiagnosticSink


class TemplateBackend:
    """Base for generation and IDE export.

    A backend is configured once and run any number of times; every run gets
    a fresh :class:`DiagnosticSink`, a freshly loaded template and fresh
    resolver state.
    """

    def __init__(
        self,
        loader: TemplateLoader,
        settings: Optional[GeneratorSettings] = None,
        *,
        writer: Optional[TextIO] = None,
    ) -> None:
        self._loader = loader
        self.settings = settings or GeneratorSettings()
        self._writer = writer

    def _new_sink(self) -> DiagnosticSink:
        return DiagnosticSink(
            self.settings.log_level,
            writer=self._writer,
            raise_on_error=self.settings.raise_on_error,
        )

    def _guard(self, destination: Path, sink: DiagnosticSink) -> bool:
        if destination.is_file() or (
            destination.is_dir() and any(destination.iterdir()) and not self.settings.overwrite
        ):
            sink.log(
                LogLevel.ERROR,
                f"The destination directory '{destination}' already exists and is not empty. "
                "Set the Overwrite flag to write anyway.",
            )
            return False
        return True

    def _load(self, template_path: Path, sink: DiagnosticSink) -> Optional[Template]:
        try:
            return self._loader.load(Path(template_path), sink)
        except TemplateLoadError:
            return None

    def _variables(
        self,
        template: Template,
        overrides: Optional[Mapping[str, str]],
        language: SourceLanguage,
    ) -> VariableStore:
        variables = template.variables.with_overrides(overrides)
        variables.set(SOURCE_EXTENSION_VARIABLE, language.file_extension)
        return variables

    def _renderer(self, variables: VariableStore, sink: DiagnosticSink, resolver: TokenResolver) -> TokenRenderer:
        return TokenRenderer(variables, sink, resolver, unresolved=self.settings.unresolved_variables)

    def _resolve_source(
        self,
        template: Template,
        entry: FileEntry,
        renderer: TokenRenderer,
        sink: DiagnosticSink,
    ) -> Optional[Tuple[Path, str]]:
        """Render the entry's source and find the first candidate that exists.

        Returns the winning path, also recorded on the entry, together with
        the rendered source. Returns ``None`` after reporting when nothing
        matches or the source cannot be rendered.
        """

        try:
            rendered = renderer.render(entry.source, file=str(template.path), line=entry.line, column=entry.column)
        except RenderError:
            return None
        candidates = entry.candidate_paths(rendered)
        sink.log(
            LogLevel.VERBOSE,
            f"Looking for {entry.source} at " + ", ".join(str(candidate) for candidate in candidates),
        )
        for candidate in candidates:
            if candidate.is_file():
                entry.resolved_source = candidate
                return candidate, rendered
        sink.log(
            LogLevel.ERROR,
            f"Source file '{entry.source}' not found.",
            file=str(template.path),
            line=entry.line,
            column=entry.column,
        )
        return None

    def _materialize(
        self,
        entry: FileEntry,
        source: Path,
        destination: Path,
        renderer: TokenRenderer,
        sink: DiagnosticSink,
    ) -> None:
        """Copy ``source`` verbatim or render it, writing to ``destination``."""

        if entry.raw:
            sink.log(LogLevel.INFO, f"Copying file '{source}' to '{destination}'.")
            shutil.copyfile(source, destination)
            return
        sink.log(LogLevel.INFO, f"Rendering file '{source}'.")
        with source.open("r", encoding="utf-8", newline="") as fh:
            text = fh.read()
        rendered = renderer.render(text, file=str(source))
        sink.log(LogLevel.VERBOSE, f"Writing file '{source}' to '{destination}'.")
        with destination.open("w", encoding="utf-8", newline="") as fh:
            fh.write(rendered)


__all__ = ["TemplateBackend"]
