"""XML-backed template loader."""

from __future__ import annotations

from pathlib import Path
from typing import List, NoReturn, Optional, Tuple

from tplgen.adapters.xml_markup import MarkupElement, MarkupError, parse_markup
from tplgen.domain.diagnostics import LogLevel
from tplgen.domain.template import (
    SOURCE_EXTENSION_VARIABLE,
    FileEntry,
    ProjectEntry,
    SourceLanguage,
    Template,
    is_rooted,
)
from tplgen.domain.tokens import DiagnosticReporter
from tplgen.domain.variables import VariableStore, VariableType, is_true
from tplgen.ports.template_repo import TemplateLoadError, TemplateLoader

ROOT_ELEMENT = "Template"


class XmlTemplateLoader(TemplateLoader):
    """Reads ``<Template>`` descriptions.

    Element and attribute problems are reported with the 1-based position of
    the offending element; only a missing document, a malformed document, a
    missing root element or a missing source folder abort the load.
    """

    def load(self, path: Path, reporter: DiagnosticReporter) -> Template:
        path = path.resolve()
        root = self._read_root(path, reporter)

        source_dirs = self._source_dirs(path, root, reporter)
        variables = VariableStore()
        variables.declare(
            SOURCE_EXTENSION_VARIABLE,
            "Extension of source files.",
            SourceLanguage.CSHARP.file_extension,
            hidden=True,
        )
        for element in root.iter("Var"):
            self._declare(path, element, variables, reporter)

        projects: List[ProjectEntry] = []
        for element in root.iter("Project"):
            project = self._entry(path, element, source_dirs, reporter, ProjectEntry)
            if project is None:
                continue
            for child in element.iter("File"):
                entry = self._entry(path, child, source_dirs, reporter, FileEntry)
                if entry is not None:
                    project.files.append(entry)
            projects.append(project)

        return Template(
            path=path,
            name=_child_text(root, "Name"),
            description=_child_text(root, "Description"),
            icon=_child_text(root, "Icon"),
            preview_image=_child_text(root, "PreviewImage"),
            source_dirs=source_dirs,
            variables=variables,
            projects=tuple(projects),
        )

    def _read_root(self, path: Path, reporter: DiagnosticReporter) -> MarkupElement:
        if not path.is_file():
            _fail(reporter, f"Template file not found at '{path}'.")
        try:
            root = parse_markup(path)
        except MarkupError as exc:
            _fail(reporter, f"Template file is not valid XML: {exc.message}.", file=path, line=exc.line, column=exc.column)
        except OSError as exc:
            _fail(reporter, f"Unable to read template file: {exc}.", file=path)
        if root.tag != ROOT_ELEMENT:
            _fail(reporter, f"Template file does not have a '{ROOT_ELEMENT}' element.", file=path)
        return root

    def _source_dirs(self, path: Path, root: MarkupElement, reporter: DiagnosticReporter) -> Tuple[Path, ...]:
        declared = [element.text.strip() for element in root.iter("SrcFolder")]
        if declared:
            dirs = tuple((path.parent / folder).resolve() for folder in declared)
        else:
            dirs = (path.parent,)
        reporter.log(LogLevel.INFO, "Using source folders '" + ", ".join(str(d) for d in dirs) + "'")
        for directory in dirs:
            if not directory.is_dir():
                _fail(reporter, f"Source folder not found at '{directory}'.")
        return dirs

    def _declare(
        self,
        path: Path,
        element: MarkupElement,
        variables: VariableStore,
        reporter: DiagnosticReporter,
    ) -> None:
        name = element.get("name")
        if name is None:
            reporter.log(
                LogLevel.WARNING,
                "Variable is missing 'name' attribute.",
                file=str(path),
                line=element.line,
                column=element.column,
            )
            return
        var_type = VariableType.STRING
        raw_type = element.get("type")
        if raw_type is not None:
            try:
                var_type = VariableType.parse(raw_type)
            except ValueError:
                reporter.log(
                    LogLevel.ERROR,
                    f"Invalid variable type '{raw_type}'.",
                    file=str(path),
                    line=element.line,
                    column=element.column,
                )
        variables.declare(
            name,
            element.get("description"),
            element.text,
            element.get("semantic"),
            var_type,
            is_true(element.get("hidden")),
        )

    def _entry(self, path, element, source_dirs, reporter, kind):
        source = element.get("src")
        if not source or is_rooted(source):
            reporter.log(
                LogLevel.ERROR,
                "File elements must at least have a src attribute which may not be a rooted path.",
                file=str(path),
                line=element.line,
                column=element.column,
            )
            return None
        destination = element.get("dst")
        return kind(
            source=source,
            source_dirs=source_dirs,
            destination=source if destination is None else destination,
            raw=is_true(element.get("raw")),
            line=element.line,
            column=element.column,
        )


def _child_text(root: MarkupElement, tag: str) -> Optional[str]:
    element = root.find(tag)
    if element is None:
        return None
    return element.text.strip()


def _fail(
    reporter: DiagnosticReporter,
    message: str,
    *,
    file: Optional[Path] = None,
    line: Optional[int] = None,
    column: Optional[int] = None,
) -> NoReturn:
    reporter.log(LogLevel.ERROR, message, file=str(file) if file else None, line=line, column=column)
    raise TemplateLoadError(message)


__all__ = ["XmlTemplateLoader"]
