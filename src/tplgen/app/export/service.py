"""Export a template as a Visual Studio project template package."""

from __future__ import annotations

import re
import shutil
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple

from tplgen.app.backend import TemplateBackend
from tplgen.app.generation.service import RunStatus, run_status
from tplgen.domain.diagnostics import Diagnostic, LogLevel
from tplgen.domain.template import FileEntry, ProjectEntry, SourceLanguage, Template
from tplgen.domain.tokens import IdeExportResolver, RenderError, TokenRenderer
from tplgen.domain.vfs import VfsDirectory, VfsError, VfsFile
from tplgen.ports.template_repo import TemplateLoader
from tplgen.settings import GeneratorSettings
from tplgen.utils.diagnostics import DiagnosticSink

VSTEMPLATE_NAMESPACE = "http://schemas.microsoft.com/developer/vstemplate/2005"
DESCRIPTOR_NAME = "template.vstemplate"

_SEPARATORS = re.compile(r"[\\/]")


@dataclass(frozen=True)
class ExportRequest:
    output: Path
    variables: Dict[str, str] = field(default_factory=dict)
    language: SourceLanguage = SourceLanguage.CSHARP


@dataclass(frozen=True)
class ExportResult:
    status: RunStatus
    diagnostics: Tuple[Diagnostic, ...]
    written: Tuple[Path, ...] = ()
    descriptor: Optional[Path] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "written": [str(path) for path in self.written],
            "descriptor": str(self.descriptor) if self.descriptor else None,
            "errors": sum(1 for item in self.diagnostics if item.level >= LogLevel.ERROR),
            "warnings": sum(1 for item in self.diagnostics if item.level == LogLevel.WARNING),
        }


def _q(tag: str) -> str:
    return f"{{{VSTEMPLATE_NAMESPACE}}}{tag}"


def _bool(value: bool) -> str:
    return "true" if value else "false"


class VsTemplateExporter(TemplateBackend):
    """Writes a single-project template in the ``.vstemplate`` format.

    Token expansion uses IDE parameters: ``#newGuid`` becomes ``$guid1$``,
    ``$guid2$`` and so on in the order files and tokens are rendered, and
    variables with a semantic become reserved parameters such as
    ``$safeprojectname$``.
    """

    def __init__(
        self,
        loader: TemplateLoader,
        settings: Optional[GeneratorSettings] = None,
        *,
        writer: Optional[TextIO] = None,
    ) -> None:
        super().__init__(loader, settings, writer=writer)

    def export(self, template_path: Path, request: ExportRequest) -> ExportResult:
        sink = self._new_sink()
        output = Path(request.output).resolve()
        if not self._guard(output, sink):
            return ExportResult(RunStatus.FATAL, tuple(sink.records))
        template = self._load(template_path, sink)
        if template is None:
            return ExportResult(RunStatus.FATAL, tuple(sink.records))
        if len(template.projects) != 1:
            message = (
                "VS templates with more than 1 project are not supported."
                if template.projects
                else "Template does not declare a project to export."
            )
            sink.log(LogLevel.ERROR, message, file=str(template.path))
            return ExportResult(RunStatus.FATAL, tuple(sink.records))

        project = template.projects[0]
        variables = self._variables(template, request.variables, request.language)
        renderer = self._renderer(variables, sink, IdeExportResolver())

        tree = VfsDirectory()
        project_node: Optional[VfsFile] = None
        for entry in project.entries():
            node = self._place(template, entry, tree, renderer, sink)
            if entry is project:
                project_node = node

        output.mkdir(parents=True, exist_ok=True)
        written: List[Path] = []

        def write_file(path: Path, entry: FileEntry) -> None:
            try:
                self._materialize(entry, entry.resolved_source, path, renderer, sink)
            except RenderError:
                sink.log(LogLevel.WARNING, f"Skipped '{entry.resolved_source}' because it could not be rendered.")
                return
            except (OSError, UnicodeDecodeError) as exc:
                sink.log(LogLevel.ERROR, f"Error rendering '{entry.resolved_source}':\n        {exc}")
                return
            written.append(path)

        try:
            tree.write(output, write_file)
        except OSError as exc:
            sink.log(LogLevel.ERROR, f"Unable to create output tree under '{output}': {exc}")
            return ExportResult(RunStatus.FATAL, tuple(sink.records), tuple(written))

        for asset in (template.icon, template.preview_image):
            copied = self._copy_asset(template, asset, output, sink)
            if copied is not None:
                written.append(copied)

        descriptor = output / DESCRIPTOR_NAME
        try:
            self._write_descriptor(descriptor, template, project, project_node, tree, request.language)
        except OSError as exc:
            sink.log(LogLevel.ERROR, f"Unable to write '{descriptor}': {exc}")
            return ExportResult(run_status(sink), tuple(sink.records), tuple(written))
        sink.log(LogLevel.INFO, f"Wrote template descriptor '{descriptor}'.")

        return ExportResult(
            status=run_status(sink),
            diagnostics=tuple(sink.records),
            written=tuple(written),
            descriptor=descriptor,
        )

    def _place(
        self,
        template: Template,
        entry: FileEntry,
        tree: VfsDirectory,
        renderer: TokenRenderer,
        sink: DiagnosticSink,
    ) -> Optional[VfsFile]:
        resolved = self._resolve_source(template, entry, renderer, sink)
        if resolved is None:
            return None
        _, relative = resolved
        location = {"file": str(template.path), "line": entry.line, "column": entry.column}
        if entry.destination == entry.source:
            target = relative
        else:
            try:
                target = renderer.render(entry.destination, **location)
            except RenderError:
                return None
        target_name = _SEPARATORS.split(target)[-1] or None
        try:
            return tree.add(relative, entry, target_name)
        except VfsError as exc:
            sink.log(LogLevel.WARNING, f"Skipped '{entry.source}': {exc}.", **location)
            return None

    def _copy_asset(self, template: Template, asset: Optional[str], output: Path, sink: DiagnosticSink) -> Optional[Path]:
        if not asset:
            return None
        source = template.directory / asset
        target = output / Path(asset.replace("\\", "/")).name
        if not source.is_file():
            sink.log(LogLevel.ERROR, f"Template asset '{asset}' not found at '{source}'.", file=str(template.path))
            return None
        try:
            shutil.copyfile(source, target)
        except OSError as exc:
            sink.log(LogLevel.ERROR, f"Unable to copy '{source}': {exc}")
            return None
        return target

    def _write_descriptor(
        self,
        path: Path,
        template: Template,
        project: ProjectEntry,
        project_node: Optional[VfsFile],
        tree: VfsDirectory,
        language: SourceLanguage,
    ) -> None:
        ET.register_namespace("", VSTEMPLATE_NAMESPACE)
        root = ET.Element(_q("VSTemplate"), {"Version": "3.0.0", "Type": "Project"})

        data = ET.SubElement(root, _q("TemplateData"))
        for tag, value in (
            ("Name", template.name or ""),
            ("Description", template.description or ""),
            ("ProjectType", language.project_type),
            ("NumberOfParentCategoriesToRollUp", "1"),
            ("DefaultName", template.name or "Project"),
            ("Icon", _file_name(template.icon)),
            ("PreviewImage", _file_name(template.preview_image)),
        ):
            ET.SubElement(data, _q(tag)).text = value

        content = ET.SubElement(root, _q("TemplateContent"))
        attributes = {"ReplaceParameters": _bool(not project.raw)}
        if project_node is not None:
            attributes["File"] = "\\".join(project_node.path.parts)
            attributes["TargetFileName"] = project_node.target_name or project_node.name
        project_element = ET.SubElement(content, _q("Project"), attributes)
        self._mirror(project_element, tree, project_node)

        ET.indent(root, space="  ")
        ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)

    def _mirror(self, parent: ET.Element, directory: VfsDirectory, skip: Optional[VfsFile]) -> None:
        for child in directory.entries:
            if child is skip:
                continue
            if isinstance(child, VfsDirectory):
                folder = ET.SubElement(parent, _q("Folder"), {"Name": child.name, "TargetFolderName": child.name})
                self._mirror(folder, child, skip)
                continue
            item = ET.SubElement(
                parent,
                _q("ProjectItem"),
                {
                    "ReplaceParameters": _bool(not child.entry.raw),
                    "TargetFileName": child.target_name or child.name,
                },
            )
            item.text = child.name


def _file_name(value: Optional[str]) -> str:
    if not value:
        return ""
    return _SEPARATORS.split(value)[-1]


__all__ = ["ExportRequest", "ExportResult", "VsTemplateExporter", "DESCRIPTOR_NAME", "VSTEMPLATE_NAMESPACE"]
