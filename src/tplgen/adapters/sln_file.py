"""Visual Studio ``.sln`` solution assembler."""

from __future__ import annotations

import os
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from typing import List, Optional

from tplgen.ports.solution import SolutionAssembler, SolutionError

HEADER = "Microsoft Visual Studio Solution File, Format Version 12.00"
MINIMUM_VS_VERSION = "10.0.40219.1"
DEFAULT_CONFIGURATIONS = ("Debug|Any CPU", "Release|Any CPU")

PROJECT_TYPE_GUIDS = {
    ".csproj": "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC",
    ".fsproj": "F2A71F9B-5D33-465A-A702-920D77279786",
    ".vbproj": "F184B08F-C81C-45F6-A57F-5ABD9991F28F",
}

_PROJECT_RE = re.compile(
    r'^Project\("\{(?P<type>[^}]*)\}"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"\s*,\s*"\{(?P<guid>[^}]*)\}"'
)
_SECTION_RE = re.compile(r"^GlobalSection\((?P<name>[^)]+)\)\s*=\s*(?P<kind>\w+)")
_PROJECT_GUID_RE = re.compile(r"<ProjectGuid>\s*\{?(?P<guid>[0-9A-Fa-f-]{36})\}?\s*</ProjectGuid>")


@dataclass
class SlnProject:
    type_guid: str
    name: str
    path: str
    guid: str
    body: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        head = f'Project("{{{self.type_guid}}}") = "{self.name}", "{self.path}", "{{{self.guid}}}"'
        return [head, *self.body, "EndProject"]


@dataclass
class SlnSection:
    name: str
    kind: str
    entries: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        return [
            f"\tGlobalSection({self.name}) = {self.kind}",
            *(f"\t\t{entry}" for entry in self.entries),
            "\tEndGlobalSection",
        ]


@dataclass
class SlnDocument:
    path: Path
    header: List[str] = field(default_factory=list)
    projects: List[SlnProject] = field(default_factory=list)
    sections: List[SlnSection] = field(default_factory=list)

    @classmethod
    def create(cls, path: Path) -> "SlnDocument":
        return cls(
            path=path,
            header=["", HEADER, f"MinimumVisualStudioVersion = {MINIMUM_VS_VERSION}"],
            sections=[
                SlnSection(
                    "SolutionConfigurationPlatforms",
                    "preSolution",
                    [f"{config} = {config}" for config in DEFAULT_CONFIGURATIONS],
                ),
                SlnSection("ProjectConfigurationPlatforms", "postSolution"),
            ],
        )

    @classmethod
    def parse(cls, path: Path, text: str) -> "SlnDocument":
        document = cls(path=path)
        lines = text.splitlines()
        if not any(line.strip().startswith("Microsoft Visual Studio Solution File") for line in lines[:3]):
            raise SolutionError(f"Invalid solution `{path}`. File header is missing.")

        index = 0
        while index < len(lines):
            line = lines[index]
            stripped = line.strip()
            if stripped.startswith("Project("):
                match = _PROJECT_RE.match(stripped)
                if not match:
                    raise SolutionError(f"Invalid solution `{path}`. Malformed project line {index + 1}.")
                project = SlnProject(match["type"], match["name"], match["path"], match["guid"])
                index += 1
                while index < len(lines) and lines[index].strip() != "EndProject":
                    project.body.append(lines[index])
                    index += 1
                if index >= len(lines):
                    raise SolutionError(f"Invalid solution `{path}`. Project '{project.name}' is not terminated.")
                document.projects.append(project)
            elif stripped == "Global":
                index = document._parse_global(lines, index + 1)
            elif not document.projects and not document.sections:
                document.header.append(line)
            index += 1
        return document

    def _parse_global(self, lines: List[str], index: int) -> int:
        section: Optional[SlnSection] = None
        while index < len(lines):
            stripped = lines[index].strip()
            if stripped == "EndGlobal":
                return index
            if stripped == "EndGlobalSection":
                section = None
            elif stripped.startswith("GlobalSection("):
                match = _SECTION_RE.match(stripped)
                if not match:
                    raise SolutionError(f"Invalid solution `{self.path}`. Malformed section line {index + 1}.")
                section = SlnSection(match["name"], match["kind"])
                self.sections.append(section)
            elif section is not None and stripped:
                section.entries.append(stripped)
            index += 1
        raise SolutionError(f"Invalid solution `{self.path}`. Global block is not terminated.")

    def section(self, name: str, kind: str) -> SlnSection:
        for section in self.sections:
            if section.name == name:
                return section
        section = SlnSection(name, kind)
        self.sections.append(section)
        return section

    def render(self) -> str:
        lines = list(self.header)
        for project in self.projects:
            lines.extend(project.lines())
        lines.append("Global")
        for section in self.sections:
            lines.extend(section.lines())
        lines.append("EndGlobal")
        return "\r\n".join(lines) + "\r\n"


def _normalize(path: str) -> str:
    return str(PureWindowsPath(path)).lower()


def _project_guid(project: Path) -> str:
    try:
        match = _PROJECT_GUID_RE.search(project.read_text(encoding="utf-8-sig"))
    except (OSError, UnicodeDecodeError):
        match = None
    if match:
        return match["guid"].upper()
    return str(uuid.uuid4()).upper()


class SlnFileAssembler(SolutionAssembler):
    project_extensions = tuple(PROJECT_TYPE_GUIDS)

    def __init__(self) -> None:
        self.document: Optional[SlnDocument] = None

    def load_or_create(self, path: Path) -> bool:
        path = path.resolve()
        if path.is_dir():
            path = self._find_in_directory(path)
        if path.is_file():
            try:
                text = path.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as exc:
                raise SolutionError(f"Invalid solution `{path}`. {exc}.") from exc
            self.document = SlnDocument.parse(path, text)
            return False
        self.document = SlnDocument.create(path)
        return True

    def add_project(self, project: Path) -> bool:
        document = self._require_document()
        type_guid = PROJECT_TYPE_GUIDS.get(project.suffix.lower())
        if type_guid is None:
            raise SolutionError(f"Unsupported project type '{project.name}'.")
        relative = os.path.relpath(project.resolve(), document.path.parent).replace("/", "\\")
        if any(_normalize(existing.path) == _normalize(relative) for existing in document.projects):
            return False

        guid = _project_guid(project)
        document.projects.append(SlnProject(type_guid, project.stem, relative, guid))
        solution_configs = document.section("SolutionConfigurationPlatforms", "preSolution")
        if not solution_configs.entries:
            solution_configs.entries.extend(f"{config} = {config}" for config in DEFAULT_CONFIGURATIONS)
        project_configs = document.section("ProjectConfigurationPlatforms", "postSolution")
        for entry in solution_configs.entries:
            config = entry.split("=", 1)[0].strip()
            project_configs.entries.append(f"{{{guid}}}.{config}.ActiveCfg = {config}")
            project_configs.entries.append(f"{{{guid}}}.{config}.Build.0 = {config}")
        return True

    def save(self) -> Path:
        document = self._require_document()
        try:
            document.path.parent.mkdir(parents=True, exist_ok=True)
            document.path.write_text(document.render(), encoding="utf-8-sig", newline="")
        except OSError as exc:
            raise SolutionError(f"Unable to write solution `{document.path}`. {exc}.") from exc
        return document.path

    def _require_document(self) -> SlnDocument:
        if self.document is None:
            raise SolutionError("No solution loaded.")
        return self.document

    @staticmethod
    def _find_in_directory(directory: Path) -> Path:
        files = sorted(directory.glob("*.sln"))
        if not files:
            raise SolutionError(
                f"Specified solution file {directory} does not exist, or there is no solution file in the directory."
            )
        if len(files) > 1:
            raise SolutionError(f"Found more than one solution file in {directory}. Please specify which one to use.")
        return files[0]


__all__ = ["SlnDocument", "SlnFileAssembler", "SlnProject", "SlnSection"]
