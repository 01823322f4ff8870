"""Domain model for parsed template descriptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PureWindowsPath
from typing import Iterator, List, Optional, Tuple

from .variables import VariableStore

SOURCE_EXTENSION_VARIABLE = "_sourceExt"


def is_rooted(path: str) -> bool:
    """True for paths anchored at a root or drive on either POSIX or Windows."""

    return path.startswith(("/", "\\")) or bool(PureWindowsPath(path).drive)


class SourceLanguage(str, Enum):
    CSHARP = "cs"
    FSHARP = "fs"
    VISUALBASIC = "vb"

    @property
    def file_extension(self) -> str:
        return self.value

    @property
    def project_type(self) -> str:
        return {
            SourceLanguage.CSHARP: "CSharp",
            SourceLanguage.FSHARP: "FSharp",
            SourceLanguage.VISUALBASIC: "VisualBasic",
        }[self]

    @classmethod
    def parse(cls, value: str | "SourceLanguage") -> "SourceLanguage":
        if isinstance(value, SourceLanguage):
            return value
        text = str(value).strip().lower()
        aliases = {"c#": "cs", "csharp": "cs", "f#": "fs", "fsharp": "fs", "visualbasic": "vb", "vb.net": "vb"}
        text = aliases.get(text, text)
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"Unsupported source language '{value}'")


@dataclass
class FileEntry:
    """One source to destination mapping.

    ``source`` and ``destination`` are raw template strings and may contain
    tokens. ``resolved_source`` is filled in once materialization has picked
    the first existing candidate.
    """

    source: str
    source_dirs: Tuple[Path, ...]
    destination: str
    raw: bool = False
    line: int = 0
    column: int = 0
    resolved_source: Optional[Path] = None

    @property
    def candidates(self) -> Tuple[Path, ...]:
        """Unrendered candidate source paths."""

        return tuple(self.candidate_paths(self.source))

    def candidate_paths(self, rendered_source: str) -> List[Path]:
        """Candidate source paths for the rendered source, one per source directory in declared order."""

        relative = rendered_source.replace("\\", "/")
        return [directory / relative for directory in self.source_dirs]


@dataclass
class ProjectEntry(FileEntry):
    files: List[FileEntry] = field(default_factory=list)

    def entries(self) -> Iterator[FileEntry]:
        yield self
        yield from self.files


@dataclass(frozen=True)
class Template:
    path: Path
    name: Optional[str]
    description: Optional[str]
    icon: Optional[str]
    preview_image: Optional[str]
    source_dirs: Tuple[Path, ...]
    variables: VariableStore
    projects: Tuple[ProjectEntry, ...]

    @property
    def directory(self) -> Path:
        return self.path.parent


__all__ = [
    "FileEntry",
    "ProjectEntry",
    "SOURCE_EXTENSION_VARIABLE",
    "SourceLanguage",
    "Template",
    "is_rooted",
]
