"""In-memory file tree keyed by rendered relative paths."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional, Union

from .template import FileEntry

_SEPARATORS = re.compile(r"[\\/]+")


class VfsError(ValueError):
    """Raised when a path cannot be placed in the virtual tree."""


def split_relative(path: str) -> List[str]:
    parts = [part for part in _SEPARATORS.split(path) if part and part != "."]
    if not parts:
        raise VfsError(f"Empty path '{path}'")
    if ".." in parts:
        raise VfsError(f"Path '{path}' escapes the tree root")
    return parts


@dataclass
class VfsFile:
    path: PurePosixPath
    entry: FileEntry
    target_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name

    def write(self, root: Path, write_file: Callable[[Path, FileEntry], None]) -> None:
        write_file(root.joinpath(*self.path.parts), self.entry)


@dataclass
class VfsDirectory:
    path: PurePosixPath = PurePosixPath()
    entries: List[Union["VfsDirectory", VfsFile]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.path.name

    def add(self, relative: str, entry: FileEntry, target_name: Optional[str] = None) -> VfsFile:
        """Insert ``entry`` at ``relative`` creating intermediate directories."""

        parts = split_relative(relative)
        node = self
        for part in parts[:-1]:
            node = node._subdirectory(part)
        name = parts[-1]
        if any(child.name == name for child in node.entries):
            raise VfsError(f"'{PurePosixPath(*parts)}' is already present in the tree")
        created = VfsFile(path=node.path / name, entry=entry, target_name=target_name)
        node.entries.append(created)
        return created

    def write(self, root: Path, write_file: Callable[[Path, FileEntry], None]) -> None:
        root.joinpath(*self.path.parts).mkdir(parents=True, exist_ok=True)
        for child in self.entries:
            child.write(root, write_file)

    def _subdirectory(self, name: str) -> "VfsDirectory":
        for child in self.entries:
            if child.name != name:
                continue
            if isinstance(child, VfsFile):
                raise VfsError(f"'{child.path}' is a file, not a directory")
            return child
        created = VfsDirectory(path=self.path / name)
        self.entries.append(created)
        return created


__all__ = ["VfsDirectory", "VfsError", "VfsFile", "split_relative"]
