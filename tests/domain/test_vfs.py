from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from tplgen.domain.template import FileEntry
from tplgen.domain.vfs import VfsDirectory, VfsError, VfsFile, split_relative


def _entry(source: str) -> FileEntry:
    return FileEntry(source=source, source_dirs=(Path("/src"),), destination=source)


def test_add_creates_intermediate_directories() -> None:
    root = VfsDirectory()
    created = root.add("Content\\Fonts/Default.spritefont", _entry("a"))
    assert created.path == PurePosixPath("Content/Fonts/Default.spritefont")
    content = root.entries[0]
    assert isinstance(content, VfsDirectory)
    assert content.name == "Content"
    fonts = content.entries[0]
    assert isinstance(fonts, VfsDirectory)
    assert fonts.entries == [created]


def test_directories_are_shared_between_files() -> None:
    root = VfsDirectory()
    root.add("src/a.cs", _entry("a"))
    root.add("src/b.cs", _entry("b"))
    assert len(root.entries) == 1
    assert [child.name for child in root.entries[0].entries] == ["a.cs", "b.cs"]


def test_duplicate_path_is_rejected() -> None:
    root = VfsDirectory()
    root.add("a.txt", _entry("a"))
    with pytest.raises(VfsError):
        root.add("./a.txt", _entry("b"))


def test_file_cannot_become_directory() -> None:
    root = VfsDirectory()
    root.add("a", _entry("a"))
    with pytest.raises(VfsError):
        root.add("a/b.txt", _entry("b"))


@pytest.mark.parametrize("path", ["", "/", "../escape.txt", "a/../../b"])
def test_split_relative_rejects_bad_paths(path: str) -> None:
    with pytest.raises(VfsError):
        split_relative(path)


def test_write_creates_directories_and_visits_files_in_order(tmp_path: Path) -> None:
    root = VfsDirectory()
    root.add("Project.csproj", _entry("p"))
    root.add("Content/Content.mgcb", _entry("c"))
    root.add("Game1.cs", _entry("g"))
    visited: list[tuple[Path, str]] = []

    root.write(tmp_path, lambda path, entry: visited.append((path, entry.source)))

    assert (tmp_path / "Content").is_dir()
    assert visited == [
        (tmp_path / "Project.csproj", "p"),
        (tmp_path / "Content" / "Content.mgcb", "c"),
        (tmp_path / "Game1.cs", "g"),
    ]


def test_target_name_is_kept_on_file() -> None:
    root = VfsDirectory()
    created = root.add("Game.csproj", _entry("Game.csproj"), "$safeprojectname$.csproj")
    assert isinstance(created, VfsFile)
    assert created.target_name == "$safeprojectname$.csproj"
