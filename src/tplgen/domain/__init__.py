"""Domain model for tplgen: variables, templates, tokens and the virtual tree."""

from .diagnostics import Diagnostic, GeneratorError, LogLevel
from .template import SOURCE_EXTENSION_VARIABLE, FileEntry, ProjectEntry, SourceLanguage, Template, is_rooted
from .tokens import (
    IdeExportResolver,
    RenderError,
    ScaffoldResolver,
    TokenRenderer,
    UnresolvedPolicy,
)
from .variables import Variable, VariableStore, VariableType, is_true
from .vfs import VfsDirectory, VfsError, VfsFile

__all__ = [
    "Diagnostic",
    "FileEntry",
    "GeneratorError",
    "IdeExportResolver",
    "LogLevel",
    "ProjectEntry",
    "RenderError",
    "SOURCE_EXTENSION_VARIABLE",
    "ScaffoldResolver",
    "SourceLanguage",
    "Template",
    "TokenRenderer",
    "UnresolvedPolicy",
    "Variable",
    "VariableStore",
    "VariableType",
    "VfsDirectory",
    "VfsError",
    "VfsFile",
    "is_rooted",
    "is_true",
]
