"""Minimal XML reader producing an element tree annotated with source positions."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional
from xml.parsers import expat


class MarkupError(ValueError):
    """Raised when a document is not well-formed."""

    def __init__(self, message: str, *, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


@dataclass
class MarkupElement:
    tag: str
    attributes: Dict[str, str]
    line: int
    column: int
    children: List["MarkupElement"] = field(default_factory=list)
    text: str = ""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def find(self, tag: str) -> Optional["MarkupElement"]:
        return next(self.iter(tag), None)

    def iter(self, tag: str) -> Iterator["MarkupElement"]:
        for child in self.children:
            if child.tag == tag:
                yield child


class _TreeBuilder:
    def __init__(self, parser: "expat.XMLParserType") -> None:
        self._parser = parser
        self._stack: List[MarkupElement] = []
        self._text: List[List[str]] = []
        self.root: Optional[MarkupElement] = None

    def start(self, tag: str, attributes: Dict[str, str]) -> None:
        element = MarkupElement(
            tag=tag,
            attributes=dict(attributes),
            line=self._parser.CurrentLineNumber,
            column=self._parser.CurrentColumnNumber + 1,
        )
        if self._stack:
            self._stack[-1].children.append(element)
        else:
            self.root = element
        self._stack.append(element)
        self._text.append([])

    def end(self, tag: str) -> None:
        element = self._stack.pop()
        element.text = "".join(self._text.pop())
        if self._text:
            # Text of nested elements also belongs to the parent's value.
            self._text[-1].append(element.text)

    def data(self, text: str) -> None:
        if self._text:
            self._text[-1].append(text)


def parse_markup_bytes(data: bytes) -> MarkupElement:
    parser = expat.ParserCreate()
    parser.buffer_text = True
    builder = _TreeBuilder(parser)
    parser.StartElementHandler = builder.start
    parser.EndElementHandler = builder.end
    parser.CharacterDataHandler = builder.data
    try:
        parser.Parse(data, True)
    except expat.ExpatError as exc:
        raise MarkupError(
            expat.ErrorString(exc.code) or str(exc),
            line=exc.lineno,
            column=exc.offset + 1,
        ) from exc
    if builder.root is None:
        raise MarkupError("Document has no root element")
    return builder.root


def parse_markup(path: Path) -> MarkupElement:
    return parse_markup_bytes(path.read_bytes())


__all__ = ["MarkupElement", "MarkupError", "parse_markup", "parse_markup_bytes"]
