"""Parsed document tree, source map and parse results."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from ubml.models.errors import SourceSpan

DocumentType = str

# ---------------------------------------------------------------------------
# Content tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScalarNode:
    """A leaf value: string, number, boolean or null."""

    value: str | int | float | bool | None

    def to_python(self) -> Any:
        return self.value


@dataclass(frozen=True)
class SequenceNode:
    items: tuple[Node, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.items)

    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class MappingNode:
    """Key-ordered mapping. Keys are always strings."""

    entries: tuple[tuple[str, Node], ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self.entries)

    def keys(self) -> list[str]:
        return [k for k, _ in self.entries]

    def get(self, key: str) -> Node | None:
        for k, v in self.entries:
            if k == key:
                return v
        return None

    def to_python(self) -> dict[str, Any]:
        return {k: v.to_python() for k, v in self.entries}


Node = ScalarNode | SequenceNode | MappingNode


def node_from_python(value: Any) -> Node:
    """Build a node tree from plain Python data (dicts, lists, scalars)."""
    if isinstance(value, dict):
        return MappingNode(tuple((str(k), node_from_python(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return SequenceNode(tuple(node_from_python(v) for v in value))
    if isinstance(value, (datetime, date)):
        return ScalarNode(value.isoformat())
    return ScalarNode(value)


# ---------------------------------------------------------------------------
# JSON pointers
# ---------------------------------------------------------------------------


def escape_pointer_segment(segment: str | int) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


def join_pointer(base: str, segment: str | int) -> str:
    """Append one segment to a JSON pointer (``""`` is the root)."""
    return f"{base}/{escape_pointer_segment(segment)}"


def pointer_from_parts(parts: Any) -> str:
    return "".join(f"/{escape_pointer_segment(p)}" for p in parts)


# ---------------------------------------------------------------------------
# Source map
# ---------------------------------------------------------------------------


@dataclass
class SourceMap:
    """Maps JSON-pointer paths to their source positions for error reporting."""

    _positions: dict[str, SourceSpan] = field(default_factory=dict)

    def add(self, path: str, span: SourceSpan) -> None:
        self._positions[path] = span

    def get(self, path: str) -> SourceSpan | None:
        if path == "/":
            path = ""
        return self._positions.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._positions

    @property
    def paths(self) -> list[str]:
        return list(self._positions.keys())


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentMeta(BaseModel):
    """Document metadata extracted while parsing."""

    version: str = "1.0"
    type: DocumentType | None = None
    filename: str | None = None

    model_config = {"frozen": True}


@dataclass(frozen=True)
class Document:
    """One parsed UBML file: content tree, metadata and source index."""

    content: Node
    meta: DocumentMeta
    source: str = ""
    source_map: SourceMap = field(default_factory=SourceMap, repr=False, compare=False)

    @property
    def filepath(self) -> str:
        return self.meta.filename or "unknown"

    def get_source_location(self, path: str) -> SourceSpan | None:
        """Location of the value at *path* (e.g. ``/processes/PR00001/name``).

        Returns ``None`` for paths that are not present in the content.
        """
        return self.source_map.get(path)

    def to_python(self) -> Any:
        """Fresh plain-Python copy of the content, as fed to the schema engine."""
        return self.content.to_python()


class ParseIssue(BaseModel):
    """A parse error or warning with a best-effort location."""

    code: str
    message: str
    line: int | None = None
    column: int | None = None


@dataclass
class ParseResult:
    """Result of parsing a UBML document."""

    document: Document | None
    errors: list[ParseIssue] = field(default_factory=list)
    warnings: list[ParseIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.document is not None and not self.errors
