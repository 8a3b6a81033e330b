"""YAML loader with position tracking for rich error reporting."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import MarkedYAMLError, YAMLError
from ruamel.yaml.events import AliasEvent
from ruamel.yaml.scalarbool import ScalarBoolean

from ubml.models.document import (
    Document,
    DocumentMeta,
    MappingNode,
    Node,
    ParseIssue,
    ParseResult,
    ScalarNode,
    SequenceNode,
    SourceMap,
    join_pointer,
)
from ubml.models.errors import DiagnosticCode, SourceSpan
from ubml.parser.detection import detect_document_type, detect_document_type_from_content

logger = logging.getLogger("ubml.parser")

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 5_000_000  # 5M characters
_MAX_NODE_COUNT = 50_000
_MAX_DEPTH = 64

# Regex to detect YAML anchor definitions (&name).
# Matches & at line start or after whitespace/sequence indicators, followed by
# an anchor name. Also fires inside scalars ("R &D"), so a hit is confirmed
# against the parser event stream before the document is rejected.
_ANCHOR_RE = re.compile(r"(?:^|[\s\-:])&(\w+)", re.MULTILINE)


class YAMLSafetyError(Exception):
    """Raised when YAML input violates safety constraints.

    Distinct from parse errors: these indicate potentially malicious input
    (e.g., billion-laughs anchors, excessive nesting, oversized documents).
    """


class TrackedLoader:
    """YAML loader that tracks source positions for error reporting.

    Uses ruamel.yaml which preserves line/column info on every parsed node.
    A fresh ``YAML`` instance is created per load, so one loader can be
    shared between threads.
    """

    def __init__(
        self,
        max_document_size: int = _MAX_DOCUMENT_SIZE,
        max_node_count: int = _MAX_NODE_COUNT,
        max_depth: int = _MAX_DEPTH,
    ) -> None:
        self.max_document_size = max_document_size
        self.max_node_count = max_node_count
        self.max_depth = max_depth

    # -- safety checks -------------------------------------------------------

    def _check_yaml_safety(self, content: str) -> None:
        """Pre-parse safety checks on raw YAML text.

        Raises ``YAMLSafetyError`` if the content contains anchors/aliases
        (not used in UBML) or exceeds the maximum document size.
        """
        if len(content) > self.max_document_size:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum size "
                f"({len(content):,} chars > {self.max_document_size:,} limit)"
            )
        if _ANCHOR_RE.search(content) and _has_anchor_events(content):
            raise YAMLSafetyError("YAML anchors/aliases are not supported in UBML")

    # -- public loading API --------------------------------------------------

    def load_string(self, content: str, filename: str | None = None) -> ParseResult:
        """Parse YAML text into a located :class:`Document`.

        Never raises for bad input: syntax and safety problems are returned
        as errors on the result.
        """
        warnings: list[ParseIssue] = []
        try:
            self._check_yaml_safety(content)
            data = _new_yaml().load(content)
        except YAMLSafetyError as exc:
            logger.warning("Rejected %s: %s", filename or "<string>", exc)
            return ParseResult(
                document=None,
                errors=[ParseIssue(code=DiagnosticCode.YAML_SAFETY, message=str(exc))],
            )
        except MarkedYAMLError as exc:
            return ParseResult(document=None, errors=[_issue_from_marked(exc)])
        except YAMLError as exc:
            return ParseResult(
                document=None,
                errors=[
                    ParseIssue(
                        code=DiagnosticCode.YAML_SYNTAX,
                        message=f"YAML parse error: {exc}",
                    )
                ],
            )
        except RecursionError:
            return ParseResult(
                document=None,
                errors=[
                    ParseIssue(
                        code=DiagnosticCode.YAML_SAFETY,
                        message="YAML document is nested too deeply",
                    )
                ],
            )

        label = filename or "<string>"
        source_map = SourceMap()
        builder = _TreeBuilder(
            filename=label,
            line_count=max(1, len(content.splitlines())),
            source_map=source_map,
            max_node_count=self.max_node_count,
            max_depth=self.max_depth,
        )
        try:
            tree = builder.build(data)
        except YAMLSafetyError as exc:
            logger.warning("Rejected %s: %s", label, exc)
            return ParseResult(
                document=None,
                errors=[ParseIssue(code=DiagnosticCode.YAML_SAFETY, message=str(exc))],
            )

        doc_type = detect_document_type(filename)
        if doc_type is None:
            doc_type = detect_document_type_from_content(tree)
        if doc_type is None:
            warnings.append(
                ParseIssue(
                    code=DiagnosticCode.UNKNOWN_DOCUMENT_TYPE,
                    message=(
                        "Could not detect document type. "
                        "Expected filename pattern: *.{type}.ubml.yaml"
                    ),
                    line=1,
                    column=1,
                )
            )

        meta = DocumentMeta(version=_declared_version(tree), type=doc_type, filename=filename)
        logger.debug("Parsed %s as %s (%d located paths)", label, doc_type, len(source_map.paths))
        document = Document(content=tree, meta=meta, source=content, source_map=source_map)
        return ParseResult(document=document, warnings=warnings)

    def load(self, path: Path) -> ParseResult:
        """Read a UTF-8 file and parse it."""
        try:
            with path.open("r", encoding="utf-8") as handle:
                content = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", path, exc)
            return ParseResult(
                document=None,
                errors=[
                    ParseIssue(
                        code=DiagnosticCode.READ_ERROR,
                        message=f"Could not read file: {exc}",
                    )
                ],
            )
        return self.load_string(content, str(path))


class _TreeBuilder:
    """Converts ruamel round-trip data into a node tree plus source map."""

    def __init__(
        self,
        filename: str,
        line_count: int,
        source_map: SourceMap,
        max_node_count: int,
        max_depth: int,
    ) -> None:
        self.filename = filename
        self.line_count = line_count
        self.source_map = source_map
        self.max_node_count = max_node_count
        self.max_depth = max_depth
        self._count = 0

    def build(self, data: Any) -> Node:
        if data is None:
            self.source_map.add("", self._span(0, 0))
            return MappingNode()
        lc = getattr(data, "lc", None)
        if isinstance(data, (CommentedMap, CommentedSeq)) and lc is not None:
            self.source_map.add("", self._span(lc.line, lc.col))
        else:
            self.source_map.add("", self._span(0, 0))
        return self._convert(data, "", 0)

    def _span(self, line: int, col: int) -> SourceSpan:
        return SourceSpan(file=self.filename, line=line + 1, column=col + 1)

    def _record(self, path: str, pos: Any, fallback: Any = None) -> None:
        if not pos:
            return
        line, col = pos
        if line + 1 > self.line_count:
            # Empty values at end of input are marked past the last line.
            if not fallback:
                return
            line, col = fallback
        self.source_map.add(path, self._span(line, col))

    def _convert(self, data: Any, path: str, depth: int) -> Node:
        self._count += 1
        if self._count > self.max_node_count:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum node count ({self.max_node_count:,})"
            )
        if depth > self.max_depth:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum nesting depth ({self.max_depth})"
            )

        if isinstance(data, dict):
            entries: list[tuple[str, Node]] = []
            lc = getattr(data, "lc", None)
            for key, value in data.items():
                key_path = join_pointer(path, str(key))
                if lc is not None:
                    try:
                        self._record(key_path, _value_position(key, value, lc), lc.key(key))
                    except (KeyError, IndexError, TypeError):
                        pass
                entries.append((str(key), self._convert(value, key_path, depth + 1)))
            return MappingNode(tuple(entries))

        if isinstance(data, list):
            items: list[Node] = []
            lc = getattr(data, "lc", None)
            for i, item in enumerate(data):
                item_path = join_pointer(path, i)
                if lc is not None:
                    try:
                        self._record(item_path, lc.item(i))
                    except (KeyError, IndexError, TypeError):
                        pass
                items.append(self._convert(item, item_path, depth + 1))
            return SequenceNode(tuple(items))

        return ScalarNode(_plain_scalar(data))


def _new_yaml() -> YAML:
    yaml = YAML()
    yaml.allow_duplicate_keys = False
    return yaml


def _value_position(key: Any, value: Any, lc: Any) -> Any:
    """Position of a mapping value, 0-based ``(line, column)``.

    ruamel marks an empty value at the next token, which is usually the
    following key. Such values are placed right after ``key:`` instead.
    """
    value_pos = lc.value(key)
    if value is None and value_pos:
        key_line, key_col = lc.key(key)
        if value_pos[0] != key_line:
            return key_line, key_col + len(str(key)) + 1
    return value_pos


def _has_anchor_events(content: str) -> bool:
    try:
        for event in _new_yaml().parse(content):
            if isinstance(event, AliasEvent) or getattr(event, "anchor", None):
                return True
    except YAMLError:
        # Reported by the real load that follows.
        return False
    return False


def _plain_scalar(value: Any) -> str | int | float | bool | None:
    """Unwrap ruamel scalar subclasses into plain Python values."""
    if value is None or type(value) in (str, int, float, bool):
        return value
    if isinstance(value, ScalarBoolean):
        return bool(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _issue_from_marked(exc: Any) -> ParseIssue:
    mark = getattr(exc, "problem_mark", None) or getattr(exc, "context_mark", None)
    problem = getattr(exc, "problem", None)
    context = getattr(exc, "context", None)
    detail = problem or str(exc).strip().splitlines()[0]
    if context and problem:
        detail = f"{context}; {problem}"
    return ParseIssue(
        code=DiagnosticCode.YAML_SYNTAX,
        message=f"YAML syntax error: {detail}",
        line=mark.line + 1 if mark is not None else None,
        column=mark.column + 1 if mark is not None else None,
    )


def _declared_version(tree: Node) -> str:
    if isinstance(tree, MappingNode):
        version = tree.get("ubml")
        if isinstance(version, ScalarNode) and version.value is not None:
            return str(version.value)
    return "1.0"


def parse(text: str, filename: str | None = None) -> ParseResult:
    """Parse UBML text. ``filename`` is only used for type detection and locations."""
    return TrackedLoader().load_string(text, filename)


def parse_file(path: str | Path) -> ParseResult:
    return TrackedLoader().load(Path(path))
