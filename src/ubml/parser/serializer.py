"""YAML serialization with consistent UBML formatting."""

from __future__ import annotations

from dataclasses import dataclass
from io import StringIO
from typing import Any, Literal

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.scalarstring import DoubleQuotedScalarString, SingleQuotedScalarString

from ubml.models.document import Document, MappingNode, ScalarNode, SequenceNode

QuoteStyle = Literal["single", "double"] | None


@dataclass(frozen=True)
class SerializeOptions:
    """Formatting options. The defaults produce block-style YAML, never flow style."""

    indent: int = 2
    line_width: int = 120
    trailing_newline: bool = True
    sort_keys: bool = False
    quote_style: QuoteStyle = None


def serialize(content: Any, options: SerializeOptions | None = None, **overrides: Any) -> str:
    """Render content (plain data, a node tree or a :class:`Document`) as YAML.

    Output of this function always parses back without errors.
    """
    opts = options or SerializeOptions()
    if overrides:
        opts = SerializeOptions(**{**opts.__dict__, **overrides})

    if isinstance(content, Document):
        content = content.to_python()
    elif isinstance(content, (MappingNode, SequenceNode, ScalarNode)):
        content = content.to_python()

    yaml = YAML()
    yaml.default_flow_style = False
    yaml.width = opts.line_width
    yaml.indent(mapping=opts.indent, sequence=opts.indent + 2, offset=opts.indent)

    stream = StringIO()
    yaml.dump(_prepare(content, opts), stream)
    text = stream.getvalue()

    if opts.trailing_newline and not text.endswith("\n"):
        text += "\n"
    elif not opts.trailing_newline and text.endswith("\n"):
        text = text[:-1]
    return text


def _prepare(value: Any, opts: SerializeOptions) -> Any:
    """Copy into fresh ruamel containers so shared objects never become aliases."""
    if isinstance(value, dict):
        keys = sorted(value, key=str) if opts.sort_keys else list(value)
        mapping = CommentedMap()
        for key in keys:
            mapping[str(key)] = _prepare(value[key], opts)
        return mapping
    if isinstance(value, (list, tuple)):
        return CommentedSeq(_prepare(item, opts) for item in value)
    if isinstance(value, str):
        if opts.quote_style == "double":
            return DoubleQuotedScalarString(value)
        if opts.quote_style == "single":
            return SingleQuotedScalarString(value)
        return str(value)
    return value
