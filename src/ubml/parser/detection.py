"""Document type detection from filenames and top-level keys."""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from ubml.models.document import DocumentType, MappingNode

# Types in detection order. A type whose signature keys can appear inside a
# more specific document (``links`` inside a process file) comes after it.
CONTENT_SIGNATURES: tuple[tuple[DocumentType, tuple[str, ...]], ...] = (
    ("process", ("processes",)),
    ("actors", ("actors", "skills", "personas", "resourcePools")),
    ("entities", ("entities", "locations")),
    ("hypotheses", ("hypothesisTrees",)),
    ("metrics", ("kpis", "metrics", "roiAnalyses")),
    ("scenarios", ("scenarios",)),
    ("strategy", ("valueStreams", "capabilities", "products", "services", "portfolios")),
    ("mining", ("miningSources",)),
    ("views", ("views",)),
    ("links", ("links",)),
    ("glossary", ("terms", "glossary")),
    ("workspace", ("organization", "documents")),
)

DOCUMENT_TYPES: tuple[DocumentType, ...] = tuple(t for t, _ in CONTENT_SIGNATURES)

_SUFFIXES = (".ubml.yaml", ".ubml.yml")


def detect_document_type(filename: str | None) -> DocumentType | None:
    """Detect the document type from a ``<name>.<type>.ubml.yaml`` filename.

    The short form ``<type>.ubml.yaml`` and the ``.yml`` extension are also
    accepted. Matching is case-insensitive and ignores directories.

    >>> detect_document_type("sales.process.ubml.yaml")
    'process'
    >>> detect_document_type("actors.ubml.yml")
    'actors'
    >>> detect_document_type("generic.ubml.yaml") is None
    True
    """
    if not filename:
        return None
    name = PurePath(filename).name.lower()
    for suffix in _SUFFIXES:
        if not name.endswith(suffix):
            continue
        stem = name[: -len(suffix)]
        candidate = stem.rsplit(".", 1)[-1]
        if candidate in DOCUMENT_TYPES:
            return candidate
    return None


def detect_document_type_from_content(
    content: Any,
    signatures: tuple[tuple[DocumentType, tuple[str, ...]], ...] = CONTENT_SIGNATURES,
) -> DocumentType | None:
    """Detect the document type from its characteristic top-level keys.

    Accepts either a parsed :class:`MappingNode` or a plain ``dict``.
    """
    if isinstance(content, MappingNode):
        keys = set(content.keys())
    elif isinstance(content, dict):
        keys = {str(k) for k in content}
    else:
        return None
    for doc_type, signature in signatures:
        if keys.intersection(signature):
            return doc_type
    return None


def is_ubml_file(filename: str) -> bool:
    return detect_document_type(filename) is not None


def get_ubml_file_patterns() -> list[str]:
    """Glob patterns matching every recognised UBML filename."""
    patterns: list[str] = []
    for doc_type in DOCUMENT_TYPES:
        patterns.append(f"**/*.{doc_type}.ubml.yaml")
        patterns.append(f"**/{doc_type}.ubml.yaml")
    return patterns
