"""Cross-document reference validation.

Works over the complete set of parsed documents in separate stages:

1. definitions: every mapping key that is a valid ID defines an element;
2. references: values of reference fields are checked against stage 1;
3. unused IDs (warnings);
4. singleton document types appearing more than once;
5. cycles in ``parent`` / ``children`` hierarchies.

Stage 2 only starts once stage 1 has seen every document, so forward
references across files resolve regardless of document order. When an ID is
defined twice, the first definition in caller order is kept for resolution
and the later one is reported.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

import networkx as nx

from ubml.models.document import (
    Document,
    MappingNode,
    Node,
    ScalarNode,
    SequenceNode,
    join_pointer,
)
from ubml.models.errors import (
    Diagnostic,
    DiagnosticCode,
    RelatedLocation,
    Severity,
    SourceSpan,
    ValidationResult,
)
from ubml.schema.metadata import Multiplicity, UBMLMetadata

logger = logging.getLogger("ubml.validator")


@dataclass(frozen=True)
class DefinedId:
    id: str
    prefix: str
    element_type: str
    filepath: str
    path: str
    span: SourceSpan | None = None
    document_type: str | None = None


@dataclass(frozen=True)
class IdReference:
    id: str
    filepath: str
    field: str
    path: str
    span: SourceSpan | None = None
    owner: str | None = None  # innermost element ID enclosing the reference


@dataclass
class IdentifierRegistry:
    """Defined and referenced IDs for one validation run."""

    defined: dict[str, DefinedId] = field(default_factory=dict)
    referenced: dict[str, list[IdReference]] = field(default_factory=dict)

    def define(self, definition: DefinedId) -> DefinedId | None:
        """Record a definition; returns the earlier one if the ID is already taken."""
        existing = self.defined.get(definition.id)
        if existing is not None:
            return existing
        self.defined[definition.id] = definition
        return None

    def reference(self, ref: IdReference) -> None:
        self.referenced.setdefault(ref.id, []).append(ref)

    def is_defined(self, id_: str) -> bool:
        return id_ in self.defined

    def references_to(self, id_: str) -> list[IdReference]:
        return self.referenced.get(id_, [])

    def ids_with_prefix(self, prefix: str) -> list[str]:
        return [i for i, d in self.defined.items() if d.prefix == prefix]


@dataclass(frozen=True)
class ReferenceValidateOptions:
    suppress_unused_warnings: bool = False
    check_multiplicity: bool = True
    check_hierarchy: bool = True


@dataclass
class ReferenceValidationResult:
    valid: bool
    errors: list[Diagnostic] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
    registry: IdentifierRegistry = field(default_factory=IdentifierRegistry)

    def to_validation_result(self, *, strict: bool = False) -> ValidationResult:
        return ValidationResult.from_diagnostics(self.errors, self.warnings, strict=strict)


class ReferenceValidator:
    """Validates ID definitions and references across a document set."""

    def __init__(self, metadata: UBMLMetadata) -> None:
        self._metadata = metadata
        self._ids = metadata.ids
        self._fields = metadata.reference_fields

    def validate(
        self,
        documents: Sequence[Document],
        options: ReferenceValidateOptions | None = None,
    ) -> ReferenceValidationResult:
        opts = options or ReferenceValidateOptions()
        registry = IdentifierRegistry()
        errors: list[Diagnostic] = []
        warnings: list[Diagnostic] = []

        errors.extend(self._collect_definitions(documents, registry))
        errors.extend(self._collect_references(documents, registry))
        if not opts.suppress_unused_warnings:
            warnings.extend(self._check_unused(registry))
        if opts.check_multiplicity:
            errors.extend(self._check_multiplicity(documents))
        if opts.check_hierarchy:
            errors.extend(self._check_hierarchy_cycles(registry))

        logger.debug(
            "Reference validation over %d document(s): %d defined, %d referenced, "
            "%d error(s), %d warning(s)",
            len(documents),
            len(registry.defined),
            len(registry.referenced),
            len(errors),
            len(warnings),
        )
        return ReferenceValidationResult(
            valid=not errors, errors=errors, warnings=warnings, registry=registry
        )

    # -- stage 1: definitions ------------------------------------------------

    def _collect_definitions(
        self, documents: Sequence[Document], registry: IdentifierRegistry
    ) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        for doc in documents:
            for key, path, _ in _walk_entries(doc.content):
                if not self._ids.is_valid_id(key):
                    continue
                prefix = self._ids.get_id_prefix(key) or ""
                definition = DefinedId(
                    id=key,
                    prefix=prefix,
                    element_type=self._ids.prefixes.get(prefix, "element"),
                    filepath=doc.filepath,
                    path=path,
                    span=doc.get_source_location(path),
                    document_type=doc.meta.type,
                )
                first = registry.define(definition)
                if first is None:
                    continue
                errors.append(
                    Diagnostic(
                        code=DiagnosticCode.DUPLICATE_ID,
                        message=(
                            f'Duplicate ID "{key}": also defined in '
                            f"{first.filepath} at {first.path}"
                        ),
                        filepath=doc.filepath,
                        path=path,
                        span=definition.span,
                        related=[
                            RelatedLocation(
                                filepath=first.filepath, path=first.path, span=first.span
                            )
                        ],
                    )
                )
        return errors

    # -- stage 2: references -------------------------------------------------

    def _collect_references(
        self, documents: Sequence[Document], registry: IdentifierRegistry
    ) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        for doc in documents:
            for key, path, value in _walk_entries(doc.content):
                if key not in self._fields:
                    continue
                for ref_path, ref_value in _reference_values(path, value):
                    if not self._ids.is_valid_id(ref_value):
                        continue
                    ref = IdReference(
                        id=ref_value,
                        filepath=doc.filepath,
                        field=key,
                        path=ref_path,
                        span=doc.get_source_location(ref_path),
                        owner=self._owner_of(path),
                    )
                    registry.reference(ref)
                    errors.extend(self._check_reference(ref, registry))
        return errors

    def _check_reference(
        self, ref: IdReference, registry: IdentifierRegistry
    ) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        prefix = self._ids.get_id_prefix(ref.id) or ""
        if not registry.is_defined(ref.id):
            errors.append(
                Diagnostic(
                    code=DiagnosticCode.UNDEFINED_REFERENCE,
                    message=(
                        f'Undefined reference: "{ref.id}" in \'{ref.field}\' '
                        f"is not defined in any document"
                    ),
                    filepath=ref.filepath,
                    path=ref.path,
                    span=ref.span,
                )
            )
        accepted = self._fields.accepted_prefixes(ref.field)
        if accepted and prefix not in accepted:
            expected = " or ".join(self._metadata.human_name(p) for p in sorted(accepted))
            errors.append(
                Diagnostic(
                    code=DiagnosticCode.WRONG_REFERENCE_TYPE,
                    message=(
                        f"Wrong reference type: '{ref.field}' expects {expected}, "
                        f'but "{ref.id}" is a {self._metadata.human_name(prefix)}'
                    ),
                    filepath=ref.filepath,
                    path=ref.path,
                    span=ref.span,
                )
            )
        return errors

    def _owner_of(self, path: str) -> str | None:
        for segment in reversed(path.split("/")[:-1]):
            if self._ids.is_valid_id(segment):
                return segment
        return None

    # -- stage 3: unused -----------------------------------------------------

    def _check_unused(self, registry: IdentifierRegistry) -> list[Diagnostic]:
        warnings: list[Diagnostic] = []
        for id_, definition in registry.defined.items():
            if registry.references_to(id_):
                continue
            warnings.append(
                Diagnostic(
                    code=DiagnosticCode.UNUSED_ID,
                    severity=Severity.WARNING,
                    message=f'ID "{id_}" is defined but never referenced',
                    filepath=definition.filepath,
                    path=definition.path,
                    span=definition.span,
                )
            )
        return warnings

    # -- stage 4: multiplicity -----------------------------------------------

    def _check_multiplicity(self, documents: Sequence[Document]) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        first_of_type: dict[str, Document] = {}
        for doc in documents:
            doc_type = doc.meta.type
            if doc_type is None:
                continue
            if self._metadata.multiplicity(doc_type) != Multiplicity.SINGLETON:
                continue
            first = first_of_type.setdefault(doc_type, doc)
            if first is doc:
                continue
            errors.append(
                Diagnostic(
                    code=DiagnosticCode.MULTIPLE_SINGLETON,
                    message=(
                        f"Only one {doc_type} document is allowed per workspace; "
                        f"another is defined in {first.filepath}"
                    ),
                    filepath=doc.filepath,
                    path="",
                    span=doc.get_source_location(""),
                    related=[
                        RelatedLocation(
                            filepath=first.filepath,
                            path="",
                            span=first.get_source_location(""),
                        )
                    ],
                )
            )
        return errors

    # -- stage 5: hierarchy cycles -------------------------------------------

    def _check_hierarchy_cycles(self, registry: IdentifierRegistry) -> list[Diagnostic]:
        """Detect elements that are (transitively) their own ancestor."""
        # Edges point from child to parent.
        graph: nx.DiGraph[str] = nx.DiGraph()
        for refs in registry.referenced.values():
            for ref in refs:
                if ref.owner is None or not registry.is_defined(ref.id):
                    continue
                if ref.field in self._metadata.parent_fields:
                    graph.add_edge(ref.owner, ref.id)
                elif ref.field in self._metadata.child_fields:
                    graph.add_edge(ref.id, ref.owner)

        cycles = sorted(_rotate_to_min(c) for c in nx.simple_cycles(graph))
        return [self._cycle_error(cycle, registry) for cycle in cycles]

    def _cycle_error(self, cycle: list[str], registry: IdentifierRegistry) -> Diagnostic:
        anchor = registry.defined[cycle[0]]
        return Diagnostic(
            code=DiagnosticCode.HIERARCHY_CYCLE,
            message=f"Hierarchy cycle detected: {' -> '.join([*cycle, cycle[0]])}",
            filepath=anchor.filepath,
            path=anchor.path,
            span=anchor.span,
            related=[
                RelatedLocation(
                    filepath=registry.defined[i].filepath,
                    path=registry.defined[i].path,
                    span=registry.defined[i].span,
                )
                for i in cycle[1:]
            ],
        )


def _rotate_to_min(cycle: list[str]) -> list[str]:
    """Start the cycle at its smallest ID so reports do not depend on search order."""
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


def _walk_entries(node: Node, path: str = "") -> Iterator[tuple[str, str, Node]]:
    """Yield ``(key, path, value)`` for every mapping entry, depth first."""
    if isinstance(node, MappingNode):
        for key, value in node.entries:
            key_path = join_pointer(path, key)
            yield key, key_path, value
            yield from _walk_entries(value, key_path)
    elif isinstance(node, SequenceNode):
        for i, item in enumerate(node.items):
            yield from _walk_entries(item, join_pointer(path, i))


def _reference_values(path: str, value: Node) -> Iterator[tuple[str, str]]:
    """String values of a reference field: the scalar itself or each list item."""
    if isinstance(value, ScalarNode):
        if isinstance(value.value, str):
            yield path, value.value
    elif isinstance(value, SequenceNode):
        for i, item in enumerate(value.items):
            if isinstance(item, ScalarNode) and isinstance(item.value, str):
                yield join_pointer(path, i), item.value


def validate_references(
    documents: Sequence[Document],
    metadata: UBMLMetadata,
    *,
    suppress_unused_warnings: bool = False,
) -> ReferenceValidationResult:
    """Shortcut for ``ReferenceValidator(metadata).validate(documents, ...)``."""
    options = ReferenceValidateOptions(suppress_unused_warnings=suppress_unused_warnings)
    return ReferenceValidator(metadata).validate(documents, options)
