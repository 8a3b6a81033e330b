"""Static metadata derived from the schema set: IDs, reference fields, hints.

Everything here is computed once when a :class:`~ubml.schema.registry.SchemaRegistry`
is built and is read-only afterwards.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from referencing import Registry

from ubml.models.document import DocumentType
from ubml.schema.ids import IdConfig, IdScheme

if TYPE_CHECKING:
    from referencing._core import Resolver


class Multiplicity(StrEnum):
    SINGLETON = "singleton"  # at most one per workspace
    CATALOG = "catalog"  # many allowed, entries usually unreferenced
    MULTIPLE = "multiple"


# ---------------------------------------------------------------------------
# Tooling hints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternHint:
    pattern: str
    human_name: str
    hint: str
    example: str | None = None
    prefix: str | None = None


@dataclass(frozen=True)
class NestedPropertyHint:
    """Properties that belong inside a parent object (e.g. ``RACI``)."""

    parent_property: str
    child_properties: tuple[str, ...]
    misplacement_hint: str
    misplacement_example: str

    def example_for(self, prop: str) -> str:
        return self.misplacement_example.replace("{property}", prop)


@dataclass(frozen=True)
class EnumHint:
    values: tuple[str, ...]
    value_mistakes: Mapping[str, str] = field(default_factory=dict)
    property_names: frozenset[str] = frozenset()


@dataclass(frozen=True)
class RequiredHint:
    hint: str
    example: str | None = None


@dataclass(frozen=True)
class ToolingHints:
    """Lookup tables used by the error enhancer."""

    patterns: tuple[PatternHint, ...] = ()
    nested: tuple[NestedPropertyHint, ...] = ()
    enums: tuple[EnumHint, ...] = ()
    required: Mapping[str, RequiredHint] = field(default_factory=dict)

    def pattern_hint(self, pattern: str) -> PatternHint | None:
        return next((h for h in self.patterns if h.pattern == pattern), None)

    def nested_hint(self, prop: str) -> NestedPropertyHint | None:
        return next((h for h in self.nested if prop in h.child_properties), None)

    def enum_mistake(
        self,
        value: str,
        allowed: list[Any] | None = None,
        property_name: str | None = None,
    ) -> str | None:
        """Literal hint for a known wrong enum value.

        Enums are tried in order of how surely they are the one that failed:
        same allowed values, then same property name, then any overlap with
        the allowed values. Several enums share property names (``kind``),
        so within a tier the first enum that knows this exact mistake wins.
        """
        allowed_set = {str(v) for v in allowed} if allowed else set()
        tiers = (
            [h for h in self.enums if allowed_set and set(h.values) == allowed_set],
            [h for h in self.enums if property_name and property_name in h.property_names],
            [h for h in self.enums if allowed_set & set(h.values)],
        )
        for tier in tiers:
            for hint in tier:
                if value in hint.value_mistakes:
                    return hint.value_mistakes[value]
        return None

    def enum_values(self, property_name: str) -> tuple[str, ...] | None:
        hint = next((h for h in self.enums if property_name in h.property_names), None)
        return hint.values if hint else None


# ---------------------------------------------------------------------------
# Reference fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReferenceFieldRegistry:
    """Property names that carry ID references, with their accepted prefixes.

    An empty prefix set means the field accepts an ID of any type.
    """

    fields: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def __len__(self) -> int:
        return len(self.fields)

    def accepted_prefixes(self, name: str) -> frozenset[str] | None:
        return self.fields.get(name)

    @property
    def names(self) -> list[str]:
        return sorted(self.fields)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdPrefixInfo:
    prefix: str
    element_type: str
    document_type: DocumentType | None
    human_name: str


@dataclass(frozen=True)
class DocumentTypeInfo:
    type: DocumentType
    schema_id: str
    multiplicity: Multiplicity
    detect_by: tuple[str, ...]


@dataclass(frozen=True)
class UBMLMetadata:
    ids: IdScheme
    id_prefixes: Mapping[str, IdPrefixInfo]
    documents: tuple[DocumentTypeInfo, ...]
    reference_fields: ReferenceFieldRegistry
    hints: ToolingHints
    parent_fields: frozenset[str] = frozenset({"parent"})
    child_fields: frozenset[str] = frozenset({"children"})
    common_properties: tuple[str, ...] = ()

    @property
    def document_types(self) -> list[DocumentType]:
        return [d.type for d in self.documents]

    def document_info(self, doc_type: DocumentType) -> DocumentTypeInfo | None:
        return next((d for d in self.documents if d.type == doc_type), None)

    def multiplicity(self, doc_type: DocumentType) -> Multiplicity:
        info = self.document_info(doc_type)
        return info.multiplicity if info else Multiplicity.MULTIPLE

    @property
    def singleton_types(self) -> list[DocumentType]:
        return [d.type for d in self.documents if d.multiplicity == Multiplicity.SINGLETON]

    @property
    def content_signatures(self) -> tuple[tuple[DocumentType, tuple[str, ...]], ...]:
        return tuple((d.type, d.detect_by) for d in self.documents)

    def human_name(self, prefix: str) -> str:
        info = self.id_prefixes.get(prefix)
        return info.human_name if info else f"{prefix} ID"


def build_metadata(
    root: Mapping[str, Any],
    defs: Mapping[str, Any],
    documents: Mapping[DocumentType, Mapping[str, Any]],
    registry: Registry,
) -> UBMLMetadata:
    """Derive :class:`UBMLMetadata` from loaded schemas.

    ``documents`` must be in detection order. Raises ``ValueError`` for
    malformed metadata blocks.
    """
    id_cfg = defs.get("x-ubml-id-config") or {}
    config = IdConfig(
        digit_length=int(id_cfg.get("digitLength", 5)),
        init_offset=int(id_cfg.get("initOffset", 1)),
    )

    id_prefixes: dict[str, IdPrefixInfo] = {}
    for name, sub in (defs.get("$defs") or {}).items():
        meta = sub.get("x-ubml") if isinstance(sub, dict) else None
        if not meta or "prefix" not in meta:
            continue
        prefix = str(meta["prefix"])
        if prefix in id_prefixes:
            raise ValueError(f"ID prefix {prefix!r} is declared twice ({name})")
        id_prefixes[prefix] = IdPrefixInfo(
            prefix=prefix,
            element_type=str(meta.get("elementType", name)),
            document_type=meta.get("documentType"),
            human_name=str(meta.get("humanName", f"{prefix} ID")),
        )

    doc_infos: list[DocumentTypeInfo] = []
    for doc_type, schema in documents.items():
        block = schema.get("x-ubml-document") or {}
        try:
            multiplicity = Multiplicity(block.get("multiplicity", "multiple"))
        except ValueError:
            raise ValueError(
                f"Document type {doc_type!r} declares unknown multiplicity "
                f"{block.get('multiplicity')!r}"
            ) from None
        doc_infos.append(
            DocumentTypeInfo(
                type=doc_type,
                schema_id=str(schema["$id"]),
                multiplicity=multiplicity,
                detect_by=tuple(block.get("detectBy") or ()),
            )
        )

    walker = _SchemaWalker(registry)
    for info in doc_infos:
        walker.walk_document(info.schema_id)

    hierarchy = defs.get("x-ubml-hierarchy") or {}
    return UBMLMetadata(
        ids=IdScheme({p: i.element_type for p, i in id_prefixes.items()}, config),
        id_prefixes=id_prefixes,
        documents=tuple(doc_infos),
        reference_fields=walker.reference_fields(),
        hints=ToolingHints(
            patterns=tuple(_collect_pattern_hints([defs, *documents.values()])),
            nested=tuple(_collect_nested_hints(defs)),
            enums=walker.enum_hints(),
            required={
                str(name): RequiredHint(hint=str(h.get("hint", "")), example=h.get("example"))
                for name, h in (defs.get("x-ubml-required-hints") or {}).items()
            },
        ),
        parent_fields=frozenset(hierarchy.get("parentFields") or ("parent",)),
        child_fields=frozenset(hierarchy.get("childFields") or ("children",)),
        common_properties=tuple(root.get("x-ubml-common-properties") or ()),
    )


_ANY = "*"
_INLINE_ID_FIELDS = frozenset({"id"})


class _SchemaWalker:
    """Follows ``$ref`` through document schemas, noting which property
    names lead to ID-typed values and which lead to enums."""

    def __init__(self, registry: Registry) -> None:
        self._registry = registry
        self._refs: dict[str, set[str]] = {}
        self._enums: dict[int, tuple[dict[str, Any], set[str]]] = {}
        self._seen: set[tuple[int, str | None]] = set()

    def walk_document(self, uri: str) -> None:
        resolved = self._registry.resolver().lookup(uri)
        self._walk(resolved.contents, resolved.resolver, None)

    def _walk(self, schema: Any, resolver: Resolver, prop: str | None) -> None:
        if not isinstance(schema, dict):
            return
        key = (id(schema), prop)
        if key in self._seen:
            return
        self._seen.add(key)

        ref = schema.get("$ref")
        if isinstance(ref, str):
            resolved = resolver.lookup(ref)
            self._walk(resolved.contents, resolved.resolver, prop)

        if prop is not None and prop not in _INLINE_ID_FIELDS:
            meta = schema.get("x-ubml") or {}
            if meta.get("anyReference"):
                self._refs.setdefault(prop, set()).add(_ANY)
            elif "prefix" in meta:
                self._refs.setdefault(prop, set()).add(str(meta["prefix"]))
            if "enum" in schema:
                _, names = self._enums.setdefault(id(schema), (schema, set()))
                names.add(prop)

        for name, sub in (schema.get("properties") or {}).items():
            self._walk(sub, resolver, str(name))
        for sub in (schema.get("patternProperties") or {}).values():
            self._walk(sub, resolver, None)
        items = schema.get("items")
        if isinstance(items, dict):
            self._walk(items, resolver, prop)
        additional = schema.get("additionalProperties")
        if isinstance(additional, dict):
            self._walk(additional, resolver, None)
        for combinator in ("oneOf", "anyOf", "allOf"):
            for sub in schema.get(combinator) or ():
                self._walk(sub, resolver, prop)

    def reference_fields(self) -> ReferenceFieldRegistry:
        return ReferenceFieldRegistry(
            {
                name: frozenset() if _ANY in prefixes else frozenset(prefixes)
                for name, prefixes in sorted(self._refs.items())
            }
        )

    def enum_hints(self) -> tuple[EnumHint, ...]:
        hints = []
        for schema, names in self._enums.values():
            mistakes = (schema.get("x-ubml") or {}).get("valueMistakes") or {}
            hints.append(
                EnumHint(
                    values=tuple(str(v) for v in schema["enum"]),
                    value_mistakes={str(k): str(v.get("hint", "")) for k, v in mistakes.items()},
                    property_names=frozenset(names),
                )
            )
        return tuple(hints)


def _iter_subschemas(schema: Any) -> Iterator[dict[str, Any]]:
    if isinstance(schema, dict):
        yield schema
        for value in schema.values():
            yield from _iter_subschemas(value)
    elif isinstance(schema, list):
        for value in schema:
            yield from _iter_subschemas(value)


def _collect_pattern_hints(schemas: list[Mapping[str, Any]]) -> list[PatternHint]:
    hints: dict[str, PatternHint] = {}
    for schema in schemas:
        for sub in _iter_subschemas(schema):
            meta = sub.get("x-ubml")
            if "pattern" not in sub or not isinstance(meta, dict) or "errorHint" not in meta:
                continue
            examples = sub.get("examples") or []
            hints.setdefault(
                str(sub["pattern"]),
                PatternHint(
                    pattern=str(sub["pattern"]),
                    human_name=str(meta.get("humanName", "value")),
                    hint=str(meta["errorHint"]),
                    example=str(examples[0]) if examples else None,
                    prefix=meta.get("prefix"),
                ),
            )
    return list(hints.values())


def _collect_nested_hints(defs: Mapping[str, Any]) -> list[NestedPropertyHint]:
    hints = []
    for sub in (defs.get("$defs") or {}).values():
        meta = sub.get("x-ubml") if isinstance(sub, dict) else None
        if not meta or "parentProperty" not in meta:
            continue
        hints.append(
            NestedPropertyHint(
                parent_property=str(meta["parentProperty"]),
                child_properties=tuple(meta.get("nestedProperties") or ()),
                misplacement_hint=str(meta.get("misplacementHint", "")),
                misplacement_example=str(meta.get("misplacementExample", "")),
            )
        )
    return hints
