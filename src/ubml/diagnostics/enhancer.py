"""Turns raw schema findings and reference diagnostics into actionable guidance.

Each keyword handler applies its sources in a fixed order:

1. literal hints declared in the schema (``x-ubml`` blocks, looked up by the
   exact offending value, property name or pattern);
2. structural heuristics (the ``_PATTERN_RULES`` list, type-shape checks);
3. nearest match by edit distance.

A higher tier that produces a suggestion hides the lower ones. Whatever
happens, the finding is never dropped: if enhancement itself fails, the
engine's own message is returned.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from ubml.diagnostics.matching import find_closest_match
from ubml.models.document import Document, join_pointer
from ubml.models.errors import Diagnostic, DiagnosticCode, schema_code
from ubml.models.findings import EnhancedDiagnostic, RawValidationFinding, SchemaContext
from ubml.schema.metadata import Multiplicity, ToolingHints, UBMLMetadata
from ubml.validator.references import IdentifierRegistry, IdReference

logger = logging.getLogger("ubml.diagnostics")

_ID_PATTERN_RE = re.compile(r"^\^\(?([A-Z]{2,3}(?:\|[A-Z]{2,3})*)\)?\\d\{(\d+),?\d*\}\$$")
_UNIT_PATTERN_RE = re.compile(r"\(((?:[a-z]+\|)+[a-z]+)\)\$$")
_NUMBER_RE = re.compile(r"^\d+(\.\d+)?$")
_ID_LIKE_RE = re.compile(r"^([A-Za-z]{2,3})(\d+)$")

_JSON_TYPES = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
    type(None): "null",
}


# ---------------------------------------------------------------------------
# Pattern heuristics
# ---------------------------------------------------------------------------


def _rule_missing_unit(value: str, pattern: str) -> str | None:
    units = _UNIT_PATTERN_RE.search(pattern)
    if units is None or not _NUMBER_RE.match(value):
        return None
    first_unit = units.group(1).split("|")[0]
    return f'Missing unit: try "{value}{first_unit}"'


def _rule_id_digits(value: str, pattern: str) -> str | None:
    id_pattern = _ID_PATTERN_RE.match(pattern)
    parts = _ID_LIKE_RE.match(value)
    if id_pattern is None or parts is None:
        return None
    prefixes = id_pattern.group(1).split("|")
    min_digits = int(id_pattern.group(2))
    prefix, digits = parts.group(1), parts.group(2)
    if prefix.upper() not in prefixes:
        return None
    fixed = f"{prefix.upper()}{digits.zfill(min_digits)}"
    if prefix != prefix.upper():
        return f'ID prefixes are uppercase: use "{fixed}"'
    if len(digits) < min_digits:
        return f'ID needs at least {min_digits} digits: use "{fixed}"'
    return None


def _rule_wrong_prefix(value: str, pattern: str) -> str | None:
    id_pattern = _ID_PATTERN_RE.match(pattern)
    parts = _ID_LIKE_RE.match(value)
    if id_pattern is None or parts is None:
        return None
    prefixes = id_pattern.group(1).split("|")
    if parts.group(1).upper() in prefixes or len(prefixes) != 1:
        return None
    return f'Expected an ID starting with "{prefixes[0]}", got "{parts.group(1)}"'


def _rule_surrounding_space(value: str, pattern: str) -> str | None:
    if value != value.strip():
        return f'Remove the surrounding whitespace: "{value.strip()}"'
    return None


_PATTERN_RULES: tuple[Callable[[str, str], str | None], ...] = (
    _rule_missing_unit,
    _rule_id_digits,
    _rule_wrong_prefix,
    _rule_surrounding_space,
)


# ---------------------------------------------------------------------------
# Enhancer
# ---------------------------------------------------------------------------


class ErrorEnhancer:
    """Builds :class:`EnhancedDiagnostic` objects from raw findings.

    Without metadata only heuristics and nearest-match suggestions are
    available; with it, schema-declared hints take precedence.
    """

    def __init__(self, metadata: UBMLMetadata | None = None) -> None:
        self._metadata = metadata
        self._hints = metadata.hints if metadata else ToolingHints()
        self._handlers: dict[
            str, Callable[[RawValidationFinding, SchemaContext], EnhancedDiagnostic]
        ] = {
            "additionalProperties": self._additional_properties,
            "enum": self._enum,
            "pattern": self._pattern,
            "required": self._required,
            "type": self._type,
            "oneOf": self._combinator,
            "anyOf": self._combinator,
        }

    def enhance(
        self, finding: RawValidationFinding, context: SchemaContext | None = None
    ) -> EnhancedDiagnostic:
        ctx = context or SchemaContext.from_finding(finding)
        handler = self._handlers.get(finding.keyword)
        if handler is None:
            return EnhancedDiagnostic(message=_fallback_message(finding))
        try:
            return handler(finding, ctx)
        except (KeyError, TypeError, ValueError, AttributeError, re.error):
            logger.warning("Could not enhance %s finding", finding.keyword, exc_info=True)
            return EnhancedDiagnostic(message=_fallback_message(finding))

    def to_diagnostic(
        self,
        finding: RawValidationFinding,
        document: Document | None = None,
        context: SchemaContext | None = None,
    ) -> Diagnostic:
        """Enhance ``finding`` and locate it in ``document``."""
        enhanced = self.enhance(finding, context)
        path = finding.instance_path
        if finding.keyword == "additionalProperties" and "additionalProperty" in finding.params:
            path = join_pointer(path, str(finding.params["additionalProperty"]))
        return Diagnostic(
            code=schema_code(finding.keyword),
            message=enhanced.message,
            filepath=document.filepath if document else None,
            path=path,
            span=document.get_source_location(path) if document else None,
            suggestion=enhanced.suggestion,
            hint=enhanced.hint,
            example=enhanced.example,
            valid_options=enhanced.valid_options,
        )

    # -- keyword handlers ----------------------------------------------------

    def _additional_properties(
        self, finding: RawValidationFinding, ctx: SchemaContext
    ) -> EnhancedDiagnostic:
        prop = str(finding.params.get("additionalProperty", finding.property_name or ""))
        message = f'Unknown property: "{prop}"'

        nested = self._hints.nested_hint(prop)
        if nested is not None and (
            not ctx.valid_properties or nested.parent_property in ctx.valid_properties
        ):
            return EnhancedDiagnostic(
                message=message,
                suggestion=nested.misplacement_hint,
                example=nested.example_for(prop),
                valid_options=ctx.valid_properties,
            )

        closest = find_closest_match(prop, ctx.valid_properties)
        return EnhancedDiagnostic(
            message=message,
            suggestion=f'Did you mean: "{closest}"?' if closest else None,
            valid_options=ctx.valid_properties,
        )

    def _enum(self, finding: RawValidationFinding, ctx: SchemaContext) -> EnhancedDiagnostic:
        allowed = [str(v) for v in finding.params.get("allowedValues") or []]
        if not allowed and finding.property_name:
            allowed = list(self._hints.enum_values(finding.property_name) or ())
        value = "" if finding.data is None else str(finding.data)
        message = f'Invalid value: "{value}"'

        literal = _schema_value_mistake(finding.schema_, value) or self._hints.enum_mistake(
            value, allowed, finding.property_name
        )
        if literal:
            return EnhancedDiagnostic(message=message, suggestion=literal, valid_options=allowed)

        closest = find_closest_match(value, allowed) if value else None
        return EnhancedDiagnostic(
            message=message,
            suggestion=f'Did you mean: "{closest}"?' if closest else None,
            valid_options=allowed,
        )

    def _pattern(self, finding: RawValidationFinding, ctx: SchemaContext) -> EnhancedDiagnostic:
        pattern = str(finding.params.get("pattern", ""))
        value = "" if finding.data is None else str(finding.data)
        message = f'Invalid format: "{value}"'

        hint, example = _schema_pattern_hint(finding.schema_)
        if hint is None:
            declared = self._hints.pattern_hint(pattern)
            if declared is not None:
                hint, example = declared.hint, declared.example
        if hint is None:
            hint, example = self._generic_pattern_hint(pattern)
        if example is None and ctx.examples:
            example = str(ctx.examples[0])

        suggestion = next(
            (s for s in (rule(value, pattern) for rule in _PATTERN_RULES) if s), None
        )
        return EnhancedDiagnostic(message=message, suggestion=suggestion, hint=hint, example=example)

    @staticmethod
    def _generic_pattern_hint(pattern: str) -> tuple[str, str | None]:
        id_pattern = _ID_PATTERN_RE.match(pattern)
        if id_pattern is None:
            return f"Must match pattern: {pattern}", None
        prefixes = id_pattern.group(1).split("|")
        digits = int(id_pattern.group(2))
        example = f"{prefixes[0]}{'1'.zfill(digits)}"
        return (
            f"IDs are {' or '.join(prefixes)} followed by {digits}+ digits (e.g., {example}).",
            example,
        )

    def _required(self, finding: RawValidationFinding, ctx: SchemaContext) -> EnhancedDiagnostic:
        prop = str(finding.params.get("missingProperty", ""))
        message = f'Missing required property: "{prop}"'

        declared = self._hints.required.get(prop)
        if declared is not None:
            return EnhancedDiagnostic(
                message=message, hint=declared.hint, example=declared.example
            )
        if prop in ctx.property_examples:
            return EnhancedDiagnostic(
                message=message,
                hint=f'Add the "{prop}" property.',
                example=f"{prop}: {_yaml_scalar(ctx.property_examples[prop])}",
            )
        return EnhancedDiagnostic(
            message=message,
            hint=f'Add the "{prop}" property.',
            example=f"{prop}: ...",
        )

    def _type(self, finding: RawValidationFinding, ctx: SchemaContext) -> EnhancedDiagnostic:
        expected = str(finding.params.get("type", "unknown"))
        actual = _JSON_TYPES.get(type(finding.data), type(finding.data).__name__)
        message = f"Type mismatch: expected {expected}, got {actual}"
        expected_types = expected.split(",")
        scalar = actual not in ("array", "object")

        suggestion = None
        if "array" in expected_types and scalar:
            suggestion = f"Wrap the value in a list: [{_yaml_scalar(finding.data)}]"
        elif "object" in expected_types and actual != "object":
            suggestion = "Use a mapping of 'key: value' entries here"
        elif "string" in expected_types and actual in ("integer", "number", "boolean"):
            suggestion = f'Quote the value to make it a string: "{_yaml_scalar(finding.data)}"'
        return EnhancedDiagnostic(message=message, suggestion=suggestion)

    def _combinator(
        self, finding: RawValidationFinding, ctx: SchemaContext
    ) -> EnhancedDiagnostic:
        best = finding.params.get("bestMatch")
        return EnhancedDiagnostic(
            message=_fallback_message(finding),
            hint=f"Closest alternative failed because: {best}" if best else None,
        )

    # -- reference diagnostics -----------------------------------------------

    def enhance_reference(
        self, diagnostic: Diagnostic, registry: IdentifierRegistry
    ) -> Diagnostic:
        """Add suggestions to a reference-validation diagnostic.

        Needs metadata; without it the diagnostic is returned unchanged.
        """
        if self._metadata is None:
            return diagnostic
        ids = self._metadata.ids
        update: dict[str, Any] = {}

        if diagnostic.code in (
            DiagnosticCode.UNDEFINED_REFERENCE,
            DiagnosticCode.WRONG_REFERENCE_TYPE,
        ):
            ref = _find_reference(registry, diagnostic)
            if ref is None:
                return diagnostic
            accepted = self._metadata.reference_fields.accepted_prefixes(ref.field) or frozenset()
            if diagnostic.code == DiagnosticCode.UNDEFINED_REFERENCE:
                prefix = ids.get_id_prefix(ref.id) or ""
                candidates = registry.ids_with_prefix(prefix)
                closest = find_closest_match(ref.id, candidates)
                if closest:
                    update["suggestion"] = f'Did you mean: "{closest}"?'
                info = self._metadata.id_prefixes.get(prefix)
                if info is not None and info.document_type:
                    update["hint"] = (
                        f"Define {ref.id} in a {info.document_type} document "
                        f"or reference an existing {info.human_name}."
                    )
                update["valid_options"] = sorted(candidates)
            else:
                names = ", ".join(self._metadata.human_name(p) for p in sorted(accepted))
                update["hint"] = f"'{ref.field}' accepts: {names}"
                update["valid_options"] = sorted(
                    i for p in accepted for i in registry.ids_with_prefix(p)
                )

        elif diagnostic.code == DiagnosticCode.DUPLICATE_ID:
            id_ = _last_segment(diagnostic.path)
            prefix = ids.get_id_prefix(id_) if id_ else None
            if prefix:
                next_id = ids.get_next_id(prefix, registry.defined)
                update["suggestion"] = f'Use a new ID such as "{next_id}"'

        elif diagnostic.code == DiagnosticCode.UNUSED_ID:
            id_ = _last_segment(diagnostic.path)
            definition = registry.defined.get(id_) if id_ else None
            doc_type = definition.document_type if definition else None
            if doc_type and self._metadata.multiplicity(doc_type) == Multiplicity.CATALOG:
                update["hint"] = (
                    f"{doc_type} documents are catalogs whose entries are often "
                    "unreferenced; suppress unused-ID warnings to silence this."
                )
            else:
                update["hint"] = f"Reference {id_} from another element or remove it."

        return diagnostic.model_copy(update=update) if update else diagnostic


def _fallback_message(finding: RawValidationFinding) -> str:
    return finding.message or f"Validation error ({finding.keyword})"


def _schema_value_mistake(schema: dict[str, Any] | None, value: str) -> str | None:
    meta = (schema or {}).get("x-ubml") or {}
    mistake = (meta.get("valueMistakes") or {}).get(value)
    return str(mistake["hint"]) if isinstance(mistake, dict) and "hint" in mistake else None


def _schema_pattern_hint(schema: dict[str, Any] | None) -> tuple[str | None, str | None]:
    if not schema:
        return None, None
    meta = schema.get("x-ubml") or {}
    examples = schema.get("examples") or []
    hint = meta.get("errorHint")
    return (str(hint) if hint else None), (str(examples[0]) if examples else None)


def _yaml_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _last_segment(path: str | None) -> str | None:
    if not path:
        return None
    return path.rsplit("/", 1)[-1].replace("~1", "/").replace("~0", "~")


def _find_reference(registry: IdentifierRegistry, diagnostic: Diagnostic) -> IdReference | None:
    for refs in registry.referenced.values():
        for ref in refs:
            if ref.path == diagnostic.path and ref.filepath == diagnostic.filepath:
                return ref
    return None
