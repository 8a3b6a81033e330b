"""Schema validation engine: document content against its declared schema."""

from __future__ import annotations

import logging
import re
from typing import Any

from jsonschema.exceptions import ValidationError, best_match

from ubml.models.document import (
    DocumentType,
    MappingNode,
    ScalarNode,
    SequenceNode,
    join_pointer,
    pointer_from_parts,
)
from ubml.models.findings import RawValidationFinding
from ubml.schema.registry import SchemaRegistry

logger = logging.getLogger("ubml.validator")

_LIMIT_KEYWORDS = frozenset(
    {
        "minimum",
        "maximum",
        "exclusiveMinimum",
        "exclusiveMaximum",
        "minLength",
        "maxLength",
        "minItems",
        "maxItems",
        "minProperties",
        "maxProperties",
        "multipleOf",
    }
)


class SchemaValidator:
    """Validates document content against the schema registered for its type.

    Collect-all: every violation is reported, never just the first. The
    registry reference is read once per call, so :meth:`swap_registry` from
    another thread never produces a mix of old and new schemas in one run.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def swap_registry(self, registry: SchemaRegistry) -> SchemaRegistry:
        """Replace the schema set; returns the previous one."""
        previous, self._registry = self._registry, registry
        logger.info("Schema registry swapped (%s -> %s)", previous.source, registry.source)
        return previous

    def validate(
        self, content: Any, document_type: DocumentType | None
    ) -> list[RawValidationFinding]:
        """Return every structural violation, ordered by (instance path, keyword).

        Raises ``SchemaNotFoundError`` when no schema is registered for
        ``document_type``.
        """
        registry = self._registry
        validator = registry.validator_for(document_type)
        if isinstance(content, (MappingNode, SequenceNode, ScalarNode)):
            content = content.to_python()

        findings: list[RawValidationFinding] = []
        seen_required: set[tuple[str, int]] = set()
        for error in validator.iter_errors(content):
            findings.extend(_findings_from_error(error, seen_required))

        findings.sort(key=lambda f: (f.instance_path, f.keyword))
        logger.debug(
            "Schema validation of %s document: %d finding(s)", document_type, len(findings)
        )
        return findings


def _findings_from_error(
    error: ValidationError, seen_required: set[tuple[str, int]]
) -> list[RawValidationFinding]:
    keyword = str(error.validator)
    path = pointer_from_parts(error.absolute_path)
    schema = error.schema if isinstance(error.schema, dict) else None
    instance = error.instance

    if keyword == "required":
        # jsonschema yields one error per missing property; emit them all the
        # first time an object/schema pair is seen.
        key = (path, id(error.schema))
        if key in seen_required:
            return []
        seen_required.add(key)
        required = error.validator_value if isinstance(error.validator_value, list) else []
        missing = [p for p in required if isinstance(instance, dict) and p not in instance]
        return [
            RawValidationFinding(
                keyword="required",
                instance_path=path,
                params={"missingProperty": prop},
                data=instance,
                message=f"must have required property '{prop}'",
                schema_=schema,
            )
            for prop in missing
        ]

    if keyword == "additionalProperties" and isinstance(instance, dict):
        return [
            RawValidationFinding(
                keyword="additionalProperties",
                instance_path=path,
                params={"additionalProperty": prop},
                data=instance.get(prop),
                message="must NOT have additional properties",
                schema_=schema,
            )
            for prop in _extra_properties(instance, schema or {})
        ]

    params: dict[str, Any]
    if "propertyNames" in error.relative_schema_path:
        # Key validation errors carry the key itself as the instance.
        path = join_pointer(path, str(instance))
        params = _params_for(keyword, error)
        params["propertyName"] = instance
    else:
        params = _params_for(keyword, error)

    return [
        RawValidationFinding(
            keyword=keyword,
            instance_path=path,
            params=params,
            data=instance,
            message=error.message,
            schema_=schema,
        )
    ]


def _params_for(keyword: str, error: ValidationError) -> dict[str, Any]:
    value = error.validator_value
    if keyword == "enum":
        return {"allowedValues": list(value)}
    if keyword == "const":
        return {"allowedValue": value}
    if keyword == "pattern":
        return {"pattern": value}
    if keyword == "type":
        return {"type": ",".join(value) if isinstance(value, list) else value}
    if keyword == "format":
        return {"format": value}
    if keyword in _LIMIT_KEYWORDS:
        return {"limit": value}
    if keyword in ("oneOf", "anyOf"):
        best = best_match(error.context) if error.context else None
        params: dict[str, Any] = {}
        if best is not None:
            params["bestMatch"] = best.message
        return params
    return {}


def _extra_properties(instance: dict[str, Any], schema: dict[str, Any]) -> list[str]:
    declared = schema.get("properties") or {}
    patterns = [re.compile(p) for p in (schema.get("patternProperties") or {})]
    return [
        key
        for key in instance
        if key not in declared and not any(p.search(key) for p in patterns)
    ]
