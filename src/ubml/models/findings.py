"""Raw schema findings and the enhanced diagnostics built from them."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RawValidationFinding(BaseModel):
    """A single structural violation as reported by the schema engine.

    ``params`` follows the Ajv conventions so enhancement rules can be keyed on
    familiar names: ``missingProperty``, ``additionalProperty``,
    ``allowedValues``, ``pattern``, ``type``.
    """

    keyword: str
    instance_path: str = ""
    params: dict[str, Any] = {}
    data: Any = None
    message: str = ""
    schema_: dict[str, Any] | None = Field(default=None, repr=False, exclude=True)

    @property
    def property_name(self) -> str | None:
        """Last non-index segment of the instance path."""
        for segment in reversed(self.instance_path.split("/")):
            if segment and not segment.isdigit():
                return segment.replace("~1", "/").replace("~0", "~")
        return None


class SchemaContext(BaseModel):
    """Schema-side facts that help explain a finding."""

    valid_properties: list[str] = []
    examples: list[Any] = []
    property_examples: dict[str, Any] = {}

    @classmethod
    def from_finding(cls, finding: RawValidationFinding) -> SchemaContext:
        schema = finding.schema_ or {}
        properties = schema.get("properties")
        valid: list[str] = list(properties) if isinstance(properties, dict) else []
        property_examples: dict[str, Any] = {}
        if isinstance(properties, dict):
            for name, sub in properties.items():
                if isinstance(sub, dict) and sub.get("examples"):
                    property_examples[name] = sub["examples"][0]
        examples = schema.get("examples") or []
        return cls(
            valid_properties=valid,
            examples=list(examples) if isinstance(examples, list) else [],
            property_examples=property_examples,
        )


class EnhancedDiagnostic(BaseModel):
    """Human-facing explanation of a finding. Only ``message`` is guaranteed."""

    message: str
    suggestion: str | None = None
    hint: str | None = None
    example: str | None = None
    valid_options: list[str] = []
