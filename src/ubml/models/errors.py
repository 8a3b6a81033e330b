"""Structured diagnostic models with YAML source position tracking."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticCode(StrEnum):
    YAML_SYNTAX = "ubml/yaml-syntax"
    YAML_SAFETY = "ubml/yaml-safety"
    READ_ERROR = "ubml/read-error"
    UNKNOWN_DOCUMENT_TYPE = "ubml/unknown-document-type"
    DUPLICATE_ID = "ubml/duplicate-id"
    UNDEFINED_REFERENCE = "ubml/undefined-reference"
    WRONG_REFERENCE_TYPE = "ubml/wrong-reference-type"
    UNUSED_ID = "ubml/unused-id"
    MULTIPLE_SINGLETON = "ubml/multiple-singleton"
    HIERARCHY_CYCLE = "ubml/hierarchy-cycle"
    MISSING_WORKSPACE = "ubml/missing-workspace"
    MISSING_ACTORS = "ubml/missing-actors"
    SUGGEST_GLOSSARY = "ubml/suggest-glossary"


def schema_code(keyword: str) -> str:
    """Diagnostic code for a schema keyword violation, e.g. ``ubml/schema-enum``."""
    return f"ubml/schema-{keyword}"


class SourceSpan(BaseModel):
    """Points to exact location in YAML source for error reporting."""

    file: str
    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None


class RelatedLocation(BaseModel):
    """A second location involved in a diagnostic (e.g. the first definition of a duplicate)."""

    filepath: str
    path: str | None = None
    span: SourceSpan | None = None


class Diagnostic(BaseModel):
    """A located error or warning, optionally enriched with fix guidance."""

    code: str
    message: str
    severity: Severity = Severity.ERROR
    filepath: str | None = None
    path: str | None = None
    span: SourceSpan | None = None
    suggestion: str | None = None
    hint: str | None = None
    example: str | None = None
    valid_options: list[str] = []
    related: list[RelatedLocation] = []

    @property
    def line(self) -> int | None:
        return self.span.line if self.span else None

    @property
    def column(self) -> int | None:
        return self.span.column if self.span else None

    def as_warning(self) -> Diagnostic:
        return self.model_copy(update={"severity": Severity.WARNING})

    def as_error(self) -> Diagnostic:
        return self.model_copy(update={"severity": Severity.ERROR})


class ValidationResult(BaseModel):
    """Result of validating one or more documents."""

    valid: bool
    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []

    @classmethod
    def from_diagnostics(
        cls,
        errors: list[Diagnostic],
        warnings: list[Diagnostic],
        *,
        strict: bool = False,
    ) -> ValidationResult:
        """Build a result; in strict mode warnings are promoted before validity is decided."""
        if strict:
            errors = [*errors, *(w.as_error() for w in warnings)]
            warnings = []
        return cls(valid=not errors, errors=errors, warnings=warnings)
