"""Validation service: parsing, schema and reference validation behind one API.

Reusable by any front end (CLI, editor integration, tests). The schema
registry, validators and enhancer are created once and shared; every call
builds its own parse and reference state.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ubml.diagnostics.enhancer import ErrorEnhancer
from ubml.models.document import Document, ParseIssue, ParseResult
from ubml.models.errors import (
    Diagnostic,
    DiagnosticCode,
    Severity,
    SourceSpan,
    ValidationResult,
)
from ubml.parser.loader import TrackedLoader
from ubml.schema.registry import SchemaRegistry
from ubml.settings import Settings
from ubml.validator.references import ReferenceValidateOptions, ReferenceValidator
from ubml.validator.schema_validator import SchemaValidator
from ubml.validator.workspace import WorkspaceStructureResult, validate_workspace_structure

logger = logging.getLogger("ubml.service")


class ValidationService:
    """Parse and validate UBML documents.

    ``strict`` promotes warnings to errors in every result unless a call
    overrides it.
    """

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        *,
        strict: bool = False,
        suppress_unused_warnings: bool = False,
    ) -> None:
        registry = registry or SchemaRegistry.load()
        self.strict = strict
        self.suppress_unused_warnings = suppress_unused_warnings
        self._loader = TrackedLoader()
        self._schema_validator = SchemaValidator(registry)
        self._enhancer = ErrorEnhancer(registry.metadata)
        self._references = ReferenceValidator(registry.metadata)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ValidationService:
        settings = settings or Settings()
        logging.getLogger("ubml").setLevel(settings.log_level.upper())
        return cls(
            SchemaRegistry.load(settings.schemas_dir),
            strict=settings.strict,
            suppress_unused_warnings=settings.suppress_unused_warnings,
        )

    @property
    def registry(self) -> SchemaRegistry:
        return self._schema_validator.registry

    def reload_schemas(self, schemas_dir: str | Path | None = None) -> SchemaRegistry:
        """Load a fresh schema set and swap it in; returns the new registry.

        If loading fails the current schemas stay in place and the error propagates.
        """
        registry = SchemaRegistry.load(schemas_dir)
        # Metadata consumers first, schemas last.
        self._enhancer = ErrorEnhancer(registry.metadata)
        self._references = ReferenceValidator(registry.metadata)
        self._schema_validator.swap_registry(registry)
        return registry

    # -- parsing -------------------------------------------------------------

    def parse(self, text: str, filename: str | None = None) -> ParseResult:
        return self._loader.load_string(text, filename)

    def parse_file(self, path: str | Path) -> ParseResult:
        return self._loader.load(Path(path))

    # -- validation ----------------------------------------------------------

    def validate_document(
        self, document: Document, *, strict: bool | None = None
    ) -> ValidationResult:
        """Schema validation of a single document, with enhanced diagnostics."""
        errors, warnings = self._schema_diagnostics(document)
        return ValidationResult.from_diagnostics(errors, warnings, strict=self._strict(strict))

    def validate(
        self, documents: Sequence[Document], *, strict: bool | None = None
    ) -> ValidationResult:
        """Schema-validate every document, then check references across the set.

        ``documents`` must be the complete set: references are only resolved
        against IDs defined somewhere in it.
        """
        errors: list[Diagnostic] = []
        warnings: list[Diagnostic] = []
        for document in documents:
            doc_errors, doc_warnings = self._schema_diagnostics(document)
            errors.extend(doc_errors)
            warnings.extend(doc_warnings)

        enhancer = self._enhancer
        options = ReferenceValidateOptions(suppress_unused_warnings=self.suppress_unused_warnings)
        refs = self._references.validate(documents, options)
        errors.extend(enhancer.enhance_reference(d, refs.registry) for d in refs.errors)
        warnings.extend(enhancer.enhance_reference(d, refs.registry) for d in refs.warnings)

        result = ValidationResult.from_diagnostics(errors, warnings, strict=self._strict(strict))
        logger.info(
            "Validated %d document(s): %d error(s), %d warning(s)",
            len(documents),
            len(result.errors),
            len(result.warnings),
        )
        return result

    def check_structure(self, documents: Sequence[Document]) -> WorkspaceStructureResult:
        """Advisory workspace-level warnings, reported apart from validation results."""
        return validate_workspace_structure(documents)

    def parse_and_validate(
        self, text: str, filename: str | None = None, *, strict: bool | None = None
    ) -> ValidationResult:
        """Parse one document and validate it on its own (schema and references)."""
        parsed = self.parse(text, filename)
        file = filename or "unknown"
        parse_errors = [_from_parse_issue(i, file, Severity.ERROR) for i in parsed.errors]
        # Unknown-type warnings are re-issued by schema validation.
        parse_warnings = [
            _from_parse_issue(i, file, Severity.WARNING)
            for i in parsed.warnings
            if i.code != DiagnosticCode.UNKNOWN_DOCUMENT_TYPE
        ]
        if parsed.document is None or parse_errors:
            return ValidationResult.from_diagnostics(
                parse_errors, parse_warnings, strict=self._strict(strict)
            )
        result = self.validate([parsed.document], strict=False)
        return ValidationResult.from_diagnostics(
            result.errors, [*parse_warnings, *result.warnings], strict=self._strict(strict)
        )

    # -- helpers -------------------------------------------------------------

    def _strict(self, strict: bool | None) -> bool:
        return self.strict if strict is None else strict

    def _schema_diagnostics(
        self, document: Document
    ) -> tuple[list[Diagnostic], list[Diagnostic]]:
        if document.meta.type is None:
            warning = Diagnostic(
                code=DiagnosticCode.UNKNOWN_DOCUMENT_TYPE,
                message=f"Could not determine the document type of {document.filepath}",
                severity=Severity.WARNING,
                filepath=document.filepath,
                path="",
                span=document.get_source_location(""),
                hint="Name the file <name>.<type>.ubml.yaml, e.g. sales.process.ubml.yaml",
            )
            return [], [warning]

        findings = self._schema_validator.validate(document.content, document.meta.type)
        enhancer = self._enhancer
        return [enhancer.to_diagnostic(f, document) for f in findings], []


def _from_parse_issue(issue: ParseIssue, filepath: str, severity: Severity) -> Diagnostic:
    span = None
    if issue.line is not None:
        span = SourceSpan(file=filepath, line=issue.line, column=issue.column or 1)
    return Diagnostic(
        code=issue.code,
        message=issue.message,
        severity=severity,
        filepath=filepath,
        span=span,
    )


# ---------------------------------------------------------------------------
# Default instance
# ---------------------------------------------------------------------------

_service: ValidationService | None = None


def init_service(service: ValidationService) -> None:
    """Set the process-wide default service."""
    global _service  # noqa: PLW0603
    _service = service


def get_service() -> ValidationService:
    """Default service, created from :class:`Settings` on first use."""
    global _service  # noqa: PLW0603
    if _service is None:
        _service = ValidationService.from_settings()
    return _service


def reset_service() -> None:
    """Drop the default service (for tests)."""
    global _service  # noqa: PLW0603
    _service = None
