"""Schema and cross-document validation."""

from ubml.validator.references import (
    DefinedId,
    IdentifierRegistry,
    IdReference,
    ReferenceValidateOptions,
    ReferenceValidationResult,
    ReferenceValidator,
    validate_references,
)
from ubml.validator.schema_validator import SchemaValidator
from ubml.validator.workspace import WorkspaceStructureResult, validate_workspace_structure

__all__ = [
    "DefinedId",
    "IdReference",
    "IdentifierRegistry",
    "ReferenceValidateOptions",
    "ReferenceValidationResult",
    "ReferenceValidator",
    "SchemaValidator",
    "WorkspaceStructureResult",
    "validate_references",
    "validate_workspace_structure",
]
