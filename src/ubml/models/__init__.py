"""Domain models for the UBML validator."""

from ubml.models.document import (
    Document,
    DocumentMeta,
    MappingNode,
    Node,
    ParseIssue,
    ParseResult,
    ScalarNode,
    SequenceNode,
    SourceMap,
)
from ubml.models.errors import (
    Diagnostic,
    DiagnosticCode,
    RelatedLocation,
    Severity,
    SourceSpan,
    ValidationResult,
)
from ubml.models.findings import EnhancedDiagnostic, RawValidationFinding, SchemaContext

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "Document",
    "DocumentMeta",
    "EnhancedDiagnostic",
    "MappingNode",
    "Node",
    "ParseIssue",
    "ParseResult",
    "RawValidationFinding",
    "RelatedLocation",
    "ScalarNode",
    "SchemaContext",
    "SequenceNode",
    "Severity",
    "SourceMap",
    "SourceSpan",
    "ValidationResult",
]
