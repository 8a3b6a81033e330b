"""Workspace structure checks: advisory warnings about the document set as a whole."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from ubml.models.document import Document
from ubml.models.errors import Diagnostic, DiagnosticCode, Severity

_GLOSSARY_THRESHOLD = 5


@dataclass
class WorkspaceStructureResult:
    """Structure warnings never make a workspace invalid."""

    warnings: list[Diagnostic] = field(default_factory=list)
    document_types: dict[str, list[str]] = field(default_factory=dict)


def validate_workspace_structure(documents: Sequence[Document]) -> WorkspaceStructureResult:
    document_types: dict[str, list[str]] = {}
    for doc in documents:
        if doc.meta.type:
            document_types.setdefault(doc.meta.type, []).append(doc.filepath)

    warnings: list[Diagnostic] = []
    if "workspace" not in document_types:
        warnings.append(
            _warning(
                DiagnosticCode.MISSING_WORKSPACE,
                "No workspace file found",
                "Create a *.workspace.ubml.yaml file to define your project",
            )
        )
    if "process" in document_types and "actors" not in document_types:
        warnings.append(
            _warning(
                DiagnosticCode.MISSING_ACTORS,
                "Process files exist but no actors are defined",
                "Add actors.ubml.yaml to define who performs process steps",
            )
        )
    if len(documents) >= _GLOSSARY_THRESHOLD and "glossary" not in document_types:
        warnings.append(
            _warning(
                DiagnosticCode.SUGGEST_GLOSSARY,
                "Complex workspace without glossary",
                "Consider adding glossary.ubml.yaml for consistent terminology",
            )
        )
    return WorkspaceStructureResult(warnings=warnings, document_types=document_types)


def _warning(code: DiagnosticCode, message: str, suggestion: str) -> Diagnostic:
    return Diagnostic(code=code, message=message, severity=Severity.WARNING, suggestion=suggestion)
