"""Plain-text rendering of diagnostics (no colour, no terminal control codes)."""

from __future__ import annotations

from ubml.models.errors import Diagnostic
from ubml.models.findings import EnhancedDiagnostic

MAX_OPTIONS_SHOWN = 12


def format_enhanced_diagnostic(diag: EnhancedDiagnostic | Diagnostic) -> str:
    """Message followed by whichever of suggestion, hint, example and options are set.

    >>> format_enhanced_diagnostic(EnhancedDiagnostic(message="Bad value"))
    'Bad value'
    """
    lines = [diag.message]
    if diag.suggestion:
        lines.append(f"  Suggestion: {diag.suggestion}")
    if diag.hint:
        lines.append(f"  Hint: {diag.hint}")
    if diag.example:
        lines.append("  Example:")
        lines.extend(f"    {line}" for line in diag.example.splitlines())
    if diag.valid_options:
        shown = ", ".join(diag.valid_options[:MAX_OPTIONS_SHOWN])
        hidden = len(diag.valid_options) - MAX_OPTIONS_SHOWN
        if hidden > 0:
            shown += f", … {hidden} more"
        lines.append(f"  Valid options: {shown}")
    return "\n".join(lines)


def format_location(diag: Diagnostic) -> str:
    """``file:line:column`` as far as it is known."""
    location = diag.filepath or "<unknown>"
    if diag.span is not None:
        location += f":{diag.span.line}:{diag.span.column}"
    return location


def format_diagnostic(diag: Diagnostic) -> str:
    """One located diagnostic, e.g. ``sales.process.ubml.yaml:4:11 error ubml/... msg``."""
    header = f"{format_location(diag)} {diag.severity} {diag.code}"
    return f"{header} {format_enhanced_diagnostic(diag)}"
