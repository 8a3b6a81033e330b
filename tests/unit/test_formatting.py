"""Tests for plain-text diagnostic rendering."""

from __future__ import annotations

from ubml.diagnostics.formatting import (
    MAX_OPTIONS_SHOWN,
    format_diagnostic,
    format_enhanced_diagnostic,
    format_location,
)
from ubml.models.errors import Diagnostic, DiagnosticCode, Severity, SourceSpan
from ubml.models.findings import EnhancedDiagnostic


class TestFormatEnhanced:
    def test_message_only(self) -> None:
        assert format_enhanced_diagnostic(EnhancedDiagnostic(message="Bad value")) == "Bad value"

    def test_all_sections(self) -> None:
        diag = EnhancedDiagnostic(
            message='Unknown property: "responsible"',
            suggestion="Did you mean to put this inside 'RACI'?",
            hint="RACI groups the responsibility fields.",
            example="RACI:\n  responsible: [AC00001]",
            valid_options=["name", "RACI"],
        )
        assert format_enhanced_diagnostic(diag) == (
            'Unknown property: "responsible"\n'
            "  Suggestion: Did you mean to put this inside 'RACI'?\n"
            "  Hint: RACI groups the responsibility fields.\n"
            "  Example:\n"
            "    RACI:\n"
            "      responsible: [AC00001]\n"
            "  Valid options: name, RACI"
        )

    def test_long_option_lists_truncated(self) -> None:
        options = [f"opt{i}" for i in range(20)]
        rendered = format_enhanced_diagnostic(EnhancedDiagnostic(message="m", valid_options=options))
        last = rendered.splitlines()[-1]
        assert last.startswith("  Valid options: opt0, opt1")
        assert f"opt{MAX_OPTIONS_SHOWN - 1}, … 8 more" in last
        assert f"opt{MAX_OPTIONS_SHOWN}," not in last

    def test_exactly_max_options_not_truncated(self) -> None:
        options = [f"o{i}" for i in range(MAX_OPTIONS_SHOWN)]
        rendered = format_enhanced_diagnostic(EnhancedDiagnostic(message="m", valid_options=options))
        assert "more" not in rendered


class TestFormatDiagnostic:
    def test_located(self) -> None:
        diag = Diagnostic(
            code=DiagnosticCode.UNDEFINED_REFERENCE,
            message="Undefined reference: AC00009",
            filepath="p.process.ubml.yaml",
            span=SourceSpan(file="p.process.ubml.yaml", line=6, column=12),
            suggestion='Did you mean: "AC00001"?',
        )
        assert format_location(diag) == "p.process.ubml.yaml:6:12"
        assert format_diagnostic(diag) == (
            "p.process.ubml.yaml:6:12 error ubml/undefined-reference "
            "Undefined reference: AC00009\n"
            '  Suggestion: Did you mean: "AC00001"?'
        )

    def test_unlocated_warning(self) -> None:
        diag = Diagnostic(
            code=DiagnosticCode.MISSING_WORKSPACE,
            message="No workspace file found",
            severity=Severity.WARNING,
        )
        assert format_location(diag) == "<unknown>"
        assert format_diagnostic(diag).startswith(
            "<unknown> warning ubml/missing-workspace No workspace"
        )

    def test_file_without_span(self) -> None:
        diag = Diagnostic(code="ubml/schema-enum", message="m", filepath="a.ubml.yaml")
        assert format_location(diag) == "a.ubml.yaml"
