"""Tests for error enhancement."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from ubml.diagnostics.enhancer import ErrorEnhancer
from ubml.models.document import Document
from ubml.models.errors import Diagnostic, DiagnosticCode, Severity
from ubml.models.findings import RawValidationFinding, SchemaContext
from ubml.validator.references import ReferenceValidator

STEP_KINDS = ["action", "milestone", "decision"]
DURATION_PATTERN = r"^[0-9]+(\.[0-9]+)?(min|h|d|wk|mo)$"
ACTOR_PATTERN = r"^AC\d{5,}$"


def _enum(value: object, allowed: list[str] = STEP_KINDS, **kwargs: object) -> RawValidationFinding:
    return RawValidationFinding(
        keyword="enum",
        instance_path="/processes/PR00001/steps/ST00001/kind",
        params={"allowedValues": allowed},
        data=value,
        message="must be equal to one of the allowed values",
        **kwargs,
    )


def _pattern(value: str, pattern: str, **kwargs: object) -> RawValidationFinding:
    return RawValidationFinding(
        keyword="pattern",
        instance_path="/x",
        params={"pattern": pattern},
        data=value,
        message=f'must match pattern "{pattern}"',
        **kwargs,
    )


@pytest.fixture
def plain() -> ErrorEnhancer:
    """Enhancer without schema metadata: heuristics and nearest match only."""
    return ErrorEnhancer()


class TestEnum:
    def test_closest_match(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_enum("acton"))
        assert result.message == 'Invalid value: "acton"'
        assert result.suggestion is not None
        assert '"action"' in result.suggestion
        assert result.valid_options == STEP_KINDS

    def test_no_close_match(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_enum("xyz"))
        assert result.suggestion is None
        assert result.valid_options == STEP_KINDS

    def test_literal_hint_beats_closest_match(self, plain: ErrorEnhancer) -> None:
        schema = {
            "enum": STEP_KINDS,
            "x-ubml": {"valueMistakes": {"acton": {"hint": "Spell it 'action'."}}},
        }
        result = plain.enhance(_enum("acton", schema_=schema))
        assert result.suggestion == "Spell it 'action'."

    def test_literal_hint_from_metadata(self, enhancer: ErrorEnhancer) -> None:
        result = enhancer.enhance(_enum("task"))
        assert result.suggestion is not None
        assert "'action'" in result.suggestion
        assert "Did you mean" not in result.suggestion

    def test_null_value(self, plain: ErrorEnhancer) -> None:
        assert plain.enhance(_enum(None)).message == 'Invalid value: ""'


class TestAdditionalProperties:
    def _finding(self, prop: str, properties: list[str]) -> RawValidationFinding:
        return RawValidationFinding(
            keyword="additionalProperties",
            instance_path="/processes/PR00001/steps/ST00001",
            params={"additionalProperty": prop},
            message="must NOT have additional properties",
            schema_={"properties": {p: {"type": "string"} for p in properties}},
        )

    def test_closest_property(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("nane", ["name", "description"]))
        assert result.message == 'Unknown property: "nane"'
        assert result.suggestion == 'Did you mean: "name"?'
        assert result.valid_options == ["name", "description"]

    def test_unrelated_property(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("zzzzzz", ["name", "description"]))
        assert result.suggestion is None

    def test_nested_property_hint(self, enhancer: ErrorEnhancer) -> None:
        result = enhancer.enhance(self._finding("responsible", ["name", "kind", "RACI"]))
        assert result.suggestion == "Did you mean to put this inside 'RACI'?"
        assert result.example == "RACI:\n  responsible: [AC00001]"

    def test_nested_hint_needs_parent_in_scope(self, enhancer: ErrorEnhancer) -> None:
        result = enhancer.enhance(self._finding("responsible", ["name", "capacity"]))
        assert result.example is None
        assert result.suggestion is None


class TestPattern:
    def test_missing_unit(self, enhancer: ErrorEnhancer) -> None:
        result = enhancer.enhance(_pattern("30", DURATION_PATTERN))
        assert result.message == 'Invalid format: "30"'
        assert result.suggestion == 'Missing unit: try "30min"'
        assert result.hint is not None and "min, h, d" in result.hint
        assert result.example == "30min"

    def test_too_few_digits(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_pattern("AC1", ACTOR_PATTERN))
        assert result.suggestion == 'ID needs at least 5 digits: use "AC00001"'
        assert result.hint == "IDs are AC followed by 5+ digits (e.g., AC00001)."
        assert result.example == "AC00001"

    def test_lowercase_prefix(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_pattern("ac00001", ACTOR_PATTERN))
        assert result.suggestion == 'ID prefixes are uppercase: use "AC00001"'

    def test_wrong_prefix(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_pattern("PR00001", ACTOR_PATTERN))
        assert result.suggestion == 'Expected an ID starting with "AC", got "PR"'

    def test_surrounding_whitespace(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_pattern(" 2h", DURATION_PATTERN))
        assert result.suggestion == 'Remove the surrounding whitespace: "2h"'

    def test_schema_hint_and_example(self, plain: ErrorEnhancer) -> None:
        schema = {"pattern": DURATION_PATTERN, "examples": ["2h"], "x-ubml": {"errorHint": "H"}}
        result = plain.enhance(_pattern("soon", DURATION_PATTERN, schema_=schema))
        assert result.hint == "H"
        assert result.example == "2h"
        assert result.suggestion is None

    def test_generic_hint(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(_pattern("abc", "^[A-Z]+$"))
        assert result.hint == "Must match pattern: ^[A-Z]+$"
        assert result.example is None


class TestRequired:
    def _finding(self, prop: str, schema: dict | None = None) -> RawValidationFinding:
        return RawValidationFinding(
            keyword="required",
            instance_path="/processes/PR00001",
            params={"missingProperty": prop},
            message=f"must have required property '{prop}'",
            schema_=schema,
        )

    def test_declared_hint(self, enhancer: ErrorEnhancer) -> None:
        result = enhancer.enhance(self._finding("name"))
        assert result.message == 'Missing required property: "name"'
        assert result.hint == "Elements need a human-readable 'name'."
        assert result.example == 'name: "Approve Invoice"'

    def test_property_example(self, plain: ErrorEnhancer) -> None:
        schema = {"properties": {"title": {"type": "string", "examples": ["Quarterly Review"]}}}
        result = plain.enhance(self._finding("title", schema))
        assert result.example == "title: Quarterly Review"

    def test_generic(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("title"))
        assert result.hint == 'Add the "title" property.'
        assert result.example == "title: ..."


class TestType:
    def _finding(self, expected: str, value: object) -> RawValidationFinding:
        return RawValidationFinding(
            keyword="type", instance_path="/x", params={"type": expected}, data=value
        )

    def test_wrap_in_list(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("array", "AC00001"))
        assert result.message == "Type mismatch: expected array, got string"
        assert result.suggestion == "Wrap the value in a list: [AC00001]"

    def test_mapping_expected(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("object", "text"))
        assert result.suggestion == "Use a mapping of 'key: value' entries here"

    def test_quote_number(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("string", 1.0))
        assert result.message == "Type mismatch: expected string, got number"
        assert result.suggestion == 'Quote the value to make it a string: "1.0"'

    def test_no_suggestion_for_objects(self, plain: ErrorEnhancer) -> None:
        result = plain.enhance(self._finding("string", {"a": 1}))
        assert result.message == "Type mismatch: expected string, got object"
        assert result.suggestion is None


class TestFallbacks:
    def test_unhandled_keyword_passes_engine_message(self, plain: ErrorEnhancer) -> None:
        finding = RawValidationFinding(
            keyword="minimum", params={"limit": 1}, data=0, message="0 is less than 1"
        )
        assert plain.enhance(finding).message == "0 is less than 1"

    def test_enhancement_failure_keeps_finding(self, plain: ErrorEnhancer) -> None:
        finding = RawValidationFinding(
            keyword="enum", params={"allowedValues": 5}, data="x", message="engine says no"
        )
        result = plain.enhance(finding)
        assert result.message == "engine says no"

    def test_combinator_hint(self, plain: ErrorEnhancer) -> None:
        finding = RawValidationFinding(
            keyword="oneOf",
            params={"bestMatch": "'expression' is a required property"},
            message="is not valid under any of the given schemas",
        )
        result = plain.enhance(finding)
        assert result.message == "is not valid under any of the given schemas"
        assert result.hint is not None and "'expression'" in result.hint

    def test_explicit_context(self, plain: ErrorEnhancer) -> None:
        finding = RawValidationFinding(
            keyword="additionalProperties", params={"additionalProperty": "nane"}
        )
        result = plain.enhance(finding, SchemaContext(valid_properties=["name"]))
        assert result.suggestion == 'Did you mean: "name"?'


class TestToDiagnostic:
    def test_located_diagnostic(
        self, enhancer: ErrorEnhancer, parse_doc: Callable[..., Document]
    ) -> None:
        doc = parse_doc('ubml: "1.0"\nname: ACME\ncolour: red\n', "a.workspace.ubml.yaml")
        finding = RawValidationFinding(
            keyword="additionalProperties",
            instance_path="",
            params={"additionalProperty": "colour"},
            schema_={"properties": {"ubml": {}, "name": {}, "description": {}}},
        )
        diag = enhancer.to_diagnostic(finding, doc)
        assert diag.code == "ubml/schema-additionalProperties"
        assert diag.severity == Severity.ERROR
        assert diag.filepath == "a.workspace.ubml.yaml"
        assert diag.path == "/colour"
        assert diag.line == 3
        assert diag.valid_options == ["ubml", "name", "description"]

    def test_without_document(self, plain: ErrorEnhancer) -> None:
        diag = plain.to_diagnostic(_enum("acton"))
        assert diag.filepath is None
        assert diag.span is None
        assert diag.path == "/processes/PR00001/steps/ST00001/kind"


class TestEnhanceReference:
    ACTORS = 'ubml: "1.0"\nactors:\n  AC00001:\n    name: Clerk\n    type: role\n'

    def _run(
        self,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
        *texts: tuple[str, str],
    ) -> tuple[list[Diagnostic], list[Diagnostic], object]:
        docs = [parse_doc(text, name) for name, text in texts]
        result = reference_validator.validate(docs)
        return result.errors, result.warnings, result.registry

    def test_undefined_suggests_closest_id(
        self,
        enhancer: ErrorEnhancer,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
    ) -> None:
        process = 'ubml: "1.0"\nprocesses:\n  PR00001:\n    name: P\n    owner: AC00002\n'
        errors, _, registry = self._run(
            reference_validator,
            parse_doc,
            ("a.actors.ubml.yaml", self.ACTORS),
            ("p.process.ubml.yaml", process),
        )
        assert [e.code for e in errors] == [DiagnosticCode.UNDEFINED_REFERENCE]
        enhanced = enhancer.enhance_reference(errors[0], registry)  # type: ignore[arg-type]
        assert enhanced.suggestion == 'Did you mean: "AC00001"?'
        assert enhanced.hint is not None and "actors document" in enhanced.hint
        assert enhanced.valid_options == ["AC00001"]
        assert enhanced.message == errors[0].message

    def test_wrong_type_lists_expected(
        self,
        enhancer: ErrorEnhancer,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
    ) -> None:
        process = (
            'ubml: "1.0"\nprocesses:\n  PR00001:\n    name: P\n    owner: PR00001\n'
        )
        errors, _, registry = self._run(
            reference_validator,
            parse_doc,
            ("a.actors.ubml.yaml", self.ACTORS),
            ("p.process.ubml.yaml", process),
        )
        assert [e.code for e in errors] == [DiagnosticCode.WRONG_REFERENCE_TYPE]
        enhanced = enhancer.enhance_reference(errors[0], registry)  # type: ignore[arg-type]
        assert enhanced.hint == "'owner' accepts: Actor ID"
        assert enhanced.valid_options == ["AC00001"]

    def test_duplicate_suggests_next_free_id(
        self,
        enhancer: ErrorEnhancer,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
    ) -> None:
        errors, _, registry = self._run(
            reference_validator,
            parse_doc,
            ("a.actors.ubml.yaml", self.ACTORS),
            ("b.actors.ubml.yaml", self.ACTORS),
        )
        enhanced = enhancer.enhance_reference(errors[0], registry)  # type: ignore[arg-type]
        assert enhanced.suggestion == 'Use a new ID such as "AC00002"'

    def test_unused_catalog_hint(
        self,
        enhancer: ErrorEnhancer,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
    ) -> None:
        _, warnings, registry = self._run(
            reference_validator, parse_doc, ("a.actors.ubml.yaml", self.ACTORS)
        )
        enhanced = enhancer.enhance_reference(warnings[0], registry)  # type: ignore[arg-type]
        assert enhanced.hint is not None and "catalogs" in enhanced.hint
        assert enhanced.severity == Severity.WARNING

    def test_unused_process_hint(
        self,
        enhancer: ErrorEnhancer,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
    ) -> None:
        process = 'ubml: "1.0"\nprocesses:\n  PR00001:\n    name: P\n'
        _, warnings, registry = self._run(
            reference_validator, parse_doc, ("p.process.ubml.yaml", process)
        )
        enhanced = enhancer.enhance_reference(warnings[0], registry)  # type: ignore[arg-type]
        assert enhanced.hint == "Reference PR00001 from another element or remove it."

    def test_without_metadata_unchanged(
        self,
        plain: ErrorEnhancer,
        reference_validator: ReferenceValidator,
        parse_doc: Callable[..., Document],
    ) -> None:
        _, warnings, registry = self._run(
            reference_validator, parse_doc, ("a.actors.ubml.yaml", self.ACTORS)
        )
        assert plain.enhance_reference(warnings[0], registry) is warnings[0]  # type: ignore[arg-type]
