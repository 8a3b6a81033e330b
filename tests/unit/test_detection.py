"""Tests for document type detection."""

from __future__ import annotations

import pytest

from ubml.models.document import node_from_python
from ubml.parser.detection import (
    CONTENT_SIGNATURES,
    DOCUMENT_TYPES,
    detect_document_type,
    detect_document_type_from_content,
    get_ubml_file_patterns,
    is_ubml_file,
)
from ubml.schema.metadata import UBMLMetadata


class TestFilenameDetection:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("sales.process.ubml.yaml", "process"),
            ("process.ubml.yaml", "process"),
            ("team.actors.ubml.yml", "actors"),
            ("docs/model/Order.Entities.UBML.YAML", "entities"),
            ("/abs/path/acme.workspace.ubml.yaml", "workspace"),
            ("a.b.glossary.ubml.yaml", "glossary"),
        ],
    )
    def test_recognised(self, filename: str, expected: str) -> None:
        assert detect_document_type(filename) == expected

    @pytest.mark.parametrize(
        "filename",
        [None, "", "sales.yaml", "generic.ubml.yaml", "sales.process.yaml", "process.ubml.json"],
    )
    def test_not_recognised(self, filename: str | None) -> None:
        assert detect_document_type(filename) is None

    def test_is_ubml_file(self) -> None:
        assert is_ubml_file("x.views.ubml.yaml")
        assert not is_ubml_file("x.unknown.ubml.yaml")

    def test_file_patterns_cover_every_type(self) -> None:
        patterns = get_ubml_file_patterns()
        for doc_type in DOCUMENT_TYPES:
            assert f"**/*.{doc_type}.ubml.yaml" in patterns
            assert f"**/{doc_type}.ubml.yaml" in patterns


class TestContentDetection:
    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            ({"processes": {}}, "process"),
            ({"actors": {}}, "actors"),
            ({"skills": {}}, "actors"),
            ({"locations": {}}, "entities"),
            ({"hypothesisTrees": {}}, "hypotheses"),
            ({"kpis": {}}, "metrics"),
            ({"scenarios": {}}, "scenarios"),
            ({"capabilities": {}}, "strategy"),
            ({"miningSources": {}}, "mining"),
            ({"views": {}}, "views"),
            ({"links": []}, "links"),
            ({"terms": []}, "glossary"),
            ({"organization": {}}, "workspace"),
        ],
    )
    def test_signature_keys(self, content: dict, expected: str) -> None:
        assert detect_document_type_from_content(content) == expected
        assert detect_document_type_from_content(node_from_python(content)) == expected

    def test_process_with_links_is_process(self) -> None:
        assert detect_document_type_from_content({"links": [], "processes": {}}) == "process"

    def test_no_signature(self) -> None:
        assert detect_document_type_from_content({"name": "x"}) is None
        assert detect_document_type_from_content(["processes"]) is None
        assert detect_document_type_from_content(None) is None

    def test_table_matches_schema_declarations(self, metadata: UBMLMetadata) -> None:
        declared = {doc_type: set(keys) for doc_type, keys in metadata.content_signatures}
        assert {t: set(k) for t, k in CONTENT_SIGNATURES} == declared
        assert list(DOCUMENT_TYPES) == metadata.document_types
