"""Shared test fixtures for the UBML validator."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from ubml.diagnostics.enhancer import ErrorEnhancer
from ubml.models.document import Document
from ubml.parser.loader import TrackedLoader
from ubml.schema.metadata import UBMLMetadata
from ubml.schema.registry import SchemaRegistry
from ubml.service.validation import ValidationService
from ubml.validator.references import ReferenceValidator
from ubml.validator.schema_validator import SchemaValidator

ACTORS_FILE = "organization.actors.ubml.yaml"
PROCESS_FILE = "procurement.process.ubml.yaml"
ENTITIES_FILE = "procurement.entities.ubml.yaml"
WORKSPACE_FILE = "acme.workspace.ubml.yaml"

SAMPLE_ACTORS_YAML = """\
ubml: "1.0"
name: Organization
actors:
  AC00001:
    name: Accounts Payable Clerk
    type: role
    kind: human
  AC00002:
    name: ERP System
    type: system
    kind: system
skills:
  SK00001:
    name: Invoice Processing
"""

SAMPLE_PROCESS_YAML = """\
ubml: "1.0"
name: Procurement
processes:
  PR00001:
    name: Procure to Pay
    owner: AC00001
    steps:
      ST00001:
        name: Receive Invoice
        kind: action
        duration: 30min
        RACI:
          responsible: [AC00001]
        systems: [AC00002]
      ST00002:
        name: Approve Invoice
        kind: decision
        skills: [SK00001]
        inputs: [EN00001]
    links:
      - from: ST00001
        to: ST00002
"""

SAMPLE_ENTITIES_YAML = """\
ubml: "1.0"
entities:
  EN00001:
    name: Invoice
    owner: AC00001
"""

SAMPLE_WORKSPACE_YAML = """\
ubml: "1.0"
name: ACME Procurement
documents:
  - organization.actors.ubml.yaml
  - procurement.process.ubml.yaml
  - procurement.entities.ubml.yaml
"""

SAMPLE_WORKSPACE = {
    ACTORS_FILE: SAMPLE_ACTORS_YAML,
    PROCESS_FILE: SAMPLE_PROCESS_YAML,
    ENTITIES_FILE: SAMPLE_ENTITIES_YAML,
    WORKSPACE_FILE: SAMPLE_WORKSPACE_YAML,
}


@pytest.fixture(scope="session")
def registry() -> SchemaRegistry:
    """Bundled schemas, loaded once for the whole run."""
    return SchemaRegistry.load()


@pytest.fixture(scope="session")
def metadata(registry: SchemaRegistry) -> UBMLMetadata:
    return registry.metadata


@pytest.fixture
def loader() -> TrackedLoader:
    return TrackedLoader()


@pytest.fixture
def schema_validator(registry: SchemaRegistry) -> SchemaValidator:
    return SchemaValidator(registry)


@pytest.fixture
def reference_validator(metadata: UBMLMetadata) -> ReferenceValidator:
    return ReferenceValidator(metadata)


@pytest.fixture
def enhancer(metadata: UBMLMetadata) -> ErrorEnhancer:
    return ErrorEnhancer(metadata)


@pytest.fixture
def service(registry: SchemaRegistry) -> ValidationService:
    return ValidationService(registry)


@pytest.fixture
def parse_doc(loader: TrackedLoader) -> Callable[[str, str | None], Document]:
    """Parse text that is expected to be well-formed YAML."""

    def _parse(text: str, filename: str | None = None) -> Document:
        result = loader.load_string(text, filename)
        assert result.ok, f"Unexpected parse errors: {result.errors}"
        assert result.document is not None
        return result.document

    return _parse


@pytest.fixture
def sample_documents(parse_doc: Callable[[str, str | None], Document]) -> list[Document]:
    """The four-file sample workspace, in a fixed order."""
    return [parse_doc(text, name) for name, text in SAMPLE_WORKSPACE.items()]
