"""Schema registry: loads the UBML schema set once and serves compiled validators."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ubml.models.document import DocumentType
from ubml.schema.metadata import UBMLMetadata, build_metadata

logger = logging.getLogger("ubml.schema")

BUNDLED_SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"
ROOT_SCHEMA_FILE = "ubml.schema.yaml"
DEFS_SCHEMA_FILE = "common/defs.schema.yaml"


class UBMLConfigurationError(Exception):
    """Tooling or setup problem, as opposed to a problem in a document."""


class SchemaNotFoundError(UBMLConfigurationError):
    """Raised when no schema is registered for a document type."""

    def __init__(self, document_type: str | None, available: list[str]) -> None:
        self.document_type = document_type
        self.available = available
        super().__init__(
            f"No schema registered for document type '{document_type}'. "
            f"Available: {', '.join(available)}"
        )


class SchemaRegistryError(UBMLConfigurationError):
    """Raised when schema files are missing or malformed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid schema set at {self.path}: {reason}")


class SchemaRegistry:
    """Immutable set of UBML schemas, one per document type.

    Build it once (``SchemaRegistry.load()``) and share it: nothing on it is
    mutated after construction. Hot reloads create a new registry and swap
    the reference held by the validator.
    """

    def __init__(
        self,
        root: Mapping[str, Any],
        defs: Mapping[str, Any],
        documents: Mapping[DocumentType, Mapping[str, Any]],
        source: str | Path = "<memory>",
    ) -> None:
        self.source = str(source)
        self._root = root
        self._defs = defs
        self._documents = dict(documents)

        resources: dict[str, Resource[Any]] = {}
        for label, schema in [
            (ROOT_SCHEMA_FILE, root),
            (DEFS_SCHEMA_FILE, defs),
            *((f"{t} document schema", s) for t, s in self._documents.items()),
        ]:
            uri = schema.get("$id")
            if not isinstance(uri, str) or not uri:
                raise SchemaRegistryError(self.source, f"{label} has no $id")
            if uri in resources:
                raise SchemaRegistryError(self.source, f"duplicate schema $id {uri}")
            try:
                Draft202012Validator.check_schema(schema)
            except SchemaError as exc:
                raise SchemaRegistryError(self.source, f"{label}: {exc.message}") from exc
            resources[uri] = DRAFT202012.create_resource(schema)

        self._registry: Registry[Any] = Registry().with_resources(resources.items())

        try:
            self.metadata: UBMLMetadata = build_metadata(
                root, defs, self._documents, self._registry
            )
        except (ValueError, KeyError, LookupError) as exc:
            raise SchemaRegistryError(self.source, str(exc)) from exc

        self._validators = {
            doc_type: Draft202012Validator(
                schema,
                registry=self._registry,
                format_checker=Draft202012Validator.FORMAT_CHECKER,
            )
            for doc_type, schema in self._documents.items()
        }
        logger.info(
            "Loaded %d document schemas from %s (%d reference fields)",
            len(self._documents),
            self.source,
            len(self.metadata.reference_fields),
        )

    # -- loading ---------------------------------------------------------------

    @classmethod
    def load(cls, schemas_dir: str | Path | None = None) -> SchemaRegistry:
        """Load the schema set from ``schemas_dir`` (bundled schemas by default)."""
        base = Path(schemas_dir) if schemas_dir is not None else BUNDLED_SCHEMAS_DIR
        root = _read_schema(base / ROOT_SCHEMA_FILE)
        defs = _read_schema(base / DEFS_SCHEMA_FILE)

        doc_types = root.get("x-ubml-documents")
        if not isinstance(doc_types, list) or not doc_types:
            raise SchemaRegistryError(base / ROOT_SCHEMA_FILE, "x-ubml-documents is empty")

        documents: dict[DocumentType, dict[str, Any]] = {}
        for doc_type in doc_types:
            path = base / "documents" / f"{doc_type}.document.yaml"
            schema = _read_schema(path)
            declared = (schema.get("x-ubml-document") or {}).get("type")
            if declared != doc_type:
                raise SchemaRegistryError(
                    path, f"declares document type {declared!r}, expected {doc_type!r}"
                )
            documents[str(doc_type)] = schema
        return cls(root, defs, documents, source=base)

    # -- lookups -------------------------------------------------------------

    @property
    def document_types(self) -> list[DocumentType]:
        return list(self._documents)

    def has_schema(self, document_type: DocumentType | None) -> bool:
        return document_type in self._documents

    def get_schema(self, document_type: DocumentType | None) -> Mapping[str, Any]:
        if document_type not in self._documents:
            raise SchemaNotFoundError(document_type, self.document_types)
        return self._documents[document_type]

    def schema_uri(self, document_type: DocumentType | None) -> str:
        return str(self.get_schema(document_type)["$id"])

    def validator_for(self, document_type: DocumentType | None) -> Draft202012Validator:
        if document_type not in self._validators:
            raise SchemaNotFoundError(document_type, self.document_types)
        return self._validators[document_type]

    @property
    def referencing_registry(self) -> Registry[Any]:
        return self._registry

    @property
    def defs(self) -> Mapping[str, Any]:
        return self._defs


def _read_schema(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = YAML(typ="safe").load(handle)
    except OSError as exc:
        raise SchemaRegistryError(path, f"cannot read schema file ({exc})") from exc
    except YAMLError as exc:
        raise SchemaRegistryError(path, f"schema file is not valid YAML ({exc})") from exc
    if not isinstance(data, dict):
        raise SchemaRegistryError(path, "schema file must contain a mapping")
    return data
