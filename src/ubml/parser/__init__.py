"""UBML YAML parsing: source-mapped loading, type detection and serialization."""

from ubml.parser.detection import (
    detect_document_type,
    detect_document_type_from_content,
    is_ubml_file,
)
from ubml.parser.loader import TrackedLoader, YAMLSafetyError, parse, parse_file
from ubml.parser.serializer import SerializeOptions, serialize

__all__ = [
    "SerializeOptions",
    "TrackedLoader",
    "YAMLSafetyError",
    "detect_document_type",
    "detect_document_type_from_content",
    "is_ubml_file",
    "parse",
    "parse_file",
    "serialize",
]
