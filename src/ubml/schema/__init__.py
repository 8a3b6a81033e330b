"""Schema registry, derived metadata and ID utilities."""

from ubml.schema.ids import IdConfig, IdScheme, parse_id_number
from ubml.schema.metadata import (
    Multiplicity,
    ReferenceFieldRegistry,
    ToolingHints,
    UBMLMetadata,
)
from ubml.schema.registry import (
    SchemaNotFoundError,
    SchemaRegistry,
    SchemaRegistryError,
    UBMLConfigurationError,
)

__all__ = [
    "IdConfig",
    "IdScheme",
    "Multiplicity",
    "ReferenceFieldRegistry",
    "SchemaNotFoundError",
    "SchemaRegistry",
    "SchemaRegistryError",
    "ToolingHints",
    "UBMLConfigurationError",
    "UBMLMetadata",
    "parse_id_number",
]
