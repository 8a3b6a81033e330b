"""Error enhancement: suggestions, hints and examples for validation findings."""

from ubml.diagnostics.enhancer import ErrorEnhancer
from ubml.diagnostics.formatting import format_diagnostic, format_enhanced_diagnostic
from ubml.diagnostics.matching import find_closest_match, levenshtein

__all__ = [
    "ErrorEnhancer",
    "find_closest_match",
    "format_diagnostic",
    "format_enhanced_diagnostic",
    "levenshtein",
]
